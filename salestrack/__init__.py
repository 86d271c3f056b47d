"""SalesTrack — Envato sales snapshot tracker and period analytics."""

__version__ = "1.0.0"
