"""Source API connectors."""

from .envato import EnvatoConnector, SourceReading  # noqa: F401
