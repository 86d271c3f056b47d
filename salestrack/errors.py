"""Domain exceptions.

Source errors are raised by connectors and caught per item by the scan
orchestrator. Scan admission errors are raised by the admission check and
turned into structured outcomes before they reach a caller. Everything else
is mapped to an HTTP status by the handlers in main.py.
"""

from datetime import datetime


class SalesTrackError(Exception):
    """Base class for every error the package raises on purpose."""


class NotFound(SalesTrackError):
    """Unknown item id."""


class InvalidWindow(SalesTrackError):
    """Non-positive lookback or negative period offset."""


class StoreError(SalesTrackError):
    """The snapshot store could not be reached or rejected an operation."""


# ── External source ─────────────────────────────────────────────────


class SourceError(SalesTrackError):
    """Non-2xx response or transport failure from the source API."""

    kind = "error"

    def __init__(self, message: str, source_id: str | None = None, status_code: int | None = None):
        super().__init__(message)
        self.source_id = source_id
        self.status_code = status_code


class SourceTimeout(SourceError):
    kind = "timeout"


class SourceRateLimited(SourceError):
    kind = "rate_limited"

    def __init__(self, message: str, source_id: str | None = None, retry_after: int | None = None):
        super().__init__(message, source_id=source_id, status_code=429)
        self.retry_after = retry_after


# ── Scan admission ──────────────────────────────────────────────────


class ScanAlreadyRunning(SalesTrackError):
    def __init__(self, run_id: int, started_at: datetime):
        super().__init__(f"Scan {run_id} already in progress since {started_at.isoformat()}")
        self.run_id = run_id
        self.started_at = started_at


class ScanTooRecent(SalesTrackError):
    def __init__(self, last_completed_at: datetime, retry_after_seconds: int):
        super().__init__(
            f"Last scan completed at {last_completed_at.isoformat()}; "
            f"next scan allowed in {retry_after_seconds}s"
        )
        self.last_completed_at = last_completed_at
        self.retry_after_seconds = retry_after_seconds
