"""Scan and schedule response models."""

from pydantic import BaseModel


class ScanOutcomeResponse(BaseModel):
    success: bool
    reason: str
    message: str
    scan_run_id: int | None = None
    items_scanned: int = 0
    items_failed: int = 0
    started_at: str | None = None
    retry_after_seconds: int | None = None
    failures: list[dict] = []


class ScheduleStatusResponse(BaseModel):
    success: bool = True
    is_active: bool
    scheduler_running: bool
    next_run: str | None = None
    last_run: dict | None = None
    message: str | None = None
