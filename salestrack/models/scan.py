"""Scan run model — one row per execution of the scan orchestrator."""

from datetime import datetime, timezone

from sqlalchemy import Column, Index, Integer, String, Text

from ..database import UTCDateTime
from .base import Base


class ScanStatus:
    RUNNING = "RUNNING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


class ScanRun(Base):
    """Created RUNNING at scan start, finalized exactly once."""

    __tablename__ = "scan_runs"
    id = Column(Integer, primary_key=True)
    status = Column(String(20), nullable=False, default=ScanStatus.RUNNING)
    started_at = Column(
        UTCDateTime, nullable=False, default=lambda: datetime.now(timezone.utc)
    )
    completed_at = Column(UTCDateTime)
    items_scanned = Column(Integer)
    items_failed = Column(Integer)
    error = Column(Text)

    __table_args__ = (
        Index("ix_scan_status_started", "status", "started_at"),
        Index("ix_scan_status_completed", "status", "completed_at"),
    )
