"""Scan orchestrator — one pass over the tracked catalog.

Admission (in order):
  1. A RUNNING run older than scan_max_duration_minutes is marked FAILED
     and the new scan is admitted (TIMED_OUT_PREVIOUS)
  2. Any other RUNNING run rejects the scan (IN_PROGRESS)
  3. A COMPLETED run newer than scan_min_interval_minutes rejects it (TOO_RECENT)
  4. Otherwise a RUNNING ScanRun is created (OK)

Execution: reconcile the tracked catalog, fetch items in batches of
scan_batch_size with a per-item timeout, write one snapshot per successful
item, keep going past per-item failures, pause between batches. A failure
outside the per-item fetches marks the run FAILED. A run another trigger
timed out while it was still fetching stays FAILED when it finishes.

Check-then-create is not atomic; two triggers landing together can both
pass admission. The scheduler runs the job with max_instances=1.

Called by: routers/scan.py, scheduler.py
Depends on: services/snapshot_store.py, connectors/envato.py, cache/result_cache.py
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone

from loguru import logger
from sqlalchemy.orm import Session

from ..cache.result_cache import ANALYTICS_TAGS, invalidate_tags
from ..config import settings
from ..connectors.envato import EnvatoConnector, SourceReading
from ..errors import ScanAlreadyRunning, ScanTooRecent, SourceError, SourceTimeout
from ..models import ScanRun, ScanStatus
from ..tracked_items import load_tracked_items
from . import snapshot_store as store

log = logging.getLogger("salestrack.scan")

REASON_OK = "OK"
REASON_TIMED_OUT_PREVIOUS = "TIMED_OUT_PREVIOUS"
REASON_IN_PROGRESS = "IN_PROGRESS"
REASON_TOO_RECENT = "TOO_RECENT"
REASON_FAILED = "FAILED"


@dataclass
class ScanOutcome:
    success: bool
    reason: str
    message: str
    scan_run_id: int | None = None
    items_scanned: int = 0
    items_failed: int = 0
    started_at: datetime | None = None
    retry_after_seconds: int | None = None
    failures: list[dict] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "success": self.success,
            "reason": self.reason,
            "message": self.message,
            "scan_run_id": self.scan_run_id,
            "items_scanned": self.items_scanned,
            "items_failed": self.items_failed,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "retry_after_seconds": self.retry_after_seconds,
            "failures": self.failures,
        }


def _utc(dt):
    """Make a naive datetime UTC-aware (no-op if already aware)."""
    if dt is None:
        return None
    return dt.replace(tzinfo=timezone.utc) if dt.tzinfo is None else dt


# ═══════════════════════════════════════════════════════════════════════
#  ADMISSION
# ═══════════════════════════════════════════════════════════════════════


def check_admission(db: Session, now: datetime | None = None) -> str:
    """Return OK or TIMED_OUT_PREVIOUS, or raise the rejection."""
    now = now or datetime.now(timezone.utc)

    running = store.find_running_scan_run(db)
    if running:
        max_minutes = settings.scan_max_duration_minutes
        if now - _utc(running.started_at) > timedelta(minutes=max_minutes):
            store.update_scan_run(
                db,
                running.id,
                ScanStatus.FAILED,
                completed_at=now,
                error=f"Scan timed out after {max_minutes} minutes",
            )
            log.warning("Scan run %d exceeded %d minutes, marked FAILED", running.id, max_minutes)
            return REASON_TIMED_OUT_PREVIOUS
        raise ScanAlreadyRunning(running.id, _utc(running.started_at))

    last = store.find_last_completed_scan_run(db)
    if last and last.completed_at:
        min_interval = timedelta(minutes=settings.scan_min_interval_minutes)
        elapsed = now - _utc(last.completed_at)
        if elapsed < min_interval:
            remaining = max(0, int((min_interval - elapsed).total_seconds()))
            raise ScanTooRecent(_utc(last.completed_at), remaining)

    return REASON_OK


# ═══════════════════════════════════════════════════════════════════════
#  EXECUTION
# ═══════════════════════════════════════════════════════════════════════


def initialize_catalog(db: Session) -> int:
    """Create stored items for every tracked entry not yet present."""
    return store.upsert_items(db, load_tracked_items())


def _batches(items: list, size: int):
    for i in range(0, len(items), size):
        yield items[i:i + size]


async def _fetch_one(connector: EnvatoConnector, source_id: str, timeout: float) -> SourceReading:
    with logger.contextualize(source_id=source_id):
        try:
            return await asyncio.wait_for(connector.fetch_item(source_id), timeout=timeout)
        except asyncio.TimeoutError as e:
            raise SourceTimeout(f"Request timeout for item {source_id}", source_id=source_id) from e


async def _run_batches(db: Session, connector: EnvatoConnector) -> tuple[int, list[dict]]:
    items = store.list_items_for_scan(db)
    size = settings.scan_batch_size
    timeout = settings.scan_item_timeout_seconds
    n_batches = (len(items) + size - 1) // size
    failures: list[dict] = []

    for n, batch in enumerate(_batches(items, size), start=1):
        log.info("Processing batch %d of %d (%d items)", n, n_batches, len(batch))
        results = await asyncio.gather(
            *(_fetch_one(connector, source_id, timeout) for _, source_id in batch),
            return_exceptions=True,
        )

        for (item_id, source_id), result in zip(batch, results):
            if isinstance(result, SourceError):
                log.warning("Scan failed for item %s (%s): %s", source_id, result.kind, result)
                failures.append({"item_id": item_id, "source_id": source_id, "kind": result.kind, "error": str(result)})
                continue
            if isinstance(result, BaseException):
                kind = "cancelled" if isinstance(result, asyncio.CancelledError) else "error"
                log.error("Unexpected error scanning item %s (%s): %r", source_id, kind, result)
                failures.append({"item_id": item_id, "source_id": source_id, "kind": kind, "error": str(result) or kind})
                continue
            store.append_snapshot(db, item_id, result.sales_count, result.price)
            store.update_item_details(db, item_id, author=result.author, category=result.category)
            log.info("Item %s: %d sales (price %s)", source_id, result.sales_count, result.price)

        if n < n_batches:
            await asyncio.sleep(settings.scan_batch_delay_seconds)

    return len(items), failures


async def start_scan(db: Session, connector: EnvatoConnector | None = None, now: datetime | None = None) -> ScanOutcome:
    """Admit and run one scan. Never raises for admission rejections."""
    try:
        reason = check_admission(db, now=now)
    except ScanAlreadyRunning as e:
        return ScanOutcome(
            success=False,
            reason=REASON_IN_PROGRESS,
            message="A scan is already in progress",
            scan_run_id=e.run_id,
            started_at=e.started_at,
        )
    except ScanTooRecent as e:
        return ScanOutcome(
            success=False,
            reason=REASON_TOO_RECENT,
            message=f"Last scan completed recently; retry in {e.retry_after_seconds} seconds",
            retry_after_seconds=e.retry_after_seconds,
        )

    run = store.create_scan_run(db, now=now)
    connector = connector or EnvatoConnector(
        api_token=settings.envato_api_token,
        timeout=settings.scan_item_timeout_seconds,
        item_url=settings.envato_api_url,
    )
    with logger.contextualize(scan_run_id=run.id):
        log.info("Scan run %d started (%s)", run.id, reason)
        return await _execute(db, run, connector, reason, now)


async def _execute(db: Session, run: ScanRun, connector: EnvatoConnector, reason: str, now: datetime | None) -> ScanOutcome:
    try:
        initialize_catalog(db)
        attempted, failures = await _run_batches(db, connector)
    except Exception as e:
        log.error("Scan run %d failed: %s", run.id, e)
        db.rollback()
        store.update_scan_run(db, run.id, ScanStatus.FAILED, completed_at=now, error=str(e))
        return ScanOutcome(
            success=False,
            reason=REASON_FAILED,
            message=f"Scan failed: {e}",
            scan_run_id=run.id,
            started_at=_utc(run.started_at),
        )

    final = store.update_scan_run(
        db,
        run.id,
        ScanStatus.COMPLETED,
        completed_at=now,
        items_scanned=attempted,
        items_failed=len(failures),
    )
    # Snapshots were written either way
    invalidate_tags(ANALYTICS_TAGS)

    if final.status != ScanStatus.COMPLETED:
        log.warning("Scan run %d finished after it was marked %s; status kept", run.id, final.status)
        return ScanOutcome(
            success=False,
            reason=REASON_FAILED,
            message=f"Scan run {run.id} was marked {final.status} before it finished",
            scan_run_id=run.id,
            items_scanned=attempted,
            items_failed=len(failures),
            started_at=_utc(run.started_at),
            failures=failures,
        )

    log.info("Scan run %d completed: %d successful, %d failed", run.id, attempted - len(failures), len(failures))
    return ScanOutcome(
        success=True,
        reason=reason,
        message="Scan completed successfully",
        scan_run_id=run.id,
        items_scanned=attempted,
        items_failed=len(failures),
        started_at=_utc(run.started_at),
        failures=failures,
    )


# ═══════════════════════════════════════════════════════════════════════
#  STATUS
# ═══════════════════════════════════════════════════════════════════════


def _run_summary(run: ScanRun) -> dict:
    return {
        "id": run.id,
        "status": run.status,
        "started_at": _utc(run.started_at).isoformat(),
        "completed_at": _utc(run.completed_at).isoformat() if run.completed_at else None,
        "items_scanned": run.items_scanned,
        "items_failed": run.items_failed,
        "error": run.error,
    }


def get_scan_status(db: Session, now: datetime | None = None) -> dict:
    now = now or datetime.now(timezone.utc)
    running = store.find_running_scan_run(db)
    last = store.find_last_completed_scan_run(db)
    counts = store.scan_run_counts(db)
    total = counts["total"]

    return {
        "status": "healthy",
        "timestamp": now.isoformat(),
        "current_status": {
            "is_running": running is not None,
            "running_scan": {
                "id": running.id,
                "started_at": _utc(running.started_at).isoformat(),
                "elapsed_seconds": int((now - _utc(running.started_at)).total_seconds()),
            } if running else None,
        },
        "last_successful_scan": {
            "id": last.id,
            "completed_at": _utc(last.completed_at).isoformat() if last.completed_at else None,
            "items_scanned": last.items_scanned,
        } if last else None,
        "statistics": {
            "total_scans": total,
            "successful_scans": counts["successful"],
            "failed_scans": counts["failed"],
            "success_rate": round(counts["successful"] / total * 100) if total else 0,
        },
        "recent_scans": [_run_summary(r) for r in store.recent_scan_runs(db, limit=10)],
    }
