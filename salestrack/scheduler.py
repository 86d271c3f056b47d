"""Background scheduler — APScheduler jobs.

Jobs:
  - hourly_scan: every hour at minute 0 in the display timezone, runs the
    scan orchestrator (max_instances=1, coalesced)
  - cache_cleanup: every 6 hours, drops expired database cache rows

The hourly scan can be started and stopped at runtime from the cron
endpoints. Its status is read from the scheduler and the newest ScanRun.
"""

import logging
from datetime import timezone

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger

log = logging.getLogger(__name__)

HOURLY_SCAN_JOB_ID = "hourly_scan"
CACHE_CLEANUP_JOB_ID = "cache_cleanup"

scheduler = AsyncIOScheduler(timezone="UTC")


def _utc(dt):
    """Make a naive datetime UTC-aware (no-op if already aware)."""
    if dt is None:
        return None
    return dt.replace(tzinfo=timezone.utc) if dt.tzinfo is None else dt


# ── Registration ───────────────────────────────────────────────────────


def _add_hourly_scan_job():
    from .config import settings

    scheduler.add_job(
        _job_hourly_scan,
        CronTrigger(minute=0, timezone=settings.display_timezone),
        id=HOURLY_SCAN_JOB_ID,
        name="Hourly sales scan",
        max_instances=1,
        coalesce=True,
        replace_existing=True,
    )


def configure_scheduler():
    """Register all jobs. Call once on app startup, before scheduler.start()."""
    from .config import settings

    _add_hourly_scan_job()
    scheduler.add_job(
        _job_cache_cleanup,
        IntervalTrigger(hours=6),
        id=CACHE_CLEANUP_JOB_ID,
        name="Result cache cleanup",
        replace_existing=True,
    )
    log.info("Scheduler configured: hourly scan at :00 %s, cache cleanup every 6h", settings.display_timezone)


# ── Runtime control (cron endpoints) ───────────────────────────────────


def schedule_status() -> dict:
    from .database import SessionLocal
    from .services import snapshot_store as store

    job = scheduler.get_job(HOURLY_SCAN_JOB_ID)
    next_run = _utc(getattr(job, "next_run_time", None)) if job else None

    db = SessionLocal()
    try:
        recent = store.recent_scan_runs(db, limit=1)
    finally:
        db.close()
    last = recent[0] if recent else None

    return {
        "is_active": job is not None,
        "scheduler_running": scheduler.running,
        "next_run": next_run.isoformat() if next_run else None,
        "last_run": {
            "id": last.id,
            "status": last.status,
            "started_at": _utc(last.started_at).isoformat(),
            "completed_at": _utc(last.completed_at).isoformat() if last.completed_at else None,
        } if last else None,
    }


def start_schedule() -> dict:
    """Register the hourly scan job (if missing) and make sure the scheduler runs."""
    if scheduler.get_job(HOURLY_SCAN_JOB_ID) is None:
        _add_hourly_scan_job()
        log.info("Hourly scan job started")
    if not scheduler.running:
        scheduler.start()
    return schedule_status()


def stop_schedule() -> dict:
    """Remove the hourly scan job. A scan already in flight finishes normally."""
    if scheduler.get_job(HOURLY_SCAN_JOB_ID) is not None:
        scheduler.remove_job(HOURLY_SCAN_JOB_ID)
        log.info("Hourly scan job stopped")
    return schedule_status()


# ── Jobs ───────────────────────────────────────────────────────────────


async def _job_hourly_scan():
    """Run one scan. Rejections (in progress, too recent) are logged, not raised."""
    from .database import SessionLocal
    from .services.scan_service import start_scan

    db = SessionLocal()
    try:
        outcome = await start_scan(db)
        if outcome.success:
            log.info(
                "Scheduled scan %s finished: %d items, %d failed",
                outcome.scan_run_id, outcome.items_scanned, outcome.items_failed,
            )
        else:
            log.info("Scheduled scan skipped: %s (%s)", outcome.reason, outcome.message)
    except Exception as e:
        log.error("Scheduled scan error: %s", e)
        db.rollback()
    finally:
        db.close()


async def _job_cache_cleanup():
    """Remove expired result cache rows."""
    try:
        from .cache.result_cache import cleanup_expired

        cleanup_expired()
    except Exception as e:
        log.error("Cache cleanup error: %s", e)
