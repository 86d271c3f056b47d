"""Snapshot store — items, sales snapshots and scan runs.

Everything the analytics engine and the scan orchestrator read or write goes
through these functions. Callers pass a Session; each writer commits.
Database failures are rolled back and re-raised as StoreError.

Business Rules:
- Items are deduplicated by URL and never deleted
- Snapshots are append-only; reads return newest first
- A ScanRun is created RUNNING and finalized once

Called by: services/aggregator.py, services/item_history.py,
           services/scan_service.py, routers/
Depends on: models/catalog.py, models/scan.py
"""

import functools
import logging
from datetime import datetime, timedelta, timezone

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..errors import InvalidWindow, NotFound, StoreError
from ..models import Item, SalesSnapshot, ScanRun, ScanStatus
from ..tracked_items import TrackedItem
from .bucketing import SnapshotPoint

log = logging.getLogger("salestrack.store")


def _store_op(func_):
    """Roll back and wrap SQLAlchemy failures as StoreError."""

    @functools.wraps(func_)
    def wrapper(db: Session, *args, **kwargs):
        try:
            return func_(db, *args, **kwargs)
        except SQLAlchemyError as e:
            db.rollback()
            log.error("Store operation %s failed: %s", func_.__name__, e)
            raise StoreError(f"{func_.__name__} failed: {e}") from e

    return wrapper


def _point(row: SalesSnapshot) -> SnapshotPoint:
    return SnapshotPoint(
        item_id=row.item_id,
        scanned_at=row.scanned_at,
        sales_count=row.sales_count,
        price=row.price,
    )


# ═══════════════════════════════════════════════════════════════════════
#  ITEMS
# ═══════════════════════════════════════════════════════════════════════


@_store_op
def upsert_item(db: Session, tracked: TrackedItem) -> Item:
    """Return the item with this URL, creating it if missing."""
    item = db.query(Item).filter(Item.url == tracked.url).first()
    if item:
        return item
    item = Item(name=tracked.name, url=tracked.url, source_id=tracked.source_id)
    db.add(item)
    db.commit()
    log.info("Created item %s (%s)", item.id, tracked.name)
    return item


@_store_op
def upsert_items(db: Session, tracked: list[TrackedItem]) -> int:
    """Insert every tracked entry whose URL is not stored yet. Returns count created."""
    existing = {url for (url,) in db.query(Item.url).all()}
    created = 0
    for t in tracked:
        if t.url in existing:
            continue
        db.add(Item(name=t.name, url=t.url, source_id=t.source_id))
        existing.add(t.url)
        created += 1
    if created:
        db.commit()
        log.info("Catalog initialized: %d new items", created)
    return created


@_store_op
def list_items(db: Session, urls: set[str] | None = None) -> list[Item]:
    q = db.query(Item)
    if urls is not None:
        if not urls:
            return []
        q = q.filter(Item.url.in_(urls))
    return q.order_by(Item.id).all()


@_store_op
def get_item(db: Session, item_id: int) -> Item:
    item = db.get(Item, item_id)
    if item is None:
        raise NotFound(f"Item {item_id} not found")
    return item


@_store_op
def list_items_for_scan(db: Session) -> list[tuple[int, str]]:
    """Lightweight (id, source_id) projection used by the scan loop."""
    rows = db.query(Item.id, Item.source_id).order_by(Item.id).all()
    return [(r.id, r.source_id) for r in rows]


@_store_op
def update_item_details(
    db: Session, item_id: int, author: str | None = None, category: str | None = None
) -> None:
    """Refresh author/category. None leaves the stored value unchanged."""
    values = {}
    if author is not None:
        values["author"] = author
    if category is not None:
        values["category"] = category
    if not values:
        return
    values["updated_at"] = datetime.now(timezone.utc)
    db.query(Item).filter(Item.id == item_id).update(values)
    db.commit()


# ═══════════════════════════════════════════════════════════════════════
#  SNAPSHOTS
# ═══════════════════════════════════════════════════════════════════════


@_store_op
def append_snapshot(
    db: Session,
    item_id: int,
    sales_count: int,
    price: float | None = None,
    at: datetime | None = None,
) -> SnapshotPoint:
    row = SalesSnapshot(
        item_id=item_id,
        sales_count=sales_count,
        price=price,
        scanned_at=at or datetime.now(timezone.utc),
    )
    db.add(row)
    db.commit()
    return _point(row)


def _resolve_since(since_days: int | None, since: datetime | None, now: datetime | None) -> datetime | None:
    if since_days is None:
        return since
    if since_days <= 0:
        raise InvalidWindow(f"Lookback must be positive, got {since_days} days")
    cutoff = (now or datetime.now(timezone.utc)) - timedelta(days=since_days)
    return min(cutoff, since) if since else cutoff


@_store_op
def list_snapshots(
    db: Session,
    item_id: int,
    since_days: int | None = None,
    since: datetime | None = None,
    until: datetime | None = None,
    now: datetime | None = None,
) -> list[SnapshotPoint]:
    """One item's snapshots, newest first.

    since_days and since combine to the earlier of the two bounds.
    """
    cutoff = _resolve_since(since_days, since, now)
    q = db.query(SalesSnapshot).filter(SalesSnapshot.item_id == item_id)
    if cutoff is not None:
        q = q.filter(SalesSnapshot.scanned_at >= cutoff)
    if until is not None:
        q = q.filter(SalesSnapshot.scanned_at < until)
    return [_point(r) for r in q.order_by(SalesSnapshot.scanned_at.desc()).all()]


@_store_op
def list_snapshots_batch(
    db: Session,
    item_ids: list[int],
    since_days: int | None = None,
    since: datetime | None = None,
    now: datetime | None = None,
) -> dict[int, list[SnapshotPoint]]:
    """Snapshots for many items in one query, keyed by item id, newest first."""
    result: dict[int, list[SnapshotPoint]] = {i: [] for i in item_ids}
    if not item_ids:
        return result
    cutoff = _resolve_since(since_days, since, now)
    q = db.query(SalesSnapshot).filter(SalesSnapshot.item_id.in_(item_ids))
    if cutoff is not None:
        q = q.filter(SalesSnapshot.scanned_at >= cutoff)
    for row in q.order_by(SalesSnapshot.item_id, SalesSnapshot.scanned_at.desc()).all():
        result[row.item_id].append(_point(row))
    return result


@_store_op
def latest_snapshot(db: Session, item_id: int, before: datetime | None = None) -> SnapshotPoint | None:
    """Newest snapshot of the item, or the newest one strictly before `before`."""
    q = db.query(SalesSnapshot).filter(SalesSnapshot.item_id == item_id)
    if before is not None:
        q = q.filter(SalesSnapshot.scanned_at < before)
    row = q.order_by(SalesSnapshot.scanned_at.desc()).first()
    return _point(row) if row else None


@_store_op
def oldest_snapshot_timestamp(db: Session) -> datetime | None:
    return db.query(func.min(SalesSnapshot.scanned_at)).scalar()


@_store_op
def newest_snapshot_timestamp(db: Session) -> datetime | None:
    return db.query(func.max(SalesSnapshot.scanned_at)).scalar()


# ═══════════════════════════════════════════════════════════════════════
#  SCAN RUNS
# ═══════════════════════════════════════════════════════════════════════


@_store_op
def create_scan_run(db: Session, now: datetime | None = None) -> ScanRun:
    run = ScanRun(status=ScanStatus.RUNNING, started_at=now or datetime.now(timezone.utc))
    db.add(run)
    db.commit()
    return run


@_store_op
def update_scan_run(
    db: Session,
    run_id: int,
    status: str,
    completed_at: datetime | None = None,
    items_scanned: int | None = None,
    items_failed: int | None = None,
    error: str | None = None,
) -> ScanRun:
    run = db.get(ScanRun, run_id, populate_existing=True, with_for_update=True)
    if run is None:
        raise NotFound(f"Scan run {run_id} not found")
    if run.status != ScanStatus.RUNNING:
        log.warning("Scan run %d is already %s, not moving it to %s", run_id, run.status, status)
        return run
    run.status = status
    run.completed_at = completed_at or datetime.now(timezone.utc)
    if items_scanned is not None:
        run.items_scanned = items_scanned
    if items_failed is not None:
        run.items_failed = items_failed
    if error is not None:
        run.error = error
    db.commit()
    return run


@_store_op
def find_running_scan_run(db: Session) -> ScanRun | None:
    return (
        db.query(ScanRun)
        .filter(ScanRun.status == ScanStatus.RUNNING)
        .order_by(ScanRun.started_at.desc())
        .first()
    )


@_store_op
def find_last_completed_scan_run(db: Session) -> ScanRun | None:
    return (
        db.query(ScanRun)
        .filter(ScanRun.status == ScanStatus.COMPLETED)
        .order_by(ScanRun.completed_at.desc())
        .first()
    )


@_store_op
def recent_scan_runs(db: Session, limit: int = 10) -> list[ScanRun]:
    return db.query(ScanRun).order_by(ScanRun.started_at.desc()).limit(limit).all()


@_store_op
def scan_run_counts(db: Session) -> dict[str, int]:
    """{"total", "successful", "failed"} across all runs."""
    rows = db.query(ScanRun.status, func.count(ScanRun.id)).group_by(ScanRun.status).all()
    by_status = {status: count for status, count in rows}
    return {
        "total": sum(by_status.values()),
        "successful": by_status.get(ScanStatus.COMPLETED, 0),
        "failed": by_status.get(ScanStatus.FAILED, 0),
    }
