"""
Period aggregator — per-item view records for the analytics endpoints.

Business Rules:
- Total = sum of the dense buckets of the target period
- Peak = bucket holding the maximum, ties to the lowest bucket index;
  all-zero → index 0, sales 0
- Growth compares the newer half of the raw delta series (lookback window,
  most recent first, ⌊n/2⌋ deltas) with the older half; 0 when the older
  half sums to 0
- The fetch window always reaches back to the start of the target period,
  even when that is older than the lookback
- Each item also gets its last snapshot before the period, so the first
  bucket sees the sales since the previous scan
- Items dropped from the tracked configuration stay stored but are hidden

Called by: routers/analytics.py
Depends on: services/bucketing.py, services/snapshot_store.py, tracked_items.py
"""

import logging
from datetime import datetime, timedelta, timezone

from sqlalchemy.orm import Session

from ..config import settings
from ..errors import InvalidWindow
from ..models import Item
from ..tracked_items import tracked_urls
from ..utils import iso
from . import snapshot_store as store
from .bucketing import (
    Bucket,
    PeriodWindow,
    SnapshotPoint,
    delta_values,
    hour_buckets,
    month_buckets,
    month_day_buckets,
    weekday_buckets,
)

log = logging.getLogger("salestrack.analytics")

DEFAULT_LOOKBACK = {"daily": 30, "weekly": 90, "monthly": 90, "yearly": 365}


def total_sales(buckets: list[Bucket]) -> int:
    return sum(b.sales for b in buckets)


def peak_bucket(buckets: list[Bucket]) -> tuple[int, int]:
    """(index, sales) of the maximum bucket; ties go to the lowest index (Sun=0 for weekdays)."""
    best: Bucket | None = None
    for b in buckets:
        if best is None or b.sales > best.sales or (b.sales == best.sales and b.index < best.index):
            best = b
    if best is None or best.sales == 0:
        return 0, 0
    return best.index, best.sales


def growth_rate(deltas: list[int]) -> float:
    """Percent change of the recent half of `deltas` (most recent first) vs the rest."""
    half = len(deltas) // 2
    recent = sum(deltas[:half])
    previous = sum(deltas[half:])
    if previous <= 0:
        return 0.0
    return (recent - previous) / previous * 100


def build_item_record(
    item: Item,
    series: list[SnapshotPoint],
    lookback_series: list[SnapshotPoint],
    period_kind: str,
    buckets: list[Bucket],
    window: PeriodWindow | None = None,
) -> dict:
    latest = max(series, key=lambda s: s.scanned_at) if series else None
    peak_index, peak_sales = peak_bucket(buckets)
    record = {
        "id": item.id,
        "name": item.name,
        "url": item.url,
        "author": item.author,
        "category": item.category,
        "latest_sales": latest.sales_count if latest else 0,
        "latest_price": latest.price if latest else None,
        "last_scanned": iso(latest.scanned_at) if latest else None,
        "period_kind": period_kind,
        "buckets": [{"index": b.index, "label": b.label, "sales": b.sales} for b in buckets],
        "total_sales": total_sales(buckets),
        "peak_index": peak_index,
        "peak_sales": peak_sales,
        "growth": growth_rate(delta_values(lookback_series)),
    }
    if window is not None:
        record["period_start"] = iso(window.start)
        record["period_end"] = iso(window.end)
    return record


# ═══════════════════════════════════════════════════════════════════════
#  VIEWS
# ═══════════════════════════════════════════════════════════════════════


def visible_items(db: Session) -> list[Item]:
    if settings.hide_untracked_items:
        return store.list_items(db, urls=tracked_urls())
    return store.list_items(db)


def _check_lookback(lookback_days: int) -> None:
    if lookback_days <= 0:
        raise InvalidWindow(f"Lookback must be positive, got {lookback_days} days")


def _period_view(db: Session, period_kind: str, bucketer, offset: int, lookback_days: int, now: datetime | None):
    _check_lookback(lookback_days)
    now = now or datetime.now(timezone.utc)
    tz = settings.display_tz
    # Validates the offset before touching the store
    window, _ = bucketer([], offset, tz, now)

    items = visible_items(db)
    series_by_item = store.list_snapshots_batch(
        db, [i.id for i in items], since_days=lookback_days, since=window.start, now=now
    )
    cutoff = now - timedelta(days=lookback_days)

    records = []
    for item in items:
        series = series_by_item.get(item.id, [])
        if not any(s.scanned_at < window.start for s in series):
            prior = store.latest_snapshot(db, item.id, before=window.start)
            if prior is not None:
                series = [*series, prior]
        _, buckets = bucketer(series, offset, tz, now)
        lookback_series = [s for s in series if s.scanned_at >= cutoff]
        records.append(build_item_record(item, series, lookback_series, period_kind, buckets, window))
    log.debug("%s view: %d items, offset %d", period_kind, len(records), offset)
    return records


def daily_view(db: Session, days_ago: int = 0, lookback_days: int = 30, now: datetime | None = None) -> list[dict]:
    """Hour-of-day breakdown for the local day `days_ago` days back."""
    return _period_view(db, "hour", hour_buckets, days_ago, lookback_days, now)


def weekly_view(db: Session, weeks_ago: int = 0, lookback_days: int = 90, now: datetime | None = None) -> list[dict]:
    """Weekday breakdown (Mon..Sun) for the week `weeks_ago` weeks back."""
    return _period_view(db, "weekday", weekday_buckets, weeks_ago, lookback_days, now)


def monthly_view(db: Session, months_ago: int = 0, lookback_days: int = 90, now: datetime | None = None) -> list[dict]:
    """Day-of-month breakdown for the month `months_ago` months back."""
    return _period_view(db, "month_day", month_day_buckets, months_ago, lookback_days, now)


def yearly_view(db: Session, lookback_days: int = 365, now: datetime | None = None) -> list[dict]:
    """Jan..Dec totals across the whole lookback window."""
    _check_lookback(lookback_days)
    now = now or datetime.now(timezone.utc)
    tz = settings.display_tz

    items = visible_items(db)
    series_by_item = store.list_snapshots_batch(db, [i.id for i in items], since_days=lookback_days, now=now)

    records = []
    for item in items:
        series = series_by_item.get(item.id, [])
        records.append(build_item_record(item, series, series, "month", month_buckets(series, tz)))
    return records
