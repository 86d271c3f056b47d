"""Item history — chronological series for one item, plus catalog overview.

Series are oldest first and read in the display timezone:
- hourly: one point per snapshot pair, labelled "YYYY-MM-DD HH"
- daily: hourly points grouped by local date, with the hourly breakdown
- weekly: Monday-start weeks, last minus first count within the week
- monthly: calendar months, last minus first count, average price

Weeks and months with fewer than two snapshots are left out.

Growth per series compares the average of its last 7 periods with the
average of the 7 before that.

Called by: routers/items.py, routers/analytics.py (data range)
Depends on: services/snapshot_store.py, services/bucketing.py
"""

import calendar
import logging
from datetime import datetime, timedelta, timezone

from sqlalchemy.orm import Session

from ..config import settings
from ..utils import iso
from . import snapshot_store as store
from .bucketing import SnapshotPoint, pairwise_deltas

log = logging.getLogger("salestrack.history")

GROWTH_PERIODS = 7


def hourly_series(series: list[SnapshotPoint], tz) -> list[dict]:
    points = [
        {
            "hour": current.scanned_at.astimezone(tz).strftime("%Y-%m-%d %H"),
            "hourly_sales": delta,
            "total_sales": current.sales_count,
            "price": current.price,
        }
        for current, delta in pairwise_deltas(series)
    ]
    points.reverse()
    return points


def daily_series(hourly: list[dict]) -> list[dict]:
    days: dict[str, dict] = {}
    for point in hourly:
        date = point["hour"].split(" ")[0]
        day = days.get(date)
        if day is None:
            day = days[date] = {
                "date": date,
                "daily_sales": 0,
                "total_sales": point["total_sales"],
                "price": point["price"],
                "hourly_breakdown": [],
            }
        day["daily_sales"] += point["hourly_sales"]
        day["hourly_breakdown"].append(point)
        if point["total_sales"] > day["total_sales"]:
            day["total_sales"] = point["total_sales"]
            day["price"] = point["price"]

    for day in days.values():
        day["hourly_breakdown"].sort(key=lambda p: p["hour"])
    return sorted(days.values(), key=lambda d: d["date"])


def _average_price(records: list[SnapshotPoint]) -> float | None:
    prices = [r.price for r in records if r.price]
    return sum(prices) / len(prices) if prices else None


def _grouped(series: list[SnapshotPoint], key) -> dict:
    groups: dict = {}
    for s in sorted(series, key=lambda p: p.scanned_at):
        groups.setdefault(key(s), []).append(s)
    return groups


def weekly_series(series: list[SnapshotPoint], tz) -> list[dict]:
    def week_start(s: SnapshotPoint):
        local = s.scanned_at.astimezone(tz).date()
        return local - timedelta(days=local.weekday())

    weeks = []
    for start, records in sorted(_grouped(series, week_start).items()):
        if len(records) < 2:
            continue
        weeks.append({
            "week_start": start.isoformat(),
            "week_end": (start + timedelta(days=6)).isoformat(),
            "weekly_sales": max(0, records[-1].sales_count - records[0].sales_count),
            "total_sales": records[-1].sales_count,
            "average_price": _average_price(records),
        })
    return weeks


def monthly_series(series: list[SnapshotPoint], tz) -> list[dict]:
    def year_month(s: SnapshotPoint):
        local = s.scanned_at.astimezone(tz)
        return local.year, local.month

    months = []
    for (year, month), records in sorted(_grouped(series, year_month).items()):
        if len(records) < 2:
            continue
        months.append({
            "month": calendar.month_name[month],
            "year": year,
            "monthly_sales": max(0, records[-1].sales_count - records[0].sales_count),
            "total_sales": records[-1].sales_count,
            "average_price": _average_price(records),
        })
    return months


def period_growth(values: list[int]) -> float:
    """Average of the last 7 values vs the 7 before, in percent."""
    if len(values) < 2:
        return 0.0
    recent = values[-GROWTH_PERIODS:]
    previous = values[-2 * GROWTH_PERIODS:-GROWTH_PERIODS]
    if not recent or not previous:
        return 0.0
    previous_avg = sum(previous) / len(previous)
    if previous_avg == 0:
        return 0.0
    recent_avg = sum(recent) / len(recent)
    return (recent_avg - previous_avg) / previous_avg * 100


def get_item_analytics(db: Session, item_id: int, days: int = 30, now: datetime | None = None) -> dict:
    """Full history for one item over the last `days` days.

    Raises NotFound for an unknown id and InvalidWindow for days <= 0.
    """
    item = store.get_item(db, item_id)
    series = store.list_snapshots(db, item_id, since_days=days, now=now)
    latest = store.latest_snapshot(db, item_id)
    tz = settings.display_tz

    hourly = hourly_series(series, tz)
    daily = daily_series(hourly)
    weekly = weekly_series(series, tz)
    monthly = monthly_series(series, tz)

    return {
        "id": item.id,
        "name": item.name,
        "url": item.url,
        "author": item.author,
        "category": item.category,
        "latest_sales": latest.sales_count if latest else 0,
        "latest_price": latest.price if latest else None,
        "last_scanned": iso(latest.scanned_at) if latest else None,
        "hourly_data": hourly,
        "daily_data": daily,
        "weekly_data": weekly,
        "monthly_data": monthly,
        "total_growth": {
            "hourly": period_growth([p["hourly_sales"] for p in hourly]),
            "daily": period_growth([d["daily_sales"] for d in daily]),
            "weekly": period_growth([w["weekly_sales"] for w in weekly]),
            "monthly": period_growth([m["monthly_sales"] for m in monthly]),
        },
    }


def list_items_overview(db: Session, days: int = 7, now: datetime | None = None) -> list[dict]:
    """Every stored item with its latest reading and per-snapshot deltas."""
    items = store.list_items(db)
    series_by_item = store.list_snapshots_batch(db, [i.id for i in items], since_days=days, now=now)
    latest_by_item = {i.id: store.latest_snapshot(db, i.id) for i in items}

    overview = []
    for item in items:
        deltas = [
            {"date": iso(current.scanned_at), "daily_sales": delta, "total_sales": current.sales_count}
            for current, delta in pairwise_deltas(series_by_item[item.id])
        ]
        latest = latest_by_item[item.id]
        overview.append({
            "id": item.id,
            "name": item.name,
            "url": item.url,
            "author": item.author,
            "category": item.category,
            "latest_sales": latest.sales_count if latest else 0,
            "latest_price": latest.price if latest else None,
            "last_scanned": iso(latest.scanned_at) if latest else None,
            "weekly_sales": sum(d["daily_sales"] for d in deltas),
            "daily_sales": deltas,
        })
    return overview


def data_range(db: Session) -> dict:
    """Oldest and newest snapshot instants across all items (None when empty)."""
    oldest = store.oldest_snapshot_timestamp(db)
    newest = store.newest_snapshot_timestamp(db)
    return {"oldest": iso(oldest), "newest": iso(newest)}
