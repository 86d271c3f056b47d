"""
Delta & Bucketing Engine — cumulative sales counters to calendar buckets.

Snapshots carry a cumulative sales counter. Walking an item's series from
newest to oldest, each snapshot contributes max(0, its count minus the next
older count) to the bucket its own local time falls in. The oldest snapshot
contributes nothing, so N snapshots give at most N-1 deltas.

Pairing always runs over the whole series handed in. A window only picks
which deltas count, by the newer snapshot of each pair, so the sales between
the last scan before a boundary and the first scan after it land in the
first bucket of the new period.

All calendar fields are read in one display timezone; storage stays UTC.
Every breakdown is dense: each bucket of the target period is present, with
0 sales when nothing landed in it. Two truncations apply to the current
period only: the hour view of today stops at the current hour and the
weekday view of this week stops at today.

Called by: services/aggregator.py, services/item_history.py
Depends on: nothing outside the standard library
"""

import calendar
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, tzinfo

from ..errors import InvalidWindow

# Monday-first display order; weekday numbers run Sun=0 to Sat=6
WEEKDAY_ORDER = [1, 2, 3, 4, 5, 6, 0]
WEEKDAY_NAMES = {0: "Sun", 1: "Mon", 2: "Tue", 3: "Wed", 4: "Thu", 5: "Fri", 6: "Sat"}
MONTH_NAMES = ["Jan", "Feb", "Mar", "Apr", "May", "Jun",
               "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]


@dataclass(frozen=True)
class SnapshotPoint:
    """One stored observation, detached from the ORM."""

    item_id: int
    scanned_at: datetime  # aware, UTC
    sales_count: int
    price: float | None = None


@dataclass(frozen=True)
class Bucket:
    index: int
    label: str
    sales: int = 0


@dataclass(frozen=True)
class PeriodWindow:
    """Half-open [start, end) in the display timezone."""

    start: datetime
    end: datetime

    def contains(self, instant: datetime) -> bool:
        return self.start <= instant < self.end


# ── Deltas ────────────────────────────────────────────────────────────


def newest_first(series: list[SnapshotPoint]) -> list[SnapshotPoint]:
    return sorted(series, key=lambda s: s.scanned_at, reverse=True)


def pairwise_deltas(series: list[SnapshotPoint]) -> list[tuple[SnapshotPoint, int]]:
    """(current, clamped delta vs next older) for every snapshot but the oldest."""
    ordered = newest_first(series)
    return [
        (current, max(0, current.sales_count - previous.sales_count))
        for current, previous in zip(ordered, ordered[1:])
    ]


def delta_values(series: list[SnapshotPoint]) -> list[int]:
    """Raw delta series, most recent first."""
    return [d for _, d in pairwise_deltas(series)]


# ── Windows ───────────────────────────────────────────────────────────


def _check_offset(name: str, value: int) -> None:
    if value < 0:
        raise InvalidWindow(f"{name} must be >= 0, got {value}")


def _local_midnight(d: date, tz: tzinfo) -> datetime:
    return datetime.combine(d, time.min, tzinfo=tz)


def local_today(tz: tzinfo, now: datetime) -> date:
    return now.astimezone(tz).date()


def day_window(days_ago: int, tz: tzinfo, now: datetime) -> PeriodWindow:
    _check_offset("days_ago", days_ago)
    target = local_today(tz, now) - timedelta(days=days_ago)
    return PeriodWindow(
        _local_midnight(target, tz),
        _local_midnight(target + timedelta(days=1), tz),
    )


def week_window(weeks_ago: int, tz: tzinfo, now: datetime) -> PeriodWindow:
    _check_offset("weeks_ago", weeks_ago)
    today = local_today(tz, now)
    monday = today - timedelta(days=today.weekday()) - timedelta(days=7 * weeks_ago)
    return PeriodWindow(
        _local_midnight(monday, tz),
        _local_midnight(monday + timedelta(days=7), tz),
    )


def month_window(months_ago: int, tz: tzinfo, now: datetime) -> PeriodWindow:
    _check_offset("months_ago", months_ago)
    today = local_today(tz, now)
    months = today.year * 12 + (today.month - 1) - months_ago
    year, month = divmod(months, 12)
    first = date(year, month + 1, 1)
    nxt = date(year + (month + 1) // 12, (month + 1) % 12 + 1, 1)
    return PeriodWindow(_local_midnight(first, tz), _local_midnight(nxt, tz))


# ── Bucketing ─────────────────────────────────────────────────────────


def _accumulate(
    series: list[SnapshotPoint], tz: tzinfo, field, window: PeriodWindow | None = None
) -> dict[int, int]:
    totals: dict[int, int] = {}
    for current, delta in pairwise_deltas(series):
        if window is not None and not window.contains(current.scanned_at):
            continue
        key = field(current.scanned_at.astimezone(tz))
        totals[key] = totals.get(key, 0) + delta
    return totals


def hour_buckets(
    series: list[SnapshotPoint], days_ago: int, tz: tzinfo, now: datetime
) -> tuple[PeriodWindow, list[Bucket]]:
    """Hours 0-23 of the local day `days_ago` days back (today: up to now)."""
    window = day_window(days_ago, tz, now)
    totals = _accumulate(series, tz, lambda local: local.hour, window)

    last_hour = now.astimezone(tz).hour if days_ago == 0 else 23
    buckets = [
        Bucket(index=h, label=f"{h:02d}:00", sales=totals.get(h, 0))
        for h in range(last_hour + 1)
    ]
    return window, buckets


def _sunday_zero_weekday(local: datetime) -> int:
    return (local.weekday() + 1) % 7


def weekday_buckets(
    series: list[SnapshotPoint], weeks_ago: int, tz: tzinfo, now: datetime
) -> tuple[PeriodWindow, list[Bucket]]:
    """Mon..Sun of the week `weeks_ago` weeks back (this week: up to today)."""
    window = week_window(weeks_ago, tz, now)
    totals = _accumulate(series, tz, _sunday_zero_weekday, window)

    days = 7
    if weeks_ago == 0:
        days = local_today(tz, now).weekday() + 1
    buckets = [
        Bucket(index=d, label=WEEKDAY_NAMES[d], sales=totals.get(d, 0))
        for d in WEEKDAY_ORDER[:days]
    ]
    return window, buckets


def month_day_buckets(
    series: list[SnapshotPoint], months_ago: int, tz: tzinfo, now: datetime
) -> tuple[PeriodWindow, list[Bucket]]:
    """Days 1..N of the month `months_ago` months back."""
    window = month_window(months_ago, tz, now)
    totals = _accumulate(series, tz, lambda local: local.day, window)

    first = window.start.date()
    n_days = calendar.monthrange(first.year, first.month)[1]
    buckets = [
        Bucket(index=d, label=str(d), sales=totals.get(d, 0))
        for d in range(1, n_days + 1)
    ]
    return window, buckets


def month_buckets(series: list[SnapshotPoint], tz: tzinfo) -> list[Bucket]:
    """Jan..Dec over the whole series; months from different years add up."""
    totals = _accumulate(series, tz, lambda local: local.month - 1)
    return [
        Bucket(index=m, label=MONTH_NAMES[m], sales=totals.get(m, 0))
        for m in range(12)
    ]
