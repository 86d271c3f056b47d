"""
test_item_history.py — Tests for per-item history and the items overview

Covers: hourly/daily/weekly/monthly series, period growth, the full
analytics payload, unknown items, the 7-day overview and data range.
"""

from datetime import timedelta
from zoneinfo import ZoneInfo

import pytest

from salestrack.errors import InvalidWindow, NotFound
from salestrack.services.bucketing import SnapshotPoint
from salestrack.services.item_history import (
    daily_series,
    data_range,
    get_item_analytics,
    hourly_series,
    list_items_overview,
    monthly_series,
    period_growth,
    weekly_series,
)
from snapshot_helpers import NOW, bkk

TZ = ZoneInfo("Asia/Bangkok")


def _series(*rows) -> list[SnapshotPoint]:
    return [
        SnapshotPoint(item_id=1, scanned_at=row[0], sales_count=row[1], price=row[2] if len(row) > 2 else None)
        for row in rows
    ]


# ── Series ─────────────────────────────────────────────────────────────


class TestHourlyAndDaily:
    def test_hourly_points_oldest_first_in_local_time(self):
        series = _series(
            (bkk(2026, 3, 10, 22), 100, 59.0),
            (bkk(2026, 3, 10, 23), 103, 59.0),
            (bkk(2026, 3, 11, 0), 101, 59.0),
            (bkk(2026, 3, 11, 1), 108, 69.0),
        )
        hourly = hourly_series(series, TZ)
        assert [p["hour"] for p in hourly] == ["2026-03-10 23", "2026-03-11 00", "2026-03-11 01"]
        assert [p["hourly_sales"] for p in hourly] == [3, 0, 7]
        assert hourly[-1]["price"] == 69.0

    def test_daily_groups_by_local_date(self):
        series = _series(
            (bkk(2026, 3, 10, 22), 100),
            (bkk(2026, 3, 10, 23), 103),
            (bkk(2026, 3, 11, 0), 105),
            (bkk(2026, 3, 11, 1), 108),
        )
        daily = daily_series(hourly_series(series, TZ))
        assert [d["date"] for d in daily] == ["2026-03-10", "2026-03-11"]
        assert [d["daily_sales"] for d in daily] == [3, 5]
        assert daily[1]["total_sales"] == 108
        assert [p["hour"] for p in daily[1]["hourly_breakdown"]] == ["2026-03-11 00", "2026-03-11 01"]

    def test_single_snapshot_has_no_points(self):
        assert hourly_series(_series((NOW, 5)), TZ) == []


class TestWeeklyAndMonthly:
    def test_week_is_last_minus_first(self):
        series = _series(
            (bkk(2026, 3, 2, 8), 10, 50.0),   # Mon
            (bkk(2026, 3, 5, 8), 18, 60.0),
            (bkk(2026, 3, 8, 23), 25, 70.0),  # Sun
            (bkk(2026, 3, 9, 8), 30, 70.0),   # next Mon, alone in its week
        )
        weeks = weekly_series(series, TZ)
        assert len(weeks) == 1
        week = weeks[0]
        assert (week["week_start"], week["week_end"]) == ("2026-03-02", "2026-03-08")
        assert week["weekly_sales"] == 15
        assert week["total_sales"] == 25
        assert week["average_price"] == pytest.approx(60.0)

    def test_month_names_and_missing_prices(self):
        series = _series(
            (bkk(2026, 1, 3, 8), 10),
            (bkk(2026, 1, 30, 8), 40),
            (bkk(2026, 2, 2, 8), 45),
            (bkk(2026, 2, 20, 8), 60),
        )
        months = monthly_series(series, TZ)
        assert [(m["month"], m["year"], m["monthly_sales"]) for m in months] == [
            ("January", 2026, 30),
            ("February", 2026, 15),
        ]
        assert months[0]["average_price"] is None


class TestPeriodGrowth:
    def test_last_seven_vs_previous_seven(self):
        values = [10] * 7 + [15] * 7
        assert period_growth(values) == pytest.approx(50.0)

    def test_short_history(self):
        assert period_growth([]) == 0.0
        assert period_growth([3]) == 0.0
        # fewer than 8 values leaves no previous window
        assert period_growth([1, 2, 3]) == 0.0

    def test_previous_zero(self):
        assert period_growth([0] * 7 + [4] * 7) == 0.0


# ── Service functions ──────────────────────────────────────────────────


class TestItemAnalytics:
    def test_payload(self, db_session, tracked_catalog, add_snapshots):
        item = tracked_catalog[0]
        add_snapshots(item, [(NOW - timedelta(hours=h), 500 - h, 69.0) for h in range(6, -1, -1)])

        result = get_item_analytics(db_session, item.id, days=7, now=NOW)
        assert result["id"] == item.id
        assert result["latest_sales"] == 500
        assert result["latest_price"] == 69.0
        assert len(result["hourly_data"]) == 6
        assert sum(d["daily_sales"] for d in result["daily_data"]) == 6
        assert set(result["total_growth"]) == {"hourly", "daily", "weekly", "monthly"}

    def test_unknown_item(self, db_session):
        with pytest.raises(NotFound):
            get_item_analytics(db_session, 999, now=NOW)

    def test_non_positive_days(self, db_session, tracked_catalog):
        with pytest.raises(InvalidWindow):
            get_item_analytics(db_session, tracked_catalog[0].id, days=0, now=NOW)


class TestOverview:
    def test_deltas_and_weekly_total(self, db_session, tracked_catalog, add_snapshots):
        add_snapshots(tracked_catalog[1], [
            (NOW - timedelta(days=9), 10),   # outside the 7-day window
            (NOW - timedelta(days=5), 50),
            (NOW - timedelta(days=3), 58),
            (NOW - timedelta(days=1), 57),
        ])
        overview = list_items_overview(db_session, now=NOW)
        assert [o["id"] for o in overview] == [i.id for i in tracked_catalog]

        entry = overview[1]
        assert [d["daily_sales"] for d in entry["daily_sales"]] == [0, 8]
        assert entry["weekly_sales"] == 8
        assert entry["latest_sales"] == 57

        empty = overview[0]
        assert empty["latest_sales"] == 0
        assert empty["daily_sales"] == []
        assert empty["last_scanned"] is None


def test_data_range(db_session, tracked_catalog, add_snapshots):
    assert data_range(db_session) == {"oldest": None, "newest": None}
    add_snapshots(tracked_catalog[0], [(bkk(2026, 2, 1, 7), 1), (bkk(2026, 3, 1, 7), 2)])
    bounds = data_range(db_session)
    assert bounds["oldest"] == bkk(2026, 2, 1, 7).isoformat()
    assert bounds["newest"] == bkk(2026, 3, 1, 7).isoformat()
