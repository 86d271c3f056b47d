"""Analytics API — per-item period views and snapshot data range."""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..cache.decorators import cached_result
from ..cache.result_cache import TAG_DAILY, TAG_DATA_RANGE, TAG_MONTHLY, TAG_WEEKLY, TAG_YEARLY
from ..config import settings
from ..database import get_db
from ..schemas.analytics import DataRangeResponse, ItemViewRecord

router = APIRouter(tags=["analytics"])


@router.get("/api/analytics/daily", response_model=list[ItemViewRecord], response_model_exclude_none=True)
def daily_analytics(
    days_ago: int = Query(0, description="0 = today in the display timezone"),
    days: int = Query(30, description="Lookback for growth, in days"),
    db: Session = Depends(get_db),
):
    from ..services.aggregator import daily_view

    @cached_result(prefix="daily", tags=[TAG_DAILY], key_params=["days_ago", "days"])
    def _fetch(days_ago, days, db):
        return daily_view(db, days_ago=days_ago, lookback_days=days)

    return _fetch(days_ago=days_ago, days=days, db=db)


@router.get("/api/analytics/weekly", response_model=list[ItemViewRecord], response_model_exclude_none=True)
def weekly_analytics(
    weeks_ago: int = Query(0, description="0 = this Monday-Sunday week"),
    days: int = Query(90),
    db: Session = Depends(get_db),
):
    from ..services.aggregator import weekly_view

    @cached_result(prefix="weekly", tags=[TAG_WEEKLY], key_params=["weeks_ago", "days"])
    def _fetch(weeks_ago, days, db):
        return weekly_view(db, weeks_ago=weeks_ago, lookback_days=days)

    return _fetch(weeks_ago=weeks_ago, days=days, db=db)


@router.get("/api/analytics/monthly", response_model=list[ItemViewRecord], response_model_exclude_none=True)
def monthly_analytics(
    months_ago: int = Query(0, description="0 = this calendar month"),
    days: int = Query(90),
    db: Session = Depends(get_db),
):
    from ..services.aggregator import monthly_view

    @cached_result(prefix="monthly", tags=[TAG_MONTHLY], key_params=["months_ago", "days"])
    def _fetch(months_ago, days, db):
        return monthly_view(db, months_ago=months_ago, lookback_days=days)

    return _fetch(months_ago=months_ago, days=days, db=db)


@router.get("/api/analytics/yearly", response_model=list[ItemViewRecord], response_model_exclude_none=True)
def yearly_analytics(
    days: int = Query(365),
    db: Session = Depends(get_db),
):
    from ..services.aggregator import yearly_view

    @cached_result(prefix="yearly", tags=[TAG_YEARLY], key_params=["days"])
    def _fetch(days, db):
        return yearly_view(db, lookback_days=days)

    return _fetch(days=days, db=db)


@router.get("/api/analytics/data-range", response_model=DataRangeResponse, response_model_exclude_none=True)
def data_range(
    type: str = Query("oldest", description="oldest or newest"),
    db: Session = Depends(get_db),
):
    from ..services.item_history import data_range as fetch_range

    @cached_result(prefix="data_range", tags=[TAG_DATA_RANGE], ttl_seconds=settings.data_range_cache_hours * 3600)
    def _fetch(db):
        return fetch_range(db)

    bounds = _fetch(db=db)
    if type == "newest":
        return {"type": "newest", "newest_date": bounds["newest"]}
    return {"type": "oldest", "oldest_date": bounds["oldest"]}
