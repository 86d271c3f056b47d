"""
schemas/analytics.py — Response models for the analytics and item endpoints

Used as response_model= on routers/analytics.py and routers/items.py.

Called by: routers/analytics.py, routers/items.py
Depends on: pydantic
"""

from __future__ import annotations

from pydantic import BaseModel


# ── Period views ────────────────────────────────────────────────────────


class BucketOut(BaseModel):
    index: int
    label: str
    sales: int = 0


class ItemViewRecord(BaseModel):
    id: int
    name: str
    url: str
    author: str | None = None
    category: str | None = None
    latest_sales: int = 0
    latest_price: float | None = None
    last_scanned: str | None = None
    period_kind: str
    buckets: list[BucketOut] = []
    total_sales: int = 0
    peak_index: int = 0
    peak_sales: int = 0
    growth: float = 0.0
    period_start: str | None = None
    period_end: str | None = None


class DataRangeResponse(BaseModel):
    type: str
    oldest_date: str | None = None
    newest_date: str | None = None


# ── Items ───────────────────────────────────────────────────────────────


class DailyDelta(BaseModel):
    date: str
    daily_sales: int
    total_sales: int


class ItemOverview(BaseModel):
    id: int
    name: str
    url: str
    author: str | None = None
    category: str | None = None
    latest_sales: int = 0
    latest_price: float | None = None
    last_scanned: str | None = None
    weekly_sales: int = 0
    daily_sales: list[DailyDelta] = []


class ItemAnalyticsResponse(BaseModel, extra="allow"):
    id: int
    name: str
    url: str
    latest_sales: int = 0
    hourly_data: list[dict] = []
    daily_data: list[dict] = []
    weekly_data: list[dict] = []
    monthly_data: list[dict] = []
    total_growth: dict[str, float] = {}
