"""Items API — catalog overview and per-item history."""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..cache.decorators import cached_result
from ..cache.result_cache import TAG_ITEMS
from ..database import get_db
from ..schemas.analytics import ItemAnalyticsResponse, ItemOverview

router = APIRouter(tags=["items"])


@router.get("/api/items", response_model=list[ItemOverview])
def list_items(db: Session = Depends(get_db)):
    from ..services.item_history import list_items_overview

    @cached_result(prefix="items", tags=[TAG_ITEMS])
    def _fetch(db):
        return list_items_overview(db)

    return _fetch(db=db)


@router.get("/api/items/{item_id}/analytics", response_model=ItemAnalyticsResponse)
def item_analytics(
    item_id: int,
    days: int = Query(30),
    db: Session = Depends(get_db),
):
    from ..services.item_history import get_item_analytics

    @cached_result(prefix="item_analytics", tags=[TAG_ITEMS], key_params=["item_id", "days"])
    def _fetch(item_id, days, db):
        return get_item_analytics(db, item_id, days=days)

    return _fetch(item_id=item_id, days=days, db=db)
