"""Scan API — manual trigger and run history."""

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from ..database import get_db
from ..services import scan_service

router = APIRouter(tags=["scan"])

_STATUS_BY_REASON = {
    scan_service.REASON_OK: 200,
    scan_service.REASON_TIMED_OUT_PREVIOUS: 200,
    scan_service.REASON_IN_PROGRESS: 409,
    scan_service.REASON_TOO_RECENT: 429,
    scan_service.REASON_FAILED: 500,
}


@router.post("/api/scan")
async def trigger_scan(db: Session = Depends(get_db)):
    outcome = await scan_service.start_scan(db)
    headers = {}
    if outcome.retry_after_seconds is not None:
        headers["Retry-After"] = str(outcome.retry_after_seconds)
    return JSONResponse(
        status_code=_STATUS_BY_REASON.get(outcome.reason, 500),
        content=outcome.to_dict(),
        headers=headers,
    )


@router.get("/api/scan/status")
def scan_status(db: Session = Depends(get_db)):
    return scan_service.get_scan_status(db)
