"""Schedule control API — start, stop and inspect the hourly scan job."""

from fastapi import APIRouter

from .. import scheduler
from ..schemas.scan import ScheduleStatusResponse

router = APIRouter(tags=["cron"])


@router.post("/api/cron/start", response_model=ScheduleStatusResponse)
async def start_cron():
    return {**scheduler.start_schedule(), "message": "Hourly scan scheduled"}


@router.post("/api/cron/stop", response_model=ScheduleStatusResponse)
async def stop_cron():
    return {**scheduler.stop_schedule(), "message": "Hourly scan stopped"}


@router.get("/api/cron/status", response_model=ScheduleStatusResponse)
async def cron_status():
    return scheduler.schedule_status()
