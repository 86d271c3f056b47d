"""
SalesTrack — Envato sales snapshot tracker

App factory: logging, lifespan (schema, scheduler, HTTP client), routers and
the domain exception handlers.
"""

import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from . import __version__
from .config import settings
from .errors import InvalidWindow, NotFound, StoreError
from .logging_config import setup_logging
from .routers import analytics, cron, items, scan
from .schemas.errors import ErrorResponse

setup_logging()
log = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    from .http_client import close_clients
    from .scheduler import configure_scheduler, scheduler
    from .startup import run_startup_migrations

    run_startup_migrations()

    scheduler_on = settings.scheduler_enabled and not os.environ.get("TESTING")
    if scheduler_on:
        configure_scheduler()
        scheduler.start()
        log.info("Scheduler started")

    yield

    if scheduler_on and scheduler.running:
        scheduler.shutdown(wait=False)
    await close_clients()


app = FastAPI(title="SalesTrack", version=__version__, lifespan=lifespan)

app.include_router(analytics.router)
app.include_router(items.router)
app.include_router(scan.router)
app.include_router(cron.router)


# ── Exception handlers ──────────────────────────────────────────────────


def _error(status_code: int, message: str) -> JSONResponse:
    body = ErrorResponse(error=message, status_code=status_code)
    return JSONResponse(status_code=status_code, content=body.model_dump(exclude_none=True))


@app.exception_handler(NotFound)
async def not_found_handler(request: Request, exc: NotFound):
    return _error(404, str(exc))


@app.exception_handler(InvalidWindow)
async def invalid_window_handler(request: Request, exc: InvalidWindow):
    return _error(400, str(exc))


@app.exception_handler(StoreError)
async def store_error_handler(request: Request, exc: StoreError):
    log.error("Store unavailable on %s: %s", request.url.path, exc)
    return _error(503, "Snapshot store unavailable")


@app.get("/health")
def health():
    return {"status": "ok", "version": __version__}
