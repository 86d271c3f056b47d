"""
logging_config.py — Loguru setup for SalesTrack

Loguru is the single logging backend. Package modules log through stdlib
getLogger(); an intercept handler forwards those records to Loguru.

Business Rules:
- Records written while a scan runs carry the scan run id, and records
  written while one item is fetched also carry the item's source id
  (scan_service binds both with logger.contextualize)
- Production (APP_ENV=production): JSON lines to stdout plus a rotating
  JSON file (50 MB, 7 days); scan context lands in the "extra" object
- Development: one colored line per record, scan context appended as
  run=<id> item=<source id>
- HTTP, SQL and scheduler chatter is held at WARNING

Called by: salestrack/main.py (lifespan startup)
Depends on: LOG_LEVEL, APP_ENV, LOG_FILE environment variables
"""

import logging
import os
import sys

from loguru import logger

DEFAULT_LOG_FILE = "/var/log/salestrack/salestrack.log"

_NOISY_LOGGERS = ("httpx", "httpcore", "uvicorn.access", "sqlalchemy.engine", "apscheduler")

_CONSOLE_PREFIX = (
    "<green>{time:HH:mm:ss}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{line}</cyan> | "
)


def _console_format(record) -> str:
    """Loguru format template for one development record."""
    fmt = _CONSOLE_PREFIX + "{message}"
    extra = record["extra"]
    if "scan_run_id" in extra:
        fmt += " <magenta>run={extra[scan_run_id]}</magenta>"
    if "source_id" in extra:
        fmt += " <magenta>item={extra[source_id]}</magenta>"
    return fmt + "\n{exception}"


def _add_sinks(level: str, production: bool) -> None:
    if not production:
        logger.add(sys.stdout, level=level, format=_console_format, colorize=True)
        return

    logger.add(sys.stdout, level=level, format="{message}", serialize=True)
    logger.add(
        os.getenv("LOG_FILE", DEFAULT_LOG_FILE),
        level=level,
        rotation="50 MB",
        retention="7 days",
        compression="gz",
        serialize=True,
    )


def setup_logging() -> None:
    """Replace Loguru's default sink and route stdlib logging into it.

    Call once at startup, before anything else logs.
    """
    logger.remove()

    level = os.getenv("LOG_LEVEL", "INFO").upper()
    production = os.getenv("APP_ENV", "").lower() == "production"
    _add_sinks(level, production)

    logging.basicConfig(handlers=[_InterceptHandler()], level=0, force=True)
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logger.info("Logging configured", level=level, production=production)


class _InterceptHandler(logging.Handler):
    """Forward stdlib records to Loguru, keeping the caller's location."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        frame, depth = logging.currentframe(), 0
        while frame and (depth == 0 or frame.f_code.co_filename == logging.__file__):
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())
