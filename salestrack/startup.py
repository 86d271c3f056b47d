"""
startup.py — Database startup steps (idempotent)

Tables and indexes are defined in the ORM models and created via
Base.metadata.create_all(checkfirst=True). This file also seeds the tracked
catalog and adds the PostgreSQL-only CHECK constraint on scan run status.

Called by: main.py lifespan
Depends on: database.py (engine), models (Base), services/scan_service.py
"""

import logging
import os

from sqlalchemy import text as sqltext

from .database import SessionLocal, engine

log = logging.getLogger(__name__)


def run_startup_migrations() -> None:
    """Execute all idempotent startup operations. Safe to call on every app boot."""
    if os.environ.get("TESTING"):
        log.info("TESTING mode, skipping startup migrations")
        return

    from .models import Base
    Base.metadata.create_all(bind=engine, checkfirst=True)
    log.info("ORM schema sync complete (create_all checkfirst=True)")

    if engine.dialect.name == "postgresql":
        with engine.connect() as conn:
            _add_check_constraints(conn)

    _seed_catalog()
    log.info("Startup migrations complete")


def _exec(conn, stmt: str) -> None:
    """Execute a single DDL statement with rollback on failure."""
    try:
        conn.execute(sqltext(stmt))
        conn.commit()
    except Exception as e:
        log.warning("DDL failed: %s", e)
        conn.rollback()


def _add_check_constraints(conn) -> None:
    _exec(conn, """
        DO $$ BEGIN
            IF NOT EXISTS (SELECT 1 FROM pg_constraint WHERE conname = 'chk_scan_run_status') THEN
                ALTER TABLE scan_runs ADD CONSTRAINT chk_scan_run_status
                CHECK (status IN ('RUNNING', 'COMPLETED', 'FAILED'));
            END IF;
        END $$;
    """)


def _seed_catalog() -> None:
    from .services.scan_service import initialize_catalog

    with SessionLocal() as db:
        created = initialize_catalog(db)
    if created:
        log.info("Seeded %d tracked items", created)
