"""
conftest.py — Shared test fixtures for SalesTrack

Provides an in-memory SQLite database (the package engine itself, so the
result cache and scheduler jobs see the same tables), a FastAPI TestClient
with get_db overridden, and helpers for building snapshot series.

Business Rules:
- All tests run against an isolated in-memory DB
- Redis is never contacted (TESTING=1)
- Each test function gets freshly created tables

Called by: all test files via pytest autodiscovery
Depends on: salestrack.models (Base), salestrack.database (engine, get_db)
"""

import os

# Must be set before importing salestrack modules
os.environ["TESTING"] = "1"
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["DISPLAY_TIMEZONE"] = "Asia/Bangkok"
os.environ["SCAN_BATCH_DELAY_SECONDS"] = "0"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from salestrack.database import SessionLocal, engine
from salestrack.models import Base, Item, SalesSnapshot
from salestrack.tracked_items import TRACKED_ITEMS

# ── Fixtures ─────────────────────────────────────────────────────────


@pytest.fixture(autouse=True)
def db_session():
    """Create all tables, yield a session, then tear down."""
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def tracked_catalog(db_session: Session) -> list[Item]:
    """The built-in tracked items, stored."""
    items = [Item(name=t.name, url=t.url, source_id=t.source_id) for t in TRACKED_ITEMS]
    db_session.add_all(items)
    db_session.commit()
    return items


@pytest.fixture()
def add_snapshots(db_session: Session):
    """add_snapshots(item, [(when, sales_count[, price]), ...])"""

    def _add(item: Item, rows):
        for row in rows:
            when, count = row[0], row[1]
            price = row[2] if len(row) > 2 else None
            db_session.add(SalesSnapshot(item_id=item.id, sales_count=count, price=price, scanned_at=when))
        db_session.commit()

    return _add


@pytest.fixture()
def client(db_session: Session) -> TestClient:
    """FastAPI TestClient with get_db overridden to the test session."""
    from salestrack.database import get_db
    from salestrack.main import app

    def _override_db():
        yield db_session

    app.dependency_overrides[get_db] = _override_db

    with TestClient(app) as c:
        yield c

    app.dependency_overrides.clear()
