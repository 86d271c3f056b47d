"""Catalog models — tracked Envato items and their sales snapshots."""

from datetime import datetime, timezone

from sqlalchemy import Column, Float, ForeignKey, Index, Integer, String
from sqlalchemy.orm import relationship

from ..database import UTCDateTime
from .base import Base


class Item(Base):
    """A tracked marketplace listing. Created once by URL, never deleted."""

    __tablename__ = "items"
    id = Column(Integer, primary_key=True)
    source_id = Column(String(64), nullable=False, index=True)  # Envato item id
    name = Column(String(500), nullable=False)
    url = Column(String(1000), nullable=False, unique=True)
    author = Column(String(255))
    category = Column(String(255))
    created_at = Column(UTCDateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(
        UTCDateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    snapshots = relationship("SalesSnapshot", back_populates="item")


class SalesSnapshot(Base):
    """One observation of an item's cumulative sales counter. Append-only."""

    __tablename__ = "sales_snapshots"
    id = Column(Integer, primary_key=True)
    item_id = Column(Integer, ForeignKey("items.id"), nullable=False)
    sales_count = Column(Integer, nullable=False)
    price = Column(Float)  # NULL when the source did not report one
    scanned_at = Column(
        UTCDateTime, nullable=False, default=lambda: datetime.now(timezone.utc)
    )

    item = relationship("Item", back_populates="snapshots")

    __table_args__ = (
        Index("ix_snapshot_item_time", "item_id", "scanned_at"),
        Index("ix_snapshot_time", "scanned_at"),
    )
