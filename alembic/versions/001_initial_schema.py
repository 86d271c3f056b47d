"""initial schema - items, sales snapshots, scan runs, result cache

Revision ID: 001_initial
Revises: None
Create Date: 2026-10-18
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "items",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("source_id", sa.String(64), nullable=False),
        sa.Column("name", sa.String(500), nullable=False),
        sa.Column("url", sa.String(1000), nullable=False, unique=True),
        sa.Column("author", sa.String(255)),
        sa.Column("category", sa.String(255)),
        sa.Column("created_at", sa.DateTime(timezone=True)),
        sa.Column("updated_at", sa.DateTime(timezone=True)),
    )
    op.create_index("ix_items_source_id", "items", ["source_id"])

    op.create_table(
        "sales_snapshots",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("item_id", sa.Integer, sa.ForeignKey("items.id"), nullable=False),
        sa.Column("sales_count", sa.Integer, nullable=False),
        sa.Column("price", sa.Float),
        sa.Column("scanned_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_snapshot_item_time", "sales_snapshots", ["item_id", "scanned_at"])
    op.create_index("ix_snapshot_time", "sales_snapshots", ["scanned_at"])

    op.create_table(
        "scan_runs",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("completed_at", sa.DateTime(timezone=True)),
        sa.Column("items_scanned", sa.Integer),
        sa.Column("items_failed", sa.Integer),
        sa.Column("error", sa.Text),
    )
    op.create_index("ix_scan_status_started", "scan_runs", ["status", "started_at"])
    op.create_index("ix_scan_status_completed", "scan_runs", ["status", "completed_at"])

    op.create_table(
        "result_cache",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("cache_key", sa.String(255), nullable=False),
        sa.Column("data", sa.JSON, nullable=False),
        sa.Column("tags", sa.Text),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True)),
    )
    op.create_index("ix_result_cache_cache_key", "result_cache", ["cache_key"], unique=True)
    op.create_index("ix_result_cache_expires_at", "result_cache", ["expires_at"])


def downgrade() -> None:
    """Drop all tables. DESTRUCTIVE, dev/test only."""
    op.drop_table("result_cache")
    op.drop_table("scan_runs")
    op.drop_table("sales_snapshots")
    op.drop_table("items")
