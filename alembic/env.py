"""
env.py — Alembic migration environment for SalesTrack

The database URL comes from the app settings (DATABASE_URL) unless one is
passed on the command line: alembic -x db_url=sqlite:///other.db upgrade head

Business Rules:
- SQLite databases migrate in batch mode (ALTER TABLE is limited there)
- Column type changes are picked up by autogenerate
- sales_snapshots rows are append-only; migrations never rewrite them

Called by: alembic CLI
Depends on: salestrack.models (Base + all tables), salestrack.config (get_settings)
"""

from logging.config import fileConfig

from alembic import context
from sqlalchemy import engine_from_config, pool

from salestrack.config import get_settings
from salestrack.models import Base  # noqa: F401

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata


def _database_url() -> str:
    return context.get_x_argument(as_dictionary=True).get("db_url") or get_settings().database_url


def _configure(url: str, **kwargs) -> None:
    context.configure(
        target_metadata=target_metadata,
        render_as_batch=url.startswith("sqlite"),
        compare_type=True,
        **kwargs,
    )


def run_migrations_offline(url: str) -> None:
    """Write the SQL to stdout instead of running it."""
    _configure(url, url=url, literal_binds=True, dialect_opts={"paramstyle": "named"})
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online(url: str) -> None:
    section = config.get_section(config.config_ini_section, {})
    section["sqlalchemy.url"] = url
    engine = engine_from_config(section, prefix="sqlalchemy.", poolclass=pool.NullPool)
    with engine.connect() as connection:
        _configure(url, connection=connection)
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline(_database_url())
else:
    run_migrations_online(_database_url())
