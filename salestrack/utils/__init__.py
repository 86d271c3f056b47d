"""Shared utility helpers used across connectors and services."""

from datetime import datetime


def safe_int(v):
    """Safely convert a value to int, returning None on failure."""
    if v is None:
        return None
    try:
        return int(v)
    except (ValueError, TypeError):
        return None


def safe_float(v):
    """Safely convert a value to float, returning None on failure."""
    if v is None:
        return None
    try:
        return float(v)
    except (ValueError, TypeError):
        return None


def iso(dt: datetime | None) -> str | None:
    """ISO-8601 string or None."""
    return dt.isoformat() if dt is not None else None
