"""Time utilities for timestamp rendering."""

from datetime import date, datetime, timezone
from typing import Any, Optional


def utc_now_z() -> str:
    """
    Get current UTC time as ISO 8601 string with Z suffix.

    Example:
        >>> utc_now_z()
        '2025-12-23T00:27:07.804867Z'
    """
    return to_utc_z(datetime.now(timezone.utc))


def to_utc_z(dt: datetime) -> str:
    """
    Convert datetime to ISO 8601 UTC string with Z suffix.

    Naive datetimes are assumed to already be UTC (MySQL DATETIME and SQLite
    both hand back naive values).
    """
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def format_timestamp(value: Any) -> Optional[str]:
    """Render a driver timestamp value as a string; strings pass through unchanged."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return to_utc_z(value)
    if isinstance(value, date):
        return value.isoformat()
    return str(value)
