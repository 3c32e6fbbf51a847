"""
DateTime utilities for consistent timezone handling.

Timestamps are stored as ISO-8601 strings in UTC with millisecond precision
and a trailing ``Z``.
"""
from datetime import datetime, timezone
from typing import Optional


def utc_now() -> datetime:
    """
    Get the current UTC time with timezone awareness.

    Returns:
        datetime: Current UTC time with timezone info
    """
    return datetime.now(timezone.utc)


def format_timestamp(dt: datetime) -> str:
    """
    Format a datetime as a stored ISO-8601 timestamp.

    Naive datetimes are assumed to be UTC.
    """
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    dt = dt.astimezone(timezone.utc)
    return dt.strftime("%Y-%m-%dT%H:%M:%S.") + f"{dt.microsecond // 1000:03d}Z"


def utc_now_iso() -> str:
    """Current UTC time as a stored timestamp string."""
    return format_timestamp(utc_now())


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """
    Parse a stored ISO-8601 timestamp into an aware UTC datetime.

    Args:
        value: Timestamp string, with ``Z`` or an explicit offset. Date-only
            values are accepted and mean midnight UTC.

    Returns:
        Aware datetime, or None for blank input

    Raises:
        ValueError: If the value is not a valid ISO-8601 timestamp
    """
    if value is None:
        return None
    value = str(value).strip()
    if not value:
        return None
    if value.endswith("Z") or value.endswith("z"):
        value = value[:-1] + "+00:00"
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)
