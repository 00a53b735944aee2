"""Datetime utilities for common operations."""

from datetime import datetime, timedelta, timezone
from typing import Optional


def now() -> datetime:
    """Get current datetime in UTC."""
    return datetime.now(timezone.utc)


def ensure_aware(dt: datetime) -> datetime:
    """
    Treat naive datetimes as UTC.

    SQLite drops tzinfo on round-trip, so values read back from the
    development database are naive.
    """
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt


def parse_iso(value: str) -> Optional[datetime]:
    """
    Parse an ISO-8601 timestamp.

    Accepts a trailing 'Z' for UTC. Naive values are taken as UTC.

    Args:
        value: Timestamp string

    Returns:
        Aware datetime, or None if the string is not a valid timestamp
    """
    if not value:
        return None
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        return ensure_aware(datetime.fromisoformat(text))
    except ValueError:
        return None


def to_iso(dt: datetime) -> str:
    """Format a datetime as ISO-8601 in UTC."""
    return ensure_aware(dt).astimezone(timezone.utc).isoformat()


def elapsed_since(start: datetime, until: Optional[datetime] = None) -> timedelta:
    """Time elapsed from start until `until` (default: now)."""
    return (until or now()) - ensure_aware(start)


def to_unix_millis(dt: datetime) -> int:
    """Convert datetime to a Unix timestamp in milliseconds."""
    return int(ensure_aware(dt).timestamp() * 1000)
