"""
Time helpers.

All timestamps are UTC. SQLite hands datetimes back without tzinfo, so values
read from the database go through ``as_utc`` before being compared or
serialized.
"""

from datetime import datetime, timezone


def utc_now() -> datetime:
    """Return current UTC datetime (timezone-aware)."""
    return datetime.now(timezone.utc)


def as_utc(dt: datetime) -> datetime:
    """Attach UTC to a naive datetime; convert an aware one to UTC."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def format_iso8601(dt: datetime) -> str:
    """
    Format a datetime as ISO 8601 string.

    Args:
        dt: The datetime to format

    Returns:
        ISO 8601 formatted string (e.g., "2024-01-15T10:30:00Z")
    """
    return as_utc(dt).strftime("%Y-%m-%dT%H:%M:%SZ")


def format_clock_utc(dt: datetime) -> str:
    """Format the wall-clock part of a datetime, e.g. "14:05:09 UTC"."""
    return as_utc(dt).strftime("%H:%M:%S UTC")
