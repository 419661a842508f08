"""Timestamp utilities for UTC handling, parsing and job freshness."""

from datetime import datetime, timedelta, timezone
from typing import Optional


def utc_now() -> datetime:
    """Get current UTC time as timezone-aware datetime."""
    return datetime.now(timezone.utc)


def ensure_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """Ensure a datetime is timezone-aware and in UTC.

    Naive datetimes are treated as UTC; aware ones are converted.

    Example:
        >>> naive = datetime(2025, 11, 4, 12, 0, 0)
        >>> ensure_utc(naive).tzinfo == timezone.utc
        True
    """
    if dt is None:
        return None

    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)

    return dt.astimezone(timezone.utc)


def parse_iso_datetime(iso_string: Optional[str]) -> Optional[datetime]:
    """Parse an ISO 8601 datetime string to UTC datetime.

    Supports:
    - 2025-11-04T12:00:00Z
    - 2025-11-04T12:00:00.123456Z
    - 2025-11-04T12:00:00+00:00
    - 2025-11-04

    Returns:
        Timezone-aware datetime in UTC, or None if parsing fails
    """
    if not iso_string or not iso_string.strip():
        return None

    cleaned = iso_string.strip()
    if cleaned.endswith("Z"):
        cleaned = cleaned[:-1] + "+00:00"

    try:
        return ensure_utc(datetime.fromisoformat(cleaned))
    except ValueError:
        try:
            return ensure_utc(datetime.strptime(cleaned, "%Y-%m-%d"))
        except ValueError:
            return None


def format_timestamp(dt: Optional[datetime]) -> Optional[str]:
    """Format a datetime as a fixed-width ISO 8601 UTC string.

    The fixed width (always with microseconds) keeps stored values
    lexicographically comparable, which the freshness query relies on.

    Example:
        >>> format_timestamp(datetime(2025, 11, 4, 12, 0, tzinfo=timezone.utc))
        '2025-11-04T12:00:00.000000Z'
    """
    dt_utc = ensure_utc(dt)
    if dt_utc is None:
        return None
    return dt_utc.strftime("%Y-%m-%dT%H:%M:%S.%fZ")


def days_since(dt: Optional[datetime], now: Optional[datetime] = None) -> float:
    """Fractional days elapsed since ``dt``. Missing timestamps count as now."""
    if dt is None:
        return 0.0
    reference = ensure_utc(now) if now is not None else utc_now()
    return max(0.0, (reference - ensure_utc(dt)).total_seconds() / 86400.0)


def freshness_cutoff(days: int, now: Optional[datetime] = None) -> datetime:
    """Oldest posting time still inside a freshness window of ``days``."""
    reference = ensure_utc(now) if now is not None else utc_now()
    return reference - timedelta(days=days)
