"""
UTC datetime utilities for consistent timezone handling.

All cache timestamps are timezone-aware UTC. Use these helpers instead
of datetime.now() or datetime.utcnow(), and for the ISO-8601 strings
written into persisted cache records.
"""

from datetime import UTC, datetime


def utc_now() -> datetime:
    """
    Return the current UTC datetime with timezone info.

    Returns:
        Timezone-aware datetime in UTC
    """
    return datetime.now(UTC)


def ensure_utc(dt: datetime | None) -> datetime | None:
    """
    Ensure a datetime is UTC-aware.

    - If None, returns None
    - If naive, assumes UTC and attaches timezone
    - If aware, converts to UTC

    Records written by older clients may carry naive timestamps, so the
    cache loader normalizes through here.

    Args:
        dt: A datetime that may be naive or aware

    Returns:
        UTC-aware datetime or None
    """
    if dt is None:
        return None

    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)

    return dt.astimezone(UTC)


def to_iso(dt: datetime | None) -> str | None:
    """Serialize a datetime as ISO-8601 (UTC), passing None through."""
    if dt is None:
        return None
    normalized = ensure_utc(dt)
    assert normalized is not None
    return normalized.isoformat()


def parse_iso(value: str | None) -> datetime | None:
    """
    Parse an ISO-8601 string into a UTC-aware datetime.

    A trailing 'Z' is accepted. None passes through.

    Raises:
        ValueError: If the string is not valid ISO-8601.
        TypeError: If value is neither a string nor None.
    """
    if value is None:
        return None
    if not isinstance(value, str):
        raise TypeError(f"Expected ISO-8601 string, got {type(value).__name__}")
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    return ensure_utc(datetime.fromisoformat(value))
