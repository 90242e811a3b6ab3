"""UTC-everywhere time handling. Expiry math on codes and sessions happens in UTC only."""

from datetime import datetime, timezone


def now_utc() -> datetime:
    """
    Current time in UTC.

    Use this instead of datetime.now() everywhere. Tests patch this
    function to move the clock.
    """
    return datetime.now(timezone.utc)


def to_utc(dt: datetime) -> datetime:
    """
    Convert a datetime to UTC.

    Raises ValueError if datetime is naive (no timezone).
    """
    if dt.tzinfo is None:
        raise ValueError(
            "Cannot convert naive datetime to UTC. Datetime must be timezone-aware."
        )
    return dt.astimezone(timezone.utc)


def to_epoch_seconds(dt: datetime) -> int:
    """Whole seconds since the Unix epoch, as used in JWT claims."""
    return int(to_utc(dt).timestamp())


def from_epoch_seconds(seconds: int | float) -> datetime:
    """Inverse of to_epoch_seconds. Always returns an aware UTC datetime."""
    return datetime.fromtimestamp(seconds, tz=timezone.utc)
