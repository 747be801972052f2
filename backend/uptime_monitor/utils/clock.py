"""Time helpers.

All timestamps are stored as naive UTC datetimes.
"""
from datetime import datetime, timezone
from typing import Callable

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    """Current UTC time as a naive datetime."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def isoformat(value: datetime) -> str:
    """ISO-8601 with a trailing Z for naive UTC datetimes."""
    return value.isoformat() + "Z"
