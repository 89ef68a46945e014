from __future__ import annotations

from datetime import datetime, timezone
from typing import Callable


Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes and convert aware ones."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def isoformat_utc(value: datetime) -> str:
    """ISO 8601 with millisecond precision and a trailing ``Z``."""
    return as_utc(value).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def date_utc(value: datetime) -> str:
    return as_utc(value).date().isoformat()
