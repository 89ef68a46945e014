"""
Resend throttle for verification emails.

A verification email may be resent when no previous send is recorded, when
the recorded timestamp is missing or unreadable (fail open), or when at least
one window (one hour by default) has elapsed since the last send.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from ..utils.clock import as_utc

logger = logging.getLogger(__name__)

DEFAULT_RESEND_WINDOW = timedelta(hours=1)


@dataclass(frozen=True)
class ThrottleRecord:
    email: str
    last_sent_at: Any = None


@dataclass(frozen=True)
class ThrottleDecision:
    eligible: bool
    last_sent_at: Optional[datetime] = None
    reason: str = ""


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Best-effort conversion of a stored ``lastSentAt`` value to an aware UTC datetime.

    Accepts datetimes (Firestore returns ``DatetimeWithNanoseconds``), objects
    exposing ``to_datetime()``, ISO 8601 strings and epoch milliseconds (what a
    JavaScript client writing ``Date.now()`` stores). Returns None for anything
    else.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        return as_utc(value)
    to_datetime = getattr(value, "to_datetime", None)
    if callable(to_datetime):
        try:
            converted = to_datetime()
        except Exception:
            return None
        return as_utc(converted) if isinstance(converted, datetime) else None
    if isinstance(value, (int, float)):
        try:
            return datetime.fromtimestamp(float(value) / 1000, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    if isinstance(value, str):
        candidate = value.strip()
        if not candidate:
            return None
        if candidate.endswith("Z"):
            candidate = candidate[:-1] + "+00:00"
        try:
            return as_utc(datetime.fromisoformat(candidate))
        except ValueError:
            return None
    return None


def evaluate_resend(
    record: Optional[ThrottleRecord],
    now: datetime,
    window: timedelta = DEFAULT_RESEND_WINDOW,
) -> ThrottleDecision:
    if record is None:
        return ThrottleDecision(eligible=True, reason="no_record")

    last_sent_at = parse_timestamp(record.last_sent_at)
    if last_sent_at is None:
        if record.last_sent_at is not None:
            logger.warning(
                f"Unreadable lastSentAt for {record.email!r}: {record.last_sent_at!r}; allowing resend"
            )
        return ThrottleDecision(eligible=True, reason="no_timestamp")

    elapsed = as_utc(now) - last_sent_at
    if elapsed >= window:
        return ThrottleDecision(eligible=True, last_sent_at=last_sent_at, reason="window_elapsed")
    return ThrottleDecision(eligible=False, last_sent_at=last_sent_at, reason="recently_sent")
