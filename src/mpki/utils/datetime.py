# mpki/utils/datetime.py

from __future__ import annotations

from datetime import datetime, timezone, timedelta
from typing import Optional, Tuple

from mpki.constants import DEFAULT_NOT_AFTER, DEFAULT_NOT_BEFORE


def now_utc() -> datetime:
    """Return current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def epoch_serial(when: Optional[datetime] = None) -> int:
    """Whole seconds since the epoch, used as a certificate serial number."""
    return int((when or now_utc()).timestamp())


def validity_window(days: Optional[int] = None, *, start: Optional[datetime] = None) -> Tuple[datetime, datetime]:
    """
    Return (not_before, not_after) for a new certificate.

    Without `days` the fixed 2000-01-01 .. 2099-12-31T23:59:59Z window is used.
    With `days` the window is [start, start + days], start defaulting to now.
    """
    if days is None:
        return DEFAULT_NOT_BEFORE, DEFAULT_NOT_AFTER

    if days <= 0:
        raise ValueError(f"Validity must be a positive number of days, got {days}")

    begin = (start or now_utc()).replace(microsecond=0)
    return begin, begin + timedelta(days=days)


def format_datetime(date: datetime) -> str:
    """Format a datetime in UTC as '%Y%m%d%H%M%SZ' (X.509 friendly)."""
    if date.tzinfo is None:
        date = date.replace(tzinfo=timezone.utc)
    return date.astimezone(timezone.utc).strftime("%Y%m%d%H%M%SZ")
