"""
Time helpers shared by every layer.

All instants inside the engine are timezone-aware UTC datetimes.  Naive
datetimes coming from callers are interpreted as UTC.
"""

from __future__ import annotations

from datetime import datetime, timezone

SECONDS_PER_HOUR = 3600.0
SECONDS_PER_DAY = 86400.0


def utc_now() -> datetime:
    """Return the current instant as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def ensure_utc(ts: datetime) -> datetime:
    """Return ``ts`` as an aware UTC datetime (naive input is assumed UTC)."""
    if ts.tzinfo is None:
        return ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(timezone.utc)


def days_between(earlier: datetime, later: datetime) -> float:
    """Signed number of days from ``earlier`` to ``later``."""
    return (ensure_utc(later) - ensure_utc(earlier)).total_seconds() / SECONDS_PER_DAY


def hours_between(earlier: datetime, later: datetime) -> float:
    """Signed number of hours from ``earlier`` to ``later``."""
    return (ensure_utc(later) - ensure_utc(earlier)).total_seconds() / SECONDS_PER_HOUR
