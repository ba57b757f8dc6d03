"""
Hour-of-week binning.

A week is cut into 168 one-hour bins in the contact's local time:
``bin = weekday * 24 + hour`` with Sunday = 0, so bin 0 is Sunday 00:00
and bin 167 is Saturday 23:00.  Distances between bins are circular:
Saturday 23:00 and Sunday 00:00 are one hour apart.
"""

from __future__ import annotations

from datetime import datetime
from typing import Iterable

import pytz
from loguru import logger

from contact_timing.core.clock import ensure_utc
from contact_timing.core.contracts import HOURS_PER_DAY, HOURS_PER_WEEK, ContactEvent
from contact_timing.core.exceptions import InvalidInputError

DAY_NAMES = ("Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat")


def hour_of_week(ts: datetime, timezone: str) -> int:
    """
    Bin of ``ts`` as seen on a wall clock in ``timezone``.

    Example:
        >>> hour_of_week(datetime(2025, 11, 10, 15, tzinfo=pytz.utc), "America/New_York")
        34  # Monday 10:00 EST
    """
    local = ensure_utc(ts).astimezone(pytz.timezone(timezone))
    # Python weekday(): Monday = 0 .. Sunday = 6
    day = (local.weekday() + 1) % 7
    return day * HOURS_PER_DAY + local.hour


def hour_of_week_to_label(bin_index: int) -> tuple[str, int]:
    """Return ``(day_name, hour)`` for a bin, e.g. 34 -> ("Mon", 10)."""
    if not 0 <= bin_index < HOURS_PER_WEEK:
        raise InvalidInputError(f"hour_of_week must be 0-167, got {bin_index}", "hour_of_week")
    return DAY_NAMES[bin_index // HOURS_PER_DAY], bin_index % HOURS_PER_DAY


def window_bounds(bin_index: int) -> tuple[str, str]:
    """``("HH:00", "HH:00")`` start/end labels for the one-hour window of a bin."""
    hour = bin_index % HOURS_PER_DAY
    return f"{hour:02d}:00", f"{(hour + 1) % HOURS_PER_DAY:02d}:00"


def circular_distance(a: int, b: int) -> int:
    """Hours between two bins going the short way round the week."""
    diff = abs(a - b) % HOURS_PER_WEEK
    return min(diff, HOURS_PER_WEEK - diff)


def localize_events(events: Iterable[ContactEvent], timezone: str) -> list[ContactEvent]:
    """
    Return copies of ``events`` with ``hour_of_week`` recomputed in ``timezone``.

    The input events are not modified.  An unknown zone falls back to UTC.
    """
    try:
        pytz.timezone(timezone)
    except pytz.UnknownTimeZoneError:
        logger.warning(f"Unknown timezone {timezone!r}, binning events in UTC")
        timezone = "UTC"

    return [
        event.model_copy(update={"hour_of_week": hour_of_week(event.event_timestamp, timezone)})
        for event in events
    ]
