"""
Timezone inference from activity timestamps and profile text.

Signals, in order of trust:
  1. Profile location / locale text  (explicit, deterministic)
  2. Activity pattern of message timestamps  (coarse heuristic)
  3. Caller default

Every function here is total: missing or garbage input yields a
low-confidence default rather than an exception.

The activity heuristic finds the modal UTC hour, assumes it is the
contact's local late-morning peak (11:00) and maps the implied offset
through ``OFFSET_RANGE_ZONES``.  It is intentionally coarse; offsets
that fall into a gap of that table are reported as "no inference".
"""

from __future__ import annotations

from datetime import datetime
from typing import Iterable

import numpy as np
import pytz
from loguru import logger

from contact_timing.core.clock import ensure_utc, utc_now
from contact_timing.core.contracts import Confidence, TimezoneInference, TimezoneSource
from contact_timing.timezone.tables import (
    ASSUMED_PEAK_LOCAL_HOUR,
    REGION_ALIASES,
    zone_for_location,
    zone_for_offset,
)

MIN_ACTIVITY_TIMESTAMPS = 3
HIGH_CONFIDENCE_TIMESTAMPS = 10


def infer_timezone_from_activity(
    timestamps: Iterable[datetime] | None,
    default_timezone: str = "UTC",
) -> TimezoneInference:
    """
    Infer a timezone from when a contact is active.

    Args:
        timestamps:       Message/event instants (naive values are UTC).
        default_timezone: Returned when there is too little data or the
                          implied offset is not covered by the table.

    Returns:
        TimezoneInference.  Fewer than 3 timestamps gives
        ``(default, low, default)``; a table match is ``medium``,
        upgraded to ``high`` from 10 timestamps on.
    """
    stamps = list(timestamps) if timestamps is not None else []
    if len(stamps) < MIN_ACTIVITY_TIMESTAMPS:
        return TimezoneInference(default_timezone, Confidence.LOW, TimezoneSource.DEFAULT)

    hours = np.array([_utc_hour(ts) for ts in stamps], dtype=int)
    hour_counts = np.bincount(hours, minlength=24)
    # argmax returns the first maximum, so ties go to the earliest hour
    peak_hour = int(np.argmax(hour_counts))
    offset = (peak_hour - ASSUMED_PEAK_LOCAL_HOUR + 24) % 24

    zone = zone_for_offset(offset)
    if zone is None:
        logger.debug(
            f"Activity peak at {peak_hour:02d}:00 UTC (offset {offset}) "
            f"not covered, keeping {default_timezone}"
        )
        return TimezoneInference(
            default_timezone, Confidence.LOW, TimezoneSource.INFERRED_FROM_MESSAGES,
        )

    confidence = Confidence.HIGH if len(stamps) >= HIGH_CONFIDENCE_TIMESTAMPS else Confidence.MEDIUM
    return TimezoneInference(zone, confidence, TimezoneSource.INFERRED_FROM_MESSAGES)


def _utc_hour(ts) -> int:
    # datetime64 values carry no zone and are read as UTC
    if isinstance(ts, np.datetime64):
        ts = ts.astype("datetime64[us]").astype(datetime)
    return ensure_utc(ts).hour


def infer_timezone_from_profile(
    location: str | None = None,
    locale: str | None = None,
) -> TimezoneInference:
    """
    Infer a timezone from free-text profile location and/or locale.

    Matching is a case-insensitive substring search over the combined
    text.  Any match is ``high`` confidence from ``location``; no input
    or no match is ``(UTC, low, default)``.
    """
    text = " ".join(part for part in (location, locale) if part)
    if not text:
        return TimezoneInference("UTC", Confidence.LOW, TimezoneSource.DEFAULT)

    zone = zone_for_location(text)
    if zone is None:
        return TimezoneInference("UTC", Confidence.LOW, TimezoneSource.DEFAULT)

    return TimezoneInference(zone, Confidence.HIGH, TimezoneSource.LOCATION)


def infer_best_timezone(
    timestamps: Iterable[datetime] | None,
    location: str | None = None,
    locale: str | None = None,
    default_timezone: str = "UTC",
) -> TimezoneInference:
    """
    Combine profile and activity inference.

    A high-confidence profile match wins outright, then a high-confidence
    activity match.  Otherwise the higher confidence wins, and on a tie
    the profile inference is preferred.
    """
    profile = infer_timezone_from_profile(location, locale)
    if profile.confidence is Confidence.HIGH:
        return profile

    activity = infer_timezone_from_activity(timestamps, default_timezone)
    if activity.confidence is Confidence.HIGH:
        return activity

    if activity.confidence.rank > profile.confidence.rank:
        return activity
    if profile.confidence.rank > activity.confidence.rank:
        return profile

    # Equal confidence: an explicit profile signal beats inferred behaviour,
    # but a bare profile default must not hide the caller's default zone.
    if profile.confidence is not Confidence.LOW:
        return profile
    return activity


def manual_override(timezone: str) -> TimezoneInference | None:
    """
    Pin a contact to a caller-chosen zone.

    Accepts IANA names and the region aliases in ``REGION_ALIASES``
    (e.g. "Eastern").  Returns None when the zone is not recognised.
    """
    zone = REGION_ALIASES.get(timezone, timezone)
    if not is_valid_timezone(zone):
        logger.warning(f"Ignoring invalid timezone override {timezone!r}")
        return None
    return TimezoneInference(zone, Confidence.HIGH, TimezoneSource.MANUAL_OVERRIDE)


# ---------------------------------------------------------------------------
# Timezone database helpers
# ---------------------------------------------------------------------------

def is_valid_timezone(timezone: str | None) -> bool:
    """True when ``timezone`` names a zone in the tz database."""
    if not timezone or not isinstance(timezone, str):
        return False
    try:
        pytz.timezone(timezone)
    except pytz.UnknownTimeZoneError:
        return False
    return True


def get_timezone_display_name(timezone: str, now: datetime | None = None) -> str:
    """Short label for the zone at ``now`` (e.g. "EST"); the input on any failure."""
    if not is_valid_timezone(timezone):
        return timezone
    moment = ensure_utc(now) if now is not None else utc_now()
    label = moment.astimezone(pytz.timezone(timezone)).tzname()
    return label or timezone


def get_timezone_offset_hours(timezone: str, now: datetime | None = None) -> float:
    """UTC offset of the zone at ``now`` in hours (DST-aware); 0.0 for invalid zones."""
    if not is_valid_timezone(timezone):
        return 0.0
    moment = ensure_utc(now) if now is not None else utc_now()
    offset = moment.astimezone(pytz.timezone(timezone)).utcoffset()
    return offset.total_seconds() / 3600.0 if offset is not None else 0.0
