"""
Timezone inference layer for Contact-Timing.

Maps weak signals (activity timestamps, profile location, locale) to an
IANA zone with a confidence label, plus tz-database helpers.
"""

from contact_timing.timezone.inference import (
    get_timezone_display_name,
    get_timezone_offset_hours,
    infer_best_timezone,
    infer_timezone_from_activity,
    infer_timezone_from_profile,
    is_valid_timezone,
    manual_override,
)

__all__ = [
    "get_timezone_display_name",
    "get_timezone_offset_hours",
    "infer_best_timezone",
    "infer_timezone_from_activity",
    "infer_timezone_from_profile",
    "is_valid_timezone",
    "manual_override",
]
