"""
Static lookup tables for timezone inference.

Both tables are data, not logic: extend them here without touching the
inference code.  Order matters -- the first matching entry wins.
"""

from __future__ import annotations

from types import MappingProxyType

# Local hour at which contacts are assumed to peak in activity.
ASSUMED_PEAK_LOCAL_HOUR = 11

# (low, high, zone): inclusive ranges of the activity offset
# ``(peak_utc_hour - 11) % 24``, which is roughly the negated UTC offset
# of the contact's zone.  A range with low > high wraps past 23.  The
# ranges deliberately leave gaps (1-2, 9-13, 20); offsets there get no
# inference and fall back to the caller's default.
OFFSET_RANGE_ZONES: tuple[tuple[int, int, str], ...] = (
    (21, 0, "Europe/London"),
    (3, 5, "America/New_York"),
    (6, 8, "America/Los_Angeles"),
    (14, 16, "Asia/Singapore"),
    (17, 19, "Asia/Kolkata"),
)

# Lower-case location/locale keywords -> zone, matched by substring.
LOCATION_KEYWORD_ZONES: MappingProxyType[str, tuple[str, ...]] = MappingProxyType({
    "America/New_York": ("new york", "boston", "miami"),
    "America/Chicago": ("chicago", "dallas", "houston"),
    "America/Los_Angeles": ("los angeles", "san francisco", "seattle"),
    "Europe/London": ("london", "uk", "united kingdom"),
    "Europe/Paris": ("paris", "france", "germany", "berlin"),
    "Asia/Kolkata": ("india", "mumbai", "delhi"),
    "Asia/Singapore": ("singapore",),
    "Asia/Shanghai": ("china", "beijing", "shanghai"),
    "Asia/Tokyo": ("japan", "tokyo"),
    "Australia/Sydney": ("sydney", "melbourne"),
})

# Region abbreviations accepted as manual timezone hints.
REGION_ALIASES: MappingProxyType[str, str] = MappingProxyType({
    "Eastern": "America/New_York",
    "Central": "America/Chicago",
    "Mountain": "America/Denver",
    "Pacific": "America/Los_Angeles",
    "UK": "Europe/London",
    "CET": "Europe/Paris",
    "EET": "Europe/Athens",
    "India": "Asia/Kolkata",
    "China": "Asia/Shanghai",
    "Japan": "Asia/Tokyo",
    "Singapore": "Asia/Singapore",
    "AEST": "Australia/Sydney",
    "ACST": "Australia/Adelaide",
    "AWST": "Australia/Perth",
})


def zone_for_offset(offset_hours: int) -> str | None:
    """Zone whose range covers ``offset_hours``, or None inside a gap."""
    for low, high, zone in OFFSET_RANGE_ZONES:
        if low <= high:
            if low <= offset_hours <= high:
                return zone
        elif offset_hours >= low or offset_hours <= high:
            return zone
    return None


def zone_for_location(text: str) -> str | None:
    """First zone with a keyword contained in ``text`` (case-insensitive)."""
    lowered = text.lower()
    for zone, keywords in LOCATION_KEYWORD_ZONES.items():
        if any(k in lowered for k in keywords):
            return zone
    return None
