"""
Data schemas for Contact-Timing.
"""

from contact_timing.schemas.events import (
    REQUIRED_EVENT_COLUMNS,
    EventSchema,
    validate_events,
)

__all__ = [
    "REQUIRED_EVENT_COLUMNS",
    "EventSchema",
    "validate_events",
]
