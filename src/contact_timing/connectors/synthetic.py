"""
Synthetic contact-event generator for demos and tests.

Each contact gets a stable behavioural profile seeded from its id: a
home timezone, a time-of-day pattern (morning, afternoon, evening or
irregular), a success rate and optionally a set of preferred weekdays.
Outbound attempts are drawn at local hours matching the pattern and a
successful attempt is followed by a reply, click or open 1-12 hours
later.
"""

from __future__ import annotations

import zlib
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any

import numpy as np
import pandas as pd
import pytz
from loguru import logger

from contact_timing.connectors.local import events_to_frame
from contact_timing.core.clock import ensure_utc, utc_now
from contact_timing.core.contracts import ContactEvent
from contact_timing.core.events import EventType, track_event

# Local [start, end) hours each pattern draws attempts from
PATTERN_HOURS: dict[str, tuple[int, int]] = {
    "morning": (8, 12),
    "afternoon": (13, 17),
    "evening": (18, 22),
    "irregular": (0, 24),
}

# Zone -> a city name a profile would plausibly list
DEMO_LOCATIONS: dict[str, str] = {
    "America/New_York": "New York, NY",
    "America/Chicago": "Chicago, IL",
    "America/Los_Angeles": "San Francisco, CA",
    "Europe/London": "London, United Kingdom",
    "Europe/Paris": "Paris, France",
    "Asia/Kolkata": "Bangalore, India",
    "Asia/Singapore": "Singapore",
    "Asia/Tokyo": "Tokyo, Japan",
    "Australia/Sydney": "Sydney, Australia",
}

_SUCCESS_TYPES = (
    (0.60, EventType.MESSAGE_REPLIED),
    (0.85, EventType.MESSAGE_CLICKED),
    (1.00, EventType.MESSAGE_OPENED),
)


@dataclass
class SyntheticContact:
    """Behavioural profile behind a synthetic contact's events."""

    contact_id: str
    timezone: str
    pattern: str
    n_events: int
    success_rate: float
    preferred_days: list[int] = field(default_factory=list)

    @property
    def location(self) -> str:
        return DEMO_LOCATIONS.get(self.timezone, "")

    def to_dict(self) -> dict[str, Any]:
        return {
            "contact_id": self.contact_id,
            "true_timezone": self.timezone,
            "location": self.location,
            "pattern": self.pattern,
            "n_events": self.n_events,
            "success_rate": self.success_rate,
            "preferred_days": self.preferred_days,
        }


def contact_seed(contact_id: str) -> int:
    """Stable 32-bit seed derived from a contact id."""
    return zlib.crc32(contact_id.encode("utf-8"))


def event_rng(contact_id: str) -> np.random.Generator:
    """Generator for a contact's events, a separate stream from its profile draws."""
    return np.random.default_rng([contact_seed(contact_id), 1])


def contact_profile(contact_id: str) -> SyntheticContact:
    """Deterministic profile for ``contact_id``."""
    rng = np.random.default_rng(contact_seed(contact_id))
    zones = sorted(DEMO_LOCATIONS)
    patterns = sorted(PATTERN_HOURS)

    weekdays_only = rng.random() < 0.3
    return SyntheticContact(
        contact_id=contact_id,
        timezone=zones[int(rng.integers(len(zones)))],
        pattern=patterns[int(rng.integers(len(patterns)))],
        n_events=int(rng.integers(2, 31)),
        success_rate=round(float(rng.uniform(0.2, 0.9)), 2),
        preferred_days=[1, 2, 3, 4, 5] if weekdays_only else [],
    )


def generate_contact_events(
    profile: SyntheticContact,
    days_back: int = 60,
    now: datetime | None = None,
) -> list[ContactEvent]:
    """
    Outbound attempts and their responses for one synthetic contact.

    Events are returned in UTC with ``hour_of_week`` left at 0; localise
    them with ``transforms.binning.localize_events``.
    """
    now = ensure_utc(now) if now is not None else utc_now()
    rng = event_rng(profile.contact_id)
    tz = pytz.timezone(profile.timezone)
    local_now = now.astimezone(tz)
    lo, hi = PATTERN_HOURS[profile.pattern]

    events: list[ContactEvent] = []
    for _ in range(profile.n_events):
        day = (local_now - timedelta(days=int(rng.integers(1, days_back + 1)))).date()
        if profile.preferred_days:
            while (day.weekday() + 1) % 7 not in profile.preferred_days:
                day -= timedelta(days=1)

        local = tz.localize(datetime(
            day.year, day.month, day.day, int(rng.integers(lo, hi)), int(rng.integers(0, 60)),
        ))
        sent_at = local.astimezone(pytz.utc)

        if rng.random() >= profile.success_rate:
            events.append(track_event(EventType.MESSAGE_SENT, sent_at, is_outbound=True))
            continue

        roll = rng.random()
        response_type = next(t for cutoff, t in _SUCCESS_TYPES if roll < cutoff)
        responded_at = sent_at + timedelta(hours=float(rng.uniform(1.0, 12.0)))
        if responded_at > now:
            events.append(track_event(EventType.MESSAGE_SENT, sent_at, is_outbound=True))
            continue
        weight = track_event(response_type, responded_at, is_outbound=False).success_weight

        events.append(ContactEvent(
            event_type=EventType.MESSAGE_SENT,
            event_timestamp=sent_at,
            response_timestamp=responded_at,
            is_outbound=True,
            is_success=True,
            success_weight=weight,
        ))
        events.append(track_event(response_type, responded_at, is_outbound=False))

    events.sort(key=lambda e: e.event_timestamp)
    return events


def generate_demo_dataset(
    n_contacts: int = 20,
    days_back: int = 60,
    now: datetime | None = None,
) -> tuple[pd.DataFrame, pd.DataFrame]:
    """
    Events and profiles for ``n_contacts`` synthetic contacts.

    Returns:
        ``(events, contacts)`` DataFrames.  ``events`` follows the
        contact-event schema; ``contacts`` holds one profile per row.
    """
    profiles = [contact_profile(f"contact-{i:03d}") for i in range(n_contacts)]
    events = {p.contact_id: generate_contact_events(p, days_back, now) for p in profiles}

    events_df = events_to_frame(events)
    contacts_df = pd.DataFrame([p.to_dict() for p in profiles])

    logger.info(f"Generated {len(events_df)} synthetic events for {n_contacts} contacts")
    return events_df, contacts_df
