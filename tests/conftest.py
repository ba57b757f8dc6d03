"""Shared fixtures for the Contact-Timing test suite."""

from datetime import datetime, timedelta, timezone

import pytest

from contact_timing.config import default_algorithm_config
from contact_timing.core.contracts import ContactEvent

# Monday 2025-11-10 15:00 UTC
NOW = datetime(2025, 11, 10, 15, 0, tzinfo=timezone.utc)


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def config():
    return default_algorithm_config()


@pytest.fixture
def make_event():
    """Factory for ContactEvents with sensible defaults."""

    def _make(
        hours_ago: float = 0.0,
        is_outbound: bool = True,
        hour_of_week: int = 34,
        event_type: str = "message_sent",
        is_success: bool = False,
        success_weight: float = 0.0,
        response_after_hours: float | None = None,
    ) -> ContactEvent:
        ts = NOW - timedelta(hours=hours_ago)
        response = ts + timedelta(hours=response_after_hours) if response_after_hours is not None else None
        return ContactEvent(
            event_type=event_type,
            event_timestamp=ts,
            response_timestamp=response,
            is_outbound=is_outbound,
            is_success=is_success,
            success_weight=success_weight,
            hour_of_week=hour_of_week,
        )

    return _make
