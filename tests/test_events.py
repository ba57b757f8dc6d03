"""Tests for the event contracts and tracking factory."""

from datetime import datetime, timezone

import pytest
from pydantic import ValidationError

from contact_timing.core.contracts import ContactEvent, ContactPreferences
from contact_timing.core.events import (
    EventType,
    canonical_success_weight,
    is_success_type,
    resolve_success_weight,
    track_event,
    tracking_weights,
)

TS = datetime(2025, 11, 10, 15, 0, tzinfo=timezone.utc)


class TestTrackEvent:
    """Test building events from their type."""

    def test_reply_is_full_success(self):
        event = track_event(EventType.MESSAGE_REPLIED, TS, is_outbound=False)

        assert event.is_success is True
        assert event.success_weight == pytest.approx(1.0)
        assert event.event_type == "message_replied"

    def test_click_and_open_use_config(self, config):
        click = track_event("message_clicked", TS, is_outbound=False, config=config)
        opened = track_event("message_opened", TS, is_outbound=False, config=config)

        assert click.success_weight == pytest.approx(config.success_weight_click)
        assert opened.success_weight == pytest.approx(config.success_weight_open)

    def test_sent_is_not_success(self):
        event = track_event(EventType.MESSAGE_SENT, TS, is_outbound=True)

        assert event.is_success is False
        assert event.success_weight == 0.0

    def test_explicit_success_kept_for_untyped_event(self):
        event = track_event(EventType.MEETING_SCHEDULED, TS, is_outbound=False, is_success=True)

        assert event.is_success is True
        assert event.success_weight == 0.0

    def test_success_type_cannot_be_demoted(self):
        event = track_event(EventType.CALL_COMPLETED, TS, is_outbound=True, is_success=False)

        assert event.is_success is True


class TestSuccessWeights:
    """Test success weight resolution."""

    def test_success_types(self):
        assert is_success_type(EventType.MEETING_ATTENDED)
        assert is_success_type("message_clicked")
        assert not is_success_type("message_delivered")

    def test_canonical_defaults(self):
        assert canonical_success_weight("message_replied") == pytest.approx(1.0)
        assert canonical_success_weight("message_opened") == pytest.approx(0.25)
        assert canonical_success_weight("call_initiated") == 0.0

    def test_caller_weight_wins(self, config):
        event = ContactEvent(
            event_type="message_replied", event_timestamp=TS, is_outbound=False,
            is_success=True, success_weight=0.7,
        )

        assert resolve_success_weight(event, config) == pytest.approx(0.7)

    def test_zero_weight_falls_back_to_config(self, config):
        event = ContactEvent(
            event_type="message_clicked", event_timestamp=TS, is_outbound=False,
            is_success=True,
        )

        assert resolve_success_weight(event, config) == pytest.approx(config.success_weight_click)

    def test_non_success_resolves_to_zero(self, config):
        event = ContactEvent(
            event_type="message_replied", event_timestamp=TS, is_outbound=False,
            is_success=False, success_weight=1.0,
        )

        assert resolve_success_weight(event, config) == 0.0

    def test_tracking_weights(self, config):
        weights = tracking_weights(config)

        assert weights["message_replied"] == pytest.approx(1.0)
        assert weights["call_completed"] == pytest.approx(1.0)
        assert weights["message_clicked"] == pytest.approx(0.5)
        assert "message_sent" not in weights


class TestContactEventContract:
    """Test ContactEvent validation."""

    def test_naive_timestamp_becomes_utc(self):
        event = ContactEvent(
            event_type="message_sent", event_timestamp=datetime(2025, 11, 10, 15), is_outbound=True,
        )

        assert event.event_timestamp.tzinfo is not None
        assert event.event_timestamp == TS

    def test_frozen(self):
        event = ContactEvent(event_type="message_sent", event_timestamp=TS, is_outbound=True)

        with pytest.raises(ValidationError):
            event.hour_of_week = 5

    def test_hour_of_week_range(self):
        with pytest.raises(ValidationError):
            ContactEvent(event_type="message_sent", event_timestamp=TS, is_outbound=True, hour_of_week=168)

    def test_success_weight_range(self):
        with pytest.raises(ValidationError):
            ContactEvent(event_type="message_sent", event_timestamp=TS, is_outbound=True, success_weight=1.5)


class TestContactPreferences:
    """Test preference validation."""

    def test_valid(self):
        prefs = ContactPreferences(quiet_hours_start="21:00", quiet_hours_end="07:00", preferred_days=[1, 2])

        assert prefs.preferred_days == [1, 2]

    def test_bad_time(self):
        with pytest.raises(ValidationError):
            ContactPreferences(quiet_hours_start="25:00")

    def test_bad_day(self):
        with pytest.raises(ValidationError):
            ContactPreferences(preferred_days=[7])
