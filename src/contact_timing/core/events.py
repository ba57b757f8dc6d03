"""
Event taxonomy and the tracking factory for contact interaction events.

Callers record raw interactions (a message went out, a contact replied,
a link was clicked).  ``track_event`` turns them into ``ContactEvent``
contracts with the success flag and success weight already resolved,
so the estimator only ever sees fully-weighted events.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from contact_timing.core.contracts import AlgorithmConfig, ContactEvent


class EventType(str, Enum):
    MESSAGE_SENT = "message_sent"
    MESSAGE_DELIVERED = "message_delivered"
    MESSAGE_OPENED = "message_opened"
    MESSAGE_CLICKED = "message_clicked"
    MESSAGE_REPLIED = "message_replied"
    CALL_INITIATED = "call_initiated"
    CALL_COMPLETED = "call_completed"
    MEETING_SCHEDULED = "meeting_scheduled"
    MEETING_ATTENDED = "meeting_attended"


# Event type -> name of the AlgorithmConfig weight it earns.
SUCCESS_WEIGHT_FIELDS: dict[str, str] = {
    EventType.MESSAGE_REPLIED.value: "success_weight_reply",
    EventType.CALL_COMPLETED.value: "success_weight_reply",
    EventType.MEETING_ATTENDED.value: "success_weight_reply",
    EventType.MESSAGE_CLICKED.value: "success_weight_click",
    EventType.MESSAGE_OPENED.value: "success_weight_open",
}

# Canonical weights used when no AlgorithmConfig is at hand.
DEFAULT_SUCCESS_WEIGHTS: dict[str, float] = {
    "success_weight_reply": 1.0,
    "success_weight_click": 0.5,
    "success_weight_open": 0.25,
}


def is_success_type(event_type: str | EventType) -> bool:
    """True for event types that count as a positive engagement signal."""
    key = event_type.value if isinstance(event_type, EventType) else event_type
    return key in SUCCESS_WEIGHT_FIELDS


def canonical_success_weight(
    event_type: str | EventType,
    config: AlgorithmConfig | None = None,
) -> float:
    """Weight an event type earns as a success, 0.0 for non-success types."""
    key = event_type.value if isinstance(event_type, EventType) else event_type
    field_name = SUCCESS_WEIGHT_FIELDS.get(key)
    if field_name is None:
        return 0.0
    if config is None:
        return DEFAULT_SUCCESS_WEIGHTS[field_name]
    return float(getattr(config, field_name))


def resolve_success_weight(event: ContactEvent, config: AlgorithmConfig) -> float:
    """
    Success weight the estimator should credit for ``event``.

    A positive caller-supplied weight wins; otherwise the config's
    canonical weight for the event type applies.  Non-success events
    always resolve to 0.
    """
    if not event.is_success:
        return 0.0
    if event.success_weight > 0:
        return event.success_weight
    return canonical_success_weight(event.event_type, config)


def track_event(
    event_type: str | EventType,
    event_timestamp: datetime,
    is_outbound: bool,
    response_timestamp: datetime | None = None,
    is_success: bool | None = None,
    hour_of_week: int = 0,
    config: AlgorithmConfig | None = None,
) -> ContactEvent:
    """
    Build a ``ContactEvent`` with success flag and weight resolved from its type.

    Replies, completed calls and attended meetings are full successes,
    clicks half, opens a quarter (or whatever ``config`` says).  An
    explicit ``is_success`` is respected for types with no canonical
    weight; it cannot demote a success type.
    """
    weight = canonical_success_weight(event_type, config)
    success = weight > 0 or bool(is_success)

    return ContactEvent(
        event_type=event_type,
        event_timestamp=event_timestamp,
        response_timestamp=response_timestamp,
        is_outbound=is_outbound,
        is_success=success,
        success_weight=weight,
        hour_of_week=hour_of_week,
    )


def tracking_weights(config: AlgorithmConfig | None = None) -> dict[str, float]:
    """Event type -> success weight under ``config`` (or the defaults)."""
    return {
        event_type: canonical_success_weight(event_type, config)
        for event_type in SUCCESS_WEIGHT_FIELDS
    }
