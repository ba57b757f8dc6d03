"""
Core module for Contact-Timing.

Provides the data contracts, event taxonomy, clock helpers and
exception types shared by the inferrer, the estimator and the pipeline.
"""

from contact_timing.core.contracts import (
    HOURS_PER_WEEK,
    AlgorithmConfig,
    Confidence,
    ContactEvent,
    ContactPreferences,
    ContactTimingResult,
    HourBin,
    RecommendedWindow,
    SegmentPrior,
    TimezoneInference,
    TimezoneSource,
)
from contact_timing.core.events import (
    EventType,
    resolve_success_weight,
    track_event,
    tracking_weights,
)
from contact_timing.core.exceptions import (
    ConfigurationError,
    ConnectorError,
    ContactTimingError,
    InvalidInputError,
    PipelineError,
)

__all__ = [
    "HOURS_PER_WEEK",
    "AlgorithmConfig",
    "Confidence",
    "ContactEvent",
    "ContactPreferences",
    "ContactTimingResult",
    "HourBin",
    "RecommendedWindow",
    "SegmentPrior",
    "TimezoneInference",
    "TimezoneSource",
    "EventType",
    "resolve_success_weight",
    "track_event",
    "tracking_weights",
    "ConfigurationError",
    "ConnectorError",
    "ContactTimingError",
    "InvalidInputError",
    "PipelineError",
]
