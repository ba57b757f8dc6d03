"""
Transform layer for Contact-Timing.

Provides hour-of-week binning and the time-decay functions used to
weight interaction events.
"""

from contact_timing.transforms.binning import (
    DAY_NAMES,
    circular_distance,
    hour_of_week,
    hour_of_week_to_label,
    localize_events,
    window_bounds,
)
from contact_timing.transforms.decay import (
    dual_rate_decay_weight,
    recency_score,
    survival_decay,
)

__all__ = [
    # Binning
    "DAY_NAMES",
    "circular_distance",
    "hour_of_week",
    "hour_of_week_to_label",
    "localize_events",
    "window_bounds",
    # Decay
    "dual_rate_decay_weight",
    "recency_score",
    "survival_decay",
]
