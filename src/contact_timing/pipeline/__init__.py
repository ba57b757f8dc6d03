"""
Batch pipeline for Contact-Timing.
"""

from contact_timing.pipeline.runner import (
    ContactProfile,
    ContactRecommendation,
    ContactTimingPipeline,
    last_positive_signal,
    profiles_from_frame,
    resolve_timezone,
)

__all__ = [
    "ContactProfile",
    "ContactRecommendation",
    "ContactTimingPipeline",
    "last_positive_signal",
    "profiles_from_frame",
    "resolve_timezone",
]
