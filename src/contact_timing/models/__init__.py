"""
Scoring models: the per-contact estimator and segment priors.
"""

from contact_timing.models.estimator import (
    aggregate_events,
    beta_smooth,
    compute_best_contact_times,
    compute_composite_score,
    exploration_bonus,
    hierarchical_shrink,
    neighbor_smooth,
    preference_mask,
    raw_probabilities,
    select_top_windows,
)
from contact_timing.models.priors import SegmentPriorSet, build_segment_priors

__all__ = [
    "aggregate_events",
    "beta_smooth",
    "compute_best_contact_times",
    "compute_composite_score",
    "exploration_bonus",
    "hierarchical_shrink",
    "neighbor_smooth",
    "preference_mask",
    "raw_probabilities",
    "select_top_windows",
    "SegmentPriorSet",
    "build_segment_priors",
]
