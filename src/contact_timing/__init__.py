"""
Contact-Timing: best time to contact engine.

Infers a contact's timezone from weak signals and learns, per
hour-of-week, how likely that contact is to respond.  The model is a
recency-decayed Beta-Binomial with hierarchical pooling toward
population priors, survival decay and an exploration bonus.

Quickstart::

    from contact_timing import compute_best_contact_times, default_algorithm_config
    result = compute_best_contact_times(
        events, None, default_algorithm_config(),
        last_positive_signal_at=None, priority_score=0.5,
    )
    print(result.recommended_windows)
"""

from contact_timing.config import default_algorithm_config
from contact_timing.models.estimator import compute_best_contact_times
from contact_timing.timezone.inference import infer_best_timezone

__version__ = "0.1.0"

__all__ = [
    "compute_best_contact_times",
    "default_algorithm_config",
    "infer_best_timezone",
    "__version__",
]
