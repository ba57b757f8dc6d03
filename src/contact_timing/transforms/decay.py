"""
Time-decay transformations for contact engagement signals.

Older interactions should count for less than recent ones, but a
contact's long-run habits should not be forgotten after a quiet month.
Two exponential decays capture both:

    w(age) = 0.5 * exp(-lambda_fast * age) + 0.5 * exp(-lambda_slow * age)

The fast component tracks recent behaviour, the slow one keeps the
long-run signal.  Ages are in days.
"""

from __future__ import annotations

import numpy as np


def dual_rate_decay_weight(
    age_days: float | np.ndarray,
    lambda_fast: float,
    lambda_slow: float,
) -> float | np.ndarray:
    """
    Blended recency weight for an event ``age_days`` old.

    Args:
        age_days:    Age of the event in days.  Negative ages (events
                     stamped after "now") are treated as 0.
        lambda_fast: Fast decay rate per day.
        lambda_slow: Slow decay rate per day.

    Returns:
        Weight in (0, 1]; 1.0 for an event that just happened.

    Example:
        >>> dual_rate_decay_weight(14, 0.05, 0.01)
        0.683...
    """
    age = np.maximum(np.asarray(age_days, dtype=float), 0.0)
    weight = 0.5 * np.exp(-lambda_fast * age) + 0.5 * np.exp(-lambda_slow * age)
    if np.ndim(weight) == 0:
        return float(weight)
    return weight


def survival_decay(days_since_success: float | None, gamma: float) -> float:
    """
    Engagement survival factor ``exp(-gamma * days)``.

    No recorded success means no penalty (1.0): missing history is not
    evidence that a contact has gone cold.
    """
    if days_since_success is None:
        return 1.0
    return float(np.exp(-gamma * max(days_since_success, 0.0)))


def recency_score(days_since_attempt: float | None, mu: float) -> float:
    """
    Re-engagement opportunity ``1 - exp(-mu * days)``.

    Grows from 0 right after an attempt toward 1 as the contact rests.
    A contact never attempted scores 1.0.
    """
    if days_since_attempt is None:
        return 1.0
    return float(1.0 - np.exp(-mu * max(days_since_attempt, 0.0)))
