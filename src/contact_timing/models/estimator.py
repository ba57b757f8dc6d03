"""
Best-time-to-contact estimator.

For one contact, turns localized interaction events into a ranked set
of one-hour contact windows:

  1. Aggregate   -- decay-weighted trials and attributed successes per
                    hour-of-week bin
  2. Smooth      -- Beta-Binomial posterior mean with (alpha, beta) prior
  3. Shrink      -- pool sparse bins toward the segment prior with
                    strength kappa
  4. Calibrate   -- survival decay since the last positive signal
  5. Explore     -- bonus epsilon / (1 + trials) for under-sampled bins,
                    optionally on top of neighbour-smoothed probabilities
  6. Rank        -- greedy top-k with circular minimum spacing
  7. Score       -- confidence, recency and priority into a composite

The estimator is a pure function of its arguments.  It holds no state,
reads the clock only when ``now`` is not supplied, and never mutates
its inputs.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from datetime import datetime

import numpy as np
from loguru import logger

from contact_timing.core.clock import days_between, ensure_utc, hours_between, utc_now
from contact_timing.core.contracts import (
    HOURS_PER_DAY,
    HOURS_PER_WEEK,
    AlgorithmConfig,
    ContactEvent,
    ContactPreferences,
    ContactTimingResult,
    HourBin,
    RecommendedWindow,
    SegmentPrior,
)
from contact_timing.core.events import resolve_success_weight
from contact_timing.core.exceptions import InvalidInputError
from contact_timing.transforms.binning import (
    circular_distance,
    hour_of_week_to_label,
    window_bounds,
)
from contact_timing.transforms.decay import (
    dual_rate_decay_weight,
    recency_score,
    survival_decay,
)


# ---------------------------------------------------------------------------
# Step 1: aggregation
# ---------------------------------------------------------------------------

def aggregate_events(
    events: Sequence[ContactEvent],
    config: AlgorithmConfig,
    now: datetime,
) -> tuple[np.ndarray, np.ndarray]:
    """
    Decay-weighted trials and successes for each of the 168 bins.

    Every outbound event is one trial weighted by its dual-rate recency
    weight.  Its success credit is the largest success weight among:

      - the outbound event itself when flagged ``is_success`` and its
        response (if recorded) arrived within ``success_window_hours``;
      - inbound success events in the same bin that responded 0 to
        ``success_window_hours`` after it (each inbound success goes to
        the latest qualifying attempt).

    Credits are capped at 1, so successes never exceed trials.

    Returns:
        ``(trials, successes)`` float arrays of length 168.
    """
    window = config.success_window_hours
    outbound = sorted((e for e in events if e.is_outbound), key=lambda e: e.event_timestamp)

    bins = np.array([e.hour_of_week for e in outbound], dtype=int)
    ages = np.array([days_between(e.event_timestamp, now) for e in outbound], dtype=float)
    weights = np.asarray(
        dual_rate_decay_weight(ages, config.lambda_fast, config.lambda_slow), dtype=float,
    ).reshape(-1)
    credit = np.zeros(len(outbound))

    attempts_by_bin: dict[int, list[int]] = {}
    for i, event in enumerate(outbound):
        attempts_by_bin.setdefault(event.hour_of_week, []).append(i)
        if not event.is_success:
            continue
        if event.response_timestamp is not None:
            lag = hours_between(event.event_timestamp, event.response_timestamp)
            if not 0 <= lag <= window:
                continue
        credit[i] = max(credit[i], resolve_success_weight(event, config))

    for event in events:
        if event.is_outbound or not event.is_success:
            continue
        responded_at = event.response_timestamp or event.event_timestamp
        matched = None
        for i in attempts_by_bin.get(event.hour_of_week, []):
            lag = hours_between(outbound[i].event_timestamp, responded_at)
            if 0 <= lag <= window:
                matched = i
        if matched is not None:
            credit[matched] = max(credit[matched], resolve_success_weight(event, config))

    credit = np.minimum(credit, 1.0)
    trials = np.bincount(bins, weights=weights, minlength=HOURS_PER_WEEK).astype(float)
    successes = np.bincount(bins, weights=weights * credit, minlength=HOURS_PER_WEEK).astype(float)
    return trials, successes


# ---------------------------------------------------------------------------
# Steps 2-5: probabilities
# ---------------------------------------------------------------------------

def raw_probabilities(trials: np.ndarray, successes: np.ndarray) -> np.ndarray:
    """successes / trials, 0 where a bin has no trials."""
    return np.divide(successes, trials, out=np.zeros_like(trials), where=trials > 0)


def beta_smooth(
    trials: np.ndarray,
    successes: np.ndarray,
    alpha_prior: float,
    beta_prior: float,
) -> np.ndarray:
    """Posterior mean ``(S + alpha) / (N + alpha + beta)`` per bin."""
    denom = trials + alpha_prior + beta_prior
    return np.divide(successes + alpha_prior, denom, out=np.zeros_like(trials), where=denom > 0)


def hierarchical_shrink(
    smoothed: np.ndarray,
    trials: np.ndarray,
    segment_priors: Mapping[int, SegmentPrior] | None,
    kappa: float,
) -> np.ndarray:
    """
    Pull each bin toward its segment response rate.

    ``p = (N * p_contact + kappa * p_segment) / (N + kappa)``: the fewer
    trials a contact has in a bin, the more the population wins.  Bins
    with no segment prior are returned unchanged.
    """
    shrunk = smoothed.copy()
    if not segment_priors:
        return shrunk

    for h in range(HOURS_PER_WEEK):
        prior = segment_priors.get(h)
        if prior is None:
            continue
        total = trials[h] + kappa
        if total <= 0:
            continue
        shrunk[h] = (trials[h] * smoothed[h] + kappa * prior.response_rate) / total
    return shrunk


def neighbor_smooth(probs: np.ndarray) -> np.ndarray:
    """
    Blend each bin with its circular neighbours on the week.

    ``0.5 * p[h] + 0.2 * mean(p[h-1], p[h+1]) + 0.2 * mean(p[h-24], p[h+24])
    + 0.1 * mean(same hour on the other six days)``.  The weights sum to 1,
    so a flat array comes back unchanged and total mass is preserved.
    """
    p = np.asarray(probs, dtype=float)
    adjacent = (np.roll(p, 1) + np.roll(p, -1)) / 2.0
    day_apart = (np.roll(p, HOURS_PER_DAY) + np.roll(p, -HOURS_PER_DAY)) / 2.0
    by_day = p.reshape(-1, HOURS_PER_DAY)
    other_days = ((by_day.sum(axis=0) - by_day) / (by_day.shape[0] - 1)).reshape(-1)
    return 0.5 * p + 0.2 * adjacent + 0.2 * day_apart + 0.1 * other_days


def exploration_bonus(trials: np.ndarray, epsilon: float) -> np.ndarray:
    """``epsilon / (1 + trials)``: largest for bins never tried."""
    return epsilon / (1.0 + trials)


def preference_mask(preferences: ContactPreferences | None) -> np.ndarray:
    """
    Boolean array, True for bins the contact does not want to be reached in.

    Quiet hours may wrap midnight ("21:00" to "07:00").  A non-empty
    ``preferred_days`` masks every other weekday.
    """
    mask = np.zeros(HOURS_PER_WEEK, dtype=bool)
    if preferences is None:
        return mask

    hours = np.arange(HOURS_PER_WEEK) % HOURS_PER_DAY
    days = np.arange(HOURS_PER_WEEK) // HOURS_PER_DAY

    if preferences.quiet_hours_start and preferences.quiet_hours_end:
        start = int(preferences.quiet_hours_start.split(":")[0])
        end = int(preferences.quiet_hours_end.split(":")[0])
        if start < end:
            mask |= (hours >= start) & (hours < end)
        elif start > end:
            mask |= (hours >= start) | (hours < end)

    if preferences.preferred_days:
        mask |= ~np.isin(days, preferences.preferred_days)

    return mask


# ---------------------------------------------------------------------------
# Step 6: ranking
# ---------------------------------------------------------------------------

def rank_bins(scores: np.ndarray, trials: np.ndarray) -> np.ndarray:
    """Bin indices by score desc, then trials desc, then hour_of_week asc."""
    hours = np.arange(HOURS_PER_WEEK)
    return np.lexsort((hours, -trials, -scores))


def select_top_windows(
    bins: Sequence[HourBin],
    top_k: int,
    min_spacing_hours: float,
) -> list[RecommendedWindow]:
    """
    Greedy top-k selection with a circular minimum spacing.

    Walks bins in rank order and keeps one only if it is at least
    ``min_spacing_hours`` from every bin already kept.  Masked bins are
    never selected.
    """
    scores = np.array([b.score for b in bins])
    trials = np.array([b.trials_count for b in bins])
    by_hour = {b.hour_of_week: b for b in bins}

    selected: list[RecommendedWindow] = []
    for h in rank_bins(scores, trials):
        if len(selected) >= top_k:
            break
        candidate = by_hour[int(h)]
        if candidate.is_masked:
            continue
        if any(circular_distance(w.hour_of_week, candidate.hour_of_week) < min_spacing_hours
               for w in selected):
            continue

        dow, _ = hour_of_week_to_label(candidate.hour_of_week)
        start, end = window_bounds(candidate.hour_of_week)
        selected.append(RecommendedWindow(
            dow=dow,
            start=start,
            end=end,
            confidence=round(candidate.calibrated_probability, 2),
            hour_of_week=candidate.hour_of_week,
            score=candidate.score,
        ))

    return selected


# ---------------------------------------------------------------------------
# Step 7: scores
# ---------------------------------------------------------------------------

def compute_composite_score(
    max_confidence: float,
    recency: float,
    priority: float,
    config: AlgorithmConfig,
) -> float:
    """``w1 * confidence + w2 * recency + w3 * priority`` (weights not normalised)."""
    return (
        config.w1_confidence * max_confidence
        + config.w2_recency * recency
        + config.w3_priority * priority
    )


def last_attempt_at(events: Sequence[ContactEvent]) -> datetime | None:
    """Timestamp of the most recent outbound event, if any."""
    attempts = [e.event_timestamp for e in events if e.is_outbound]
    return max(attempts) if attempts else None


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

def compute_best_contact_times(
    events: Sequence[ContactEvent],
    segment_priors: Mapping[int, SegmentPrior] | None,
    config: AlgorithmConfig,
    last_positive_signal_at: datetime | None,
    priority_score: float,
    *,
    last_contact_attempt_at: datetime | None = None,
    preferences: ContactPreferences | None = None,
    now: datetime | None = None,
) -> ContactTimingResult:
    """
    Compute recommended contact windows and scores for one contact.

    Args:
        events:                  The contact's events with ``hour_of_week``
                                 already computed in the contact's zone.
        segment_priors:          hour_of_week -> SegmentPrior, or None.
        config:                  Model hyperparameters.
        last_positive_signal_at: Latest success instant, or None.
        priority_score:          Caller-computed priority, echoed back.
        last_contact_attempt_at: Latest outbound attempt; derived from
                                 ``events`` when omitted.
        preferences:             Optional quiet hours / preferred days.
        now:                     Evaluation instant (defaults to the clock).

    Returns:
        ContactTimingResult with all 168 bins, ranked windows and scores.

    Raises:
        InvalidInputError: ``events`` or ``config`` is None.
    """
    if events is None:
        raise InvalidInputError("events must be a collection, got None", "events")
    if config is None:
        raise InvalidInputError("config is required", "config")
    if priority_score is None:
        raise InvalidInputError("priority_score is required", "priority_score")

    now = ensure_utc(now) if now is not None else utc_now()
    events = list(events)

    trials, successes = aggregate_events(events, config, now)
    raw = raw_probabilities(trials, successes)
    smoothed = beta_smooth(trials, successes, config.alpha_prior, config.beta_prior)
    smoothed = hierarchical_shrink(smoothed, trials, segment_priors, config.hierarchical_kappa)

    days_since_success = (
        days_between(last_positive_signal_at, now) if last_positive_signal_at is not None else None
    )
    calibrated = smoothed * survival_decay(days_since_success, config.survival_gamma)
    bonus = exploration_bonus(trials, config.epsilon_exploration)
    # smoothing only reshapes the ranking; reported probabilities stay per bin
    ranked = neighbor_smooth(calibrated) if config.neighbor_smoothing else calibrated
    scores = ranked + bonus
    mask = preference_mask(preferences)

    bins = [
        HourBin(
            hour_of_week=h,
            trials_count=float(trials[h]),
            success_count=float(successes[h]),
            raw_probability=float(raw[h]),
            smoothed_probability=float(smoothed[h]),
            calibrated_probability=float(calibrated[h]),
            exploration_bonus=float(bonus[h]),
            score=float(scores[h]),
            is_masked=bool(mask[h]),
        )
        for h in range(HOURS_PER_WEEK)
    ]

    windows = select_top_windows(bins, config.top_k_windows, config.min_spacing_hours)

    open_bins = calibrated[~mask]
    max_confidence = float(open_bins.max()) if open_bins.size else 0.0

    if last_contact_attempt_at is None:
        last_contact_attempt_at = last_attempt_at(events)
    days_since_attempt = (
        days_between(last_contact_attempt_at, now) if last_contact_attempt_at is not None else None
    )
    recency = recency_score(days_since_attempt, config.recency_mu)
    composite = compute_composite_score(max_confidence, recency, priority_score, config)

    logger.debug(
        f"Scored {len(events)} events: {len(windows)} windows, "
        f"max_confidence={max_confidence:.3f}, recency={recency:.3f}, "
        f"composite={composite:.3f}"
    )

    return ContactTimingResult(
        recommended_windows=windows,
        max_confidence=max_confidence,
        recency_score=recency,
        priority_score=priority_score,
        composite_score=composite,
        bins=bins,
        daily_attempt_cap=config.daily_attempt_cap,
        weekly_attempt_cap=config.weekly_attempt_cap,
    )
