"""Tests for the contact-timing estimator."""

from datetime import timedelta
from itertools import combinations

import numpy as np
import pytest

from contact_timing.core.contracts import (
    ContactEvent,
    ContactPreferences,
    HourBin,
    SegmentPrior,
)
from contact_timing.core.exceptions import InvalidInputError
from contact_timing.models.estimator import (
    beta_smooth,
    compute_best_contact_times,
    hierarchical_shrink,
    neighbor_smooth,
    preference_mask,
    rank_bins,
    raw_probabilities,
    select_top_windows,
)
from contact_timing.transforms.binning import circular_distance
from contact_timing.transforms.decay import dual_rate_decay_weight


def _weight(hours_ago: float, config) -> float:
    return dual_rate_decay_weight(hours_ago / 24.0, config.lambda_fast, config.lambda_slow)


def _random_events(now, n: int = 200, seed: int = 7) -> list[ContactEvent]:
    rng = np.random.default_rng(seed)
    events = []
    for _ in range(n):
        sent = now - timedelta(hours=float(rng.uniform(1, 24 * 60)))
        success = bool(rng.random() < 0.4)
        events.append(ContactEvent(
            event_type="message_sent",
            event_timestamp=sent,
            response_timestamp=sent + timedelta(hours=2) if success else None,
            is_outbound=True,
            is_success=success,
            success_weight=float(rng.choice([0.25, 0.5, 1.0])) if success else 0.0,
            hour_of_week=int(rng.integers(0, 168)),
        ))
    return events


class TestNoData:
    """Test the degenerate zero-event case."""

    def test_flat_probabilities(self, config, now):
        result = compute_best_contact_times([], None, config, None, 0.5, now=now)

        assert len(result.bins) == 168
        assert all(b.raw_probability == 0 for b in result.bins)
        assert all(b.smoothed_probability == pytest.approx(0.5) for b in result.bins)
        assert result.max_confidence == pytest.approx(0.5)

    def test_windows_follow_tie_break(self, config, now):
        """Equal scores rank by hour, so windows land every min_spacing hours from 0."""
        result = compute_best_contact_times([], None, config, None, 0.5, now=now)

        assert [w.hour_of_week for w in result.recommended_windows] == [0, 4, 8, 12, 16, 20]
        first = result.best_window
        assert (first.dow, first.start, first.end) == ("Sun", "00:00", "01:00")
        assert first.confidence == pytest.approx(0.5)

    def test_composite_from_recency_and_priority(self, config, now):
        result = compute_best_contact_times([], None, config, None, 0.5, now=now)

        assert result.recency_score == pytest.approx(1.0)
        assert result.composite_score == pytest.approx(0.6 * 0.5 + 0.2 * 1.0 + 0.2 * 0.5)

    def test_exploration_bonus_is_separate(self, config, now):
        result = compute_best_contact_times([], None, config, None, 0.5, now=now)

        b = result.bins[0]
        assert b.exploration_bonus == pytest.approx(config.epsilon_exploration)
        assert b.calibrated_probability == pytest.approx(0.5)
        assert b.score == pytest.approx(0.5 + config.epsilon_exploration)


class TestAttribution:
    """Test how successes are credited to attempts."""

    def test_flagged_outbound_success(self, config, now, make_event):
        events = [make_event(is_success=True, success_weight=1.0, response_after_hours=2)]
        result = compute_best_contact_times(events, None, config, None, 0.5, now=now)

        b = result.bins[34]
        assert b.trials_count == pytest.approx(1.0)
        assert b.success_count == pytest.approx(1.0)
        assert b.raw_probability == pytest.approx(1.0)
        assert b.smoothed_probability == pytest.approx(2 / 3)

    def test_flagged_response_outside_window(self, config, now, make_event):
        events = [make_event(hours_ago=40, is_success=True, success_weight=1.0, response_after_hours=30)]
        result = compute_best_contact_times(events, None, config, None, 0.5, now=now)

        assert result.bins[34].success_count == 0.0

    def test_inbound_reply_credited(self, config, now, make_event):
        events = [
            make_event(hours_ago=5),
            make_event(hours_ago=3, is_outbound=False, event_type="message_replied", is_success=True),
        ]
        result = compute_best_contact_times(events, None, config, None, 0.5, now=now)

        b = result.bins[34]
        assert b.trials_count == pytest.approx(_weight(5, config))
        assert b.success_count == pytest.approx(b.trials_count)

    def test_inbound_reply_outside_window(self, config, now, make_event):
        events = [
            make_event(hours_ago=30),
            make_event(hours_ago=0, is_outbound=False, event_type="message_replied", is_success=True),
        ]
        result = compute_best_contact_times(events, None, config, None, 0.5, now=now)

        assert result.bins[34].success_count == 0.0

    def test_inbound_before_attempt_not_credited(self, config, now, make_event):
        events = [
            make_event(hours_ago=5),
            make_event(hours_ago=10, is_outbound=False, event_type="message_replied", is_success=True),
        ]
        result = compute_best_contact_times(events, None, config, None, 0.5, now=now)

        assert result.bins[34].success_count == 0.0

    def test_inbound_in_other_bin_not_credited(self, config, now, make_event):
        events = [
            make_event(hours_ago=5, hour_of_week=34),
            make_event(hours_ago=3, is_outbound=False, hour_of_week=36,
                       event_type="message_replied", is_success=True),
        ]
        result = compute_best_contact_times(events, None, config, None, 0.5, now=now)

        assert result.bins[34].success_count == 0.0
        assert result.bins[36].success_count == 0.0

    def test_inbound_never_adds_trials(self, config, now, make_event):
        events = [make_event(hours_ago=1, is_outbound=False, hour_of_week=50,
                             event_type="message_replied", is_success=True)]
        result = compute_best_contact_times(events, None, config, None, 0.5, now=now)

        assert sum(b.trials_count for b in result.bins) == 0.0

    def test_latest_qualifying_attempt_gets_credit(self, config, now, make_event):
        events = [
            make_event(hours_ago=10),
            make_event(hours_ago=6),
            make_event(hours_ago=4, is_outbound=False, event_type="message_replied", is_success=True),
        ]
        result = compute_best_contact_times(events, None, config, None, 0.5, now=now)

        assert result.bins[34].success_count == pytest.approx(_weight(6, config), rel=1e-12)

    def test_credit_capped_at_one(self, config, now, make_event):
        events = [
            make_event(hours_ago=5, is_success=True, success_weight=1.0, response_after_hours=2),
            make_event(hours_ago=3, is_outbound=False, event_type="message_replied", is_success=True),
        ]
        result = compute_best_contact_times(events, None, config, None, 0.5, now=now)

        b = result.bins[34]
        assert b.success_count == pytest.approx(b.trials_count)

    def test_weaker_signal_uses_config_weight(self, config, now, make_event):
        events = [
            make_event(hours_ago=0),
            make_event(hours_ago=0, is_outbound=False, event_type="message_opened", is_success=True),
        ]
        result = compute_best_contact_times(events, None, config, None, 0.5, now=now)

        assert result.bins[34].success_count == pytest.approx(config.success_weight_open)

    def test_old_events_count_less(self, config, now, make_event):
        events = [make_event(hours_ago=30 * 24)]
        result = compute_best_contact_times(events, None, config, None, 0.5, now=now)

        assert result.bins[34].trials_count == pytest.approx(
            dual_rate_decay_weight(30, config.lambda_fast, config.lambda_slow)
        )


class TestShrinkage:
    """Test pooling toward segment priors."""

    def _prior(self, rate: float = 0.9) -> dict[int, SegmentPrior]:
        return {34: SegmentPrior(hour_of_week=34, trials_count=100, success_count=100 * rate,
                                 response_rate=rate, contact_count=10)}

    def test_no_trials_takes_prior(self, config, now):
        result = compute_best_contact_times([], self._prior(), config, None, 0.5, now=now)

        assert result.bins[34].smoothed_probability == pytest.approx(0.9)
        assert result.bins[35].smoothed_probability == pytest.approx(0.5)

    def test_blend_with_trials(self, config, now, make_event):
        events = [make_event(is_success=True, success_weight=1.0, response_after_hours=1)]
        result = compute_best_contact_times(events, self._prior(), config, None, 0.5, now=now)

        kappa = config.hierarchical_kappa
        expected = (1 * (2 / 3) + kappa * 0.9) / (1 + kappa)
        assert result.bins[34].smoothed_probability == pytest.approx(expected)

    def test_higher_kappa_pulls_harder(self, config):
        smoothed = np.full(168, 0.2)
        trials = np.full(168, 3.0)
        weak = hierarchical_shrink(smoothed, trials, self._prior(), kappa=1.0)
        strong = hierarchical_shrink(smoothed, trials, self._prior(), kappa=50.0)

        assert abs(strong[34] - 0.9) < abs(weak[34] - 0.9)

    def test_no_priors_unchanged(self):
        smoothed = np.linspace(0, 1, 168)
        shrunk = hierarchical_shrink(smoothed, np.ones(168), None, kappa=5.0)

        np.testing.assert_array_equal(shrunk, smoothed)
        assert shrunk is not smoothed

    def test_zero_total_weight_unchanged(self):
        smoothed = np.full(168, 0.4)
        shrunk = hierarchical_shrink(smoothed, np.zeros(168), self._prior(), kappa=0.0)

        assert shrunk[34] == pytest.approx(0.4)


class TestSurvivalDecay:
    """Test calibration by time since the last positive signal."""

    def test_recent_positive_dominates_older(self, config, now):
        events = _random_events(now)
        recent = compute_best_contact_times(events, None, config, now - timedelta(days=1), 0.5, now=now)
        older = compute_best_contact_times(events, None, config, now - timedelta(days=30), 0.5, now=now)

        for r, o in zip(recent.bins, older.bins):
            assert r.calibrated_probability >= o.calibrated_probability

    def test_calibrated_is_decayed_smoothed(self, config, now):
        result = compute_best_contact_times([], None, config, now - timedelta(days=10), 0.5, now=now)

        factor = np.exp(-config.survival_gamma * 10)
        assert result.bins[0].calibrated_probability == pytest.approx(0.5 * factor)
        assert result.max_confidence == pytest.approx(0.5 * factor)


    def test_absent_signal_outranks_recent_signal(self, config, now):
        """No recorded success is not penalised, so it beats a success one day ago."""
        absent = compute_best_contact_times([], None, config, None, 0.5, now=now)
        recent = compute_best_contact_times([], None, config, now - timedelta(days=1), 0.5, now=now)

        assert absent.max_confidence == pytest.approx(0.5)
        assert recent.max_confidence == pytest.approx(0.5 * np.exp(-config.survival_gamma))
        assert absent.max_confidence > recent.max_confidence


class TestNeighborSmoothing:
    """Test optional blending of each bin with its neighbours."""

    def test_flat_input_unchanged(self):
        probs = np.full(168, 0.37)

        assert neighbor_smooth(probs) == pytest.approx(probs)

    def test_single_spike_spreads(self):
        probs = np.zeros(168)
        probs[40] = 1.0
        smoothed = neighbor_smooth(probs)

        assert smoothed[40] == pytest.approx(0.5)
        assert smoothed[39] == pytest.approx(0.1)
        assert smoothed[41] == pytest.approx(0.1)
        assert smoothed[16] == pytest.approx(0.1 + 0.1 / 6)
        assert smoothed[64] == pytest.approx(0.1 + 0.1 / 6)
        assert smoothed[88] == pytest.approx(0.1 / 6)
        assert smoothed[42] == pytest.approx(0.0)
        assert smoothed.sum() == pytest.approx(1.0)

    def test_wraps_around_week(self):
        probs = np.zeros(168)
        probs[0] = 1.0
        smoothed = neighbor_smooth(probs)

        assert smoothed[167] == pytest.approx(0.1)
        assert smoothed[144] == pytest.approx(0.1 + 0.1 / 6)

    def test_off_by_default(self, config, now):
        events = _random_events(now)
        result = compute_best_contact_times(events, None, config, None, 0.5, now=now)

        for b in result.bins:
            assert b.score == pytest.approx(b.calibrated_probability + b.exploration_bonus)

    def test_enabled_feeds_score_only(self, config, now):
        events = _random_events(now)
        smoothing = config.model_copy(update={"neighbor_smoothing": True})

        plain = compute_best_contact_times(events, None, config, None, 0.5, now=now)
        blended = compute_best_contact_times(events, None, smoothing, None, 0.5, now=now)

        calibrated = np.array([b.calibrated_probability for b in blended.bins])
        bonus = np.array([b.exploration_bonus for b in blended.bins])
        assert [b.score for b in blended.bins] == pytest.approx(neighbor_smooth(calibrated) + bonus)
        assert [b.calibrated_probability for b in plain.bins] == pytest.approx(calibrated)
        assert blended.max_confidence == pytest.approx(plain.max_confidence)

    def test_isolated_bin_loses_to_supported_neighbourhood(self, config, now, make_event):
        """A lone good bin is outranked by a bin whose neighbours also respond."""
        no_bonus = config.model_copy(update={"epsilon_exploration": 0.0})
        smoothing = no_bonus.model_copy(update={"neighbor_smoothing": True})
        events = [
            make_event(hours_ago=ago, hour_of_week=hour, is_success=True,
                       success_weight=1.0, response_after_hours=1)
            for hour, hours_ago in [(34, (5, 6)), (35, (5, 6)), (36, (5, 6)), (90, (5, 6, 7))]
            for ago in hours_ago
        ]

        plain = compute_best_contact_times(events, None, no_bonus, None, 0.5, now=now)
        blended = compute_best_contact_times(events, None, smoothing, None, 0.5, now=now)

        assert plain.recommended_windows[0].hour_of_week == 90
        assert blended.recommended_windows[0].hour_of_week == 35


class TestRanking:
    """Test window selection."""

    def test_spacing_and_size(self, config, now):
        result = compute_best_contact_times(_random_events(now), None, config, None, 0.5, now=now)
        hours = [w.hour_of_week for w in result.recommended_windows]

        assert len(hours) == config.top_k_windows
        for a, b in combinations(hours, 2):
            assert circular_distance(a, b) >= config.min_spacing_hours

    def test_wide_spacing_limits_windows(self, config, now):
        wide = config.model_copy(update={"min_spacing_hours": 84.0})
        result = compute_best_contact_times([], None, wide, None, 0.5, now=now)

        assert [w.hour_of_week for w in result.recommended_windows] == [0, 84]

    def test_best_bin_first(self, config, now, make_event):
        events = [make_event(hours_ago=h, is_success=True, success_weight=1.0, response_after_hours=1)
                  for h in (1, 2, 3)]
        result = compute_best_contact_times(events, None, config, None, 0.5, now=now)

        assert result.best_window.hour_of_week == 34
        assert result.best_window.dow == "Mon"
        assert result.best_window.start == "10:00"

    def test_tie_break_trials_then_hour(self):
        scores = np.zeros(168)
        trials = np.zeros(168)
        trials[5] = 2.0
        trials[3] = 1.0

        assert list(rank_bins(scores, trials)[:4]) == [5, 3, 0, 1]

    def test_window_confidence_rounded(self):
        bins = [HourBin(hour_of_week=h, calibrated_probability=0.123456, score=0.2) for h in range(168)]
        windows = select_top_windows(bins, top_k=1, min_spacing_hours=4)

        assert windows[0].confidence == 0.12

    def test_masked_bins_skipped(self):
        bins = [HourBin(hour_of_week=h, score=0.1) for h in range(168)]
        bins[10] = HourBin(hour_of_week=10, score=0.9, is_masked=True)
        windows = select_top_windows(bins, top_k=1, min_spacing_hours=4)

        assert windows[0].hour_of_week == 0


class TestPreferences:
    """Test quiet hours and preferred days."""

    def test_overnight_quiet_hours(self):
        mask = preference_mask(ContactPreferences(quiet_hours_start="21:00", quiet_hours_end="07:00"))

        assert mask[22] and mask[3] and mask[24 + 6]
        assert not mask[12]
        assert not mask[7]

    def test_same_day_quiet_hours(self):
        mask = preference_mask(ContactPreferences(quiet_hours_start="12:00", quiet_hours_end="14:00"))

        assert mask[12] and mask[13]
        assert not mask[14]

    def test_preferred_days(self):
        mask = preference_mask(ContactPreferences(preferred_days=[1]))

        assert not mask[24:48].any()
        assert mask[:24].all() and mask[48:].all()

    def test_no_preferences(self):
        assert not preference_mask(None).any()

    def test_windows_avoid_quiet_hours(self, config, now):
        prefs = ContactPreferences(quiet_hours_start="21:00", quiet_hours_end="07:00")
        result = compute_best_contact_times([], None, config, None, 0.5, preferences=prefs, now=now)

        assert len(result.recommended_windows) == config.top_k_windows
        for w in result.recommended_windows:
            assert 7 <= w.hour_of_week % 24 < 21
        assert result.bins[22].is_masked


class TestScores:
    """Test recency and composite scores."""

    def test_recency_from_last_outbound(self, config, now, make_event):
        result = compute_best_contact_times([make_event(hours_ago=240)], None, config, None, 0.5, now=now)

        assert result.recency_score == pytest.approx(1 - np.exp(-config.recency_mu * 10))

    def test_explicit_last_attempt_wins(self, config, now, make_event):
        result = compute_best_contact_times(
            [make_event(hours_ago=240)], None, config, None, 0.5,
            last_contact_attempt_at=now, now=now,
        )

        assert result.recency_score == pytest.approx(0.0)

    def test_weights_not_normalised(self, config, now):
        heavy = config.model_copy(update={"w1_confidence": 1.0, "w2_recency": 1.0, "w3_priority": 1.0})
        result = compute_best_contact_times([], None, heavy, None, 0.3, now=now)

        assert result.composite_score == pytest.approx(0.5 + 1.0 + 0.3)

    def test_priority_echoed_and_caps_carried(self, config, now):
        result = compute_best_contact_times([], None, config, None, 0.42, now=now)

        assert result.priority_score == 0.42
        assert result.daily_attempt_cap == config.daily_attempt_cap
        assert result.weekly_attempt_cap == config.weekly_attempt_cap


class TestInvariants:
    """Test properties that hold for every input."""

    def test_smoothed_in_unit_interval(self, config, now):
        result = compute_best_contact_times(_random_events(now, n=500), None, config, None, 0.5, now=now)

        for b in result.bins:
            assert 0.0 <= b.smoothed_probability <= 1.0
            assert 0.0 <= b.raw_probability <= 1.0
            assert b.success_count <= b.trials_count + 1e-12

    def test_deterministic(self, config, now):
        events = _random_events(now)
        first = compute_best_contact_times(events, None, config, None, 0.5, now=now)
        second = compute_best_contact_times(events, None, config, None, 0.5, now=now)

        assert first.to_dict() == second.to_dict()

    def test_inputs_not_mutated(self, config, now):
        events = _random_events(now)
        before = [e.model_dump() for e in events]
        compute_best_contact_times(events, None, config, None, 0.5, now=now)

        assert [e.model_dump() for e in events] == before

    def test_none_events_rejected(self, config, now):
        with pytest.raises(InvalidInputError):
            compute_best_contact_times(None, None, config, None, 0.5, now=now)

    def test_none_config_rejected(self, now):
        with pytest.raises(InvalidInputError):
            compute_best_contact_times([], None, None, None, 0.5, now=now)

    def test_dataframe_view(self, config, now):
        df = compute_best_contact_times([], None, config, None, 0.5, now=now).to_dataframe()

        assert len(df) == 168
        assert df.index.name == "hour_of_week"
        assert "calibrated_probability" in df.columns


class TestHelpers:
    """Test the vectorised building blocks."""

    def test_raw_zero_trials(self):
        raw = raw_probabilities(np.zeros(168), np.zeros(168))

        assert not raw.any()

    def test_beta_smooth_prior_mean(self):
        smoothed = beta_smooth(np.zeros(168), np.zeros(168), 2.0, 6.0)

        assert smoothed[0] == pytest.approx(0.25)
