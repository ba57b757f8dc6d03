"""
Quality gates for Contact-Timing configs and event data.

The estimator trusts its inputs: it does not re-validate the algorithm
config or the events it is given.  Gates are the caller-side checks run
before a batch.  Each gate produces a pass/fail/warn result; failures
with severity "error" make the report fail.

Config gates:
  1. Decay rates          -- lambda_fast, lambda_slow, gamma, mu >= 0
  2. Beta prior           -- alpha, beta >= 0 with alpha + beta > 0
  3. Pooling              -- kappa >= 0, epsilon >= 0
  4. Success weights      -- every weight in [0, 1]
  5. Window selection     -- top_k >= 1, spacing >= 0, windows fit in a week
  6. Attempt caps         -- caps >= 0, daily cap not above weekly cap
  7. Success window       -- success_window_hours > 0
  8. Composite weights    -- non-negative, warn if they do not sum to 1

Event gates:
  1. Schema               -- required columns present
  2. Response ordering    -- responses never precede their event
  3. Future events        -- nothing stamped after "now"
  4. Staleness            -- latest event is recent
  5. Orphan successes     -- contacts with successes but no outbound attempt
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

import pandas as pd
from loguru import logger

from contact_timing.core.clock import ensure_utc, utc_now
from contact_timing.core.contracts import HOURS_PER_WEEK, AlgorithmConfig
from contact_timing.core.exceptions import ConfigurationError
from contact_timing.schemas.events import REQUIRED_EVENT_COLUMNS


# ---------------------------------------------------------------------------
# Data structures
# ---------------------------------------------------------------------------

@dataclass
class GateResult:
    """Result of a single quality gate."""

    gate_name: str
    passed: bool
    severity: str = "error"  # error | warning | info
    message: str = ""
    details: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "gate_name": self.gate_name,
            "passed": self.passed,
            "severity": self.severity,
            "message": self.message,
            "details": self.details,
        }


@dataclass
class QualityReport:
    """Aggregated quality report for one set of gates."""

    timestamp: str = ""
    overall_pass: bool = True
    gates: list[GateResult] = field(default_factory=list)
    n_passed: int = 0
    n_failed: int = 0
    n_warnings: int = 0

    @property
    def failed_gates(self) -> list[str]:
        return [g.gate_name for g in self.gates if not g.passed and g.severity == "error"]

    def to_dict(self) -> dict:
        return {
            "timestamp": self.timestamp,
            "overall_pass": self.overall_pass,
            "n_passed": self.n_passed,
            "n_failed": self.n_failed,
            "n_warnings": self.n_warnings,
            "gates": [g.to_dict() for g in self.gates],
        }


def _result(gate_name: str, issues: list[str], ok_message: str, severity: str = "error") -> GateResult:
    passed = len(issues) == 0
    return GateResult(
        gate_name=gate_name,
        passed=passed,
        severity=severity if not passed else "info",
        message="; ".join(issues) if issues else ok_message,
        details={"issues": issues},
    )


# ---------------------------------------------------------------------------
# Config gates
# ---------------------------------------------------------------------------

def _gate_decay_rates(config: AlgorithmConfig) -> GateResult:
    issues = [
        f"{name} must be >= 0 (got {getattr(config, name)})"
        for name in ("lambda_fast", "lambda_slow", "survival_gamma", "recency_mu")
        if getattr(config, name) < 0
    ]
    return _result("decay_rates", issues, "Decay rates valid")


def _gate_beta_prior(config: AlgorithmConfig) -> GateResult:
    issues: list[str] = []
    if config.alpha_prior < 0 or config.beta_prior < 0:
        issues.append("alpha_prior and beta_prior must be >= 0")
    elif config.alpha_prior + config.beta_prior <= 0:
        issues.append("alpha_prior + beta_prior must be > 0")
    return _result("beta_prior", issues, "Beta prior valid")


def _gate_pooling(config: AlgorithmConfig) -> GateResult:
    issues: list[str] = []
    if config.hierarchical_kappa < 0:
        issues.append(f"hierarchical_kappa must be >= 0 (got {config.hierarchical_kappa})")
    if config.epsilon_exploration < 0:
        issues.append(f"epsilon_exploration must be >= 0 (got {config.epsilon_exploration})")
    return _result("pooling", issues, "Pooling parameters valid")


def _gate_success_weights(config: AlgorithmConfig) -> GateResult:
    issues = [
        f"{name} must be in [0, 1] (got {getattr(config, name)})"
        for name in ("success_weight_reply", "success_weight_click", "success_weight_open")
        if not 0 <= getattr(config, name) <= 1
    ]
    return _result("success_weights", issues, "Success weights valid")


def _gate_window_selection(config: AlgorithmConfig) -> GateResult:
    issues: list[str] = []
    if config.top_k_windows < 1:
        issues.append(f"top_k_windows must be >= 1 (got {config.top_k_windows})")
    if config.min_spacing_hours < 0:
        issues.append(f"min_spacing_hours must be >= 0 (got {config.min_spacing_hours})")
    if issues:
        return _result("window_selection", issues, "")

    # k windows spaced s apart on a 168-hour circle need k * s <= 168
    if config.top_k_windows * config.min_spacing_hours > HOURS_PER_WEEK:
        return GateResult(
            gate_name="window_selection",
            passed=False,
            severity="warning",
            message=(
                f"{config.top_k_windows} windows cannot all be {config.min_spacing_hours}h "
                f"apart; fewer windows will be returned"
            ),
        )
    return _result("window_selection", [], "Window selection valid")


def _gate_attempt_caps(config: AlgorithmConfig) -> GateResult:
    issues: list[str] = []
    if config.daily_attempt_cap < 0 or config.weekly_attempt_cap < 0:
        issues.append("attempt caps must be >= 0")
    elif config.daily_attempt_cap > config.weekly_attempt_cap:
        issues.append(
            f"daily_attempt_cap ({config.daily_attempt_cap}) exceeds "
            f"weekly_attempt_cap ({config.weekly_attempt_cap})"
        )
    return _result("attempt_caps", issues, "Attempt caps valid")


def _gate_success_window(config: AlgorithmConfig) -> GateResult:
    issues: list[str] = []
    if config.success_window_hours <= 0:
        issues.append(f"success_window_hours must be > 0 (got {config.success_window_hours})")
    return _result("success_window", issues, "Success window valid")


def _gate_composite_weights(config: AlgorithmConfig) -> GateResult:
    weights = (config.w1_confidence, config.w2_recency, config.w3_priority)
    if any(w < 0 for w in weights):
        return _result("composite_weights", ["composite weights must be >= 0"], "")

    total = sum(weights)
    if abs(total - 1.0) > 1e-6:
        return GateResult(
            gate_name="composite_weights",
            passed=False,
            severity="warning",
            message=f"Composite weights sum to {total:.3f}, not 1",
            details={"sum": total},
        )
    return _result("composite_weights", [], "Composite weights valid")


# ---------------------------------------------------------------------------
# Event gates
# ---------------------------------------------------------------------------

def _gate_event_schema(events: pd.DataFrame) -> GateResult:
    issues = [
        f"events missing required column: {col}"
        for col in REQUIRED_EVENT_COLUMNS
        if col not in events.columns
    ]
    return _result("event_schema", issues, "Schema valid")


def _gate_response_ordering(events: pd.DataFrame) -> GateResult:
    if "response_timestamp" not in events.columns or "event_timestamp" not in events.columns:
        return _result("response_ordering", [], "No response timestamps to check")

    sent = pd.to_datetime(events["event_timestamp"], utc=True, format="mixed")
    responded = pd.to_datetime(events["response_timestamp"], utc=True, format="mixed")
    n_bad = int((responded < sent).sum())

    return GateResult(
        gate_name="response_ordering",
        passed=n_bad == 0,
        severity="warning" if n_bad else "info",
        message=(
            f"{n_bad} responses precede their event" if n_bad else "Response ordering valid"
        ),
        details={"n_bad": n_bad},
    )


def _gate_future_events(events: pd.DataFrame, now: datetime) -> GateResult:
    if "event_timestamp" not in events.columns:
        return _result("future_events", [], "No timestamps to check")

    ts = pd.to_datetime(events["event_timestamp"], utc=True, format="mixed")
    n_future = int((ts > pd.Timestamp(now)).sum())

    return GateResult(
        gate_name="future_events",
        passed=n_future == 0,
        severity="warning" if n_future else "info",
        message=(
            f"{n_future} events are stamped in the future" if n_future else "No future events"
        ),
        details={"n_future": n_future},
    )


def _gate_staleness(events: pd.DataFrame, now: datetime, max_age_days: int) -> GateResult:
    """Warn if the latest event is older than max_age_days."""
    if "event_timestamp" not in events.columns or events.empty:
        return GateResult(
            gate_name="staleness",
            passed=True,
            severity="info",
            message="No data to check staleness",
        )

    latest = pd.to_datetime(events["event_timestamp"], utc=True, format="mixed").max()
    age_days = (pd.Timestamp(now) - latest).days

    passed = age_days <= max_age_days
    return GateResult(
        gate_name="staleness",
        passed=passed,
        severity="warning" if not passed else "info",
        message=f"Latest event is {age_days} days old (threshold: {max_age_days})",
        details={"latest_event": str(latest), "age_days": age_days},
    )


def _gate_orphan_successes(events: pd.DataFrame) -> GateResult:
    needed = {"contact_id", "is_outbound", "is_success"}
    if not needed.issubset(events.columns):
        return _result("orphan_successes", [], "Nothing to check")

    by_contact = events.groupby("contact_id").agg(
        attempts=("is_outbound", "sum"),
        successes=("is_success", "sum"),
    )
    orphans = by_contact[(by_contact["attempts"] == 0) & (by_contact["successes"] > 0)]

    return GateResult(
        gate_name="orphan_successes",
        passed=orphans.empty,
        severity="warning" if not orphans.empty else "info",
        message=(
            f"{len(orphans)} contacts have successes but no outbound attempts"
            if not orphans.empty else "Every success has an attempt"
        ),
        details={"contacts": [str(c) for c in orphans.index[:20]]},
    )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def _build_report(gates: list[GateResult], now: datetime) -> QualityReport:
    n_passed = sum(1 for g in gates if g.passed)
    n_failed = sum(1 for g in gates if not g.passed and g.severity == "error")
    n_warnings = sum(1 for g in gates if not g.passed and g.severity == "warning")

    for g in gates:
        level = "INFO" if g.passed else ("WARNING" if g.severity == "warning" else "ERROR")
        logger.log(level, f"Quality gate [{g.gate_name}]: {g.message}")

    return QualityReport(
        timestamp=now.isoformat(),
        overall_pass=n_failed == 0,
        gates=gates,
        n_passed=n_passed,
        n_failed=n_failed,
        n_warnings=n_warnings,
    )


def run_config_gates(config: AlgorithmConfig, now: datetime | None = None) -> QualityReport:
    """Run every config gate and return a consolidated report."""
    gates = [
        _gate_decay_rates(config),
        _gate_beta_prior(config),
        _gate_pooling(config),
        _gate_success_weights(config),
        _gate_window_selection(config),
        _gate_attempt_caps(config),
        _gate_success_window(config),
        _gate_composite_weights(config),
    ]
    return _build_report(gates, ensure_utc(now) if now is not None else utc_now())


def enforce_config_gates(config: AlgorithmConfig) -> QualityReport:
    """
    Run the config gates and raise if any error-level gate failed.

    Raises:
        ConfigurationError: With the names of the failed gates.
    """
    report = run_config_gates(config)
    if not report.overall_pass:
        raise ConfigurationError(
            f"Algorithm config failed {report.n_failed} quality gate(s): "
            f"{', '.join(report.failed_gates)}",
            failed_gates=report.failed_gates,
        )
    return report


def run_event_gates(
    events: pd.DataFrame,
    max_staleness_days: int = 30,
    now: datetime | None = None,
) -> QualityReport:
    """
    Run every event-data gate and return a consolidated report.

    Args:
        events:             Events frame (one row per interaction).
        max_staleness_days: Maximum acceptable age of the latest event.
        now:                Evaluation instant (defaults to the clock).
    """
    now = ensure_utc(now) if now is not None else utc_now()
    gates = [
        _gate_event_schema(events),
        _gate_response_ordering(events),
        _gate_future_events(events, now),
        _gate_staleness(events, now, max_staleness_days),
        _gate_orphan_successes(events),
    ]
    return _build_report(gates, now)
