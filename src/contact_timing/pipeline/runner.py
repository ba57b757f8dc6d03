"""
Pipeline runner -- the batch entry point for scoring many contacts.

Before scoring, the connected events go through the event quality gates.
The report is returned with the results and never stops the run.

Orchestrates, per contact:
  1. Timezone  -- manual override, else best of activity and profile
  2. Localize  -- recompute hour_of_week for every event in that zone
  3. Estimate  -- run the contact-timing estimator
  4. Summarise -- build a ContactRecommendation with attempt budget

then, across the batch:
  5. Refresh   -- pool every contact's bins into new segment priors
                  (optionally re-scoring the batch against them)

The runner owns I/O and the clock; the estimator it calls is pure.
"""

from __future__ import annotations

import time
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any

import pandas as pd
from loguru import logger

from contact_timing.config import ALGORITHM_VERSION, ContactTimingConfig
from contact_timing.connectors.local import (
    events_to_frame,
    frame_to_events,
    load_file,
    prepare_events_frame,
    save_file,
)
from contact_timing.core.clock import ensure_utc, utc_now
from contact_timing.core.contracts import (
    ContactEvent,
    ContactPreferences,
    ContactTimingResult,
    RecommendedWindow,
    SegmentPrior,
    TimezoneInference,
)
from contact_timing.core.exceptions import PipelineError
from contact_timing.models.estimator import compute_best_contact_times, last_attempt_at
from contact_timing.models.priors import SegmentPriorSet, build_segment_priors
from contact_timing.quality.gates import QualityReport, enforce_config_gates, run_event_gates
from contact_timing.timezone.inference import infer_best_timezone, manual_override
from contact_timing.transforms.binning import localize_events


# ---------------------------------------------------------------------------
# Data structures
# ---------------------------------------------------------------------------

@dataclass
class ContactProfile:
    """What the caller knows about a contact besides its events."""

    contact_id: str
    location: str | None = None
    locale: str | None = None
    timezone: str | None = None  # manual override
    priority_score: float | None = None
    preferences: ContactPreferences | None = None


@dataclass
class ContactRecommendation:
    """Per-contact summary of a scoring run."""

    contact_id: str
    timezone: str
    timezone_confidence: str
    timezone_source: str
    recommended_windows: list[RecommendedWindow] = field(default_factory=list)
    max_confidence: float = 0.0
    recency_score: float = 0.0
    priority_score: float = 0.0
    composite_score: float = 0.0

    last_positive_signal_at: datetime | None = None
    last_contact_attempt_at: datetime | None = None
    total_attempts: int = 0
    total_successes: int = 0
    overall_response_rate: float = 0.0

    # Attempt budget over the trailing 24h / 7d
    attempts_last_24h: int = 0
    attempts_last_7d: int = 0
    daily_attempt_cap: int = 0
    weekly_attempt_cap: int = 0

    computation_duration_ms: float = 0.0
    algorithm_version: str = ALGORITHM_VERSION

    @property
    def can_contact_now(self) -> bool:
        return (
            self.attempts_last_24h < self.daily_attempt_cap
            and self.attempts_last_7d < self.weekly_attempt_cap
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "contact_id": self.contact_id,
            "timezone": self.timezone,
            "timezone_confidence": self.timezone_confidence,
            "timezone_source": self.timezone_source,
            "recommended_windows": [w.to_dict() for w in self.recommended_windows],
            "max_confidence": self.max_confidence,
            "recency_score": self.recency_score,
            "priority_score": self.priority_score,
            "composite_score": self.composite_score,
            "last_positive_signal_at": (
                self.last_positive_signal_at.isoformat() if self.last_positive_signal_at else None
            ),
            "last_contact_attempt_at": (
                self.last_contact_attempt_at.isoformat() if self.last_contact_attempt_at else None
            ),
            "total_attempts": self.total_attempts,
            "total_successes": self.total_successes,
            "overall_response_rate": self.overall_response_rate,
            "attempts_last_24h": self.attempts_last_24h,
            "attempts_last_7d": self.attempts_last_7d,
            "can_contact_now": self.can_contact_now,
            "computation_duration_ms": self.computation_duration_ms,
            "algorithm_version": self.algorithm_version,
        }


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def last_positive_signal(events: Sequence[ContactEvent]) -> datetime | None:
    """Latest instant a contact responded positively, if ever."""
    instants = [
        e.response_timestamp or e.event_timestamp
        for e in events
        if e.is_success
    ]
    return max(instants) if instants else None


def resolve_timezone(
    profile: ContactProfile,
    events: Sequence[ContactEvent],
    default_timezone: str = "UTC",
) -> TimezoneInference:
    """
    Manual override when valid, else best of activity and profile.

    Activity is the contact's own inbound events.
    """
    if profile.timezone:
        pinned = manual_override(profile.timezone)
        if pinned is not None:
            return pinned

    activity = [e.event_timestamp for e in events if not e.is_outbound]
    return infer_best_timezone(
        activity,
        location=profile.location,
        locale=profile.locale,
        default_timezone=default_timezone,
    )


def _parse_days(value: Any) -> list[int] | None:
    if value is None or (isinstance(value, float) and pd.isna(value)):
        return None
    if pd.api.types.is_number(value):
        return [int(value)]
    if isinstance(value, str):
        parts = [p.strip() for p in value.strip("[]").split(",") if p.strip()]
        return [int(p) for p in parts] or None
    return [int(v) for v in value] or None


def _optional_str(value: Any) -> str | None:
    if value is None or (isinstance(value, float) and pd.isna(value)):
        return None
    text = str(value).strip()
    return text or None


def profiles_from_frame(df: pd.DataFrame) -> dict[str, ContactProfile]:
    """
    Build ContactProfiles from a contacts table.

    Recognised columns: contact_id (required), location, locale,
    timezone, priority_score, quiet_hours_start, quiet_hours_end,
    preferred_days (list or "1,2,3").
    """
    if "contact_id" not in df.columns:
        raise PipelineError("contacts data missing required column: contact_id", step="connect")

    profiles: dict[str, ContactProfile] = {}
    for row in df.to_dict(orient="records"):
        quiet_start = _optional_str(row.get("quiet_hours_start"))
        quiet_end = _optional_str(row.get("quiet_hours_end"))
        days = _parse_days(row.get("preferred_days"))
        preferences = None
        if quiet_start or quiet_end or days:
            preferences = ContactPreferences(
                quiet_hours_start=quiet_start,
                quiet_hours_end=quiet_end,
                preferred_days=days,
            )

        priority = row.get("priority_score")
        contact_id = str(row["contact_id"])
        profiles[contact_id] = ContactProfile(
            contact_id=contact_id,
            location=_optional_str(row.get("location")),
            locale=_optional_str(row.get("locale")),
            timezone=_optional_str(row.get("timezone")),
            priority_score=None if priority is None or pd.isna(priority) else float(priority),
            preferences=preferences,
        )
    return profiles


# ---------------------------------------------------------------------------
# Runner
# ---------------------------------------------------------------------------

class ContactTimingPipeline:
    """
    Batch contact-timing run.

    Example::

        pipe = ContactTimingPipeline(config)
        pipe.connect(events="data/events.csv", contacts="data/contacts.csv")
        results = pipe.run()
        for rec in results["recommendations"]:
            print(rec.contact_id, rec.recommended_windows[0])
    """

    def __init__(
        self,
        config: ContactTimingConfig | None = None,
        segment_priors: Mapping[int, SegmentPrior] | None = None,
    ):
        self._config = config or ContactTimingConfig()
        self._algorithm = self._config.to_algorithm_config()
        self._segment_priors = segment_priors
        self._config_report: QualityReport = enforce_config_gates(self._algorithm)

        self._events: dict[str, list[ContactEvent]] = {}
        self._events_frame: pd.DataFrame | None = None
        self._event_report: QualityReport | None = None
        self._profiles: dict[str, ContactProfile] = {}
        self._recommendations: list[ContactRecommendation] = []
        self._results: dict[str, ContactTimingResult] = {}
        self._refreshed_priors: SegmentPriorSet | None = None

    # ------------------------------------------------------------------
    # Step 0: Connect
    # ------------------------------------------------------------------

    def connect(
        self,
        events: str | Path | pd.DataFrame | Mapping[str, Sequence[ContactEvent]],
        contacts: str | Path | pd.DataFrame | Mapping[str, ContactProfile] | None = None,
    ) -> "ContactTimingPipeline":
        """Load events (and optional contact profiles) from files, frames or objects."""
        logger.info("Pipeline: connecting to data sources...")

        if isinstance(events, Mapping):
            self._events = {str(k): list(v) for k, v in events.items()}
            self._events_frame = events_to_frame(self._events)
        else:
            df = events.copy() if isinstance(events, pd.DataFrame) else load_file(events)
            self._events_frame = prepare_events_frame(df)
            self._events = frame_to_events(self._events_frame)

        if contacts is None:
            self._profiles = {}
        elif isinstance(contacts, Mapping):
            self._profiles = dict(contacts)
        else:
            df = contacts.copy() if isinstance(contacts, pd.DataFrame) else load_file(contacts)
            self._profiles = profiles_from_frame(df)

        n_events = sum(len(v) for v in self._events.values())
        logger.info(
            f"Connected: {len(self._events)} contacts, {n_events} events, "
            f"{len(self._profiles)} profiles"
        )
        return self

    # ------------------------------------------------------------------
    # Steps 1-5: Run
    # ------------------------------------------------------------------

    def score_contact(
        self,
        contact_id: str,
        events: Sequence[ContactEvent],
        profile: ContactProfile | None = None,
        segment_priors: Mapping[int, SegmentPrior] | None = None,
        now: datetime | None = None,
    ) -> tuple[ContactRecommendation, ContactTimingResult]:
        """Score one contact and build its recommendation summary."""
        t0 = time.perf_counter()
        now = ensure_utc(now) if now is not None else utc_now()
        profile = profile or ContactProfile(contact_id=contact_id)

        tz = resolve_timezone(profile, events, self._config.inference.default_timezone)
        localized = localize_events(events, tz.timezone)

        priority = (
            profile.priority_score
            if profile.priority_score is not None
            else self._config.pipeline.default_priority_score
        )
        last_positive = last_positive_signal(localized)
        last_attempt = last_attempt_at(localized)

        result = compute_best_contact_times(
            localized,
            segment_priors,
            self._algorithm,
            last_positive,
            priority,
            last_contact_attempt_at=last_attempt,
            preferences=profile.preferences,
            now=now,
        )

        attempts = [e.event_timestamp for e in localized if e.is_outbound]
        successes = sum(1 for e in localized if e.is_success)

        recommendation = ContactRecommendation(
            contact_id=contact_id,
            timezone=tz.timezone,
            timezone_confidence=tz.confidence.value,
            timezone_source=tz.source.value,
            recommended_windows=result.recommended_windows,
            max_confidence=result.max_confidence,
            recency_score=result.recency_score,
            priority_score=result.priority_score,
            composite_score=result.composite_score,
            last_positive_signal_at=last_positive,
            last_contact_attempt_at=last_attempt,
            total_attempts=len(attempts),
            total_successes=successes,
            overall_response_rate=min(successes / len(attempts), 1.0) if attempts else 0.0,
            attempts_last_24h=sum(1 for a in attempts if now - timedelta(days=1) < a <= now),
            attempts_last_7d=sum(1 for a in attempts if now - timedelta(days=7) < a <= now),
            daily_attempt_cap=result.daily_attempt_cap,
            weekly_attempt_cap=result.weekly_attempt_cap,
            computation_duration_ms=round((time.perf_counter() - t0) * 1000, 3),
        )

        logger.debug(
            f"Contact {contact_id}: tz={tz.timezone} ({tz.confidence.value}, {tz.source.value}), "
            f"{len(result.recommended_windows)} windows, composite={result.composite_score:.3f}"
        )
        return recommendation, result

    def run(self, now: datetime | None = None) -> dict[str, Any]:
        """
        Score every connected contact and refresh segment priors.

        Returns:
            Dictionary with keys: recommendations, segment_priors,
            config_quality, event_quality, n_contacts, duration_seconds.
        """
        if not self._events:
            raise PipelineError("Call connect() with at least one contact before run()", step="run")

        t0 = time.time()
        now = ensure_utc(now) if now is not None else utc_now()

        logger.info("Pipeline step: event quality gates")
        self._event_report = run_event_gates(
            self._events_frame, self._config.pipeline.max_staleness_days, now,
        )

        logger.info(f"Pipeline step: score ({len(self._events)} contacts)")
        self._score_all(self._segment_priors, now)

        if self._config.pipeline.refresh_priors:
            logger.info("Pipeline step: refresh segment priors")
            self._refreshed_priors = build_segment_priors(
                self._results.values(),
                min_trials=self._config.pipeline.min_prior_trials,
            )
            if self._config.pipeline.rescore_with_priors and self._refreshed_priors:
                logger.info("Pipeline step: re-score with refreshed priors")
                self._score_all(self._refreshed_priors, now)

        duration = time.time() - t0
        logger.info(
            f"Pipeline complete in {duration:.2f}s: {len(self._recommendations)} recommendations"
        )

        return {
            "recommendations": self._recommendations,
            "segment_priors": self._refreshed_priors,
            "config_quality": self._config_report,
            "event_quality": self._event_report,
            "n_contacts": len(self._recommendations),
            "duration_seconds": round(duration, 3),
        }

    def _score_all(
        self,
        segment_priors: Mapping[int, SegmentPrior] | None,
        now: datetime,
    ) -> None:
        self._recommendations = []
        self._results = {}
        for contact_id in sorted(self._events):
            recommendation, result = self.score_contact(
                contact_id,
                self._events[contact_id],
                self._profiles.get(contact_id),
                segment_priors,
                now,
            )
            self._recommendations.append(recommendation)
            self._results[contact_id] = result

    # ------------------------------------------------------------------
    # Export
    # ------------------------------------------------------------------

    def recommendations_frame(self) -> pd.DataFrame:
        """One row per contact, best window flattened into columns."""
        rows = []
        for rec in self._recommendations:
            row = rec.to_dict()
            windows = row.pop("recommended_windows")
            best = windows[0] if windows else {}
            row["best_dow"] = best.get("dow")
            row["best_start"] = best.get("start")
            row["best_end"] = best.get("end")
            row["best_confidence"] = best.get("confidence")
            row["n_windows"] = len(windows)
            rows.append(row)
        return pd.DataFrame(rows)

    def save(self, output_dir: str | Path, priors_path: str | Path | None = None) -> list[Path]:
        """Write recommendations (CSV + JSON) and refreshed priors; return the paths."""
        output_dir = Path(output_dir)
        output_dir.mkdir(parents=True, exist_ok=True)

        written = [save_file(self.recommendations_frame(), output_dir / "recommendations.csv")]

        detail = pd.DataFrame([r.to_dict() for r in self._recommendations])
        written.append(save_file(detail, output_dir / "recommendations.json"))

        if self._refreshed_priors is not None:
            path = Path(priors_path) if priors_path else output_dir / "segment_priors.json"
            path.parent.mkdir(parents=True, exist_ok=True)
            self._refreshed_priors.save(path)
            written.append(path)

        logger.info(f"Saved {len(written)} artifacts to {output_dir}")
        return written

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def recommendations(self) -> list[ContactRecommendation]:
        return self._recommendations

    @property
    def results(self) -> dict[str, ContactTimingResult]:
        return self._results

    @property
    def segment_priors(self) -> SegmentPriorSet | None:
        return self._refreshed_priors

    @property
    def event_quality(self) -> QualityReport | None:
        return self._event_report
