"""
Canonical data contracts for Contact-Timing.

Inputs are Pydantic models: they validate at the boundary and are
frozen, so the estimator can never mutate what a caller hands it.
Outputs are plain dataclasses with ``to_dict`` helpers, built fresh on
every run.

Conventions:
  - All instants are timezone-aware UTC datetimes (naive input is coerced).
  - Hour-of-week bins run 0..167 with bin 0 = Sunday 00:00 local time.
  - Probabilities and weights live in [0, 1].
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

import pandas as pd
from pydantic import BaseModel, ConfigDict, Field, field_validator

from contact_timing.core.clock import ensure_utc

HOURS_PER_DAY = 24
DAYS_PER_WEEK = 7
HOURS_PER_WEEK = HOURS_PER_DAY * DAYS_PER_WEEK

_HHMM = re.compile(r"^([01]?\d|2[0-3]):[0-5]\d$")


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------

class Confidence(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @property
    def rank(self) -> int:
        return {"low": 0, "medium": 1, "high": 2}[self.value]


class TimezoneSource(str, Enum):
    DEFAULT = "default"
    LOCATION = "location"
    INFERRED_FROM_MESSAGES = "inferred_from_messages"
    MANUAL_OVERRIDE = "manual_override"


# ---------------------------------------------------------------------------
# Input contracts
# ---------------------------------------------------------------------------

class ContactEvent(BaseModel):
    """One observed interaction with a contact."""

    model_config = ConfigDict(frozen=True)

    event_type: str = Field(min_length=1)
    event_timestamp: datetime
    response_timestamp: datetime | None = None
    is_outbound: bool
    is_success: bool = False
    success_weight: float = Field(default=0.0, ge=0, le=1)
    hour_of_week: int = Field(default=0, ge=0, le=HOURS_PER_WEEK - 1)

    @field_validator("event_type", mode="before")
    @classmethod
    def _enum_to_value(cls, v: Any) -> Any:
        return v.value if isinstance(v, Enum) else v

    @field_validator("event_timestamp", "response_timestamp")
    @classmethod
    def _to_utc(cls, v: datetime | None) -> datetime | None:
        return ensure_utc(v) if v is not None else None


class AlgorithmConfig(BaseModel):
    """
    Immutable hyperparameters for one estimator run.

    Every field of the model is required; ``default_algorithm_config()``
    in ``contact_timing.config`` is the caller-side convenience factory.
    ``recency_mu`` and ``neighbor_smoothing`` are the only fields with a default.
    """

    model_config = ConfigDict(frozen=True)

    lambda_fast: float
    lambda_slow: float
    alpha_prior: float
    beta_prior: float
    hierarchical_kappa: float
    epsilon_exploration: float
    success_weight_reply: float
    success_weight_click: float
    success_weight_open: float
    survival_gamma: float
    top_k_windows: int
    min_spacing_hours: float
    daily_attempt_cap: int
    weekly_attempt_cap: int
    success_window_hours: float
    w1_confidence: float
    w2_recency: float
    w3_priority: float
    recency_mu: float = 0.03
    neighbor_smoothing: bool = False


class SegmentPrior(BaseModel):
    """Population-level statistics for one hour-of-week bin."""

    model_config = ConfigDict(frozen=True)

    hour_of_week: int = Field(ge=0, le=HOURS_PER_WEEK - 1)
    trials_count: float = Field(ge=0)
    success_count: float = Field(ge=0)
    response_rate: float = Field(ge=0, le=1)
    contact_count: int = Field(default=0, ge=0)


class ContactPreferences(BaseModel):
    """Per-contact quiet hours and allowed weekdays (0=Sun .. 6=Sat)."""

    model_config = ConfigDict(frozen=True)

    quiet_hours_start: str | None = None
    quiet_hours_end: str | None = None
    preferred_days: list[int] | None = None

    @field_validator("quiet_hours_start", "quiet_hours_end")
    @classmethod
    def _check_hhmm(cls, v: str | None) -> str | None:
        if v is not None and not _HHMM.match(v):
            raise ValueError(f"Expected HH:MM, got {v!r}")
        return v

    @field_validator("preferred_days")
    @classmethod
    def _check_days(cls, v: list[int] | None) -> list[int] | None:
        if v is not None and any(d < 0 or d >= DAYS_PER_WEEK for d in v):
            raise ValueError("preferred_days must be in 0..6")
        return v


# ---------------------------------------------------------------------------
# Output contracts
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class TimezoneInference:
    """Best-guess timezone with an honest confidence label."""

    timezone: str
    confidence: Confidence
    source: TimezoneSource

    def to_dict(self) -> dict[str, str]:
        return {
            "timezone": self.timezone,
            "confidence": self.confidence.value,
            "source": self.source.value,
        }


@dataclass
class HourBin:
    """Per-contact statistics for one hour-of-week."""

    hour_of_week: int
    trials_count: float = 0.0
    success_count: float = 0.0
    raw_probability: float = 0.0
    smoothed_probability: float = 0.0
    calibrated_probability: float = 0.0
    exploration_bonus: float = 0.0
    score: float = 0.0
    is_masked: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "hour_of_week": self.hour_of_week,
            "trials_count": self.trials_count,
            "success_count": self.success_count,
            "raw_probability": self.raw_probability,
            "smoothed_probability": self.smoothed_probability,
            "calibrated_probability": self.calibrated_probability,
            "exploration_bonus": self.exploration_bonus,
            "score": self.score,
            "is_masked": self.is_masked,
        }


@dataclass
class RecommendedWindow:
    """A one-hour contact window picked by the ranking step."""

    dow: str
    start: str
    end: str
    confidence: float
    hour_of_week: int
    score: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "dow": self.dow,
            "start": self.start,
            "end": self.end,
            "confidence": self.confidence,
            "hour_of_week": self.hour_of_week,
            "score": self.score,
        }


@dataclass
class ContactTimingResult:
    """Complete estimator output for one contact."""

    recommended_windows: list[RecommendedWindow] = field(default_factory=list)
    max_confidence: float = 0.0
    recency_score: float = 0.0
    priority_score: float = 0.0
    composite_score: float = 0.0
    bins: list[HourBin] = field(default_factory=list)

    # Carried through from the config for downstream schedulers
    daily_attempt_cap: int = 0
    weekly_attempt_cap: int = 0

    @property
    def best_window(self) -> RecommendedWindow | None:
        return self.recommended_windows[0] if self.recommended_windows else None

    def to_dataframe(self) -> pd.DataFrame:
        """All 168 bins as a DataFrame indexed by hour_of_week."""
        return pd.DataFrame([b.to_dict() for b in self.bins]).set_index("hour_of_week")

    def to_dict(self, include_bins: bool = True) -> dict[str, Any]:
        out: dict[str, Any] = {
            "recommended_windows": [w.to_dict() for w in self.recommended_windows],
            "max_confidence": self.max_confidence,
            "recency_score": self.recency_score,
            "priority_score": self.priority_score,
            "composite_score": self.composite_score,
            "daily_attempt_cap": self.daily_attempt_cap,
            "weekly_attempt_cap": self.weekly_attempt_cap,
        }
        if include_bins:
            out["bins"] = [b.to_dict() for b in self.bins]
        return out
