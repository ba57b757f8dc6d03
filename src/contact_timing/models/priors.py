"""
Segment priors: population statistics per hour-of-week bin.

Priors come from pooling the per-bin trials and successes of every
contact in a segment.  The estimator reads them through the plain
``Mapping[int, SegmentPrior]`` interface, so a ``SegmentPriorSet`` can be
passed directly as ``segment_priors``.

Sets can be saved to and loaded from JSON so a nightly refresh can
feed the next day's scoring runs.
"""

from __future__ import annotations

import json
from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import numpy as np
from loguru import logger

from contact_timing.core.contracts import HOURS_PER_WEEK, ContactTimingResult, SegmentPrior


@dataclass
class SegmentPriorSet(Mapping[int, SegmentPrior]):
    """Segment priors keyed by hour_of_week."""

    priors: dict[int, SegmentPrior] = field(default_factory=dict)
    segment: str = "global"

    def __getitem__(self, hour: int) -> SegmentPrior:
        return self.priors[hour]

    def __iter__(self) -> Iterator[int]:
        return iter(sorted(self.priors))

    def __len__(self) -> int:
        return len(self.priors)

    def to_dict(self) -> dict[str, Any]:
        return {
            "segment": self.segment,
            "priors": [self.priors[h].model_dump() for h in sorted(self.priors)],
        }

    def save(self, path: Path | str) -> None:
        with open(path, "w") as f:
            json.dump(self.to_dict(), f, indent=2)

    @classmethod
    def load(cls, path: Path | str) -> "SegmentPriorSet":
        with open(path) as f:
            data = json.load(f)
        priors = {}
        for d in data.get("priors", []):
            prior = SegmentPrior(**d)
            priors[prior.hour_of_week] = prior
        return cls(priors=priors, segment=data.get("segment", "global"))


def build_segment_priors(
    results: Iterable[ContactTimingResult],
    min_trials: float = 0.0,
    segment: str = "global",
) -> SegmentPriorSet:
    """
    Pool per-contact bin statistics into segment priors.

    A contact counts toward a bin's ``contact_count`` when it has any
    trials there.  Bins whose pooled trials fall below ``min_trials``
    (or have none at all) get no prior.

    Args:
        results:    Estimator outputs for the contacts in the segment.
        min_trials: Minimum pooled (decay-weighted) trials per bin.
        segment:    Label stored with the set.

    Returns:
        SegmentPriorSet with one entry per sufficiently observed bin.
    """
    trials = np.zeros(HOURS_PER_WEEK)
    successes = np.zeros(HOURS_PER_WEEK)
    contacts = np.zeros(HOURS_PER_WEEK, dtype=int)
    n_results = 0

    for result in results:
        n_results += 1
        for b in result.bins:
            trials[b.hour_of_week] += b.trials_count
            successes[b.hour_of_week] += b.success_count
            if b.trials_count > 0:
                contacts[b.hour_of_week] += 1

    priors = {}
    for h in range(HOURS_PER_WEEK):
        if trials[h] <= 0 or trials[h] < min_trials:
            continue
        priors[h] = SegmentPrior(
            hour_of_week=h,
            trials_count=float(trials[h]),
            success_count=float(successes[h]),
            response_rate=float(min(successes[h] / trials[h], 1.0)),
            contact_count=int(contacts[h]),
        )

    logger.info(
        f"Built {len(priors)} segment priors for '{segment}' from {n_results} contacts"
    )
    return SegmentPriorSet(priors=priors, segment=segment)
