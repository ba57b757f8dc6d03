"""
Quality gates for algorithm configs and event data.
"""

from contact_timing.quality.gates import (
    GateResult,
    QualityReport,
    enforce_config_gates,
    run_config_gates,
    run_event_gates,
)

__all__ = [
    "GateResult",
    "QualityReport",
    "enforce_config_gates",
    "run_config_gates",
    "run_event_gates",
]
