"""
Configuration management for Contact-Timing.

Centralized configuration with sensible defaults, loadable from YAML.
The ``algorithm`` section is converted into the frozen
``AlgorithmConfig`` contract the estimator consumes.
"""

from pathlib import Path

import yaml
from pydantic import BaseModel, Field

from contact_timing.core.contracts import AlgorithmConfig

ALGORITHM_VERSION = "1.0"


class AlgorithmSettings(BaseModel):
    """Estimator hyperparameters."""

    # Recency weighting
    lambda_fast: float = Field(default=0.05, description="Fast decay rate per day")
    lambda_slow: float = Field(default=0.01, description="Slow decay rate per day")

    # Beta-Binomial smoothing and pooling
    alpha_prior: float = Field(default=1.0, description="Beta prior pseudo-successes")
    beta_prior: float = Field(default=1.0, description="Beta prior pseudo-failures")
    hierarchical_kappa: float = Field(default=5.0, description="Shrinkage strength toward segment")

    epsilon_exploration: float = Field(default=0.08, description="Exploration bonus scale")

    # Success weights by signal strength
    success_weight_reply: float = Field(default=1.0, ge=0, le=1)
    success_weight_click: float = Field(default=0.5, ge=0, le=1)
    success_weight_open: float = Field(default=0.25, ge=0, le=1)

    survival_gamma: float = Field(default=0.05, description="Engagement decay per day since success")

    # Window selection
    top_k_windows: int = Field(default=6)
    min_spacing_hours: float = Field(default=4.0)

    # Attempt budget
    daily_attempt_cap: int = Field(default=2)
    weekly_attempt_cap: int = Field(default=5)

    success_window_hours: float = Field(default=24.0, description="Max hours from attempt to response")

    # Composite score weights
    w1_confidence: float = Field(default=0.6)
    w2_recency: float = Field(default=0.2)
    w3_priority: float = Field(default=0.2)

    recency_mu: float = Field(default=0.03, description="Recency growth rate per day since attempt")
    neighbor_smoothing: bool = Field(
        default=False, description="Rank on probabilities blended with neighbouring bins",
    )


class InferenceConfig(BaseModel):
    """Timezone inference configuration."""

    default_timezone: str = Field(default="UTC", description="Zone used when nothing can be inferred")


class PipelineConfig(BaseModel):
    """Batch runner configuration."""

    default_priority_score: float = Field(default=0.5)
    refresh_priors: bool = Field(default=True, description="Rebuild segment priors after a batch")
    rescore_with_priors: bool = Field(default=False, description="Second pass using refreshed priors")
    min_prior_trials: float = Field(default=1.0, description="Minimum pooled trials per prior bin")
    max_staleness_days: int = Field(
        default=30, description="Event quality gate: max age in days of the latest event",
    )


class StorageConfig(BaseModel):
    """Storage layer configuration."""

    raw_path: Path = Field(default=Path("data/raw"))
    outputs_path: Path = Field(default=Path("data/outputs"))
    priors_path: Path = Field(default=Path("data/priors/segment_priors.json"))


class ContactTimingConfig(BaseModel):
    """Root configuration for Contact-Timing."""

    project_name: str = Field(default="Contact-Timing")
    environment: str = Field(default="development")

    algorithm: AlgorithmSettings = Field(default_factory=AlgorithmSettings)
    inference: InferenceConfig = Field(default_factory=InferenceConfig)
    pipeline: PipelineConfig = Field(default_factory=PipelineConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)

    @classmethod
    def from_yaml(cls, path: Path) -> "ContactTimingConfig":
        """Load configuration from YAML file."""
        with open(path) as f:
            data = yaml.safe_load(f) or {}
        return cls(**data)

    def to_yaml(self, path: Path) -> None:
        """Save configuration to YAML file."""
        with open(path, "w") as f:
            yaml.dump(self.model_dump(mode="json"), f, default_flow_style=False)

    def to_algorithm_config(self) -> AlgorithmConfig:
        """Frozen estimator config built from the ``algorithm`` section."""
        return AlgorithmConfig(**self.algorithm.model_dump())


def default_algorithm_config() -> AlgorithmConfig:
    """AlgorithmConfig with the production defaults."""
    return AlgorithmConfig(**AlgorithmSettings().model_dump())


# Global config instance (can be overridden)
_config: ContactTimingConfig | None = None


def get_config() -> ContactTimingConfig:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = ContactTimingConfig()
    return _config


def set_config(config: ContactTimingConfig) -> None:
    """Set the global configuration instance."""
    global _config
    _config = config


def load_config(path: Path | str | None = None) -> ContactTimingConfig:
    """Load configuration from file or use defaults."""
    global _config

    if path is not None:
        _config = ContactTimingConfig.from_yaml(Path(path))
    else:
        for config_path in [Path("config.yaml"), Path("config/config.yaml")]:
            if config_path.exists():
                _config = ContactTimingConfig.from_yaml(config_path)
                break
        else:
            _config = ContactTimingConfig()

    return _config
