"""Tests for YAML configuration handling."""

import pytest
import yaml
from pydantic import ValidationError

from contact_timing.config import (
    ContactTimingConfig,
    default_algorithm_config,
    get_config,
    load_config,
    set_config,
)
from contact_timing.core.contracts import AlgorithmConfig


@pytest.fixture(autouse=True)
def _reset_global_config():
    yield
    set_config(None)


class TestDefaults:
    """Test the production defaults."""

    def test_algorithm_defaults(self):
        config = default_algorithm_config()

        assert isinstance(config, AlgorithmConfig)
        assert config.lambda_fast == pytest.approx(0.05)
        assert config.hierarchical_kappa == pytest.approx(5.0)
        assert config.top_k_windows == 6
        assert config.min_spacing_hours == pytest.approx(4.0)
        assert (config.daily_attempt_cap, config.weekly_attempt_cap) == (2, 5)
        assert config.w1_confidence + config.w2_recency + config.w3_priority == pytest.approx(1.0)
        assert config.neighbor_smoothing is False

    def test_root_defaults(self):
        config = ContactTimingConfig()

        assert config.inference.default_timezone == "UTC"
        assert config.pipeline.default_priority_score == pytest.approx(0.5)
        assert config.pipeline.max_staleness_days == 30
        assert config.to_algorithm_config() == default_algorithm_config()

    def test_algorithm_config_is_frozen(self):
        config = default_algorithm_config()

        with pytest.raises(ValidationError):
            config.top_k_windows = 3

    def test_success_weight_bounds(self):
        with pytest.raises(ValidationError):
            ContactTimingConfig(algorithm={"success_weight_open": 2.0})


class TestYaml:
    """Test loading and saving YAML."""

    def test_round_trip(self, tmp_path):
        path = tmp_path / "config.yaml"
        config = ContactTimingConfig(environment="production", algorithm={"top_k_windows": 3})
        config.to_yaml(path)

        loaded = ContactTimingConfig.from_yaml(path)

        assert loaded == config
        assert loaded.to_algorithm_config().top_k_windows == 3

    def test_partial_file_keeps_defaults(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text(yaml.safe_dump({"algorithm": {"hierarchical_kappa": 12.0}}))

        config = ContactTimingConfig.from_yaml(path)

        assert config.algorithm.hierarchical_kappa == pytest.approx(12.0)
        assert config.algorithm.epsilon_exploration == pytest.approx(0.08)

    def test_empty_file(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("")

        assert ContactTimingConfig.from_yaml(path) == ContactTimingConfig()


class TestGlobalConfig:
    """Test the module-level config instance."""

    def test_load_explicit_path(self, tmp_path):
        path = tmp_path / "custom.yaml"
        ContactTimingConfig(project_name="acme").to_yaml(path)

        config = load_config(path)

        assert config.project_name == "acme"
        assert get_config() is config

    def test_load_discovers_working_directory_file(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        ContactTimingConfig(environment="staging").to_yaml(tmp_path / "config.yaml")

        assert load_config().environment == "staging"

    def test_load_without_file_uses_defaults(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)

        assert load_config() == ContactTimingConfig()

    def test_set_config(self):
        custom = ContactTimingConfig(project_name="x")
        set_config(custom)

        assert get_config() is custom
