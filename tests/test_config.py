"""Tests for configuration loading."""

import json

import pytest

from edgeoracle.core.config import Config, Credentials, load_config
from edgeoracle.core.exceptions import ConfigError


class TestLoadConfig:
    """Tests for load_config."""

    def test_missing_file_gives_defaults(self, tmp_path):
        config = load_config(tmp_path / "missing.json")

        assert config == Config()
        assert config.staking.confidence_floor == 4
        assert config.staking.min_edge == 0.02
        assert config.batch.batch_size == 10
        assert config.cache.analysis_ttl_seconds == 180

    def test_sections_and_providers(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({
            "staking": {"kelly_multiplier": 0.5},
            "rate_limit": {"max_requests": 5},
            "providers": {
                "gamma": {"event_limit": 25},
                "inference": {"model": "some/model"},
            },
        }))

        config = load_config(path)

        assert config.staking.kelly_multiplier == 0.5
        assert config.staking.extreme_high == 0.95
        assert config.rate_limit.max_requests == 5
        assert config.gamma.event_limit == 25
        assert config.inference.model == "some/model"

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text("{not json")

        with pytest.raises(ConfigError):
            load_config(path)

    def test_bundled_default_config(self):
        """Test the shipped configs/default.json loads."""
        config = load_config()

        assert config.general.high_edge_threshold == 0.08
        assert config.returns.loss_floor == -0.99


class TestCredentials:
    """Tests for Credentials."""

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("OPENROUTER_API_KEY", "sk-test")

        creds = Credentials.from_env()

        assert creds.openrouter_api_key == "sk-test"
        assert creds.has_inference

    def test_missing(self):
        assert not Credentials().has_inference
