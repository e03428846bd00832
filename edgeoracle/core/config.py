"""Configuration management for Edge Oracle."""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any

from dotenv import load_dotenv
from pydantic import BaseModel, Field

from .exceptions import ConfigError


class StakingConfig(BaseModel):
    """Guardrails and sizing policy for the stake calculator.

    Thresholds are empirical and meant to be tuned, not derived.
    """

    confidence_floor: int = 4
    min_edge: float = 0.02
    extreme_low: float = 0.05
    extreme_high: float = 0.95
    kelly_multiplier: float = 1.0  # 0.5 = half Kelly
    max_stake: float = 1.0
    precision: int = 2


class ReturnConfig(BaseModel):
    """Bounds applied when realizing a bet's return."""

    entry_price_floor: float = 0.01
    entry_price_cap: float = 0.99
    loss_floor: float = -0.99
    max_return: float | None = None


class BatchConfig(BaseModel):
    """Upstream inference batching."""

    batch_size: int = 10
    batch_delay_seconds: float = 1.0


class CacheConfig(BaseModel):
    """TTL caches in front of upstream calls."""

    snapshot_ttl_seconds: float = 30.0
    analysis_ttl_seconds: float = 180.0
    max_entries: int = 1000


class RateLimitConfig(BaseModel):
    """Sliding-window limiter for upstream calls."""

    max_requests: int = 30
    window_seconds: float = 60.0


class GammaConfig(BaseModel):
    """Market snapshot and settlement source."""

    base_url: str = "https://gamma-api.polymarket.com"
    timeout_seconds: int = 15
    event_limit: int = 100


class InferenceConfig(BaseModel):
    """Model inference provider (OpenAI-compatible chat completions)."""

    base_url: str = "https://openrouter.ai/api/v1"
    model: str = "x-ai/grok-4.1-fast"
    timeout_seconds: int = 60


class GeneralConfig(BaseModel):
    """General application configuration."""

    log_level: str = "INFO"
    db_path: str = "data/edgeoracle.db"
    high_edge_threshold: float = 0.08


class Config(BaseModel):
    """Main configuration container."""

    general: GeneralConfig = Field(default_factory=GeneralConfig)
    staking: StakingConfig = Field(default_factory=StakingConfig)
    returns: ReturnConfig = Field(default_factory=ReturnConfig)
    batch: BatchConfig = Field(default_factory=BatchConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    rate_limit: RateLimitConfig = Field(default_factory=RateLimitConfig)
    gamma: GammaConfig = Field(default_factory=GammaConfig)
    inference: InferenceConfig = Field(default_factory=InferenceConfig)


class Credentials(BaseModel):
    """API credentials loaded from environment."""

    openrouter_api_key: str | None = None

    @classmethod
    def from_env(cls) -> Credentials:
        """Load credentials from environment variables."""
        load_dotenv()
        return cls(openrouter_api_key=os.getenv("OPENROUTER_API_KEY"))

    @property
    def has_inference(self) -> bool:
        """Check if inference credentials are configured."""
        return bool(self.openrouter_api_key)


def load_config(config_path: str | Path | None = None) -> Config:
    """Load configuration from JSON file.

    Args:
        config_path: Path to config file. Defaults to configs/default.json.

    Returns:
        Loaded configuration object.

    Raises:
        ConfigError: If the file exists but is not valid JSON.
    """
    if config_path is None:
        config_path = Path(__file__).parent.parent.parent / "configs" / "default.json"

    config_path = Path(config_path)

    if not config_path.exists():
        return Config()

    try:
        with open(config_path) as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise ConfigError(f"Invalid config file {config_path}: {e}") from e

    # Upstream sections are nested under "providers"
    flat_data: dict[str, Any] = {
        key: data.get(key, {})
        for key in ("general", "staking", "returns", "batch", "cache", "rate_limit")
    }
    providers = data.get("providers", {})
    flat_data["gamma"] = providers.get("gamma", {})
    flat_data["inference"] = providers.get("inference", {})

    return Config(**flat_data)
