"""Core utilities and configuration."""

from .config import Config, Credentials, load_config
from .exceptions import ConfigError, EdgeOracleError, RateLimitExceeded, UpstreamError
from .utils import get_logger, setup_logging

__all__ = [
    "Config",
    "ConfigError",
    "Credentials",
    "EdgeOracleError",
    "RateLimitExceeded",
    "UpstreamError",
    "get_logger",
    "load_config",
    "setup_logging",
]
