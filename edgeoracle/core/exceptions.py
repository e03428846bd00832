"""Exception hierarchy for Edge Oracle.

The numeric core never raises for domain reasons. These exceptions
cover the boundary: upstream providers, rate limiting and config.
"""

from __future__ import annotations


class EdgeOracleError(Exception):
    """Base exception for all Edge Oracle errors."""


class UpstreamError(EdgeOracleError):
    """An upstream provider (market data, inference, settlement) failed.

    Attributes:
        source: Provider name (e.g. 'gamma', 'openrouter').
    """

    def __init__(self, source: str, message: str = ""):
        self.source = source
        msg = f"Upstream '{source}' failed"
        if message:
            msg += f": {message}"
        super().__init__(msg)


class RateLimitExceeded(EdgeOracleError):
    """A caller exceeded its request budget for the current window.

    The limiter never queues or retries; the caller decides when to
    try again.

    Attributes:
        identity: Caller identity that was rejected.
        retry_after: Seconds until the oldest request leaves the window.
    """

    def __init__(self, identity: str, retry_after: float = 0.0):
        self.identity = identity
        self.retry_after = retry_after
        super().__init__(
            f"Rate limit exceeded for '{identity}' (retry in {retry_after:.1f}s)"
        )


class ConfigError(EdgeOracleError):
    """Configuration file could not be read."""
