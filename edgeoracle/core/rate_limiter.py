"""Sliding-window rate limiter for upstream calls.

Each caller identity keeps the timestamps of its accepted requests.
A request is accepted while fewer than max_requests timestamps fall
inside the trailing window; otherwise it is rejected immediately.
Nothing waits or queues: retrying is the caller's decision.
"""

from __future__ import annotations

import threading
import time
from typing import Callable

from .exceptions import RateLimitExceeded
from .utils import get_logger

logger = get_logger(__name__)


class SlidingWindowRateLimiter:
    """Per-identity append-and-filter request limiter.

    Usage:
        limiter = SlidingWindowRateLimiter(max_requests=30, window_seconds=60)

        if not limiter.check_limit(client_ip):
            return reject()

        # or raise on rejection
        limiter.acquire("pipeline")
    """

    def __init__(
        self,
        max_requests: int = 30,
        window_seconds: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize limiter.

        Args:
            max_requests: Requests allowed per identity per window.
            window_seconds: Length of the trailing window.
            clock: Monotonic time source in seconds.
        """
        self.max_requests = max(0, max_requests)
        self.window_seconds = max(0.0, window_seconds)
        self._clock = clock
        self._requests: dict[str, list[float]] = {}
        self._lock = threading.Lock()

    @classmethod
    def from_config(cls, config) -> SlidingWindowRateLimiter:
        """Build from a RateLimitConfig."""
        return cls(
            max_requests=config.max_requests,
            window_seconds=config.window_seconds,
        )

    def _recent(self, identity: str, now: float) -> list[float]:
        cutoff = now - self.window_seconds
        recent = [t for t in self._requests.get(identity, []) if t > cutoff]
        if recent:
            self._requests[identity] = recent
        else:
            self._requests.pop(identity, None)
        return recent

    def check_limit(self, identity: str) -> bool:
        """Record a request for identity if it fits in the window.

        Returns:
            True if accepted, False if rejected.
        """
        with self._lock:
            now = self._clock()
            recent = self._recent(identity, now)

            if len(recent) >= self.max_requests:
                logger.info(
                    "rate_limit_rejected",
                    identity=identity,
                    max_requests=self.max_requests,
                    window_seconds=self.window_seconds,
                )
                return False

            self._requests.setdefault(identity, []).append(now)
            return True

    def acquire(self, identity: str) -> None:
        """Record a request or raise.

        Raises:
            RateLimitExceeded: If identity is over its budget.
        """
        if not self.check_limit(identity):
            raise RateLimitExceeded(identity, self.retry_after(identity))

    def remaining(self, identity: str) -> int:
        """Requests identity may still make in the current window."""
        with self._lock:
            return max(0, self.max_requests - len(self._recent(identity, self._clock())))

    def retry_after(self, identity: str) -> float:
        """Seconds until identity's oldest request leaves the window."""
        with self._lock:
            now = self._clock()
            recent = self._recent(identity, now)
            if len(recent) < self.max_requests or not recent:
                return 0.0
            return max(0.0, recent[0] + self.window_seconds - now)

    def reset(self, identity: str | None = None) -> None:
        """Forget one identity's history, or everyone's."""
        with self._lock:
            if identity is None:
                self._requests.clear()
            else:
                self._requests.pop(identity, None)
