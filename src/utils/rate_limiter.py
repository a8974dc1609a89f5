"""
Rate Limiter Module

Fixed-window request limiter keyed by client identity.
Every request consumes quota, including the ones that get throttled.
"""

import asyncio
import math
import time
from typing import Callable, Dict, Optional
import structlog
from pydantic import BaseModel

logger = structlog.get_logger(__name__)


class RateWindow(BaseModel):
    """Request count for one client within the current window."""
    count: int = 0
    window_start: float


class RateDecision(BaseModel):
    """Result of a rate limit check."""
    client_id: str
    allowed: bool
    limit: int
    count: int
    reset_at: float

    @property
    def remaining(self) -> int:
        return max(0, self.limit - self.count)

    def retry_after(self, now: float) -> int:
        """Whole seconds until the current window ends."""
        return max(0, math.ceil(self.reset_at - now))

    def headers(self, now: float) -> Dict[str, str]:
        """Legacy X-RateLimit-* headers, plus Retry-After when throttled."""
        headers = {
            "X-RateLimit-Limit": str(self.limit),
            "X-RateLimit-Remaining": str(self.remaining),
            "X-RateLimit-Reset": str(math.ceil(self.reset_at)),
        }
        if not self.allowed:
            headers["Retry-After"] = str(self.retry_after(now))
        return headers


class RateLimiter:
    """
    Fixed-window rate limiter.

    Each client gets ``max_requests`` per ``window_seconds``. The window for a
    client starts with its first request and resets once it has fully elapsed.

    Example:
        limiter = RateLimiter(window_seconds=900, max_requests=100)

        decision = await limiter.check("203.0.113.7")
        if not decision.allowed:
            ...  # respond 429
    """

    def __init__(
        self,
        window_seconds: float = 15 * 60,
        max_requests: int = 100,
        clock: Callable[[], float] = time.time,
        purge_every: int = 1000
    ):
        if window_seconds <= 0:
            raise ValueError("window_seconds must be positive")
        if max_requests < 1:
            raise ValueError("max_requests must be at least 1")

        self.window_seconds = window_seconds
        self.max_requests = max_requests
        self.clock = clock
        self.purge_every = purge_every

        self._windows: Dict[str, RateWindow] = {}
        self._checks_since_purge = 0

        # Single mutation point for the counter map
        self._lock = asyncio.Lock()

        logger.info(
            "rate_limiter_initialized",
            window_seconds=window_seconds,
            max_requests=max_requests
        )

    async def check(self, client_id: str, now: Optional[float] = None) -> RateDecision:
        """Count a request for ``client_id`` and decide whether it may proceed."""
        async with self._lock:
            now = self.clock() if now is None else now

            self._checks_since_purge += 1
            if self._checks_since_purge >= self.purge_every:
                self._purge_expired(now)

            window = self._windows.get(client_id)
            if window is None or now - window.window_start >= self.window_seconds:
                window = RateWindow(count=0, window_start=now)
                self._windows[client_id] = window

            window.count += 1
            allowed = window.count <= self.max_requests

            decision = RateDecision(
                client_id=client_id,
                allowed=allowed,
                limit=self.max_requests,
                count=window.count,
                reset_at=window.window_start + self.window_seconds
            )

        if not allowed:
            logger.warning(
                "rate_limit_exceeded",
                client_id=client_id,
                count=decision.count,
                limit=self.max_requests
            )

        return decision

    async def purge_expired(self, now: Optional[float] = None) -> int:
        """Drop windows that have fully elapsed. Returns how many were removed."""
        async with self._lock:
            return self._purge_expired(self.clock() if now is None else now)

    def _purge_expired(self, now: float) -> int:
        expired = [
            client_id for client_id, window in self._windows.items()
            if now - window.window_start >= self.window_seconds
        ]
        for client_id in expired:
            del self._windows[client_id]

        self._checks_since_purge = 0
        if expired:
            logger.debug("rate_windows_purged", count=len(expired))
        return len(expired)

    def get_stats(self) -> dict:
        """Get current rate limiter statistics."""
        return {
            "tracked_clients": len(self._windows),
            "window_seconds": self.window_seconds,
            "max_requests": self.max_requests
        }
