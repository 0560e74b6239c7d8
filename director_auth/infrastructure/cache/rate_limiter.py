"""Fixed-window rate limiters for the authentication endpoints."""

import asyncio
import logging
import math
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from director_auth.core.auth.interfaces import RateLimitDecision, RateLimiterInterface
from director_auth.infrastructure.cache.redis_client import RedisClient
from director_auth.settings import Settings, get_settings

logger = logging.getLogger("director_auth.ratelimit")


@dataclass
class _Window:
    count: int
    reset_at: float


class InMemoryRateLimiter(RateLimiterInterface):
    """
    Per-process fixed-window limiter.

    A window opens on a key's first request and lasts ``window_seconds``.
    Once it lapses the next request starts a fresh window.
    """

    def __init__(
        self,
        max_requests: int,
        window_seconds: int,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock
        self._windows: Dict[str, _Window] = {}
        self._lock = asyncio.Lock()

    async def check_and_increment(self, key: str) -> RateLimitDecision:
        async with self._lock:
            now = self._clock()
            window = self._windows.get(key)
            if window is None or now >= window.reset_at:
                window = _Window(count=0, reset_at=now + self.window_seconds)
                self._windows[key] = window

            window.count += 1
            retry_after = max(1, math.ceil(window.reset_at - now))
            return RateLimitDecision(
                allowed=window.count <= self.max_requests,
                remaining=max(0, self.max_requests - window.count),
                retry_after=retry_after,
            )

    async def cleanup(self) -> int:
        async with self._lock:
            now = self._clock()
            expired = [key for key, window in self._windows.items() if now >= window.reset_at]
            for key in expired:
                del self._windows[key]
            return len(expired)

    async def reset(self) -> None:
        async with self._lock:
            self._windows.clear()


class RedisRateLimiter(RateLimiterInterface):
    """Fixed-window limiter whose counters are shared through Redis."""

    key_prefix = "ratelimit:auth:"

    def __init__(self, redis_client: RedisClient, max_requests: int, window_seconds: int):
        self._redis = redis_client
        self.max_requests = max_requests
        self.window_seconds = window_seconds

    async def check_and_increment(self, key: str) -> RateLimitDecision:
        count, ttl = await self._redis.incr_with_expiry(
            f"{self.key_prefix}{key}", self.window_seconds
        )
        return RateLimitDecision(
            allowed=count <= self.max_requests,
            remaining=max(0, self.max_requests - count),
            retry_after=max(1, ttl),
        )

    async def cleanup(self) -> int:
        # Redis expires keys on its own
        return 0


def build_rate_limiter(
    settings: Optional[Settings] = None,
    redis_client: Optional[RedisClient] = None,
) -> RateLimiterInterface:
    """Create the limiter selected by ``rate_limit_backend``."""
    settings = settings or get_settings()
    if settings.rate_limit_backend == "redis":
        logger.info("Using Redis rate limiter")
        return RedisRateLimiter(
            redis_client or RedisClient(settings.redis_url),
            settings.auth_rate_limit_max_requests,
            settings.auth_rate_limit_window_seconds,
        )
    return InMemoryRateLimiter(
        settings.auth_rate_limit_max_requests,
        settings.auth_rate_limit_window_seconds,
    )
