"""Redis client used for shared rate limit counters."""

import logging
from typing import Optional

import redis.asyncio as redis
from redis.asyncio import Redis

from director_auth.settings import get_settings

logger = logging.getLogger("director_auth.cache")


class RedisClient:
    """
    Thin async Redis wrapper.

    Counters live in Redis when several application instances must share
    one rate limit budget.
    """

    def __init__(self, redis_url: Optional[str] = None):
        """
        Initialize Redis client.

        Args:
            redis_url: Redis connection URL (defaults to settings)
        """
        self._redis: Optional[Redis] = None
        self._redis_url = redis_url or get_settings().redis_url

    async def connect(self) -> None:
        if self._redis is None:
            self._redis = redis.from_url(
                self._redis_url,
                encoding="utf-8",
                decode_responses=True,
                max_connections=20,
                retry_on_timeout=True,
            )

    async def disconnect(self) -> None:
        """Close Redis connection."""
        if self._redis:
            await self._redis.aclose()
            self._redis = None

    async def incr_with_expiry(self, key: str, window_seconds: int) -> tuple[int, int]:
        """
        Increment a counter, starting its expiry on the first hit.

        Args:
            key: Counter key
            window_seconds: Lifetime of a fresh counter

        Returns:
            Tuple of (count after increment, seconds until the key expires)
        """
        await self.connect()
        count = await self._redis.incr(key)
        if count == 1:
            await self._redis.expire(key, window_seconds)
        ttl = await self._redis.ttl(key)
        if ttl is None or ttl < 0:
            ttl = window_seconds
        return int(count), int(ttl)

    async def ping(self) -> bool:
        """
        Ping Redis server to check connectivity.

        Returns:
            True if Redis is responsive, False otherwise
        """
        await self.connect()
        try:
            return await self._redis.ping() is True
        except Exception:
            logger.warning("Redis ping failed", exc_info=True)
            return False


_redis_client: Optional[RedisClient] = None


def get_redis_client() -> RedisClient:
    global _redis_client
    if _redis_client is None:
        _redis_client = RedisClient()
    return _redis_client


async def close_redis_connection():
    """Close global Redis connection."""
    global _redis_client
    if _redis_client:
        await _redis_client.disconnect()
        _redis_client = None
