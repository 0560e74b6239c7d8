"""Tests for the authentication rate limiters."""

import asyncio

import pytest
from unittest.mock import AsyncMock, patch

from director_auth.infrastructure.cache.rate_limiter import (
    InMemoryRateLimiter,
    RedisRateLimiter,
    build_rate_limiter,
)
from director_auth.infrastructure.cache.redis_client import RedisClient
from director_auth.settings import Settings


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def limiter(clock):
    return InMemoryRateLimiter(max_requests=3, window_seconds=60, clock=clock)


class TestInMemoryRateLimiter:
    """Test cases for InMemoryRateLimiter."""

    @pytest.mark.asyncio
    async def test_allows_up_to_limit(self, limiter):
        decisions = [await limiter.check_and_increment("10.0.0.1") for _ in range(4)]

        assert [d.allowed for d in decisions] == [True, True, True, False]
        assert [d.remaining for d in decisions] == [2, 1, 0, 0]

    @pytest.mark.asyncio
    async def test_keys_are_independent(self, limiter):
        for _ in range(3):
            await limiter.check_and_increment("10.0.0.1")

        assert (await limiter.check_and_increment("10.0.0.2")).allowed is True

    @pytest.mark.asyncio
    async def test_window_is_fixed_from_first_hit(self, limiter, clock):
        await limiter.check_and_increment("ip")
        clock.now += 50
        for _ in range(2):
            await limiter.check_and_increment("ip")

        blocked = await limiter.check_and_increment("ip")
        assert blocked.allowed is False
        assert blocked.retry_after == 10

        clock.now += 10
        assert (await limiter.check_and_increment("ip")).allowed is True

    @pytest.mark.asyncio
    async def test_cleanup_drops_lapsed_windows(self, limiter, clock):
        await limiter.check_and_increment("old")
        clock.now += 30
        await limiter.check_and_increment("new")
        clock.now += 30

        assert await limiter.cleanup() == 1
        assert await limiter.cleanup() == 0

    @pytest.mark.asyncio
    async def test_concurrent_requests_are_all_counted(self, clock):
        limiter = InMemoryRateLimiter(max_requests=10, window_seconds=60, clock=clock)

        decisions = await asyncio.gather(
            *(limiter.check_and_increment("ip") for _ in range(25))
        )

        assert sum(d.allowed for d in decisions) == 10

    @pytest.mark.asyncio
    async def test_reset(self, limiter):
        for _ in range(4):
            await limiter.check_and_increment("ip")
        await limiter.reset()

        assert (await limiter.check_and_increment("ip")).allowed is True


class TestRedisRateLimiter:
    """Test cases for RedisRateLimiter."""

    @pytest.mark.asyncio
    async def test_uses_prefixed_key(self):
        redis_client = AsyncMock(spec=RedisClient)
        redis_client.incr_with_expiry.return_value = (1, 900)
        limiter = RedisRateLimiter(redis_client, max_requests=20, window_seconds=900)

        decision = await limiter.check_and_increment("10.0.0.1")

        redis_client.incr_with_expiry.assert_awaited_once_with("ratelimit:auth:10.0.0.1", 900)
        assert decision.allowed is True
        assert decision.remaining == 19
        assert decision.retry_after == 900

    @pytest.mark.asyncio
    async def test_blocks_over_limit(self):
        redis_client = AsyncMock(spec=RedisClient)
        redis_client.incr_with_expiry.return_value = (21, 42)
        limiter = RedisRateLimiter(redis_client, max_requests=20, window_seconds=900)

        decision = await limiter.check_and_increment("10.0.0.1")

        assert decision.allowed is False
        assert decision.retry_after == 42

    @pytest.mark.asyncio
    async def test_cleanup_is_noop(self):
        limiter = RedisRateLimiter(AsyncMock(spec=RedisClient), 20, 900)

        assert await limiter.cleanup() == 0


class TestRedisClient:
    """Test cases for RedisClient."""

    @pytest.mark.asyncio
    async def test_connect(self):
        redis_client = RedisClient("redis://localhost:6379/15")
        with patch("redis.asyncio.from_url") as mock_from_url:
            mock_redis = AsyncMock()
            mock_from_url.return_value = mock_redis

            await redis_client.connect()

            assert redis_client._redis == mock_redis
            mock_from_url.assert_called_once()

    @pytest.mark.asyncio
    async def test_first_increment_sets_expiry(self):
        redis_client = RedisClient("redis://localhost:6379/15")
        mock_redis = AsyncMock()
        mock_redis.incr.return_value = 1
        mock_redis.ttl.return_value = 900
        redis_client._redis = mock_redis

        assert await redis_client.incr_with_expiry("key", 900) == (1, 900)
        mock_redis.expire.assert_awaited_once_with("key", 900)

    @pytest.mark.asyncio
    async def test_later_increments_keep_expiry(self):
        redis_client = RedisClient("redis://localhost:6379/15")
        mock_redis = AsyncMock()
        mock_redis.incr.return_value = 5
        mock_redis.ttl.return_value = 120
        redis_client._redis = mock_redis

        assert await redis_client.incr_with_expiry("key", 900) == (5, 120)
        mock_redis.expire.assert_not_called()

    @pytest.mark.asyncio
    async def test_disconnect(self):
        redis_client = RedisClient("redis://localhost:6379/15")
        mock_redis = AsyncMock()
        redis_client._redis = mock_redis

        await redis_client.disconnect()

        mock_redis.aclose.assert_awaited_once()
        assert redis_client._redis is None


class TestBuildRateLimiter:

    def test_memory_backend(self):
        limiter = build_rate_limiter(Settings(rate_limit_backend="memory"))

        assert isinstance(limiter, InMemoryRateLimiter)
        assert limiter.max_requests == 20
        assert limiter.window_seconds == 900

    def test_redis_backend(self):
        redis_client = RedisClient("redis://localhost:6379/15")
        limiter = build_rate_limiter(Settings(rate_limit_backend="redis"), redis_client)

        assert isinstance(limiter, RedisRateLimiter)
