"""
Tests for the sliding-window rate limiter.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from postpilot.services.rate_limiter import (
    RateLimitResult,
    SlidingWindowLimiter,
    format_time,
    rate_limit_error,
)
from postpilot.utils.error_handling import APIRateLimitError


def make_redis(count: int, oldest_ms: int) -> MagicMock:
    pipeline = MagicMock()
    pipeline.execute = AsyncMock(return_value=[0, 1, count, [("member", float(oldest_ms))], True])

    redis = MagicMock()
    redis.pipeline.return_value = pipeline
    redis.zrem = AsyncMock(return_value=1)
    return redis


class TestFormatTime:

    def test_hours_minutes_seconds(self):
        assert format_time(3_723_000) == "1h 2m 3s"

    def test_negative_is_zero(self):
        assert format_time(-5) == "0h 0m 0s"


class TestSlidingWindowLimiter:

    @pytest.mark.asyncio
    async def test_hit_within_limit(self):
        redis = make_redis(count=3, oldest_ms=1_000)
        limiter = SlidingWindowLimiter(limit=30, window_seconds=3600, prefix="test", redis=redis)

        result = await limiter.hit("user-1", now_ms=5_000)

        assert result.success is True
        assert result.remaining == 27
        assert result.reset == 1_000 + 3_600_000
        redis.zrem.assert_not_called()

        pipeline = redis.pipeline.return_value
        pipeline.zremrangebyscore.assert_called_once_with("test:user-1", 0, 5_000 - 3_600_000)

    @pytest.mark.asyncio
    async def test_hit_over_limit_is_refused_and_not_counted(self):
        redis = make_redis(count=31, oldest_ms=2_000)
        limiter = SlidingWindowLimiter(limit=30, window_seconds=3600, prefix="test", redis=redis)

        result = await limiter.hit("user-1", now_ms=10_000)

        assert result.success is False
        assert result.remaining == 0
        redis.zrem.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_redis_failure_allows_request(self):
        redis = MagicMock()
        redis.pipeline.return_value.execute = AsyncMock(side_effect=RedisConnectionError("down"))
        limiter = SlidingWindowLimiter(limit=5, window_seconds=60, prefix="test", redis=redis)

        result = await limiter.hit("user-1", now_ms=1_000)

        assert result.success is True
        assert result.remaining == 5

    @pytest.mark.asyncio
    async def test_enforce_raises_when_refused(self):
        redis = make_redis(count=31, oldest_ms=2_000)
        limiter = SlidingWindowLimiter(limit=30, window_seconds=3600, prefix="test", redis=redis)

        with pytest.raises(APIRateLimitError, match="Too many requests"):
            await limiter.enforce("user-1")


class TestRateLimitError:

    def test_headers_and_message(self):
        result = RateLimitResult(success=False, limit=30, remaining=0, reset=3_661_000)

        error = rate_limit_error(result, now_ms=0)

        assert error.message == "Too many requests. Please try again after 1h 1m 1s."
        assert error.retry_after == 3661
        assert error.headers == {
            "X-RateLimit-Limit": "30",
            "X-RateLimit-Remaining": "0",
            "X-RateLimit-Reset": "3661000",
        }
