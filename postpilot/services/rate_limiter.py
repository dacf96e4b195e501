"""
Sliding Window Rate Limiter

Request throttling backed by Redis sorted sets. Each identifier gets a
sorted set of request timestamps; entries older than the window are
trimmed on every hit, and a hit is refused once the set already holds
``limit`` entries.

When Redis is unreachable the limiter lets requests through and logs a
warning, so an outage of the cache never blocks publishing.
"""

import time
from typing import Dict, Optional
from uuid import uuid4

import structlog
from pydantic import BaseModel
from redis import asyncio as aioredis
from redis.exceptions import RedisError

from postpilot.config.settings import get_settings
from postpilot.utils.error_handling import APIRateLimitError
from postpilot.utils.time import utcnow


class RateLimitResult(BaseModel):
    """Outcome of one limiter hit; ``reset`` is epoch milliseconds."""

    success: bool
    limit: int
    remaining: int
    reset: int


def format_time(ms: int) -> str:
    """Render a duration in milliseconds as ``1h 2m 3s``."""
    total_seconds = max(int(ms // 1000), 0)
    hours, remainder = divmod(total_seconds, 3600)
    minutes, seconds = divmod(remainder, 60)
    return f"{hours}h {minutes}m {seconds}s"


def rate_limit_error(result: RateLimitResult, now_ms: Optional[int] = None) -> APIRateLimitError:
    """Build the 429 error for a refused hit, including ``X-RateLimit-*`` headers."""
    now_ms = now_ms if now_ms is not None else int(time.time() * 1000)
    wait_ms = max(result.reset - now_ms, 0)
    return APIRateLimitError(
        f"Too many requests. Please try again after {format_time(wait_ms)}.",
        retry_after=max(wait_ms // 1000, 1),
        headers={
            "X-RateLimit-Limit": str(result.limit),
            "X-RateLimit-Remaining": str(result.remaining),
            "X-RateLimit-Reset": str(result.reset),
        }
    )


class SlidingWindowLimiter:
    """Allow ``limit`` hits per ``window_seconds`` for each identifier."""

    def __init__(
        self,
        limit: int,
        window_seconds: int,
        prefix: str,
        redis: Optional[aioredis.Redis] = None
    ):
        self.limit = limit
        self.window_ms = window_seconds * 1000
        self.prefix = prefix
        self._redis = redis
        self.logger = structlog.get_logger(__name__)

    @property
    def redis(self) -> aioredis.Redis:
        if self._redis is None:
            self._redis = aioredis.from_url(get_settings().redis_url, decode_responses=True)
        return self._redis

    async def hit(self, identifier: str, now_ms: Optional[int] = None) -> RateLimitResult:
        """Record one request for ``identifier`` and report whether it is allowed."""
        now_ms = now_ms if now_ms is not None else int(utcnow().timestamp() * 1000)
        key = f"{self.prefix}:{identifier}"
        member = f"{now_ms}:{uuid4().hex}"

        try:
            pipe = self.redis.pipeline(transaction=True)
            pipe.zremrangebyscore(key, 0, now_ms - self.window_ms)
            pipe.zadd(key, {member: now_ms})
            pipe.zcard(key)
            pipe.zrange(key, 0, 0, withscores=True)
            pipe.pexpire(key, self.window_ms)
            _, _, count, oldest, _ = await pipe.execute()

            oldest_ms = int(oldest[0][1]) if oldest else now_ms
            reset = oldest_ms + self.window_ms

            if count > self.limit:
                await self.redis.zrem(key, member)
                self.logger.warning(
                    "Rate limit exceeded",
                    prefix=self.prefix,
                    identifier=identifier,
                    limit=self.limit
                )
                return RateLimitResult(success=False, limit=self.limit, remaining=0, reset=reset)

            return RateLimitResult(
                success=True,
                limit=self.limit,
                remaining=max(self.limit - count, 0),
                reset=reset
            )

        except RedisError as e:
            self.logger.warning(
                "Rate limiter unavailable, allowing request",
                prefix=self.prefix,
                error=str(e)
            )
            return RateLimitResult(
                success=True,
                limit=self.limit,
                remaining=self.limit,
                reset=now_ms + self.window_ms
            )

    async def enforce(self, identifier: str) -> RateLimitResult:
        """Like ``hit`` but raises ``APIRateLimitError`` when refused."""
        result = await self.hit(identifier)
        if not result.success:
            raise rate_limit_error(result)
        return result


def build_rate_limiters(redis: Optional[aioredis.Redis] = None) -> Dict[str, SlidingWindowLimiter]:
    """Limiters keyed by the action they protect."""
    settings = get_settings()
    return {
        "social_post": SlidingWindowLimiter(
            limit=settings.social_post_rate_limit,
            window_seconds=settings.social_post_rate_window_seconds,
            prefix="ratelimit:social-post",
            redis=redis,
        ),
    }


rate_limiters = build_rate_limiters()
