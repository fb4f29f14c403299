"""Sliding-window rate limiting backed by a Redis sorted set.

Each identifier (client IP) owns one sorted set whose members are request
timestamps in milliseconds. A check drops members older than the window,
records the current request and counts what is left.
"""

import time
from dataclasses import dataclass
from typing import Annotated
from uuid import uuid4

import redis.asyncio as redis
import structlog
from fastapi import Depends, HTTPException, Request, status

from folio.core.middleware import get_client_ip


logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class RateLimitResult:
    success: bool
    limit: int | None = None
    remaining: int | None = None
    reset: int | None = None  # epoch milliseconds when the window frees up


class SlidingWindowRateLimiter:
    """Allow ``requests`` calls per ``window_seconds`` for each identifier."""

    def __init__(
        self,
        redis_client: redis.Redis,
        requests: int,
        window_seconds: int,
        prefix: str = "ratelimit:api",
    ) -> None:
        self._redis = redis_client
        self.requests = requests
        self.window_ms = window_seconds * 1000
        self.prefix = prefix

    def _key(self, identifier: str) -> str:
        return f"{self.prefix}:{identifier}"

    async def limit(self, identifier: str) -> RateLimitResult:
        key = self._key(identifier)
        now_ms = int(time.time() * 1000)
        member = f"{now_ms}:{uuid4().hex}"

        pipe = self._redis.pipeline(transaction=True)
        pipe.zremrangebyscore(key, 0, now_ms - self.window_ms)
        pipe.zadd(key, {member: now_ms})
        pipe.zcard(key)
        pipe.pexpire(key, self.window_ms)
        _, _, count, _ = await pipe.execute()

        if count > self.requests:
            # Rejected calls do not consume the window
            await self._redis.zrem(key, member)
            oldest = await self._redis.zrange(key, 0, 0, withscores=True)
            reset = int(oldest[0][1]) + self.window_ms if oldest else now_ms
            return RateLimitResult(
                success=False, limit=self.requests, remaining=0, reset=reset
            )

        return RateLimitResult(
            success=True,
            limit=self.requests,
            remaining=max(self.requests - count, 0),
            reset=now_ms + self.window_ms,
        )


async def check_rate_limit(
    limiter: SlidingWindowRateLimiter | None, identifier: str
) -> RateLimitResult:
    """Check ``identifier`` against ``limiter``.

    A missing limiter (Redis not configured) allows every request.
    """
    if limiter is None:
        return RateLimitResult(success=True)
    return await limiter.limit(identifier)


async def enforce_rate_limit(request: Request) -> RateLimitResult:
    """FastAPI dependency that rejects over-limit clients with 429."""
    limiter = getattr(request.app.state, "rate_limiter", None)
    client_ip = get_client_ip(request)

    try:
        result = await check_rate_limit(limiter, client_ip)
    except redis.RedisError as e:
        logger.warning("rate_limit_check_failed", client_ip=client_ip, error=str(e))
        return RateLimitResult(success=True)

    if not result.success:
        logger.warning(
            "rate_limit_exceeded",
            client_ip=client_ip,
            path=request.url.path,
            limit=result.limit,
        )
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail="Too many requests. Please try again later.",
            headers={
                "X-RateLimit-Limit": str(result.limit),
                "X-RateLimit-Remaining": str(result.remaining),
                "X-RateLimit-Reset": str(result.reset),
            },
        )
    return result


RateLimited = Annotated[RateLimitResult, Depends(enforce_rate_limit)]
