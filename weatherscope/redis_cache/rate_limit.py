"""Fixed-window request counter stored in Redis."""

import time
from dataclasses import dataclass
from typing import Callable

from redis.asyncio import Redis
from redis.exceptions import RedisError

from weatherscope.logging_config import logger


@dataclass(frozen=True)
class RateLimitResult:
    allowed: bool
    limit: int
    remaining: int
    reset_s: int

    def headers(self) -> dict:
        """Standard ``RateLimit-*`` response headers for this result."""
        return {
            "RateLimit-Limit": str(self.limit),
            "RateLimit-Remaining": str(self.remaining),
            "RateLimit-Reset": str(self.reset_s),
        }


class FixedWindowRateLimiter:
    """Allow ``limit`` hits per identity in each ``window_s`` second window."""

    def __init__(
        self,
        client: Redis,
        limit: int,
        window_s: int,
        clock: Callable[[], float] = time.time,
    ):
        self.redis_client = client
        self.limit = limit
        self.window_s = window_s
        self.clock = clock

    async def hit(self, identity: str) -> RateLimitResult:
        """Count one request for the identity in the current window.

        Args:
            identity: Client identifier, usually the remote address.

        Returns:
            Whether the request is allowed and the remaining budget. Redis
            failures allow the request.
        """
        now = self.clock()
        window = int(now // self.window_s)
        reset_s = int((window + 1) * self.window_s - now)
        key = f"ratelimit:{identity}:{window}"
        try:
            async with self.redis_client.pipeline() as pipe:
                count, _ = await pipe.incr(key).expire(key, self.window_s).execute()
        except RedisError as exc:
            logger.error("RATE_LIMIT_UNAVAILABLE", identity=identity, error=str(exc))
            return RateLimitResult(True, self.limit, self.limit, reset_s)

        remaining = max(self.limit - count, 0)
        if count > self.limit:
            logger.info("RATE_LIMITED", identity=identity, count=count)
        return RateLimitResult(count <= self.limit, self.limit, remaining, reset_s)
