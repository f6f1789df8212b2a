"""Redis-backed TTL cache for JSON payloads."""

import json
from typing import Any, Optional

from redis.asyncio import Redis
from redis.exceptions import RedisError

from weatherscope.config import Settings
from weatherscope.logging_config import logger


def build_redis_client(settings: Settings) -> Redis:
    """Create the asyncio Redis client described by the settings."""
    return Redis(
        host=settings.redis_host,
        port=settings.redis_port,
        db=settings.redis_db,
        decode_responses=True,
    )


class TTLCache:
    """Key-value store whose entries expire after a fixed duration.

    Values are stored as JSON so that a hit returns exactly what was saved.
    Redis failures are logged and behave like a miss, so the cache never
    fails a request.
    """

    def __init__(self, client: Redis, default_ttl_s: int):
        self.redis_client = client
        self.default_ttl_s = default_ttl_s

    async def get(self, key: str) -> Optional[Any]:
        """Get a value from Redis.

        Args:
            key: Cache key.

        Returns:
            The decoded value if present, otherwise None.
        """
        try:
            raw = await self.redis_client.get(key)
        except RedisError as exc:
            logger.error("REDIS_GET_FAILED", key=key, error=str(exc))
            return None
        return json.loads(raw) if raw is not None else None

    async def set(self, key: str, value: Any, ttl_s: Optional[int] = None) -> None:
        """Save a value to Redis.

        Args:
            key: Cache key.
            value: JSON serializable value.
            ttl_s: Expiry in seconds, the cache default when omitted.
        """
        ttl = ttl_s if ttl_s is not None else self.default_ttl_s
        try:
            await self.redis_client.set(
                key, json.dumps(value), ex=ttl if ttl > 0 else None
            )
        except RedisError as exc:
            logger.error("REDIS_SET_FAILED", key=key, error=str(exc))
