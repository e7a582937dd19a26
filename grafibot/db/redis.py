"""
Redis connection management for conversation stores.
"""

import logging
from typing import Optional

from redis.asyncio import Redis

from grafibot.config import settings

logger = logging.getLogger(__name__)


class RedisDatabase:
    """Async Redis connection manager."""

    def __init__(self, url: Optional[str] = None):
        self.url = url or settings.redis_url
        self._client: Optional[Redis] = None

    async def init(self) -> None:
        """Connect and verify the server answers."""
        if self._client is None:
            self._client = Redis.from_url(self.url, decode_responses=True)
        await self._client.ping()
        logger.info(f"Connected to Redis at {self.url}")

    @property
    def client(self) -> Redis:
        if self._client is None:
            raise RuntimeError("Redis client not initialized. Call init() first.")
        return self._client

    async def close(self) -> None:
        """Close Redis connections."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None


# Global Redis instance
redis_db = RedisDatabase()
