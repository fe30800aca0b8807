"""
Redis client management module.

The Redis instance backs the click buffer (queue + live counters) and the
analytics cache. A single manager is created by the application on startup
and handed to whatever needs a client; nothing connects at import time.
"""

from typing import Optional

import redis.asyncio as redis
from loguru import logger
from redis.asyncio.connection import ConnectionPool
from redis.exceptions import RedisError


class RedisClientManager:
    """
    Async Redis client manager with connection pooling.

    Features:
    - Lazy connection pooling
    - Connection health checking
    """

    def __init__(self, url: str, max_connections: int = 20):
        self.url = url
        self.max_connections = max_connections
        self._connection_pool: Optional[ConnectionPool] = None
        self._client: Optional[redis.Redis] = None

    def _initialize(self) -> None:
        """Create the connection pool. No connection is opened until first use."""
        self._connection_pool = redis.ConnectionPool.from_url(
            self.url,
            max_connections=self.max_connections,
            decode_responses=True
        )
        logger.debug("Redis connection pool created", url=self.url)

    async def get_client(self) -> redis.Redis:
        """
        Get a Redis client instance backed by the shared connection pool.

        Returns:
            redis.Redis: Redis client instance
        """
        if self._client is None:
            if self._connection_pool is None:
                self._initialize()
            self._client = redis.Redis(connection_pool=self._connection_pool)
        return self._client

    async def ping(self) -> bool:
        """Test the Redis connection with a ping command."""
        try:
            client = await self.get_client()
            result = await client.ping()
            return bool(result)
        except RedisError as e:
            logger.error(f"Redis ping failed: {e}")
            return False

    async def close(self) -> None:
        """Close the Redis client and connection pool."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

        if self._connection_pool is not None:
            await self._connection_pool.disconnect()
            self._connection_pool = None

        logger.debug("Redis connections closed")
