"""
Redis connection management.

Provides the async Redis client backing the render cache. Rendered payloads
are binary, so responses are not decoded.
"""

from typing import Optional

from redis.asyncio import ConnectionPool, Redis

from feedboard.core.config import settings
from feedboard.core.logging import get_logger

logger = get_logger(__name__)

# Global connection pool
_redis_pool: Optional[ConnectionPool] = None
_redis_client: Optional[Redis] = None


async def init_redis() -> Redis:
    """
    Initialize Redis connection pool.

    Called lazily on first use of the render cache.
    """
    global _redis_pool, _redis_client

    if _redis_pool is None:
        logger.info("initializing_redis_pool", url=settings.REDIS_URL)

        _redis_pool = ConnectionPool.from_url(
            settings.REDIS_URL,
            decode_responses=False,
            max_connections=20,
            socket_connect_timeout=5,
            socket_keepalive=True,
        )
        _redis_client = Redis(connection_pool=_redis_pool)

        try:
            await _redis_client.ping()
            logger.info("redis_connection_successful")
        except Exception as e:
            logger.error("redis_connection_failed", error=str(e))
            raise

    return _redis_client


async def get_redis() -> Redis:
    """Get Redis client instance."""
    if _redis_client is None:
        return await init_redis()
    return _redis_client


async def close_redis() -> None:
    """
    Close Redis connection pool.

    Called during application shutdown.
    """
    global _redis_pool, _redis_client

    if _redis_client is not None:
        logger.info("closing_redis_connection")
        await _redis_client.aclose()
        _redis_client = None

    if _redis_pool is not None:
        await _redis_pool.disconnect()
        _redis_pool = None
