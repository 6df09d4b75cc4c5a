"""
Redis Configuration

Async Redis client used for the message queue and rate limiting.
Redis is optional in development: callers check ``get_redis_client()`` and
fall back to in-process behaviour when it returns None.
"""

import logging

from redis.asyncio import Redis, from_url

from grantflow.core.config import settings

logger = logging.getLogger(__name__)

# Redis client instance
redis_client: Redis | None = None


async def init_redis() -> Redis:
    """
    Initialize Redis connection.

    Call this on application startup.
    """
    global redis_client
    redis_client = from_url(
        settings.redis_url,
        encoding="utf-8",
        decode_responses=True,
    )
    # Test connection
    await redis_client.ping()
    return redis_client


def get_redis_client() -> Redis | None:
    """Return the shared client, or None if Redis was not initialized."""
    return redis_client


async def get_redis() -> Redis | None:
    """
    FastAPI dependency returning the Redis client.

    Returns None if Redis is not available (optional dependency).
    """
    return redis_client


async def close_redis() -> None:
    """Close Redis connection."""
    global redis_client
    if redis_client:
        await redis_client.aclose()
        redis_client = None
