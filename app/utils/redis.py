import logging
from typing import Optional

import redis
import redis.asyncio as aioredis
from redis import ConnectionPool

from app.core.config import settings

logger = logging.getLogger(__name__)

# Create connection pool for better performance
redis_pool = ConnectionPool(
    host=settings.REDIS_HOST,
    port=settings.REDIS_PORT,
    db=settings.REDIS_DB,
    decode_responses=True,
    max_connections=20,
    retry_on_timeout=True,
    socket_timeout=5,
    socket_connect_timeout=5,
    socket_keepalive=True,
    health_check_interval=30,
)

redis_client = redis.Redis(connection_pool=redis_pool)

_async_redis_client: Optional[aioredis.Redis] = None


def get_redis_client() -> redis.Redis:
    """
    Get the shared Redis client
    """
    return redis_client


async def get_async_redis_client() -> aioredis.Redis:
    """
    Lazily create the asyncio client used by middleware
    """
    global _async_redis_client
    if _async_redis_client is None:
        logger.info("Connecting rate limiter to %s", settings.REDIS_URL)
        _async_redis_client = aioredis.from_url(
            settings.REDIS_URL,
            decode_responses=True,
            socket_timeout=5,
            socket_connect_timeout=5,
        )
    return _async_redis_client
