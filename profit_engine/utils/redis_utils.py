"""
Redis helpers.

One place that turns settings into a Redis client or a loggable URL.
"""

import redis.asyncio as redis

from profit_engine.config.settings import settings


async def get_redis_client() -> redis.Redis:
    """
    Create Redis client for locks.

    The caller owns the client and must aclose() it.
    """
    return redis.Redis(
        host=settings.redis_host,
        port=settings.redis_port,
        password=settings.redis_password,
        db=settings.redis_db,
        decode_responses=True,
    )


def build_redis_url(mask_password: bool = True) -> str:
    """
    Build Redis URL from settings.

    Args:
        mask_password: Replace password with asterisks (for logs)

    Returns:
        redis://[:password@]host:port/db
    """
    auth = ""
    if settings.redis_password:
        secret = "****" if mask_password else settings.redis_password
        auth = f":{secret}@"
    return f"redis://{auth}{settings.redis_host}:{settings.redis_port}/{settings.redis_db}"
