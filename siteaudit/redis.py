"""Redis connection utilities."""

from functools import lru_cache

from redis import ConnectionPool, Redis

from siteaudit.config import get_settings


@lru_cache
def get_redis_pool() -> ConnectionPool | None:
    """Get a cached Redis connection pool, or None when Redis is not configured."""
    settings = get_settings()
    if settings.redis_url is None:
        return None
    return ConnectionPool.from_url(
        str(settings.redis_url),
        decode_responses=True,
        max_connections=10,
    )


def get_redis_connection() -> Redis | None:
    """Get a Redis connection from the pool."""
    pool = get_redis_pool()
    if pool is None:
        return None
    return Redis(connection_pool=pool)
