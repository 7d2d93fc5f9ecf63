"""
Redis client construction.

A listener is handed a ready client rather than reaching for a module-level
pool. ``create_redis_client()`` builds that client from settings: a bounded
connection pool, short socket timeouts, periodic health checks on idle
connections and ``decode_responses=True`` so expired keys arrive as ``str``.
Key names that are not valid UTF-8 are backslash-escaped, not rejected.

Examples:
    >>> from expirewatch.settings import ExpireWatchSettings
    >>> client = create_redis_client(ExpireWatchSettings(redis_host="cache"))
    >>> check_redis(client)
    True

Tags:
    redis, connection-pool, factory, health-check, expirewatch
"""

from __future__ import annotations

import redis

from expirewatch.errors import StoreConnectionError
from expirewatch.logging import get_logger
from expirewatch.settings import ExpireWatchSettings

logger = get_logger(__name__)


def create_redis_client(settings: ExpireWatchSettings) -> redis.Redis:
    """Create a pooled ``redis.Redis`` client from *settings*.

    ``settings.redis_url`` wins over the host/port/password/db fields.

    Raises:
        StoreConnectionError: The URL could not be parsed or the pool could
            not be created.
    """
    pool_kwargs = {
        "max_connections": settings.redis_max_connections,
        "socket_timeout": settings.redis_socket_timeout,
        "socket_connect_timeout": settings.redis_socket_timeout,
        "health_check_interval": settings.redis_health_check_interval,
        "decode_responses": True,
        "encoding_errors": "backslashreplace",
    }
    try:
        if settings.redis_url:
            pool = redis.ConnectionPool.from_url(settings.redis_url, **pool_kwargs)
        else:
            pool = redis.ConnectionPool(
                host=settings.redis_host,
                port=settings.redis_port,
                password=settings.redis_password,
                db=settings.redis_db,
                **pool_kwargs,
            )
    except (ValueError, redis.RedisError) as e:
        logger.error("redis_pool_init_failed", error=str(e))
        raise StoreConnectionError("Could not initialize Redis connection pool", cause=e) from e

    kwargs = pool.connection_kwargs
    logger.info(
        "redis_pool_initialized",
        max_connections=settings.redis_max_connections,
        host=kwargs.get("host"),
        port=kwargs.get("port"),
        db=kwargs.get("db", 0),
    )
    return redis.Redis(connection_pool=pool)


def check_redis(client: redis.Redis) -> bool:
    """``PING`` Redis. Raises if Redis is unreachable."""
    try:
        return bool(client.ping())
    except redis.RedisError as e:
        raise StoreConnectionError("Redis did not answer PING", cause=e) from e


def close_redis_client(client: redis.Redis) -> None:
    """Close *client* and disconnect every pooled connection."""
    client.close()
    client.connection_pool.disconnect()
    logger.info("redis_pool_closed")


__all__ = ["create_redis_client", "check_redis", "close_redis_client"]
