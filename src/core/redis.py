# ruff: noqa: PLW0603
"""Redis client for the forum.

Two key families live here:
- ``forum:posts:*``: cached post listing pages (string, TTL)
- ``forum:post:{id}:lock``: lock serializing reply writes on one post
"""

import redis.asyncio as redis

from src.config import get_settings
from src.core.logging import get_logger


logger = get_logger(__name__)

KEY_NAMESPACE = "forum"

_client: redis.Redis | None = None


def post_lock_name(post_id: str) -> str:
    """Name of the lock serializing reply writes on one post."""
    return f"{KEY_NAMESPACE}:post:{post_id}:lock"


def posts_cache_pattern() -> str:
    """Glob matching every cached post listing."""
    return f"{KEY_NAMESPACE}:posts:*"


async def init_redis() -> redis.Redis:
    """Create the pooled client and check it answers PING.

    Raises:
        redis.ConnectionError: Server unreachable (client is discarded)
    """
    global _client

    settings = get_settings()
    client = redis.from_url(
        settings.redis_url,
        decode_responses=True,
        max_connections=settings.redis_max_connections,
        socket_timeout=settings.redis_socket_timeout,
        socket_connect_timeout=settings.redis_socket_connect_timeout,
        retry_on_timeout=settings.redis_retry_on_timeout,
        health_check_interval=settings.redis_health_check_interval,
    )

    try:
        await client.ping()
    except redis.ConnectionError as e:
        logger.warning("redis_unreachable", url=settings.redis_url, error=str(e))
        await client.aclose()
        raise

    _client = client
    logger.info("redis_connected", url=settings.redis_url)
    return _client


async def shutdown_redis() -> None:
    global _client

    if _client is not None:
        await _client.aclose()
        _client = None
        logger.info("redis_disconnected")


def get_redis() -> redis.Redis | None:
    """Current client, or None before startup / after a failed connect."""
    return _client
