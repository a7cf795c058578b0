from __future__ import annotations

import logging

import redis
from redis import asyncio as redis_asyncio

logger = logging.getLogger(__name__)


def create_redis_client(redis_url: str, timeout_seconds: float = 1.0) -> redis_asyncio.Redis:
    """Async client bound to the running event loop; the caller closes it with ``aclose()``."""
    if not redis_url:
        raise RuntimeError("REDIS_URL is not set")
    return redis_asyncio.from_url(
        redis_url,
        socket_connect_timeout=timeout_seconds,
        socket_timeout=timeout_seconds,
    )


async def ping_redis(redis_url: str | None, timeout_seconds: float = 1.0) -> bool:
    if not redis_url:
        return False
    client = create_redis_client(redis_url, timeout_seconds)
    try:
        return bool(await client.ping())
    except redis.RedisError as exc:
        logger.warning("redis_ping_failed", extra={"reason": str(exc)})
        return False
    finally:
        await client.aclose()
