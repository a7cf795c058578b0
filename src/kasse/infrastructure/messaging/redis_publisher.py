from __future__ import annotations

import asyncio
import logging

import redis
from redis import asyncio as redis_asyncio

from kasse.infrastructure.cache.redis_client import create_redis_client

logger = logging.getLogger(__name__)


class RedisEventPublisher:
    """Publishes checkout events to Redis without blocking the caller.

    ``publish`` queues the message on the running loop and returns at once.
    Messages go out one after another in call order, so a terminal sees its
    phase changes in sequence. A Redis failure is logged and the message
    dropped; the checkout itself never waits on Redis.
    """

    def __init__(
        self,
        redis_url: str,
        timeout_seconds: float = 1.0,
        client: redis_asyncio.Redis | None = None,
    ) -> None:
        self._redis_url = redis_url
        self._timeout_seconds = timeout_seconds
        self._client = client
        self._tail: asyncio.Task[None] | None = None

    def publish(self, channel: str, message: str) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning("redis_publish_without_loop", extra={"channel": channel})
            return

        self._tail = loop.create_task(self._send_after(self._tail, channel, message))

    async def aclose(self) -> None:
        if self._tail is not None:
            await asyncio.wait({self._tail})
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def _send_after(
        self,
        previous: asyncio.Task[None] | None,
        channel: str,
        message: str,
    ) -> None:
        if previous is not None:
            await asyncio.wait({previous})
        if self._client is None:
            self._client = create_redis_client(self._redis_url, self._timeout_seconds)
        try:
            await self._client.publish(channel, message)
        except redis.RedisError as exc:
            logger.warning(
                "redis_publish_failed",
                extra={"channel": channel, "reason": str(exc)},
            )
