from __future__ import annotations

import asyncio
import logging
from typing import Any

from redis import asyncio as redis_asyncio

from kasse.infrastructure.cache.redis_client import create_redis_client

logger = logging.getLogger(__name__)

EVENTS_PATTERN = "events:*"


def _decode_value(value: bytes | str | None) -> str | None:
    if value is None:
        return None
    if isinstance(value, bytes):
        return value.decode("utf-8")
    return value


async def _aclose(resource: Any) -> None:
    close = getattr(resource, "aclose", None)
    if callable(close):
        await close()
    else:
        await resource.close()


async def start_redis_fanout(app_state: Any, redis_url: str | None) -> None:
    """Forward checkout events from Redis to the terminal's WebSocket clients."""
    if not redis_url:
        logger.warning("redis_fanout_not_started", extra={"reason": "REDIS_URL missing"})
        return

    backoff_seconds = 1.0
    while True:
        client: redis_asyncio.Redis | None = None
        pubsub: redis_asyncio.client.PubSub | None = None
        try:
            client = create_redis_client(redis_url, timeout_seconds=5.0)
            pubsub = client.pubsub()
            await pubsub.psubscribe(EVENTS_PATTERN)
            logger.info("redis_fanout_subscribed", extra={"pattern": EVENTS_PATTERN})
            backoff_seconds = 1.0

            while True:
                message = await pubsub.get_message(ignore_subscribe_messages=True, timeout=1.0)
                if message is None:
                    await asyncio.sleep(0.05)
                    continue

                channel = _decode_value(message.get("channel"))
                payload = _decode_value(message.get("data"))
                if not channel or not payload:
                    continue

                _, _, terminal_id = channel.partition(":")
                if not terminal_id:
                    logger.warning("redis_fanout_invalid_channel", extra={"channel": channel})
                    continue

                await app_state.ws_manager.broadcast(
                    terminal_id=terminal_id,
                    message_json_str=payload,
                )
        except asyncio.CancelledError:
            logger.info("redis_fanout_cancelled")
            raise
        except Exception:
            logger.exception(
                "redis_fanout_error",
                extra={"backoff_seconds": backoff_seconds},
            )
            await asyncio.sleep(backoff_seconds)
            backoff_seconds = min(backoff_seconds * 2, 5.0)
        finally:
            if pubsub is not None:
                await _aclose(pubsub)
            if client is not None:
                await _aclose(client)
