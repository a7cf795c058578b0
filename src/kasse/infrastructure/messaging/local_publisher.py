from __future__ import annotations

import asyncio
import logging
from typing import Any

logger = logging.getLogger(__name__)


class LocalEventPublisher:
    """Delivers events straight to this process's WebSocket clients.

    Used when no Redis is configured; only clients connected to the same
    process receive the events.
    """

    def __init__(self, ws_manager: Any) -> None:
        self._ws_manager = ws_manager
        self._pending: set[asyncio.Task[None]] = set()

    def publish(self, channel: str, message: str) -> None:
        _, _, terminal_id = channel.partition(":")
        if not terminal_id:
            logger.warning("local_publish_invalid_channel", extra={"channel": channel})
            return

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.info("local_publish_without_loop", extra={"channel": channel})
            return

        task = loop.create_task(
            self._ws_manager.broadcast(terminal_id=terminal_id, message_json_str=message)
        )
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
