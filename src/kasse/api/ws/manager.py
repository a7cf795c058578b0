from __future__ import annotations

import asyncio
import logging

from fastapi import WebSocket

logger = logging.getLogger(__name__)

# A terminal display that cannot take a frame within this window is dropped.
SEND_TIMEOUT_SECONDS = 2.0


class ConnectionManager:
    """Terminal displays following the checkout events of their terminal.

    One slow or broken display never holds up the others: a broadcast sends
    to every display of the terminal at once and drops those that fail or
    time out.
    """

    def __init__(self, send_timeout_seconds: float = SEND_TIMEOUT_SECONDS) -> None:
        self._send_timeout_seconds = send_timeout_seconds
        self._displays: dict[str, set[WebSocket]] = {}
        self._lock = asyncio.Lock()

    def display_count(self, terminal_id: str) -> int:
        return len(self._displays.get(terminal_id, ()))

    async def register(self, websocket: WebSocket, terminal_id: str) -> None:
        await websocket.accept()
        async with self._lock:
            self._displays.setdefault(terminal_id, set()).add(websocket)
        logger.info("ws_display_connected", extra={"terminal_id": terminal_id})

    async def unregister(self, websocket: WebSocket, terminal_id: str) -> None:
        async with self._lock:
            displays = self._displays.get(terminal_id)
            if displays is None or websocket not in displays:
                return
            displays.discard(websocket)
            if not displays:
                del self._displays[terminal_id]
        logger.info("ws_display_disconnected", extra={"terminal_id": terminal_id})

    async def broadcast(self, terminal_id: str, message_json_str: str) -> None:
        async with self._lock:
            targets = list(self._displays.get(terminal_id, ()))
        if not targets:
            return

        results = await asyncio.gather(
            *(self._send(websocket, message_json_str) for websocket in targets),
            return_exceptions=True,
        )
        for websocket, result in zip(targets, results):
            if isinstance(result, Exception):
                logger.warning(
                    "ws_display_dropped",
                    extra={"terminal_id": terminal_id, "reason": type(result).__name__},
                )
                await self.unregister(websocket, terminal_id)

    async def _send(self, websocket: WebSocket, message_json_str: str) -> None:
        await asyncio.wait_for(websocket.send_text(message_json_str), self._send_timeout_seconds)
