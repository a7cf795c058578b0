from __future__ import annotations

import logging
import re

from fastapi import APIRouter, WebSocket, WebSocketDisconnect, status

from kasse.api.ws.manager import ConnectionManager

router = APIRouter()
logger = logging.getLogger(__name__)

TERMINAL_ID_PATTERN = re.compile(r"^[A-Za-z0-9_-]{1,64}$")


@router.websocket("/ws")
async def terminal_events(websocket: WebSocket) -> None:
    """Stream the checkout events of one terminal; a text ``ping`` is answered with ``pong``."""
    terminal_id = websocket.query_params.get("terminal_id") or ""
    if not TERMINAL_ID_PATTERN.match(terminal_id):
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION, reason="invalid terminal_id")
        return

    manager: ConnectionManager = websocket.app.state.ws_manager
    await manager.register(websocket, terminal_id)
    try:
        while True:
            if await websocket.receive_text() == "ping":
                await websocket.send_text("pong")
    except WebSocketDisconnect:
        pass
    except Exception:
        logger.exception("ws_display_error", extra={"terminal_id": terminal_id})
    finally:
        await manager.unregister(websocket, terminal_id)
