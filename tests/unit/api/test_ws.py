from __future__ import annotations

import asyncio
import sys
from pathlib import Path

import pytest
from fastapi.testclient import TestClient
from starlette.websockets import WebSocketDisconnect

sys.path.insert(0, str(Path(__file__).resolve().parents[3] / "src"))

from kasse.api.main import create_app
from kasse.api.runtime import CheckoutRuntime
from kasse.api.ws.manager import ConnectionManager
from kasse.domain.checkout.validation import ComplianceMode
from kasse.infrastructure.config import Settings


class FakeDisplay:
    def __init__(self, delay_seconds: float = 0.0, broken: bool = False) -> None:
        self.accepted = False
        self.frames: list[str] = []
        self._delay_seconds = delay_seconds
        self._broken = broken

    async def accept(self) -> None:
        self.accepted = True

    async def send_text(self, data: str) -> None:
        await asyncio.sleep(self._delay_seconds)
        if self._broken:
            raise RuntimeError("socket closed")
        self.frames.append(data)


def _client() -> TestClient:
    settings = Settings(
        backend_url="http://backend.test/api/",
        backend_token=None,
        timeout_seconds=1.0,
        retry_max_attempts=1,
        retry_backoff_ms=0,
        fiscal_tax_id="ATU12345678",
        register_id="KASSE-001",
        compliance_mode=ComplianceMode.STANDARD,
        auto_close_seconds=1.5,
        currency="EUR",
        redis_url=None,
    )
    runtime = CheckoutRuntime(settings=settings, store=None, collaborators=None)
    return TestClient(create_app(runtime=runtime))


def test_broadcast_reaches_only_the_terminal_displays() -> None:
    manager = ConnectionManager()
    front, back, other = FakeDisplay(), FakeDisplay(), FakeDisplay()

    async def _run() -> None:
        await manager.register(front, "KASSE-001")
        await manager.register(back, "KASSE-001")
        await manager.register(other, "KASSE-002")
        await manager.broadcast("KASSE-001", '{"event_type":"checkout.phase_changed"}')

    asyncio.run(_run())

    assert front.accepted and back.accepted
    assert front.frames == ['{"event_type":"checkout.phase_changed"}']
    assert back.frames == ['{"event_type":"checkout.phase_changed"}']
    assert other.frames == []


def test_slow_and_broken_displays_are_dropped_without_holding_up_others() -> None:
    manager = ConnectionManager(send_timeout_seconds=0.05)
    healthy = FakeDisplay()
    slow = FakeDisplay(delay_seconds=1.0)
    broken = FakeDisplay(broken=True)

    async def _run() -> None:
        for display in (slow, broken, healthy):
            await manager.register(display, "KASSE-001")
        await manager.broadcast("KASSE-001", "first")
        await manager.broadcast("KASSE-001", "second")

    asyncio.run(_run())

    assert healthy.frames == ["first", "second"]
    assert slow.frames == []
    assert broken.frames == []
    assert manager.display_count("KASSE-001") == 1


def test_unregister_forgets_empty_terminal() -> None:
    manager = ConnectionManager()
    display = FakeDisplay()

    async def _run() -> None:
        await manager.register(display, "KASSE-001")
        await manager.unregister(display, "KASSE-001")
        await manager.unregister(display, "KASSE-001")
        await manager.broadcast("KASSE-001", "nobody listens")

    asyncio.run(_run())

    assert manager.display_count("KASSE-001") == 0
    assert display.frames == []


def test_websocket_answers_ping() -> None:
    with _client().websocket_connect("/ws?terminal_id=KASSE-001") as websocket:
        websocket.send_text("ping")
        assert websocket.receive_text() == "pong"


@pytest.mark.parametrize("query", ["", "?terminal_id=", "?terminal_id=KASSE%20001"])
def test_websocket_rejects_missing_or_malformed_terminal_id(query: str) -> None:
    with pytest.raises(WebSocketDisconnect) as exc_info:
        with _client().websocket_connect(f"/ws{query}") as websocket:
            websocket.receive_text()

    assert exc_info.value.code == 1008
