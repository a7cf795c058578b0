from __future__ import annotations

import json
import queue
import sys
import threading
import time
from pathlib import Path

from fastapi.testclient import TestClient

sys.path.insert(0, str(Path(__file__).resolve().parents[2] / "src"))

from kasse.api.main import create_app


def test_websocket_receives_checkout_phase_changes(redis_runtime) -> None:
    events: "queue.Queue[str]" = queue.Queue()
    errors: "queue.Queue[Exception]" = queue.Queue()

    with TestClient(create_app(runtime=redis_runtime())) as client:
        with client.websocket_connect("/ws?terminal_id=KASSE-002") as websocket:

            def _reader() -> None:
                try:
                    for _ in range(4):
                        events.put(websocket.receive_text())
                except Exception as exc:
                    errors.put(exc)

            reader = threading.Thread(target=_reader, daemon=True)
            reader.start()
            # give the fanout task time to subscribe
            time.sleep(0.5)

            opened = client.post(
                "/v1/terminals/KASSE-002/checkouts",
                json={
                    "tableId": "3",
                    "cashierId": "cashier-2",
                    "lineItems": [
                        {"productId": "prd_bier", "name": "Zwickl", "quantity": 1, "unitPrice": "5.10"}
                    ],
                    "paymentMethod": "card",
                },
            )
            assert opened.status_code == 201

            submitted = client.post(f"/v1/checkouts/{opened.json()['checkoutId']}/submit")
            assert submitted.status_code == 200

            reader.join(timeout=3.0)
            assert not reader.is_alive(), "timed out waiting for websocket events"
            assert errors.empty(), "unexpected websocket read error"

    raw_messages = [events.get_nowait() for _ in range(4)]
    phases = [json.loads(message)["payload"]["toPhase"] for message in raw_messages]
    assert phases == ["SUBMITTING", "FINALIZING", "PRINTING", "COMPLETED"]
