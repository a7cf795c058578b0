from __future__ import annotations

import json
from datetime import datetime
from typing import Any
from uuid import uuid4

from kasse.domain.checkout.events import PhaseChanged


def _serialize_event(
    *,
    event_type: str,
    occurred_at: datetime,
    terminal_id: str,
    payload: dict[str, Any],
    trace_id: str | None,
    request_id: str | None,
) -> str:
    envelope = {
        "event_id": str(uuid4()),
        "event_type": event_type,
        "occurred_at": occurred_at.isoformat(),
        "request_id": request_id,
        "trace_id": trace_id,
        "terminal_id": terminal_id,
        "payload": payload,
    }
    return json.dumps(envelope, separators=(",", ":"), ensure_ascii=False)


def serialize_phase_changed_event(
    *,
    event: PhaseChanged,
    trace_id: str | None,
    request_id: str | None,
) -> str:
    return _serialize_event(
        event_type="checkout.phase_changed",
        occurred_at=event.occurred_at,
        terminal_id=str(event.terminal_id),
        trace_id=trace_id,
        request_id=request_id,
        payload={
            "checkoutId": str(event.checkout_id),
            "tableId": str(event.table_id),
            "fromPhase": event.from_phase.value,
            "toPhase": event.to_phase.value,
            "message": event.message,
            "paymentId": str(event.payment_id) if event.payment_id else None,
        },
    )
