from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass

from kasse.application.mappers.event_envelope import serialize_phase_changed_event
from kasse.application.ports.publisher import EventPublisher
from kasse.domain.checkout.events import PhaseChanged

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TraceContext:
    trace_id: str | None
    request_id: str | None


def _empty_context() -> TraceContext:
    return TraceContext(trace_id=None, request_id=None)


class PublishingCheckoutEventSink:
    """Publishes every phase change on the terminal's event channel."""

    def __init__(
        self,
        publisher: EventPublisher,
        context_provider: Callable[[], TraceContext] = _empty_context,
    ) -> None:
        self._publisher = publisher
        self._context_provider = context_provider

    def emit(self, event: PhaseChanged) -> None:
        trace_ctx = self._context_provider()
        message = serialize_phase_changed_event(
            event=event,
            trace_id=trace_ctx.trace_id,
            request_id=trace_ctx.request_id,
        )
        try:
            self._publisher.publish(channel=f"events:{event.terminal_id}", message=message)
        except Exception:
            logger.warning(
                "checkout_event_publish_failed",
                extra={"checkout_id": event.checkout_id, "to_phase": event.to_phase.value},
                exc_info=True,
            )
