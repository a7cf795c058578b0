from __future__ import annotations

from typing import Protocol

from kasse.domain.checkout.events import PhaseChanged


class EventPublisher(Protocol):
    def publish(self, channel: str, message: str) -> None: ...


class CheckoutEventSink(Protocol):
    def emit(self, event: PhaseChanged) -> None: ...
