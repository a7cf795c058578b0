from __future__ import annotations

from collections.abc import Callable
from typing import Protocol

from kasse.domain.checkout.entities import CheckoutSession


class ScheduledEvent(Protocol):
    @property
    def cancelled(self) -> bool: ...

    def cancel(self) -> None: ...


class Scheduler(Protocol):
    def schedule(self, delay_seconds: float, callback: Callable[[], None]) -> ScheduledEvent: ...


# Decides whether a cancel request really discards the session.
ConfirmCancel = Callable[[CheckoutSession], bool]


def always_confirm(_: CheckoutSession) -> bool:
    return True
