from __future__ import annotations

from kasse.application.dto.requests import CancelCheckoutRequest
from kasse.application.dto.responses import CheckoutResponse
from kasse.application.ports.repositories import CheckoutStore
from kasse.application.use_cases.open_checkout import load_checkout, present
from kasse.domain.common.ids import CheckoutId


class CancelCheckout:
    """Discards an unsubmitted checkout once the operator has confirmed."""

    def __init__(self, store: CheckoutStore) -> None:
        self._store = store

    def execute(self, checkout_id: CheckoutId, request: CancelCheckoutRequest) -> CheckoutResponse:
        machine = load_checkout(self._store, checkout_id)
        machine.cancel(confirm=lambda _session: request.confirmed)
        return present(machine)
