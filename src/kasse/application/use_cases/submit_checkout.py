from __future__ import annotations

from kasse.application.dto.responses import CheckoutResponse
from kasse.application.ports.repositories import CheckoutStore
from kasse.application.use_cases.open_checkout import load_checkout, present
from kasse.domain.common.ids import CheckoutId


class SubmitCheckout:
    """Runs capture, order finalization and receipt printing for a checkout.

    Collaborator failures are reflected in the returned checkout
    (``phase``, ``lastError``, ``warnings``) rather than raised.
    """

    def __init__(self, store: CheckoutStore) -> None:
        self._store = store

    async def execute(self, checkout_id: CheckoutId) -> CheckoutResponse:
        machine = load_checkout(self._store, checkout_id)
        await machine.submit()
        return present(machine)


class RetryReceiptPrint:
    def __init__(self, store: CheckoutStore) -> None:
        self._store = store

    async def execute(self, checkout_id: CheckoutId) -> CheckoutResponse:
        machine = load_checkout(self._store, checkout_id)
        await machine.retry_print()
        return present(machine)


class SkipReceiptPrint:
    def __init__(self, store: CheckoutStore) -> None:
        self._store = store

    async def execute(self, checkout_id: CheckoutId) -> CheckoutResponse:
        machine = load_checkout(self._store, checkout_id)
        await machine.skip_print()
        return present(machine)
