from __future__ import annotations

from typing import Any

from kasse.application.dto.requests import UpdateCheckoutRequest
from kasse.application.dto.responses import CheckoutResponse
from kasse.application.ports.repositories import CheckoutStore
from kasse.application.use_cases.checkout import FieldEdits
from kasse.application.use_cases.open_checkout import load_checkout, present, to_line_items
from kasse.domain.common.ids import CheckoutId, CustomerId


class UpdateCheckout:
    """Applies operator field edits; only fields sent in the body change."""

    def __init__(self, store: CheckoutStore) -> None:
        self._store = store

    def execute(self, checkout_id: CheckoutId, request: UpdateCheckoutRequest) -> CheckoutResponse:
        machine = load_checkout(self._store, checkout_id)
        fields = request.model_fields_set
        values: dict[str, Any] = {}

        if "line_items" in fields:
            values["line_items"] = to_line_items(request.line_items or [], machine.session.currency)
        if "customer_id" in fields:
            customer_id = request.customer_id.strip() if request.customer_id else None
            values["customer_id"] = CustomerId(customer_id) if customer_id else None
        if "payment_method" in fields:
            values["payment_method"] = request.payment_method
        if "amount_tendered" in fields:
            values["amount_tendered"] = request.amount_tendered
        if "notes" in fields:
            values["notes"] = request.notes

        machine.apply_edits(FieldEdits.of(**values))
        return present(machine)


class AdvanceCheckout:
    def __init__(self, store: CheckoutStore) -> None:
        self._store = store

    def execute(self, checkout_id: CheckoutId) -> CheckoutResponse:
        machine = load_checkout(self._store, checkout_id)
        machine.advance()
        return present(machine)


class GoBackCheckout:
    def __init__(self, store: CheckoutStore) -> None:
        self._store = store

    def execute(self, checkout_id: CheckoutId) -> CheckoutResponse:
        machine = load_checkout(self._store, checkout_id)
        machine.go_back()
        return present(machine)


class VerifyFiscalDevice:
    def __init__(self, store: CheckoutStore) -> None:
        self._store = store

    async def execute(self, checkout_id: CheckoutId) -> CheckoutResponse:
        machine = load_checkout(self._store, checkout_id)
        await machine.verify_fiscal_device()
        return present(machine)
