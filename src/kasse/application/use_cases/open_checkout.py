from __future__ import annotations

import logging
from collections.abc import Sequence
from datetime import datetime, timezone
from uuid import uuid4

from kasse.application.dto.requests import LineItemRequest, OpenCheckoutRequest
from kasse.application.dto.responses import CheckoutResponse
from kasse.application.mappers.checkout_mapper import to_checkout_response
from kasse.application.metrics.checkout_lifecycle import record_active_checkouts
from kasse.application.ports.repositories import CheckoutStore
from kasse.application.use_cases.checkout import CheckoutCollaborators, CheckoutStateMachine
from kasse.domain.checkout.entities import (
    CheckoutSession,
    LineItem,
    PaymentMethod,
    create_line_item,
)
from kasse.domain.common.ids import (
    CashierId,
    CheckoutId,
    CustomerId,
    ProductId,
    TableId,
    TerminalId,
)
from kasse.domain.common.money import Money

logger = logging.getLogger(__name__)


class CheckoutNotFoundError(Exception):
    pass


class CheckoutAlreadyOpenError(Exception):
    def __init__(self, message: str, checkout_id: CheckoutId) -> None:
        super().__init__(message)
        self.checkout_id = checkout_id
        self.details = {"checkoutId": str(checkout_id)}


def to_line_items(items: Sequence[LineItemRequest], currency: str) -> list[LineItem]:
    return [
        create_line_item(
            product_id=ProductId(item.product_id),
            name=item.name,
            quantity=item.quantity,
            unit_price=Money.from_decimal(item.unit_price, currency),
            tax_class=item.tax_class,
        )
        for item in items
    ]


def present(machine: CheckoutStateMachine) -> CheckoutResponse:
    return to_checkout_response(machine.session, machine.rules, machine.field_errors)


def load_checkout(store: CheckoutStore, checkout_id: CheckoutId) -> CheckoutStateMachine:
    machine = store.get(checkout_id)
    if machine is None:
        raise CheckoutNotFoundError(f"checkout {checkout_id} not found")
    return machine


class OpenCheckout:
    """Starts a checkout for one table, seeded with the cart's line items."""

    def __init__(
        self,
        store: CheckoutStore,
        collaborators: CheckoutCollaborators,
        currency: str = "EUR",
    ) -> None:
        self._store = store
        self._collaborators = collaborators
        self._currency = currency

    def execute(self, terminal_id: TerminalId, request: OpenCheckoutRequest) -> CheckoutResponse:
        table_id = TableId(request.table_id.strip())
        existing = self._store.find_open_for_table(terminal_id, table_id)
        if existing is not None:
            raise CheckoutAlreadyOpenError(
                f"table {table_id} already has an open checkout on terminal {terminal_id}",
                checkout_id=existing.session.checkout_id,
            )

        rules = self._collaborators.validation_gate.rules
        method = request.payment_method
        session = CheckoutSession(
            checkout_id=CheckoutId(str(uuid4())),
            terminal_id=terminal_id,
            table_id=table_id,
            cashier_id=CashierId(request.cashier_id),
            presentation=request.presentation,
            currency=self._currency,
            created_at=datetime.now(timezone.utc),
            line_items=to_line_items(request.line_items, self._currency),
            customer_id=CustomerId(request.customer_id) if request.customer_id else None,
            payment_method=method,
            amount_tendered=request.amount_tendered if method == PaymentMethod.CASH else None,
            notes=request.notes,
            fiscal_signature_required=rules.requires_fiscal_signature(method),
            phase=request.presentation.initial_phase,
        )

        machine = CheckoutStateMachine(
            session=session,
            collaborators=self._collaborators,
            on_closed=self._on_closed,
        )
        self._store.add(machine)
        record_active_checkouts(self._store.count())
        logger.info(
            "checkout_opened",
            extra={
                "checkout_id": session.checkout_id,
                "terminal_id": terminal_id,
                "table_id": table_id,
                "phase": session.phase.value,
            },
        )
        return present(machine)

    def _on_closed(self, session: CheckoutSession) -> None:
        self._store.remove(session.checkout_id)
        record_active_checkouts(self._store.count())
        logger.info(
            "checkout_closed",
            extra={"checkout_id": session.checkout_id, "phase": session.phase.value},
        )


class GetCheckout:
    def __init__(self, store: CheckoutStore) -> None:
        self._store = store

    def execute(self, checkout_id: CheckoutId) -> CheckoutResponse:
        return present(load_checkout(self._store, checkout_id))
