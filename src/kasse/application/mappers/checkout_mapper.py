from __future__ import annotations

from collections.abc import Sequence

from kasse.application.dto.responses import (
    CheckoutResponse,
    FieldErrorResponse,
    FinalizationWarningResponse,
    LineItemResponse,
    MoneyResponse,
    PhaseChangeResponse,
)
from kasse.domain.checkout.cash import InvalidAmountError, compute_change, compute_presets
from kasse.domain.checkout.entities import CheckoutSession, PaymentMethod
from kasse.domain.checkout.phases import CheckoutPhase
from kasse.domain.checkout.validation import ComplianceRules, FieldError
from kasse.domain.common.money import Money, parse_amount


def _money(value: Money) -> MoneyResponse:
    return MoneyResponse(amountCents=value.amount_cents, currency=value.currency)


def _change_due(session: CheckoutSession) -> MoneyResponse | None:
    if session.payment_method != PaymentMethod.CASH:
        return None
    tendered = parse_amount(session.amount_tendered)
    if tendered is None:
        return None
    try:
        change = compute_change(tendered, session.total.to_decimal())
    except InvalidAmountError:
        # A negative change is never shown.
        return None
    return _money(Money.from_decimal(change, session.currency))


def to_checkout_response(
    session: CheckoutSession,
    rules: ComplianceRules,
    field_errors: Sequence[FieldError] = (),
) -> CheckoutResponse:
    presets: list[int] = []
    if session.payment_method == PaymentMethod.CASH:
        presets = compute_presets(session.total.to_decimal())

    return CheckoutResponse(
        checkoutId=str(session.checkout_id),
        terminalId=str(session.terminal_id),
        tableId=str(session.table_id),
        cashierId=str(session.cashier_id),
        customerId=str(rules.effective_customer_id(session.customer_id)),
        presentation=session.presentation.value,
        phase=session.phase.value,
        lineItems=[
            LineItemResponse(
                productId=str(item.product_id),
                name=item.name,
                quantity=item.quantity,
                unitPrice=_money(item.unit_price),
                taxClass=item.tax_class.value,
                lineTotal=_money(item.line_total),
            )
            for item in session.line_items
        ],
        total=_money(session.total),
        paymentMethod=session.payment_method.value if session.payment_method else None,
        amountTendered=session.amount_tendered,
        changeDue=_change_due(session),
        cashPresets=presets,
        fiscalSignatureRequired=session.fiscal_signature_required,
        notes=session.notes,
        cartId=str(session.cart_id) if session.cart_id else None,
        paymentId=str(session.payment_id) if session.payment_id else None,
        lastError=session.last_error,
        fieldErrors=[
            FieldErrorResponse(field=error.field, code=error.code, message=error.message)
            for error in field_errors
        ],
        warnings=[
            FinalizationWarningResponse(
                step=warning.step,
                cartId=str(warning.cart_id),
                message=warning.message,
                occurredAt=warning.occurred_at,
            )
            for warning in session.warnings
        ],
        history=[
            PhaseChangeResponse(
                fromPhase=change.from_phase.value,
                toPhase=change.to_phase.value,
                occurredAt=change.occurred_at,
                message=change.message,
            )
            for change in session.history
        ],
        canSubmit=session.is_submittable,
        canCancel=session.is_editable,
        canRetryPrint=session.phase == CheckoutPhase.PRINT_ERROR,
        canSkipPrint=session.phase == CheckoutPhase.PRINT_ERROR,
        createdAt=session.created_at,
    )
