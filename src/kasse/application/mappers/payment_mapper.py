from __future__ import annotations

from kasse.application.dto.requests import PaymentItemRequest, PaymentRequest
from kasse.domain.checkout.entities import CheckoutSession, PaymentMethod
from kasse.domain.checkout.validation import ComplianceRules
from kasse.domain.common.money import parse_amount


def to_payment_request(session: CheckoutSession, rules: ComplianceRules) -> PaymentRequest:
    if session.payment_method is None:
        raise ValueError("payment method must be selected before building a payment request")

    amount = None
    if session.payment_method == PaymentMethod.CASH:
        amount = parse_amount(session.amount_tendered)

    return PaymentRequest(
        customer_id=str(rules.effective_customer_id(session.customer_id)),
        items=[
            PaymentItemRequest(
                product_id=str(item.product_id),
                quantity=item.quantity,
                tax_class=item.tax_class,
            )
            for item in session.line_items
        ],
        payment_method=session.payment_method,
        amount=amount,
        fiscal_signature_required=session.fiscal_signature_required,
        table_id=str(session.table_id),
        cashier_id=str(session.cashier_id),
        total_amount=session.total.to_decimal(),
        fiscal_tax_id=rules.fiscal_tax_id,
        register_id=rules.register_id,
        notes=session.notes,
    )
