from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum

from kasse.domain.checkout.entities import CheckoutSession, PaymentMethod
from kasse.domain.common.ids import CustomerId
from kasse.domain.common.money import parse_amount

GUEST_CUSTOMER_ID = CustomerId("00000000-0000-0000-0000-000000000000")

_UUID_PATTERN = r"[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}"


class ComplianceMode(str, Enum):
    STRICT = "STRICT"
    STANDARD = "STANDARD"
    TRAINING = "TRAINING"


_STANDARD_SIGNED_METHODS = frozenset(
    {PaymentMethod.CASH, PaymentMethod.CARD, PaymentMethod.TRANSFER}
)


@dataclass(frozen=True)
class ComplianceRules:
    fiscal_tax_id: str = "ATU12345678"
    register_id: str = "KASSE-001"
    mode: ComplianceMode = ComplianceMode.STANDARD
    guest_customer_id: CustomerId = GUEST_CUSTOMER_ID
    fiscal_tax_id_pattern: str = r"^ATU\d{8}$"
    register_id_pattern: str = r"^KASSE-\d{3}$"
    customer_id_pattern: str = rf"^(\d{{8}}|{_UUID_PATTERN})$"
    minimum_total_cents: int = 1

    def requires_fiscal_signature(self, method: PaymentMethod | None) -> bool:
        if method is None or self.mode == ComplianceMode.TRAINING:
            return False
        if self.mode == ComplianceMode.STRICT:
            return True
        return method in _STANDARD_SIGNED_METHODS

    def effective_customer_id(self, customer_id: CustomerId | None) -> CustomerId:
        if customer_id is None or not customer_id.strip():
            return self.guest_customer_id
        return customer_id


@dataclass(frozen=True)
class FieldError:
    field: str
    code: str
    message: str


@dataclass(frozen=True)
class ValidationResult:
    errors: tuple[FieldError, ...] = ()

    @property
    def ok(self) -> bool:
        return not self.errors

    def __bool__(self) -> bool:
        return self.ok


class ValidationGate:
    """Pre-submission checks; pure, synchronous and never mutates the session."""

    def __init__(self, rules: ComplianceRules) -> None:
        self._rules = rules

    @property
    def rules(self) -> ComplianceRules:
        return self._rules

    def validate(self, session: CheckoutSession) -> ValidationResult:
        errors = [
            *self._table_errors(session),
            *self._customer_errors(session),
            *self._item_errors(session),
            *self._method_errors(session),
            *self._tender_errors(session),
            *self._compliance_errors(),
        ]
        return ValidationResult(errors=tuple(errors))

    def validate_customer(self, session: CheckoutSession) -> ValidationResult:
        return ValidationResult(errors=tuple(self._customer_errors(session)))

    def validate_method(self, session: CheckoutSession) -> ValidationResult:
        return ValidationResult(errors=tuple(self._method_errors(session)))

    def validate_amount(self, session: CheckoutSession) -> ValidationResult:
        errors = [*self._item_errors(session), *self._tender_errors(session)]
        return ValidationResult(errors=tuple(errors))

    def _table_errors(self, session: CheckoutSession) -> list[FieldError]:
        if not session.table_id or not str(session.table_id).strip():
            return [FieldError("tableId", "TABLE_REQUIRED", "a table must be assigned")]
        return []

    def _customer_errors(self, session: CheckoutSession) -> list[FieldError]:
        customer_id = session.customer_id
        if customer_id is None or not customer_id.strip():
            return []
        if re.fullmatch(self._rules.customer_id_pattern, customer_id.strip()) is None:
            return [
                FieldError(
                    "customerId",
                    "CUSTOMER_ID_INVALID",
                    "customer id must be an 8-digit customer number or a UUID",
                )
            ]
        return []

    def _item_errors(self, session: CheckoutSession) -> list[FieldError]:
        if not session.line_items:
            return [FieldError("lineItems", "ITEMS_REQUIRED", "at least one line item is required")]
        if session.total.amount_cents <= self._rules.minimum_total_cents:
            return [
                FieldError(
                    "totalAmount",
                    "TOTAL_TOO_LOW",
                    "total amount must be greater than 0.01",
                )
            ]
        return []

    def _method_errors(self, session: CheckoutSession) -> list[FieldError]:
        if session.payment_method is None:
            return [FieldError("paymentMethod", "METHOD_REQUIRED", "select a payment method")]
        return []

    def _tender_errors(self, session: CheckoutSession) -> list[FieldError]:
        if session.payment_method != PaymentMethod.CASH:
            return []
        tendered = parse_amount(session.amount_tendered)
        if tendered is None or tendered < 0:
            return [
                FieldError(
                    "amountTendered",
                    "AMOUNT_INVALID",
                    "tendered amount must be a non-negative amount with at most two decimals",
                )
            ]
        if tendered < session.total.to_decimal():
            return [
                FieldError(
                    "amountTendered",
                    "AMOUNT_TOO_LOW",
                    "tendered amount must cover the total",
                )
            ]
        return []

    def _compliance_errors(self) -> list[FieldError]:
        errors: list[FieldError] = []
        if re.fullmatch(self._rules.fiscal_tax_id_pattern, self._rules.fiscal_tax_id) is None:
            errors.append(
                FieldError("fiscalTaxId", "FISCAL_TAX_ID_INVALID", "fiscal tax id has an invalid format")
            )
        if re.fullmatch(self._rules.register_id_pattern, self._rules.register_id) is None:
            errors.append(
                FieldError("registerId", "REGISTER_ID_INVALID", "register id has an invalid format")
            )
        return errors
