from __future__ import annotations

from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from kasse.domain.checkout.entities import PaymentMethod, Presentation, TaxClass
from kasse.domain.common.money import MAX_OPERATOR_AMOUNT

MAX_LINE_QUANTITY = 9999


def _to_camel(value: str) -> str:
    parts = value.split("_")
    return parts[0] + "".join(part.capitalize() for part in parts[1:])


class CamelBaseModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=_to_camel,
        populate_by_name=True,
    )


class LineItemRequest(CamelBaseModel):
    product_id: str = Field(min_length=1)
    name: str
    quantity: int = Field(ge=1, le=MAX_LINE_QUANTITY)
    unit_price: Decimal = Field(ge=0, le=MAX_OPERATOR_AMOUNT, decimal_places=2)
    tax_class: TaxClass = TaxClass.STANDARD


class OpenCheckoutRequest(CamelBaseModel):
    table_id: str
    cashier_id: str = Field(min_length=1)
    presentation: Presentation = Presentation.SINGLE_SCREEN
    line_items: list[LineItemRequest] = Field(default_factory=list)
    customer_id: str | None = None
    payment_method: PaymentMethod | None = None
    amount_tendered: str | None = None
    notes: str | None = None


class UpdateCheckoutRequest(CamelBaseModel):
    """Partial field edit; only the fields present in the body are applied."""

    line_items: list[LineItemRequest] | None = None
    customer_id: str | None = None
    payment_method: PaymentMethod | None = None
    amount_tendered: str | None = None
    notes: str | None = None


class CancelCheckoutRequest(CamelBaseModel):
    confirmed: bool = False


class PaymentItemRequest(CamelBaseModel):
    product_id: str
    quantity: int
    tax_class: TaxClass


class PaymentRequest(CamelBaseModel):
    customer_id: str
    items: list[PaymentItemRequest] = Field(min_length=1)
    payment_method: PaymentMethod
    amount: Decimal | None = None
    fiscal_signature_required: bool
    table_id: str
    cashier_id: str
    total_amount: Decimal
    fiscal_tax_id: str
    register_id: str
    notes: str | None = None
