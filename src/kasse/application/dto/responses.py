from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field


class MoneyResponse(BaseModel):
    amountCents: int
    currency: str


class LineItemResponse(BaseModel):
    productId: str
    name: str
    quantity: int
    unitPrice: MoneyResponse
    taxClass: str
    lineTotal: MoneyResponse


class FieldErrorResponse(BaseModel):
    field: str
    code: str
    message: str


class FinalizationWarningResponse(BaseModel):
    step: str
    cartId: str
    message: str
    occurredAt: datetime


class PhaseChangeResponse(BaseModel):
    fromPhase: str
    toPhase: str
    occurredAt: datetime
    message: str | None = None


class CheckoutResponse(BaseModel):
    checkoutId: str
    terminalId: str
    tableId: str
    cashierId: str
    customerId: str
    presentation: str
    phase: str
    lineItems: list[LineItemResponse] = Field(default_factory=list)
    total: MoneyResponse
    paymentMethod: str | None = None
    amountTendered: str | None = None
    changeDue: MoneyResponse | None = None
    cashPresets: list[int] = Field(default_factory=list)
    fiscalSignatureRequired: bool
    notes: str | None = None
    cartId: str | None = None
    paymentId: str | None = None
    lastError: str | None = None
    fieldErrors: list[FieldErrorResponse] = Field(default_factory=list)
    warnings: list[FinalizationWarningResponse] = Field(default_factory=list)
    history: list[PhaseChangeResponse] = Field(default_factory=list)
    canSubmit: bool
    canCancel: bool
    canRetryPrint: bool
    canSkipPrint: bool
    createdAt: datetime


class CashQuoteResponse(BaseModel):
    total: Decimal
    presets: list[int] = Field(default_factory=list)
    tendered: Decimal | None = None
    change: Decimal | None = None
