from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

from kasse.application.dto.requests import PaymentRequest
from kasse.domain.common.ids import CartId, PaymentId, TableId


@dataclass(frozen=True)
class PaymentResult:
    success: bool
    payment_id: PaymentId | None = None
    error: str | None = None
    message: str | None = None


@dataclass(frozen=True)
class ActiveCart:
    cart_id: CartId
    table_id: TableId
    item_count: int = 0


@dataclass(frozen=True)
class OperationOutcome:
    ok: bool
    reason: str | None = None

    @classmethod
    def success(cls) -> OperationOutcome:
        return cls(ok=True)

    @classmethod
    def failure(cls, reason: str) -> OperationOutcome:
        return cls(ok=False, reason=reason)


@dataclass(frozen=True)
class FiscalDeviceStatus:
    connected: bool
    serial_number: str | None = None
    message: str | None = None


class PaymentGateway(Protocol):
    async def process(self, request: PaymentRequest) -> PaymentResult: ...


class CartService(Protocol):
    async def get_active_cart(self, table_id: TableId) -> ActiveCart | None: ...

    async def complete(self, cart_id: CartId, notes: str | None) -> OperationOutcome: ...

    async def reset(self, cart_id: CartId, reason: str) -> OperationOutcome: ...


class ReceiptPrinter(Protocol):
    # Repeated calls for one payment only re-emit the receipt.
    async def print(self, payment_id: PaymentId) -> OperationOutcome: ...


class FiscalDevice(Protocol):
    async def status(self) -> FiscalDeviceStatus: ...
