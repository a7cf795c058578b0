from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from kasse.domain.checkout.phases import CheckoutPhase
from kasse.domain.common.ids import CartId, CheckoutId, PaymentId, TableId, TerminalId


@dataclass(frozen=True)
class PhaseChanged:
    checkout_id: CheckoutId
    terminal_id: TerminalId
    table_id: TableId
    from_phase: CheckoutPhase
    to_phase: CheckoutPhase
    occurred_at: datetime
    message: str | None = None
    payment_id: PaymentId | None = None


@dataclass(frozen=True)
class FinalizationWarning:
    step: str
    cart_id: CartId
    message: str
    occurred_at: datetime
