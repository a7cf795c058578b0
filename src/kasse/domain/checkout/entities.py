from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from kasse.domain.checkout.events import FinalizationWarning, PhaseChanged
from kasse.domain.checkout.phases import (
    BUSY_PHASES,
    EDITABLE_PHASES,
    SUBMITTABLE_PHASES,
    TERMINAL_PHASES,
    CheckoutPhase,
    transition,
)
from kasse.domain.common.ids import (
    CartId,
    CashierId,
    CheckoutId,
    CustomerId,
    PaymentId,
    ProductId,
    TableId,
    TerminalId,
)
from kasse.domain.common.money import Money


class PaymentMethod(str, Enum):
    CASH = "cash"
    CARD = "card"
    VOUCHER = "voucher"
    TRANSFER = "transfer"


class TaxClass(str, Enum):
    STANDARD = "standard"
    REDUCED = "reduced"
    SPECIAL = "special"


class Presentation(str, Enum):
    SINGLE_SCREEN = "SINGLE_SCREEN"
    WIZARD = "WIZARD"

    @property
    def initial_phase(self) -> CheckoutPhase:
        if self == Presentation.WIZARD:
            return CheckoutPhase.COLLECTING_CUSTOMER
        return CheckoutPhase.EDITABLE

    @property
    def submittable_phase(self) -> CheckoutPhase:
        if self == Presentation.WIZARD:
            return CheckoutPhase.READY
        return CheckoutPhase.EDITABLE


@dataclass(frozen=True)
class LineItem:
    product_id: ProductId
    name: str
    quantity: int
    unit_price: Money
    tax_class: TaxClass
    line_total: Money

    def __post_init__(self) -> None:
        if self.quantity < 1:
            raise ValueError("quantity must be >= 1")
        if self.unit_price.currency != self.line_total.currency:
            raise ValueError("line_total currency must match unit_price currency")
        expected_total = self.unit_price.amount_cents * self.quantity
        if self.line_total.amount_cents != expected_total:
            raise ValueError("line_total must equal unit_price * quantity")


def create_line_item(
    product_id: ProductId,
    name: str,
    quantity: int,
    unit_price: Money,
    tax_class: TaxClass = TaxClass.STANDARD,
) -> LineItem:
    return LineItem(
        product_id=product_id,
        name=name,
        quantity=quantity,
        unit_price=unit_price,
        tax_class=tax_class,
        line_total=Money(
            amount_cents=unit_price.amount_cents * quantity,
            currency=unit_price.currency,
        ),
    )


class CheckoutStateError(Exception):
    pass


class CartAlreadyBoundError(Exception):
    pass


class PaymentAlreadyRecordedError(Exception):
    pass


@dataclass
class CheckoutSession:
    """One checkout attempt for one table on one terminal.

    ``cart_id`` and ``payment_id`` are write-once: the first successful
    resolution or capture is kept for the lifetime of the session, and every
    later finalize or print call reuses it.
    """

    checkout_id: CheckoutId
    terminal_id: TerminalId
    table_id: TableId
    cashier_id: CashierId
    presentation: Presentation
    currency: str
    created_at: datetime
    line_items: list[LineItem] = field(default_factory=list)
    customer_id: CustomerId | None = None
    payment_method: PaymentMethod | None = None
    amount_tendered: str | None = None
    notes: str | None = None
    fiscal_signature_required: bool = False
    phase: CheckoutPhase = CheckoutPhase.EDITABLE
    last_error: str | None = None
    warnings: list[FinalizationWarning] = field(default_factory=list)
    history: list[PhaseChanged] = field(default_factory=list)
    _cart_id: CartId | None = field(default=None, repr=False)
    _payment_id: PaymentId | None = field(default=None, repr=False)

    @property
    def total(self) -> Money:
        total = Money.zero(self.currency)
        for item in self.line_items:
            total = total + item.line_total
        return total

    @property
    def cart_id(self) -> CartId | None:
        return self._cart_id

    @property
    def payment_id(self) -> PaymentId | None:
        return self._payment_id

    @property
    def is_editable(self) -> bool:
        return self.phase in EDITABLE_PHASES

    @property
    def is_submittable(self) -> bool:
        return self.phase in SUBMITTABLE_PHASES

    @property
    def is_busy(self) -> bool:
        return self.phase in BUSY_PHASES

    @property
    def is_terminal(self) -> bool:
        return self.phase in TERMINAL_PHASES

    def bind_cart(self, cart_id: CartId) -> CartId:
        if self._cart_id is not None and self._cart_id != cart_id:
            raise CartAlreadyBoundError(
                f"checkout {self.checkout_id} is bound to cart {self._cart_id}, got {cart_id}"
            )
        self._cart_id = cart_id
        return cart_id

    def record_payment(self, payment_id: PaymentId) -> None:
        if self._payment_id is not None:
            raise PaymentAlreadyRecordedError(
                f"checkout {self.checkout_id} already captured payment {self._payment_id}"
            )
        if not payment_id:
            raise ValueError("payment_id must not be empty")
        self._payment_id = payment_id

    def ensure_editable(self) -> None:
        if not self.is_editable:
            raise CheckoutStateError(
                f"checkout {self.checkout_id} is not editable in phase={self.phase.value}"
            )

    def move_to(
        self,
        to_phase: CheckoutPhase,
        now: datetime,
        message: str | None = None,
    ) -> PhaseChanged:
        from_phase = self.phase
        self.phase = transition(from_phase, to_phase)
        change = PhaseChanged(
            checkout_id=self.checkout_id,
            terminal_id=self.terminal_id,
            table_id=self.table_id,
            from_phase=from_phase,
            to_phase=to_phase,
            occurred_at=now,
            message=message,
            payment_id=self._payment_id,
        )
        self.history.append(change)
        return change

    def phase_sequence(self) -> list[CheckoutPhase]:
        if not self.history:
            return [self.phase]
        return [self.history[0].from_phase] + [change.to_phase for change in self.history]
