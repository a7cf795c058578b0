from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

_CENT = Decimal("0.01")

# Largest amount an operator can type, in major units.
MAX_OPERATOR_AMOUNT = Decimal("1000000")


@dataclass(frozen=True)
class Money:
    amount_cents: int
    currency: str

    def __post_init__(self) -> None:
        if self.amount_cents < 0:
            raise ValueError("amount_cents must be >= 0")
        if len(self.currency) != 3 or not self.currency.isalpha() or not self.currency.isupper():
            raise ValueError("currency must be a 3-letter uppercase code")

    @classmethod
    def from_decimal(cls, amount: Decimal, currency: str) -> Money:
        cents = (amount.quantize(_CENT, rounding=ROUND_HALF_UP) * 100).to_integral_value()
        return cls(amount_cents=int(cents), currency=currency)

    @classmethod
    def zero(cls, currency: str) -> Money:
        return cls(amount_cents=0, currency=currency)

    def to_decimal(self) -> Decimal:
        return (Decimal(self.amount_cents) / 100).quantize(_CENT)

    def __add__(self, other: Money) -> Money:
        if other.currency != self.currency:
            raise ValueError("cannot add money in different currencies")
        return Money(amount_cents=self.amount_cents + other.amount_cents, currency=self.currency)


def parse_amount(raw: str | None) -> Decimal | None:
    """Parse an operator-entered amount such as ``"50"``, ``"12.5"`` or ``"12,50"``.

    Returns ``None`` when the text is not a finite number, has more than two
    decimals, or exceeds ``MAX_OPERATOR_AMOUNT`` in magnitude.
    """
    if raw is None:
        return None
    text = raw.strip().replace(",", ".")
    if not text:
        return None
    try:
        value = Decimal(text)
    except ArithmeticError:
        return None
    if not value.is_finite() or abs(value) > MAX_OPERATOR_AMOUNT:
        return None
    if value.quantize(_CENT) != value:
        return None
    return value
