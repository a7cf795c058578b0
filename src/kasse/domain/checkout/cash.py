"""Cash denomination presets and change computation for the tender screen."""

from __future__ import annotations

from decimal import Decimal

CASH_DENOMINATIONS: tuple[int, ...] = (5, 10, 20, 50, 100, 200, 500)
MAX_PRESETS = 4

_CENT = Decimal("0.01")


class InvalidAmountError(Exception):
    pass


def _as_decimal(value: Decimal | int | str) -> Decimal:
    try:
        amount = value if isinstance(value, Decimal) else Decimal(str(value))
    except ArithmeticError as exc:
        raise InvalidAmountError(f"not an amount: {value!r}") from exc
    if not amount.is_finite():
        raise InvalidAmountError(f"not an amount: {value!r}")
    return amount


def compute_presets(total: Decimal | int | str) -> list[int]:
    """Return up to four banknote suggestions covering ``total``.

    Denominations come from ``CASH_DENOMINATIONS`` in ascending order; an empty
    list means no single note covers the total and the operator has to type
    the tendered amount.
    """
    amount = _as_decimal(total)
    if amount < 0:
        raise InvalidAmountError(f"total must be >= 0, got {amount}")
    return [value for value in CASH_DENOMINATIONS if value >= amount][:MAX_PRESETS]


def compute_change(tendered: Decimal | int | str, total: Decimal | int | str) -> Decimal:
    change = _as_decimal(tendered) - _as_decimal(total)
    if change < 0:
        raise InvalidAmountError(
            f"tendered amount {tendered} does not cover total {total}"
        )
    try:
        return change.quantize(_CENT)
    except ArithmeticError as exc:
        raise InvalidAmountError(f"change for tendered amount {tendered} is out of range") from exc
