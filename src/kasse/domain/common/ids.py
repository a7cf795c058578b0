from __future__ import annotations

from typing import NewType

TerminalId = NewType("TerminalId", str)
TableId = NewType("TableId", str)
CashierId = NewType("CashierId", str)
CustomerId = NewType("CustomerId", str)
CheckoutId = NewType("CheckoutId", str)
CartId = NewType("CartId", str)
PaymentId = NewType("PaymentId", str)
ProductId = NewType("ProductId", str)
