from __future__ import annotations

from decimal import Decimal

from kasse.application.dto.responses import CashQuoteResponse
from kasse.domain.checkout.cash import compute_change, compute_presets


class GetCashPresets:
    def execute(self, total: Decimal) -> CashQuoteResponse:
        return CashQuoteResponse(total=total, presets=compute_presets(total))


class GetCashChange:
    def execute(self, tendered: Decimal, total: Decimal) -> CashQuoteResponse:
        return CashQuoteResponse(
            total=total,
            presets=compute_presets(total),
            tendered=tendered,
            change=compute_change(tendered, total),
        )
