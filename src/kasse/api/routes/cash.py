from __future__ import annotations

from decimal import Decimal

from fastapi import APIRouter, Query

from kasse.application.dto.responses import CashQuoteResponse
from kasse.application.use_cases.cash_quote import GetCashChange, GetCashPresets

router = APIRouter()


@router.get("/v1/cash/presets", response_model=CashQuoteResponse)
def cash_presets(total: Decimal = Query(...)) -> CashQuoteResponse:
    return GetCashPresets().execute(total)


@router.get("/v1/cash/change", response_model=CashQuoteResponse)
def cash_change(
    tendered: Decimal = Query(...),
    total: Decimal = Query(...),
) -> CashQuoteResponse:
    return GetCashChange().execute(tendered=tendered, total=total)
