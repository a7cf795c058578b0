from __future__ import annotations

from fastapi import APIRouter, Request

from kasse.api.runtime import get_runtime
from kasse.application.dto.requests import (
    CancelCheckoutRequest,
    OpenCheckoutRequest,
    UpdateCheckoutRequest,
)
from kasse.application.dto.responses import CheckoutResponse
from kasse.application.use_cases.cancel_checkout import CancelCheckout
from kasse.application.use_cases.edit_checkout import (
    AdvanceCheckout,
    GoBackCheckout,
    UpdateCheckout,
    VerifyFiscalDevice,
)
from kasse.application.use_cases.open_checkout import GetCheckout, OpenCheckout
from kasse.application.use_cases.submit_checkout import (
    RetryReceiptPrint,
    SkipReceiptPrint,
    SubmitCheckout,
)
from kasse.domain.common.ids import CheckoutId, TerminalId

router = APIRouter()


def _open_checkout_use_case(request: Request) -> OpenCheckout:
    runtime = get_runtime(request)
    return OpenCheckout(
        store=runtime.store,
        collaborators=runtime.collaborators,
        currency=runtime.settings.currency,
    )


@router.post(
    "/v1/terminals/{terminal_id}/checkouts",
    response_model=CheckoutResponse,
    status_code=201,
)
async def open_checkout(
    terminal_id: str,
    payload: OpenCheckoutRequest,
    request: Request,
) -> CheckoutResponse:
    return _open_checkout_use_case(request).execute(TerminalId(terminal_id), payload)


@router.get("/v1/checkouts/{checkout_id}", response_model=CheckoutResponse)
async def get_checkout(checkout_id: str, request: Request) -> CheckoutResponse:
    return GetCheckout(get_runtime(request).store).execute(CheckoutId(checkout_id))


@router.patch("/v1/checkouts/{checkout_id}", response_model=CheckoutResponse)
async def update_checkout(
    checkout_id: str,
    payload: UpdateCheckoutRequest,
    request: Request,
) -> CheckoutResponse:
    return UpdateCheckout(get_runtime(request).store).execute(CheckoutId(checkout_id), payload)


@router.post("/v1/checkouts/{checkout_id}/advance", response_model=CheckoutResponse)
async def advance_checkout(checkout_id: str, request: Request) -> CheckoutResponse:
    return AdvanceCheckout(get_runtime(request).store).execute(CheckoutId(checkout_id))


@router.post("/v1/checkouts/{checkout_id}/back", response_model=CheckoutResponse)
async def go_back_checkout(checkout_id: str, request: Request) -> CheckoutResponse:
    return GoBackCheckout(get_runtime(request).store).execute(CheckoutId(checkout_id))


@router.post("/v1/checkouts/{checkout_id}/verify-fiscal-device", response_model=CheckoutResponse)
async def verify_fiscal_device(checkout_id: str, request: Request) -> CheckoutResponse:
    return await VerifyFiscalDevice(get_runtime(request).store).execute(CheckoutId(checkout_id))


@router.post("/v1/checkouts/{checkout_id}/submit", response_model=CheckoutResponse)
async def submit_checkout(checkout_id: str, request: Request) -> CheckoutResponse:
    return await SubmitCheckout(get_runtime(request).store).execute(CheckoutId(checkout_id))


@router.post("/v1/checkouts/{checkout_id}/retry-print", response_model=CheckoutResponse)
async def retry_print(checkout_id: str, request: Request) -> CheckoutResponse:
    return await RetryReceiptPrint(get_runtime(request).store).execute(CheckoutId(checkout_id))


@router.post("/v1/checkouts/{checkout_id}/skip-print", response_model=CheckoutResponse)
async def skip_print(checkout_id: str, request: Request) -> CheckoutResponse:
    return await SkipReceiptPrint(get_runtime(request).store).execute(CheckoutId(checkout_id))


@router.post("/v1/checkouts/{checkout_id}/cancel", response_model=CheckoutResponse)
async def cancel_checkout(
    checkout_id: str,
    payload: CancelCheckoutRequest,
    request: Request,
) -> CheckoutResponse:
    return CancelCheckout(get_runtime(request).store).execute(CheckoutId(checkout_id), payload)
