from __future__ import annotations

import logging
from typing import Any, cast

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from kasse.api.middleware.request_id import get_request_id
from kasse.application.use_cases.checkout import CheckoutBusyError
from kasse.application.use_cases.open_checkout import (
    CheckoutAlreadyOpenError,
    CheckoutNotFoundError,
)
from kasse.domain.checkout.cash import InvalidAmountError
from kasse.domain.checkout.entities import CheckoutStateError
from kasse.domain.checkout.phases import InvalidPhaseTransitionError

logger = logging.getLogger(__name__)

# Checkout exceptions that reach the API, with their HTTP status and error code.
ERROR_MAPPINGS: tuple[tuple[type[Exception], int, str], ...] = (
    (CheckoutNotFoundError, 404, "CHECKOUT_NOT_FOUND"),
    (CheckoutAlreadyOpenError, 409, "CHECKOUT_ALREADY_OPEN"),
    (CheckoutBusyError, 409, "CHECKOUT_BUSY"),
    (CheckoutStateError, 409, "INVALID_CHECKOUT_STATE"),
    (InvalidPhaseTransitionError, 409, "INVALID_PHASE_TRANSITION"),
    (InvalidAmountError, 400, "INVALID_AMOUNT"),
)

_HTTP_ERROR_CODES = {
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
    409: "CONFLICT",
}


def error_body(code: str, message: str, details: dict[str, Any] | None = None) -> dict[str, Any]:
    return {
        "error": {"code": code, "message": message, "details": details or {}},
        "requestId": get_request_id(),
    }


def _mapped_handler(status_code: int, code: str):
    async def handler(request: Request, exc: Exception) -> JSONResponse:
        details = getattr(exc, "details", None)
        logger.info(
            "request_rejected",
            extra={"path": request.url.path, "status_code": status_code, "reason": code},
        )
        return JSONResponse(
            status_code=status_code,
            content=error_body(code, str(exc), details if isinstance(details, dict) else None),
        )

    return handler


async def _http_exception_handler(_: Request, exc: Exception) -> JSONResponse:
    http_exc = cast(StarletteHTTPException, exc)
    return JSONResponse(
        status_code=http_exc.status_code,
        content=error_body(
            _HTTP_ERROR_CODES.get(http_exc.status_code, "HTTP_ERROR"),
            str(http_exc.detail) if http_exc.detail else "request failed",
        ),
        headers=getattr(http_exc, "headers", None),
    )


async def _validation_exception_handler(_: Request, exc: Exception) -> JSONResponse:
    errors = cast(RequestValidationError, exc).errors()
    return JSONResponse(
        status_code=400,
        content=error_body(
            "INVALID_REQUEST",
            "request validation failed",
            {"errors": [{"loc": list(error["loc"]), "msg": error["msg"], "type": error["type"]} for error in errors]},
        ),
    )


def register_exception_handlers(app: FastAPI) -> None:
    for exc_cls, status_code, code in ERROR_MAPPINGS:
        app.add_exception_handler(exc_cls, _mapped_handler(status_code, code))

    app.add_exception_handler(StarletteHTTPException, _http_exception_handler)
    app.add_exception_handler(RequestValidationError, _validation_exception_handler)
