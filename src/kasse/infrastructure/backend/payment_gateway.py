from __future__ import annotations

import logging
from typing import Any

from kasse.application.dto.requests import PaymentRequest
from kasse.application.ports.collaborators import PaymentResult
from kasse.domain.checkout.entities import TaxClass
from kasse.domain.common.ids import PaymentId
from kasse.infrastructure.backend.http_client import BackendError, BackendHttpClient, pick, unwrap

logger = logging.getLogger(__name__)

_TAX_TYPES = {
    TaxClass.STANDARD: 1,
    TaxClass.REDUCED: 2,
    TaxClass.SPECIAL: 3,
}


def to_backend_payload(request: PaymentRequest) -> dict[str, Any]:
    body = request.model_dump(by_alias=True, mode="json")
    # The backend reads method, signature flag and tendered amount from a nested object
    # and the compliance fields under their fiscal names.
    body["payment"] = {
        "method": request.payment_method.value,
        "tseRequired": request.fiscal_signature_required,
        "amount": body.get("amount"),
    }
    body["tableNumber"] = request.table_id
    body["steuernummer"] = request.fiscal_tax_id
    body["kassenId"] = request.register_id
    for item, raw in zip(request.items, body["items"]):
        raw["taxType"] = _TAX_TYPES[item.tax_class]
    return body


def to_payment_result(payload: dict[str, Any]) -> PaymentResult:
    raw = unwrap(payload)
    nested = raw.get("payment") or raw.get("Payment") or {}
    if not isinstance(nested, dict):
        nested = {}

    success = pick(raw, "success", "Success") is True
    payment_id = pick(raw, "paymentId", "PaymentId") or pick(nested, "id", "Id")
    message = pick(raw, "message", "Message")
    error = pick(raw, "error", "Error")
    return PaymentResult(
        success=success,
        payment_id=PaymentId(str(payment_id)) if payment_id else None,
        error=None if success else (str(error) if error else None),
        message=str(message) if message else None,
    )


class HttpPaymentGateway:
    def __init__(self, http: BackendHttpClient) -> None:
        self._http = http

    async def process(self, request: PaymentRequest) -> PaymentResult:
        try:
            payload = await self._http.request("POST", "/Payment", json_body=to_backend_payload(request))
        except BackendError as exc:
            logger.warning(
                "payment_request_failed",
                extra={"status_code": exc.status_code, "code": exc.code},
            )
            return PaymentResult(success=False, error=exc.message)
        return to_payment_result(payload)
