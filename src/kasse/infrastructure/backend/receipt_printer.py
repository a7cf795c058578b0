from __future__ import annotations

from kasse.application.ports.collaborators import OperationOutcome
from kasse.domain.common.ids import PaymentId
from kasse.infrastructure.backend.http_client import BackendError, BackendHttpClient, pick, unwrap


class HttpReceiptPrinter:
    def __init__(self, http: BackendHttpClient) -> None:
        self._http = http

    async def print(self, payment_id: PaymentId) -> OperationOutcome:
        try:
            payload = await self._http.request("POST", f"/Payment/{payment_id}/receipt/print")
        except BackendError as exc:
            return OperationOutcome.failure(exc.message)

        raw = unwrap(payload)
        if pick(raw, "success", "Success") is False:
            return OperationOutcome.failure(
                str(pick(raw, "error", "message", "Message") or "printer reported a failure")
            )
        return OperationOutcome.success()
