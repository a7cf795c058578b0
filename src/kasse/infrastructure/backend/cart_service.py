from __future__ import annotations

from kasse.application.ports.collaborators import ActiveCart, OperationOutcome
from kasse.domain.common.ids import CartId, TableId
from kasse.infrastructure.backend.http_client import BackendError, BackendHttpClient, pick, unwrap


class HttpCartService:
    def __init__(self, http: BackendHttpClient) -> None:
        self._http = http

    async def get_active_cart(self, table_id: TableId) -> ActiveCart | None:
        try:
            payload = await self._http.request(
                "GET",
                "/cart/current",
                params={"tableNumber": str(table_id)},
            )
        except BackendError as exc:
            if exc.status_code == 404:
                return None
            raise

        raw = unwrap(payload)
        cart_id = pick(raw, "cartId", "CartId", "id", "Id")
        if not cart_id:
            return None
        items = pick(raw, "items", "Items") or []
        return ActiveCart(
            cart_id=CartId(str(cart_id)),
            table_id=table_id,
            item_count=len(items) if isinstance(items, list) else 0,
        )

    async def complete(self, cart_id: CartId, notes: str | None) -> OperationOutcome:
        try:
            await self._http.request("POST", f"/cart/{cart_id}/complete", json_body={"notes": notes})
        except BackendError as exc:
            return OperationOutcome.failure(exc.message)
        return OperationOutcome.success()

    async def reset(self, cart_id: CartId, reason: str) -> OperationOutcome:
        try:
            await self._http.request(
                "POST",
                f"/cart/{cart_id}/reset-after-payment",
                json_body={"notes": reason},
            )
        except BackendError as exc:
            return OperationOutcome.failure(exc.message)
        return OperationOutcome.success()
