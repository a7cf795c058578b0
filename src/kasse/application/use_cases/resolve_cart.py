from __future__ import annotations

import logging

from kasse.application.metrics.checkout_lifecycle import record_cart_resolution
from kasse.application.ports.collaborators import CartService
from kasse.domain.checkout.entities import CheckoutSession
from kasse.domain.common.ids import CartId

logger = logging.getLogger(__name__)


class CartUnavailableError(Exception):
    pass


class CartNotFoundError(CartUnavailableError):
    pass


class CartResolver:
    """Looks up the backend's open order for a table once per session.

    The first resolved id is bound to the session; later calls return it
    without contacting the cart service again.
    """

    def __init__(self, cart_service: CartService) -> None:
        self._cart_service = cart_service

    async def resolve_active_cart(self, session: CheckoutSession) -> CartId:
        if session.cart_id is not None:
            record_cart_resolution("cached")
            return session.cart_id

        try:
            cart = await self._cart_service.get_active_cart(session.table_id)
        except Exception as exc:
            record_cart_resolution("error")
            logger.warning(
                "cart_lookup_failed",
                extra={"checkout_id": session.checkout_id, "table_id": session.table_id},
                exc_info=True,
            )
            raise CartUnavailableError(
                f"active cart for table_id={session.table_id} could not be loaded"
            ) from exc

        if cart is None or not cart.cart_id:
            record_cart_resolution("not_found")
            raise CartNotFoundError(f"no open cart for table_id={session.table_id}")

        record_cart_resolution("resolved")
        return session.bind_cart(cart.cart_id)
