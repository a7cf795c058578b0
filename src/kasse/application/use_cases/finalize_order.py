from __future__ import annotations

import logging
from dataclasses import dataclass, field

from kasse.application.ports.collaborators import CartService, OperationOutcome
from kasse.domain.common.ids import CartId

logger = logging.getLogger(__name__)

COMPLETE_STEP = "complete"
RESET_STEP = "reset"


@dataclass(frozen=True)
class FinalizeStepResult:
    step: str
    outcome: OperationOutcome


@dataclass(frozen=True)
class FinalizeReport:
    cart_id: CartId
    steps: list[FinalizeStepResult] = field(default_factory=list)

    @property
    def failures(self) -> list[FinalizeStepResult]:
        return [result for result in self.steps if not result.outcome.ok]


class OrderFinalizer:
    """Closes the paid order and frees the table.

    ``complete`` and ``reset`` are always both attempted, in that order, once
    ``finalize`` starts. Failures come back as outcomes, never as exceptions.
    """

    def __init__(self, cart_service: CartService) -> None:
        self._cart_service = cart_service

    async def complete(self, cart_id: CartId, notes: str | None) -> OperationOutcome:
        try:
            return await self._cart_service.complete(cart_id, notes)
        except Exception as exc:
            logger.warning("order_complete_error", extra={"cart_id": cart_id}, exc_info=True)
            return OperationOutcome.failure(str(exc) or exc.__class__.__name__)

    async def reset(self, cart_id: CartId, reason: str) -> OperationOutcome:
        try:
            return await self._cart_service.reset(cart_id, reason)
        except Exception as exc:
            logger.warning("order_reset_error", extra={"cart_id": cart_id}, exc_info=True)
            return OperationOutcome.failure(str(exc) or exc.__class__.__name__)

    async def finalize(self, cart_id: CartId, notes: str | None, reason: str) -> FinalizeReport:
        completed = await self.complete(cart_id, notes)
        reset = await self.reset(cart_id, reason)
        return FinalizeReport(
            cart_id=cart_id,
            steps=[
                FinalizeStepResult(step=COMPLETE_STEP, outcome=completed),
                FinalizeStepResult(step=RESET_STEP, outcome=reset),
            ],
        )
