from __future__ import annotations

import asyncio
import sys
from datetime import datetime, timezone
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[3] / "src"))

from kasse.application.ports.collaborators import ActiveCart, OperationOutcome
from kasse.application.use_cases.finalize_order import COMPLETE_STEP, RESET_STEP, OrderFinalizer
from kasse.application.use_cases.resolve_cart import (
    CartNotFoundError,
    CartResolver,
    CartUnavailableError,
)
from kasse.domain.checkout.entities import CheckoutSession, Presentation
from kasse.domain.common.ids import CartId, CashierId, CheckoutId, TableId, TerminalId


class FakeCartService:
    def __init__(self, cart: ActiveCart | None = None, error: Exception | None = None) -> None:
        self._cart = cart
        self._error = error
        self.calls: list[tuple] = []
        self.complete_outcome = OperationOutcome.success()
        self.reset_error: Exception | None = None

    async def get_active_cart(self, table_id: TableId) -> ActiveCart | None:
        self.calls.append(("get_active_cart", table_id))
        if self._error is not None:
            raise self._error
        return self._cart

    async def complete(self, cart_id: CartId, notes: str | None) -> OperationOutcome:
        self.calls.append(("complete", cart_id))
        return self.complete_outcome

    async def reset(self, cart_id: CartId, reason: str) -> OperationOutcome:
        self.calls.append(("reset", cart_id))
        if self.reset_error is not None:
            raise self.reset_error
        return OperationOutcome.success()


def _session() -> CheckoutSession:
    return CheckoutSession(
        checkout_id=CheckoutId("chk_001"),
        terminal_id=TerminalId("KASSE-001"),
        table_id=TableId("12"),
        cashier_id=CashierId("cashier-1"),
        presentation=Presentation.SINGLE_SCREEN,
        currency="EUR",
        created_at=datetime.now(timezone.utc),
    )


def test_resolver_binds_cart_and_caches_it() -> None:
    service = FakeCartService(cart=ActiveCart(cart_id=CartId("cart_9"), table_id=TableId("12")))
    resolver = CartResolver(service)
    session = _session()

    first = asyncio.run(resolver.resolve_active_cart(session))
    second = asyncio.run(resolver.resolve_active_cart(session))

    assert first == second == CartId("cart_9")
    assert session.cart_id == CartId("cart_9")
    assert service.calls == [("get_active_cart", TableId("12"))]


def test_resolver_reports_missing_cart() -> None:
    resolver = CartResolver(FakeCartService(cart=None))

    with pytest.raises(CartNotFoundError):
        asyncio.run(resolver.resolve_active_cart(_session()))


def test_resolver_rejects_cart_without_id() -> None:
    resolver = CartResolver(FakeCartService(cart=ActiveCart(cart_id=CartId(""), table_id=TableId("12"))))

    with pytest.raises(CartNotFoundError):
        asyncio.run(resolver.resolve_active_cart(_session()))


def test_resolver_wraps_backend_errors() -> None:
    resolver = CartResolver(FakeCartService(error=TimeoutError("timed out")))
    session = _session()

    with pytest.raises(CartUnavailableError) as exc_info:
        asyncio.run(resolver.resolve_active_cart(session))

    assert isinstance(exc_info.value.__cause__, TimeoutError)
    assert session.cart_id is None


def test_finalize_runs_complete_then_reset() -> None:
    service = FakeCartService()

    report = asyncio.run(OrderFinalizer(service).finalize(CartId("cart_9"), "notes", "paid"))

    assert service.calls == [("complete", CartId("cart_9")), ("reset", CartId("cart_9"))]
    assert [step.step for step in report.steps] == [COMPLETE_STEP, RESET_STEP]
    assert report.failures == []


def test_finalize_reset_runs_after_failed_complete() -> None:
    service = FakeCartService()
    service.complete_outcome = OperationOutcome.failure("order already closed")

    report = asyncio.run(OrderFinalizer(service).finalize(CartId("cart_9"), None, "paid"))

    assert service.calls == [("complete", CartId("cart_9")), ("reset", CartId("cart_9"))]
    assert [failure.step for failure in report.failures] == [COMPLETE_STEP]


def test_finalize_maps_exceptions_to_failures() -> None:
    service = FakeCartService()
    service.reset_error = ConnectionError()

    report = asyncio.run(OrderFinalizer(service).finalize(CartId("cart_9"), None, "paid"))

    assert [failure.step for failure in report.failures] == [RESET_STEP]
    assert report.failures[0].outcome.reason == "ConnectionError"
