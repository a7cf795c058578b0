from __future__ import annotations

import os
import sys
from pathlib import Path
from typing import Callable, Iterator

import pytest
import redis

sys.path.insert(0, str(Path(__file__).resolve().parents[2] / "src"))

from kasse.api.runtime import CheckoutRuntime, current_trace_context
from kasse.application.ports.collaborators import ActiveCart, OperationOutcome, PaymentResult
from kasse.application.use_cases.checkout import CheckoutCollaborators
from kasse.application.use_cases.checkout_events import PublishingCheckoutEventSink
from kasse.application.use_cases.finalize_order import OrderFinalizer
from kasse.application.use_cases.resolve_cart import CartResolver
from kasse.domain.checkout.validation import ComplianceMode, ValidationGate
from kasse.domain.common.ids import CartId, PaymentId, TableId
from kasse.infrastructure.config import Settings
from kasse.infrastructure.messaging.redis_publisher import RedisEventPublisher
from kasse.infrastructure.scheduling.asyncio_scheduler import AsyncioScheduler
from kasse.infrastructure.sessions.memory_store import InMemoryCheckoutStore

REDIS_URL = os.getenv("REDIS_URL", "redis://localhost:6379/0")


class StubPaymentGateway:
    async def process(self, request) -> PaymentResult:
        return PaymentResult(success=True, payment_id=PaymentId(f"pay_{request.table_id}"))


class StubCartService:
    async def get_active_cart(self, table_id: TableId) -> ActiveCart | None:
        return ActiveCart(cart_id=CartId(f"cart_{table_id}"), table_id=table_id, item_count=1)

    async def complete(self, cart_id: CartId, notes: str | None) -> OperationOutcome:
        return OperationOutcome.success()

    async def reset(self, cart_id: CartId, reason: str) -> OperationOutcome:
        return OperationOutcome.success()


class StubReceiptPrinter:
    async def print(self, payment_id: PaymentId) -> OperationOutcome:
        return OperationOutcome.success()


@pytest.fixture(autouse=True)
def clear_redis() -> Iterator[None]:
    client = redis.Redis.from_url(REDIS_URL)
    client.flushdb()
    yield
    client.flushdb()
    client.close()


@pytest.fixture
def redis_runtime() -> Callable[[], CheckoutRuntime]:
    """Checkout runtime with stubbed backend calls and real Redis event delivery."""

    def _build() -> CheckoutRuntime:
        settings = Settings(
            backend_url="http://backend.test/api/",
            backend_token=None,
            timeout_seconds=1.0,
            retry_max_attempts=1,
            retry_backoff_ms=0,
            fiscal_tax_id="ATU12345678",
            register_id="KASSE-001",
            compliance_mode=ComplianceMode.STANDARD,
            auto_close_seconds=0.0,
            currency="EUR",
            redis_url=REDIS_URL,
        )
        publisher = RedisEventPublisher(REDIS_URL)
        cart_service = StubCartService()
        collaborators = CheckoutCollaborators(
            validation_gate=ValidationGate(settings.compliance_rules()),
            cart_resolver=CartResolver(cart_service),
            payment_gateway=StubPaymentGateway(),
            order_finalizer=OrderFinalizer(cart_service),
            receipt_printer=StubReceiptPrinter(),
            scheduler=AsyncioScheduler(),
            event_sink=PublishingCheckoutEventSink(
                publisher,
                context_provider=current_trace_context,
            ),
            auto_close_seconds=settings.auto_close_seconds,
        )
        return CheckoutRuntime(
            settings=settings,
            store=InMemoryCheckoutStore(),
            collaborators=collaborators,
            publisher=publisher,
        )

    return _build
