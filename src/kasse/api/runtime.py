from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from starlette.requests import HTTPConnection

from kasse.api.middleware.request_id import get_request_id
from kasse.application.ports.publisher import EventPublisher
from kasse.application.ports.repositories import CheckoutStore
from kasse.application.use_cases.checkout import CheckoutCollaborators
from kasse.application.use_cases.checkout_events import PublishingCheckoutEventSink, TraceContext
from kasse.application.use_cases.finalize_order import OrderFinalizer
from kasse.application.use_cases.resolve_cart import CartResolver
from kasse.domain.checkout.validation import ValidationGate
from kasse.infrastructure.backend.cart_service import HttpCartService
from kasse.infrastructure.backend.fiscal_device import HttpFiscalDevice
from kasse.infrastructure.backend.http_client import BackendHttpClient
from kasse.infrastructure.backend.payment_gateway import HttpPaymentGateway
from kasse.infrastructure.backend.receipt_printer import HttpReceiptPrinter
from kasse.infrastructure.config import Settings
from kasse.infrastructure.messaging.local_publisher import LocalEventPublisher
from kasse.infrastructure.messaging.redis_publisher import RedisEventPublisher
from kasse.infrastructure.observability.otel import current_trace_id
from kasse.infrastructure.scheduling.asyncio_scheduler import AsyncioScheduler
from kasse.infrastructure.sessions.memory_store import InMemoryCheckoutStore


@dataclass
class CheckoutRuntime:
    """Everything the routes need, wired once per application."""

    settings: Settings
    store: CheckoutStore
    collaborators: CheckoutCollaborators
    backend: BackendHttpClient | None = None
    publisher: EventPublisher | None = None


def current_trace_context() -> TraceContext:
    return TraceContext(trace_id=current_trace_id(), request_id=get_request_id())


def build_runtime(settings: Settings, ws_manager: Any) -> CheckoutRuntime:
    http = BackendHttpClient(settings)
    cart_service = HttpCartService(http)

    publisher: EventPublisher
    if settings.redis_url:
        publisher = RedisEventPublisher(settings.redis_url)
    else:
        publisher = LocalEventPublisher(ws_manager)

    collaborators = CheckoutCollaborators(
        validation_gate=ValidationGate(settings.compliance_rules()),
        cart_resolver=CartResolver(cart_service),
        payment_gateway=HttpPaymentGateway(http),
        order_finalizer=OrderFinalizer(cart_service),
        receipt_printer=HttpReceiptPrinter(http),
        scheduler=AsyncioScheduler(),
        event_sink=PublishingCheckoutEventSink(publisher, context_provider=current_trace_context),
        fiscal_device=HttpFiscalDevice(http),
        auto_close_seconds=settings.auto_close_seconds,
    )
    return CheckoutRuntime(
        settings=settings,
        store=InMemoryCheckoutStore(),
        collaborators=collaborators,
        backend=http,
        publisher=publisher,
    )


def get_runtime(connection: HTTPConnection) -> CheckoutRuntime:
    return connection.app.state.runtime
