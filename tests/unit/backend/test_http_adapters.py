from __future__ import annotations

import asyncio
import json
import sys
from decimal import Decimal
from pathlib import Path

import httpx
import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[3] / "src"))

from kasse.application.dto.requests import PaymentItemRequest, PaymentRequest
from kasse.domain.checkout.entities import PaymentMethod, TaxClass
from kasse.domain.checkout.validation import ComplianceMode
from kasse.domain.common.ids import CartId, PaymentId, TableId
from kasse.infrastructure.backend.cart_service import HttpCartService
from kasse.infrastructure.backend.fiscal_device import HttpFiscalDevice
from kasse.infrastructure.backend.http_client import BackendError, BackendHttpClient
from kasse.infrastructure.backend.payment_gateway import HttpPaymentGateway, to_payment_result
from kasse.infrastructure.backend.receipt_printer import HttpReceiptPrinter
from kasse.infrastructure.config import Settings

BASE_URL = "http://backend.test/api/"


def _settings(**overrides) -> Settings:
    values = {
        "backend_url": BASE_URL,
        "backend_token": "token-1",
        "timeout_seconds": 1.0,
        "retry_max_attempts": 3,
        "retry_backoff_ms": 0,
        "fiscal_tax_id": "ATU12345678",
        "register_id": "KASSE-001",
        "compliance_mode": ComplianceMode.STANDARD,
        "auto_close_seconds": 1.5,
        "currency": "EUR",
        "redis_url": None,
    }
    values.update(overrides)
    return Settings(**values)


class Recorder:
    def __init__(self, responses: list[httpx.Response | Exception]) -> None:
        self._responses = list(responses)
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        response = self._responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


def _http(recorder: Recorder, **overrides) -> BackendHttpClient:
    settings = _settings(**overrides)
    client = httpx.AsyncClient(
        base_url=settings.backend_url,
        transport=httpx.MockTransport(recorder),
        headers={"Authorization": f"Bearer {settings.backend_token}"},
    )
    return BackendHttpClient(settings, client=client)


def _payment_request() -> PaymentRequest:
    return PaymentRequest(
        customer_id="00000000-0000-0000-0000-000000000000",
        items=[PaymentItemRequest(product_id="prd_1", quantity=2, tax_class=TaxClass.REDUCED)],
        payment_method=PaymentMethod.CASH,
        amount=Decimal("50"),
        fiscal_signature_required=True,
        table_id="7",
        cashier_id="cashier-1",
        total_amount=Decimal("37.00"),
        fiscal_tax_id="ATU12345678",
        register_id="KASSE-001",
        notes=None,
    )


def test_payment_posts_backend_shape() -> None:
    recorder = Recorder([httpx.Response(200, json={"success": True, "paymentId": "pay_123"})])

    result = asyncio.run(HttpPaymentGateway(_http(recorder)).process(_payment_request()))

    assert result.success is True
    assert result.payment_id == PaymentId("pay_123")
    request = recorder.requests[0]
    assert request.method == "POST"
    assert request.url.path == "/api/Payment"
    assert request.headers["Authorization"] == "Bearer token-1"
    body = json.loads(request.content)
    assert body["payment"] == {"method": "cash", "tseRequired": True, "amount": "50"}
    assert body["steuernummer"] == "ATU12345678"
    assert body["kassenId"] == "KASSE-001"
    assert body["tableNumber"] == "7"
    assert body["items"][0]["taxType"] == 2
    assert body["totalAmount"] == "37.00"


def test_payment_decline_body_is_not_retried() -> None:
    recorder = Recorder(
        [httpx.Response(400, json={"success": False, "message": "insufficient funds"})]
    )

    result = asyncio.run(HttpPaymentGateway(_http(recorder)).process(_payment_request()))

    assert result.success is False
    assert result.error == "insufficient funds"
    assert len(recorder.requests) == 1


def test_payment_server_error_is_sent_once() -> None:
    recorder = Recorder([httpx.Response(503, text="unavailable"), httpx.Response(200, json={})])

    result = asyncio.run(HttpPaymentGateway(_http(recorder)).process(_payment_request()))

    assert result.success is False
    assert len(recorder.requests) == 1


def test_payment_transport_error_is_not_retried() -> None:
    recorder = Recorder([httpx.ConnectError("refused")])

    result = asyncio.run(HttpPaymentGateway(_http(recorder)).process(_payment_request()))

    assert result.success is False
    assert result.error == "network error while calling the POS backend"
    assert len(recorder.requests) == 1


def test_payment_result_unwraps_nested_value() -> None:
    result = to_payment_result(
        {"Value": {"Success": True, "Message": "ok", "Payment": {"Id": "pay_9"}}}
    )

    assert result.success is True
    assert result.payment_id == PaymentId("pay_9")
    assert result.message == "ok"
    assert result.error is None


def test_payment_result_failure_keeps_error_and_message() -> None:
    result = to_payment_result({"success": False, "error": "card expired", "message": "Payment failed"})

    assert result.success is False
    assert result.error == "card expired"
    assert result.message == "Payment failed"


def test_active_cart_lookup_retries_server_errors() -> None:
    recorder = Recorder(
        [
            httpx.Response(502, text="bad gateway"),
            httpx.Response(200, json={"cartId": "cart_42", "items": [{"productId": "prd_1"}]}),
        ]
    )

    cart = asyncio.run(HttpCartService(_http(recorder)).get_active_cart(TableId("7")))

    assert cart is not None
    assert cart.cart_id == CartId("cart_42")
    assert cart.item_count == 1
    assert len(recorder.requests) == 2
    assert recorder.requests[0].url.path == "/api/cart/current"
    assert recorder.requests[0].url.params["tableNumber"] == "7"


def test_active_cart_missing_returns_none() -> None:
    recorder = Recorder([httpx.Response(404, json={"message": "no cart"})])

    assert asyncio.run(HttpCartService(_http(recorder)).get_active_cart(TableId("7"))) is None


def test_active_cart_without_id_returns_none() -> None:
    recorder = Recorder([httpx.Response(200, json={"items": []})])

    assert asyncio.run(HttpCartService(_http(recorder)).get_active_cart(TableId("7"))) is None


def test_active_cart_gives_up_after_max_attempts() -> None:
    recorder = Recorder([httpx.ReadTimeout("slow")] * 3)

    with pytest.raises(BackendError) as exc_info:
        asyncio.run(HttpCartService(_http(recorder)).get_active_cart(TableId("7")))

    assert exc_info.value.code == "NETWORK_ERROR"
    assert len(recorder.requests) == 3


def test_complete_and_reset_paths() -> None:
    recorder = Recorder([httpx.Response(200, json={}), httpx.Response(500, json={"message": "db locked"})])
    service = HttpCartService(_http(recorder))

    completed = asyncio.run(service.complete(CartId("cart_42"), "Tisch 7"))
    reset = asyncio.run(service.reset(CartId("cart_42"), "payment pay_1 captured"))

    assert completed.ok is True
    assert reset.ok is False
    assert reset.reason == "db locked"
    assert recorder.requests[0].url.path == "/api/cart/cart_42/complete"
    assert json.loads(recorder.requests[0].content) == {"notes": "Tisch 7"}
    assert recorder.requests[1].url.path == "/api/cart/cart_42/reset-after-payment"
    assert len(recorder.requests) == 2


def test_receipt_print_outcomes() -> None:
    recorder = Recorder(
        [
            httpx.Response(200, json={"success": True}),
            httpx.Response(200, json={"success": False, "message": "paper out"}),
            httpx.Response(503, text="printer offline"),
        ]
    )
    printer = HttpReceiptPrinter(_http(recorder))

    assert asyncio.run(printer.print(PaymentId("pay_1"))).ok is True
    assert asyncio.run(printer.print(PaymentId("pay_1"))).reason == "paper out"
    assert asyncio.run(printer.print(PaymentId("pay_1"))).reason == "printer offline"
    assert recorder.requests[0].url.path == "/api/Payment/pay_1/receipt/print"


def test_fiscal_device_status() -> None:
    recorder = Recorder(
        [
            httpx.Response(200, json={"isConnected": True, "serialNumber": "TSE-001"}),
            httpx.Response(200, json={"IsConnected": False, "ErrorMessage": "TSE not found"}),
        ]
    )
    device = HttpFiscalDevice(_http(recorder))

    connected = asyncio.run(device.status())
    missing = asyncio.run(device.status())

    assert connected.connected is True
    assert connected.serial_number == "TSE-001"
    assert missing.connected is False
    assert missing.message == "TSE not found"
