from __future__ import annotations

from datetime import datetime, timezone

from prometheus_client import Counter, Gauge, Histogram

from kasse.domain.checkout.entities import CheckoutSession
from kasse.domain.checkout.phases import CheckoutPhase

PHASE_TRANSITION_TOTAL = Counter(
    "kasse_checkout_phase_transition_total",
    "Total number of checkout phase transitions.",
    ["from", "to"],
)

PAYMENT_CAPTURE_TOTAL = Counter(
    "kasse_payment_capture_total",
    "Total number of payment capture attempts by outcome.",
    ["method", "outcome"],
)

FINALIZATION_WARNING_TOTAL = Counter(
    "kasse_finalization_warning_total",
    "Total number of order finalize steps that failed after capture.",
    ["step"],
)

RECEIPT_PRINT_TOTAL = Counter(
    "kasse_receipt_print_total",
    "Total number of receipt print attempts by outcome.",
    ["outcome"],
)

CART_RESOLUTION_TOTAL = Counter(
    "kasse_cart_resolution_total",
    "Total number of active cart lookups by outcome.",
    ["outcome"],
)

CHECKOUTS_ACTIVE = Gauge(
    "kasse_checkouts_active",
    "Current number of open checkout sessions.",
)

CHECKOUT_DURATION_SECONDS = Histogram(
    "kasse_checkout_duration_seconds",
    "Time between opening a checkout and reaching a terminal phase.",
    ["outcome"],
)


def record_transition(from_phase: CheckoutPhase, to_phase: CheckoutPhase) -> None:
    PHASE_TRANSITION_TOTAL.labels(**{"from": from_phase.value, "to": to_phase.value}).inc()


def record_capture(method: str, outcome: str) -> None:
    PAYMENT_CAPTURE_TOTAL.labels(method=method, outcome=outcome).inc()


def record_finalization_warning(step: str) -> None:
    FINALIZATION_WARNING_TOTAL.labels(step=step).inc()


def record_print(outcome: str) -> None:
    RECEIPT_PRINT_TOTAL.labels(outcome=outcome).inc()


def record_cart_resolution(outcome: str) -> None:
    CART_RESOLUTION_TOTAL.labels(outcome=outcome).inc()


def record_active_checkouts(count: int) -> None:
    CHECKOUTS_ACTIVE.set(count)


def record_checkout_finished(session: CheckoutSession, now: datetime | None = None) -> None:
    current = now or datetime.now(timezone.utc)
    CHECKOUT_DURATION_SECONDS.labels(outcome=session.phase.value).observe(
        max((current - session.created_at).total_seconds(), 0.0)
    )
