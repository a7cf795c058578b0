from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from opentelemetry import trace

from kasse.application.mappers.payment_mapper import to_payment_request
from kasse.application.metrics.checkout_lifecycle import (
    record_capture,
    record_checkout_finished,
    record_finalization_warning,
    record_print,
    record_transition,
)
from kasse.application.ports.collaborators import (
    FiscalDevice,
    OperationOutcome,
    PaymentGateway,
    PaymentResult,
    ReceiptPrinter,
)
from kasse.application.ports.publisher import CheckoutEventSink
from kasse.application.ports.scheduler import (
    ConfirmCancel,
    ScheduledEvent,
    Scheduler,
    always_confirm,
)
from kasse.application.use_cases.finalize_order import OrderFinalizer
from kasse.application.use_cases.resolve_cart import CartResolver, CartUnavailableError
from kasse.domain.checkout.entities import (
    CheckoutSession,
    CheckoutStateError,
    LineItem,
    PaymentMethod,
)
from kasse.domain.checkout.events import FinalizationWarning
from kasse.domain.checkout.phases import CheckoutPhase
from kasse.domain.checkout.validation import (
    ComplianceRules,
    FieldError,
    ValidationGate,
    ValidationResult,
)
from kasse.domain.common.ids import CartId, CustomerId, PaymentId

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

VALIDATION_FAILED_MESSAGE = "please correct the highlighted fields"
CART_UNAVAILABLE_MESSAGE = "cart unavailable: the open order for this table could not be loaded"
PAYMENT_FAILED_MESSAGE = "payment failed"
MISSING_PAYMENT_ID_MESSAGE = "payment gateway did not return a payment id"
FISCAL_DEVICE_UNAVAILABLE_MESSAGE = "fiscal device unavailable"


class CheckoutBusyError(Exception):
    pass


@dataclass(frozen=True)
class CheckoutCollaborators:
    validation_gate: ValidationGate
    cart_resolver: CartResolver
    payment_gateway: PaymentGateway
    order_finalizer: OrderFinalizer
    receipt_printer: ReceiptPrinter
    scheduler: Scheduler
    event_sink: CheckoutEventSink
    fiscal_device: FiscalDevice | None = None
    auto_close_seconds: float = 1.5


@dataclass(frozen=True)
class FieldEdits:
    """Operator field edits; only the fields named in ``present`` are applied."""

    line_items: Sequence[LineItem] | None = None
    customer_id: CustomerId | None = None
    payment_method: PaymentMethod | None = None
    amount_tendered: str | None = None
    notes: str | None = None
    present: frozenset[str] = frozenset()

    @classmethod
    def of(cls, **values: Any) -> FieldEdits:
        return cls(**values, present=frozenset(values))


class CheckoutStateMachine:
    """Drives one checkout session from field entry to a printed receipt.

    UI commands (field edits, wizard navigation, submit, retry, skip, cancel)
    are the only inputs. Each remote phase runs strictly in order:
    capture, then order complete, then order reset, then print. Collaborator
    failures are mapped onto the session and never raised to the caller:

    * a failed capture returns the session to its submittable phase with
      nothing committed;
    * a failed complete/reset after capture is recorded as a finalization
      warning and the flow carries on to printing;
    * a failed print parks the session in ``PRINT_ERROR`` where the stored
      payment id can be printed again or the receipt skipped.
    """

    def __init__(
        self,
        session: CheckoutSession,
        collaborators: CheckoutCollaborators,
        on_closed: Callable[[CheckoutSession], None] | None = None,
    ) -> None:
        self._session = session
        self._collaborators = collaborators
        self._on_closed = on_closed
        self._field_errors: tuple[FieldError, ...] = ()
        self._in_flight = False
        self._auto_close: ScheduledEvent | None = None
        self._closed = False

    @property
    def session(self) -> CheckoutSession:
        return self._session

    @property
    def rules(self) -> ComplianceRules:
        return self._collaborators.validation_gate.rules

    @property
    def field_errors(self) -> tuple[FieldError, ...]:
        return self._field_errors

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def auto_close_pending(self) -> bool:
        return self._auto_close is not None and not self._auto_close.cancelled

    # Field edits

    def apply_edits(self, edits: FieldEdits) -> None:
        """Apply every field in ``edits`` or, when one is rejected, none of them."""
        self._ensure_editable()
        session = self._session
        present = edits.present

        method = session.payment_method
        if (
            "payment_method" in present
            and edits.payment_method is not None
            and edits.payment_method != method
        ):
            if session.phase not in (CheckoutPhase.EDITABLE, CheckoutPhase.SELECTING_METHOD):
                raise CheckoutStateError(
                    f"payment method cannot be changed in phase={session.phase.value}"
                )
            method = edits.payment_method
        if (
            "amount_tendered" in present
            and edits.amount_tendered is not None
            and method != PaymentMethod.CASH
        ):
            raise CheckoutStateError("a tendered amount is only recorded for cash payments")
        if "line_items" in present:
            for item in edits.line_items or ():
                if item.unit_price.currency != session.currency:
                    raise ValueError(
                        f"line item currency {item.unit_price.currency} does not match "
                        f"checkout currency {session.currency}"
                    )

        if "line_items" in present:
            session.line_items = list(edits.line_items or ())
        if "customer_id" in present:
            session.customer_id = edits.customer_id
        if method != session.payment_method:
            session.payment_method = method
            session.fiscal_signature_required = self.rules.requires_fiscal_signature(method)
            if method != PaymentMethod.CASH:
                session.amount_tendered = None
        if "amount_tendered" in present:
            session.amount_tendered = edits.amount_tendered
        if "notes" in present:
            session.notes = edits.notes

    def set_customer(self, customer_id: CustomerId | None) -> None:
        self.apply_edits(FieldEdits.of(customer_id=customer_id))

    def choose_method(self, method: PaymentMethod) -> None:
        self.apply_edits(FieldEdits.of(payment_method=method))

    def enter_tendered(self, text: str | None) -> None:
        self.apply_edits(FieldEdits.of(amount_tendered=text))

    def set_notes(self, notes: str | None) -> None:
        self.apply_edits(FieldEdits.of(notes=notes))

    def set_line_items(self, items: Sequence[LineItem]) -> None:
        self.apply_edits(FieldEdits.of(line_items=items))

    # Wizard navigation

    def advance(self) -> ValidationResult:
        self._ensure_editable()
        gate = self._collaborators.validation_gate
        phase = self._session.phase

        if phase == CheckoutPhase.COLLECTING_CUSTOMER:
            result = gate.validate_customer(self._session)
            target = CheckoutPhase.SELECTING_METHOD
        elif phase == CheckoutPhase.SELECTING_METHOD:
            result = gate.validate_method(self._session)
            target = (
                CheckoutPhase.ENTERING_AMOUNT
                if self._session.payment_method == PaymentMethod.CASH
                else CheckoutPhase.CONFIRMING
            )
        elif phase in (CheckoutPhase.ENTERING_AMOUNT, CheckoutPhase.CONFIRMING):
            result = gate.validate_amount(self._session)
            target = (
                CheckoutPhase.VERIFYING_FISCAL_DEVICE
                if self._session.fiscal_signature_required
                else CheckoutPhase.READY
            )
        else:
            raise CheckoutStateError(f"cannot advance from phase={phase.value}")

        self._field_errors = result.errors
        if not result.ok:
            self._session.last_error = VALIDATION_FAILED_MESSAGE
            return result

        self._session.last_error = None
        self._move(target)
        return result

    def go_back(self) -> CheckoutPhase:
        self._ensure_editable()
        phase = self._session.phase
        amount_phase = (
            CheckoutPhase.ENTERING_AMOUNT
            if self._session.payment_method == PaymentMethod.CASH
            else CheckoutPhase.CONFIRMING
        )
        if phase == CheckoutPhase.SELECTING_METHOD:
            target = CheckoutPhase.COLLECTING_CUSTOMER
        elif phase in (CheckoutPhase.ENTERING_AMOUNT, CheckoutPhase.CONFIRMING):
            target = CheckoutPhase.SELECTING_METHOD
        elif phase == CheckoutPhase.VERIFYING_FISCAL_DEVICE:
            target = amount_phase
        elif phase == CheckoutPhase.READY:
            target = (
                CheckoutPhase.VERIFYING_FISCAL_DEVICE
                if self._session.fiscal_signature_required
                else amount_phase
            )
        else:
            raise CheckoutStateError(f"cannot go back from phase={phase.value}")

        self._field_errors = ()
        self._session.last_error = None
        self._move(target)
        return target

    async def verify_fiscal_device(self) -> bool:
        self._ensure_idle()
        if self._session.phase != CheckoutPhase.VERIFYING_FISCAL_DEVICE:
            raise CheckoutStateError(
                f"fiscal device is not verified in phase={self._session.phase.value}"
            )

        device = self._collaborators.fiscal_device
        self._in_flight = True
        try:
            if device is None:
                connected, detail = False, "no fiscal device configured"
            else:
                try:
                    status = await device.status()
                    connected, detail = status.connected, status.message
                except Exception as exc:
                    logger.warning(
                        "fiscal_device_status_error",
                        extra=self._log_extra(),
                        exc_info=True,
                    )
                    connected, detail = False, str(exc) or exc.__class__.__name__
        finally:
            self._in_flight = False

        if not connected:
            message = FISCAL_DEVICE_UNAVAILABLE_MESSAGE
            if detail:
                message = f"{message}: {detail}"
            self._session.last_error = message
            return False

        self._session.last_error = None
        self._move(CheckoutPhase.READY)
        return True

    # Remote sequence

    async def submit(self) -> CheckoutPhase:
        self._ensure_idle()
        if not self._session.is_submittable:
            raise CheckoutStateError(
                f"checkout cannot be submitted from phase={self._session.phase.value}"
            )

        self._in_flight = True
        try:
            return await self._run_submission()
        finally:
            self._in_flight = False

    async def retry_print(self) -> CheckoutPhase:
        self._ensure_idle()
        self._ensure_print_error()

        self._in_flight = True
        try:
            self._session.last_error = None
            self._move(CheckoutPhase.PRINTING)
            return await self._print()
        finally:
            self._in_flight = False

    async def skip_print(self) -> CheckoutPhase:
        self._ensure_idle()
        self._ensure_print_error()

        self._session.last_error = None
        logger.info("receipt_print_skipped", extra=self._log_extra())
        record_print("skipped")
        self._complete(message=f"receipt skipped for payment {self._session.payment_id}")
        return self._session.phase

    def cancel(self, confirm: ConfirmCancel = always_confirm) -> bool:
        self._ensure_editable()
        if not confirm(self._session):
            return False

        self._move(CheckoutPhase.CANCELLED)
        record_checkout_finished(self._session)
        self._close()
        return True

    def close(self) -> None:
        if not self._session.is_terminal:
            raise CheckoutStateError(
                f"checkout cannot be closed in phase={self._session.phase.value}"
            )
        self._close()

    async def _run_submission(self) -> CheckoutPhase:
        session = self._session
        result = self._collaborators.validation_gate.validate(session)
        self._field_errors = result.errors
        if not result.ok:
            session.last_error = VALIDATION_FAILED_MESSAGE
            logger.info(
                "checkout_validation_failed",
                extra={**self._log_extra(), "fields": [error.field for error in result.errors]},
            )
            return session.phase

        try:
            cart_id = await self._collaborators.cart_resolver.resolve_active_cart(session)
        except CartUnavailableError as exc:
            session.last_error = CART_UNAVAILABLE_MESSAGE
            logger.warning(
                "checkout_cart_unavailable",
                extra={**self._log_extra(), "reason": str(exc)},
            )
            return session.phase

        session.last_error = None
        self._move(CheckoutPhase.SUBMITTING)
        payment = await self._capture()
        if not payment.success or not payment.payment_id:
            message = payment.error or payment.message or PAYMENT_FAILED_MESSAGE
            if payment.success:
                message = MISSING_PAYMENT_ID_MESSAGE
            session.last_error = message
            self._move(session.presentation.submittable_phase, message=message)
            return session.phase

        session.record_payment(payment.payment_id)
        logger.info("payment_captured", extra=self._log_extra())

        self._move(CheckoutPhase.FINALIZING)
        warning_message = await self._finalize(cart_id, payment.payment_id)

        self._move(CheckoutPhase.PRINTING, message=warning_message)
        return await self._print()

    async def _capture(self) -> PaymentResult:
        session = self._session
        method = session.payment_method.value if session.payment_method else "unknown"
        with tracer.start_as_current_span("checkout.capture") as span:
            span.set_attribute("kasse.checkout_id", str(session.checkout_id))
            span.set_attribute("kasse.payment_method", method)
            try:
                request = to_payment_request(session, self._collaborators.validation_gate.rules)
                result = await self._collaborators.payment_gateway.process(request)
            except Exception:
                logger.exception("payment_capture_error", extra=self._log_extra())
                record_capture(method, "error")
                return PaymentResult(success=False, error=PAYMENT_FAILED_MESSAGE)

        if result.success and result.payment_id:
            record_capture(method, "captured")
        else:
            record_capture(method, "declined")
            logger.warning(
                "payment_capture_failed",
                extra={
                    **self._log_extra(),
                    "error": result.error,
                    "reason": result.message,
                },
            )
        return result

    async def _finalize(self, cart_id: CartId, payment_id: PaymentId) -> str | None:
        session = self._session
        with tracer.start_as_current_span("checkout.finalize") as span:
            span.set_attribute("kasse.cart_id", str(cart_id))
            report = await self._collaborators.order_finalizer.finalize(
                cart_id,
                notes=session.notes,
                reason=f"payment {payment_id} captured",
            )

        messages: list[str] = []
        now = datetime.now(timezone.utc)
        for failure in report.failures:
            message = (
                f"payment captured but order {failure.step} failed for cart {cart_id}: "
                f"{failure.outcome.reason or 'unknown error'}; reconcile manually"
            )
            session.warnings.append(
                FinalizationWarning(
                    step=failure.step,
                    cart_id=cart_id,
                    message=message,
                    occurred_at=now,
                )
            )
            record_finalization_warning(failure.step)
            logger.warning(
                "order_finalize_warning",
                extra={**self._log_extra(), "step": failure.step, "reason": failure.outcome.reason},
            )
            messages.append(message)

        if not messages:
            return None
        session.last_error = "; ".join(messages)
        return session.last_error

    async def _print(self) -> CheckoutPhase:
        session = self._session
        payment_id = session.payment_id
        if payment_id is None:
            raise CheckoutStateError(f"checkout {session.checkout_id} has no captured payment")

        with tracer.start_as_current_span("checkout.print") as span:
            span.set_attribute("kasse.payment_id", str(payment_id))
            try:
                outcome = await self._collaborators.receipt_printer.print(payment_id)
            except Exception as exc:
                logger.warning("receipt_print_error", extra=self._log_extra(), exc_info=True)
                outcome = OperationOutcome.failure(str(exc) or exc.__class__.__name__)

        if outcome.ok:
            record_print("printed")
            self._complete()
            return session.phase

        record_print("failed")
        message = f"receipt could not be printed: {outcome.reason or 'unknown error'}"
        session.last_error = message
        logger.warning("receipt_print_failed", extra={**self._log_extra(), "reason": outcome.reason})
        self._move(CheckoutPhase.PRINT_ERROR, message=message)
        return session.phase

    def _complete(self, message: str | None = None) -> None:
        self._move(CheckoutPhase.COMPLETED, message=message)
        record_checkout_finished(self._session)
        self._auto_close = self._collaborators.scheduler.schedule(
            self._collaborators.auto_close_seconds,
            self._auto_close_fired,
        )

    def _auto_close_fired(self) -> None:
        logger.info("checkout_auto_closed", extra=self._log_extra())
        self._close()

    def _close(self) -> None:
        if self._closed:
            return
        self._closed = True
        if self._auto_close is not None:
            self._auto_close.cancel()
        if self._on_closed is not None:
            self._on_closed(self._session)

    def _move(self, to_phase: CheckoutPhase, message: str | None = None) -> None:
        change = self._session.move_to(to_phase, now=datetime.now(timezone.utc), message=message)
        record_transition(change.from_phase, change.to_phase)
        logger.info(
            "checkout_phase_changed",
            extra={
                **self._log_extra(),
                "from_phase": change.from_phase.value,
                "to_phase": change.to_phase.value,
            },
        )
        try:
            self._collaborators.event_sink.emit(change)
        except Exception:
            logger.exception("checkout_event_emit_failed", extra=self._log_extra())

    def _ensure_idle(self) -> None:
        if self._in_flight or self._session.is_busy:
            raise CheckoutBusyError(
                f"checkout {self._session.checkout_id} is busy in phase={self._session.phase.value}"
            )

    def _ensure_editable(self) -> None:
        self._ensure_idle()
        self._session.ensure_editable()

    def _ensure_print_error(self) -> None:
        if self._session.phase != CheckoutPhase.PRINT_ERROR:
            raise CheckoutStateError(
                f"receipt printing is not pending in phase={self._session.phase.value}"
            )

    def _log_extra(self) -> dict[str, object]:
        return {
            "checkout_id": self._session.checkout_id,
            "table_id": self._session.table_id,
            "phase": self._session.phase.value,
            "cart_id": self._session.cart_id,
            "payment_id": self._session.payment_id,
        }
