from __future__ import annotations

from enum import Enum


class CheckoutPhase(str, Enum):
    COLLECTING_CUSTOMER = "COLLECTING_CUSTOMER"
    SELECTING_METHOD = "SELECTING_METHOD"
    ENTERING_AMOUNT = "ENTERING_AMOUNT"
    CONFIRMING = "CONFIRMING"
    VERIFYING_FISCAL_DEVICE = "VERIFYING_FISCAL_DEVICE"
    READY = "READY"
    EDITABLE = "EDITABLE"
    SUBMITTING = "SUBMITTING"
    FINALIZING = "FINALIZING"
    PRINTING = "PRINTING"
    PRINT_ERROR = "PRINT_ERROR"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


WIZARD_PHASES = frozenset(
    {
        CheckoutPhase.COLLECTING_CUSTOMER,
        CheckoutPhase.SELECTING_METHOD,
        CheckoutPhase.ENTERING_AMOUNT,
        CheckoutPhase.CONFIRMING,
        CheckoutPhase.VERIFYING_FISCAL_DEVICE,
        CheckoutPhase.READY,
    }
)

EDITABLE_PHASES = WIZARD_PHASES | {CheckoutPhase.EDITABLE}

SUBMITTABLE_PHASES = frozenset({CheckoutPhase.EDITABLE, CheckoutPhase.READY})

# No second submission, retry or skip while one of these is awaiting a collaborator.
BUSY_PHASES = frozenset(
    {CheckoutPhase.SUBMITTING, CheckoutPhase.FINALIZING, CheckoutPhase.PRINTING}
)

TERMINAL_PHASES = frozenset({CheckoutPhase.COMPLETED, CheckoutPhase.CANCELLED})

TRANSITIONS: dict[CheckoutPhase, frozenset[CheckoutPhase]] = {
    CheckoutPhase.COLLECTING_CUSTOMER: frozenset(
        {CheckoutPhase.SELECTING_METHOD, CheckoutPhase.CANCELLED}
    ),
    CheckoutPhase.SELECTING_METHOD: frozenset(
        {
            CheckoutPhase.ENTERING_AMOUNT,
            CheckoutPhase.CONFIRMING,
            CheckoutPhase.COLLECTING_CUSTOMER,
            CheckoutPhase.CANCELLED,
        }
    ),
    CheckoutPhase.ENTERING_AMOUNT: frozenset(
        {
            CheckoutPhase.VERIFYING_FISCAL_DEVICE,
            CheckoutPhase.READY,
            CheckoutPhase.SELECTING_METHOD,
            CheckoutPhase.CANCELLED,
        }
    ),
    CheckoutPhase.CONFIRMING: frozenset(
        {
            CheckoutPhase.VERIFYING_FISCAL_DEVICE,
            CheckoutPhase.READY,
            CheckoutPhase.SELECTING_METHOD,
            CheckoutPhase.CANCELLED,
        }
    ),
    CheckoutPhase.VERIFYING_FISCAL_DEVICE: frozenset(
        {
            CheckoutPhase.READY,
            CheckoutPhase.ENTERING_AMOUNT,
            CheckoutPhase.CONFIRMING,
            CheckoutPhase.CANCELLED,
        }
    ),
    CheckoutPhase.READY: frozenset(
        {
            CheckoutPhase.SUBMITTING,
            CheckoutPhase.VERIFYING_FISCAL_DEVICE,
            CheckoutPhase.ENTERING_AMOUNT,
            CheckoutPhase.CONFIRMING,
            CheckoutPhase.CANCELLED,
        }
    ),
    CheckoutPhase.EDITABLE: frozenset({CheckoutPhase.SUBMITTING, CheckoutPhase.CANCELLED}),
    # Capture failure returns to whichever submittable phase the presentation uses.
    CheckoutPhase.SUBMITTING: frozenset(
        {CheckoutPhase.FINALIZING, CheckoutPhase.EDITABLE, CheckoutPhase.READY}
    ),
    CheckoutPhase.FINALIZING: frozenset({CheckoutPhase.PRINTING}),
    CheckoutPhase.PRINTING: frozenset({CheckoutPhase.COMPLETED, CheckoutPhase.PRINT_ERROR}),
    CheckoutPhase.PRINT_ERROR: frozenset({CheckoutPhase.PRINTING, CheckoutPhase.COMPLETED}),
    CheckoutPhase.COMPLETED: frozenset(),
    CheckoutPhase.CANCELLED: frozenset(),
}


class InvalidPhaseTransitionError(Exception):
    def __init__(self, from_phase: CheckoutPhase, to_phase: CheckoutPhase) -> None:
        super().__init__(
            f"cannot transition checkout from phase={from_phase.value} to phase={to_phase.value}"
        )
        self.from_phase = from_phase
        self.to_phase = to_phase
        self.details = {"from": from_phase.value, "to": to_phase.value}


def can_transition(from_phase: CheckoutPhase, to_phase: CheckoutPhase) -> bool:
    return to_phase in TRANSITIONS[from_phase]


def transition(from_phase: CheckoutPhase, to_phase: CheckoutPhase) -> CheckoutPhase:
    if not can_transition(from_phase, to_phase):
        raise InvalidPhaseTransitionError(from_phase, to_phase)
    return to_phase
