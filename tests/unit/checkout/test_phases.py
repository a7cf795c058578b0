from __future__ import annotations

import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[3] / "src"))

from kasse.domain.checkout.phases import (
    BUSY_PHASES,
    TERMINAL_PHASES,
    TRANSITIONS,
    CheckoutPhase,
    InvalidPhaseTransitionError,
    can_transition,
    transition,
)


def test_every_phase_has_a_transition_entry() -> None:
    assert set(TRANSITIONS) == set(CheckoutPhase)


def test_terminal_phases_have_no_outgoing_edges() -> None:
    for phase in TERMINAL_PHASES:
        assert TRANSITIONS[phase] == frozenset()


def test_remote_sequence_is_fixed() -> None:
    assert can_transition(CheckoutPhase.EDITABLE, CheckoutPhase.SUBMITTING)
    assert can_transition(CheckoutPhase.SUBMITTING, CheckoutPhase.FINALIZING)
    assert can_transition(CheckoutPhase.FINALIZING, CheckoutPhase.PRINTING)
    assert can_transition(CheckoutPhase.PRINTING, CheckoutPhase.COMPLETED)

    assert not can_transition(CheckoutPhase.SUBMITTING, CheckoutPhase.PRINTING)
    assert not can_transition(CheckoutPhase.EDITABLE, CheckoutPhase.FINALIZING)
    assert not can_transition(CheckoutPhase.FINALIZING, CheckoutPhase.EDITABLE)


def test_print_error_only_retries_or_skips() -> None:
    assert TRANSITIONS[CheckoutPhase.PRINT_ERROR] == frozenset(
        {CheckoutPhase.PRINTING, CheckoutPhase.COMPLETED}
    )


def test_busy_phases_cannot_be_cancelled() -> None:
    for phase in BUSY_PHASES:
        assert not can_transition(phase, CheckoutPhase.CANCELLED)


def test_transition_raises_with_details() -> None:
    with pytest.raises(InvalidPhaseTransitionError) as exc_info:
        transition(CheckoutPhase.COMPLETED, CheckoutPhase.PRINTING)

    assert exc_info.value.details == {"from": "COMPLETED", "to": "PRINTING"}


def test_transition_returns_target_phase() -> None:
    assert transition(CheckoutPhase.PRINT_ERROR, CheckoutPhase.PRINTING) == CheckoutPhase.PRINTING
