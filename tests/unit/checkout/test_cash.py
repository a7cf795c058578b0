from __future__ import annotations

import sys
from decimal import Decimal
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[3] / "src"))

from kasse.domain.checkout.cash import (
    CASH_DENOMINATIONS,
    MAX_PRESETS,
    InvalidAmountError,
    compute_change,
    compute_presets,
)


def test_presets_for_small_total_start_at_first_covering_note() -> None:
    assert compute_presets(Decimal("37.00")) == [50, 100, 200, 500]


def test_presets_empty_when_no_note_covers_total() -> None:
    assert compute_presets(Decimal("620.00")) == []


def test_presets_include_exact_denomination() -> None:
    assert compute_presets(Decimal("20")) == [20, 50, 100, 200]
    assert compute_presets(Decimal("20.01")) == [50, 100, 200, 500]


def test_presets_near_upper_end_are_shorter_than_four() -> None:
    assert compute_presets(Decimal("150")) == [200, 500]
    assert compute_presets(Decimal("500")) == [500]


def test_presets_for_zero_total() -> None:
    assert compute_presets(Decimal("0")) == [5, 10, 20, 50]


@pytest.mark.parametrize("total", ["0", "0.01", "4.99", "5", "12.30", "99.99", "199", "350", "500", "500.01"])
def test_presets_are_ascending_covering_denominations(total: str) -> None:
    presets = compute_presets(Decimal(total))

    assert len(presets) <= MAX_PRESETS
    assert presets == sorted(set(presets))
    assert all(value in CASH_DENOMINATIONS for value in presets)
    assert all(value >= Decimal(total) for value in presets)


def test_presets_reject_negative_total() -> None:
    with pytest.raises(InvalidAmountError):
        compute_presets(Decimal("-1"))


def test_change_for_tendered_note() -> None:
    assert compute_change(Decimal("50"), Decimal("37.00")) == Decimal("13.00")


def test_change_is_zero_for_exact_tender() -> None:
    assert compute_change("12.50", "12.50") == Decimal("0.00")


def test_change_flags_insufficient_tender() -> None:
    with pytest.raises(InvalidAmountError):
        compute_change(Decimal("20"), Decimal("37.00"))


@pytest.mark.parametrize("tendered", ["1e30", "abc", "NaN", "Infinity"])
def test_change_rejects_amounts_it_cannot_represent(tendered: str) -> None:
    with pytest.raises(InvalidAmountError):
        compute_change(tendered, "1")
