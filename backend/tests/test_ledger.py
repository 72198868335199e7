"""Property-based tests for the residual ledger.

**Property: residuals are the cumulative subtraction of amortizations from 100**
"""

from decimal import Decimal

import pytest
from hypothesis import given, strategies as st, settings

from bond_master.core.exceptions import InvariantViolation
from bond_master.services.ledger import (
    LedgerEntry, ResidualLine, compute_residuals, round2,
)


amort_strategy = st.decimals(
    min_value=0, max_value=60, places=2,
    allow_nan=False, allow_infinity=False,
)


@given(amorts=st.lists(amort_strategy, min_size=0, max_size=12))
@settings(max_examples=200)
def test_residuals_follow_cumulative_subtraction(amorts):
    """
    For any amortization sequence, each residual is 100 minus the running
    sum, rounded to cents, and the sequence never increases. Sequences that
    overdraw the principal fail at the first negative residual.
    """
    entries = [LedgerEntry(i + 1, amort) for i, amort in enumerate(amorts)]

    expected = []
    running = Decimal("100")
    first_negative = None
    for entry in entries:
        running = round2(running - entry.amort)
        if running < 0:
            first_negative = (entry.cashflow_id, running)
            break
        expected.append(ResidualLine(entry.cashflow_id, running))

    if first_negative is not None:
        with pytest.raises(InvariantViolation) as exc_info:
            compute_residuals(entries)
        assert exc_info.value.cashflow_id == first_negative[0]
        assert exc_info.value.residual == first_negative[1]
        return

    lines = compute_residuals(entries)
    assert lines == expected
    residuals = [Decimal("100")] + [line.residual for line in lines]
    assert all(a >= b for a, b in zip(residuals, residuals[1:]))


def test_empty_schedule_has_no_residuals():
    assert compute_residuals([]) == []


def test_single_amortization():
    lines = compute_residuals([LedgerEntry(7, Decimal("30"))])
    assert lines == [ResidualLine(7, Decimal("70.00"))]


def test_full_amortization_reaches_zero():
    lines = compute_residuals([
        LedgerEntry(1, Decimal("60")),
        LedgerEntry(2, Decimal("40")),
    ])
    assert lines[-1].residual == Decimal("0")


def test_overdraw_names_offending_cashflow():
    with pytest.raises(InvariantViolation) as exc_info:
        compute_residuals([
            LedgerEntry(1, Decimal("30")),
            LedgerEntry(2, Decimal("80")),
        ])
    assert exc_info.value.cashflow_id == 2
    assert exc_info.value.residual == Decimal("-10.00")
    assert "-10.00" in exc_info.value.message


def test_custom_principal():
    lines = compute_residuals([LedgerEntry(1, Decimal("250"))], principal=Decimal("1000"))
    assert lines[0].residual == Decimal("750.00")


def test_round2_is_half_up():
    assert round2(Decimal("10.005")) == Decimal("10.01")
    assert round2(Decimal("10.004")) == Decimal("10.00")
