"""Residual ledger calculation for amortization schedules."""

from decimal import Decimal, ROUND_HALF_UP
from typing import List, NamedTuple, Optional, Sequence

from bond_master.core.exceptions import InvariantViolation

PRINCIPAL = Decimal("100")
CENT = Decimal("0.01")


class LedgerEntry(NamedTuple):
    """Amortization amount of one cashflow, in schedule order."""
    cashflow_id: Optional[int]
    amort: Decimal


class ResidualLine(NamedTuple):
    """Computed residual balance after one cashflow."""
    cashflow_id: Optional[int]
    residual: Decimal


def round2(value: Decimal) -> Decimal:
    """Round half-up to two decimal places."""
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def compute_residuals(
    entries: Sequence[LedgerEntry], principal: Decimal = PRINCIPAL
) -> List[ResidualLine]:
    """Walk the schedule subtracting each amortization from the running balance.

    Args:
        entries: Amortizations ordered by sequence number, then date
        principal: Balance before the first cashflow

    Returns:
        One ResidualLine per entry, in the same order

    Raises:
        InvariantViolation: If any residual drops below zero
    """
    residual = round2(principal)
    lines = []

    for entry in entries:
        residual = round2(residual - Decimal(entry.amort))
        if residual < 0:
            raise InvariantViolation(entry.cashflow_id, residual)
        lines.append(ResidualLine(entry.cashflow_id, residual))

    return lines
