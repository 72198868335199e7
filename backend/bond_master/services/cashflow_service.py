"""Service for mutating bond cashflow schedules.

Every mutation runs as one unit of work holding the exclusive cashflow lock:
validate the placement of the date, allocate the sequence number and
identifier, walk the whole ledger with the pending change applied, write,
commit. The full ledger is then recomputed and persisted before the result
is returned.
"""

import logging
import datetime as dt
from decimal import Decimal
from typing import List, Optional, Sequence, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from bond_master.core.config import get_settings
from bond_master.core.exceptions import (
    BondNotFoundError,
    CashflowNotFoundError,
    CashflowValidationError,
    InvariantViolation,
)
from bond_master.models.db_models import Cashflow
from bond_master.models.schemas import (
    CashflowCreate,
    CashflowImportResult,
    CashflowResponse,
    CashflowUpdate,
)
from bond_master.services.date_sequence import (
    ScheduledDate,
    parse_cashflow_date,
    validate_cashflow_date,
)
from bond_master.services.ledger import LedgerEntry, compute_residuals, round2
from bond_master.services.sequence_allocator import (
    ScheduledSeq,
    check_sequence,
    next_sequence,
)
from bond_master.services.store import BondStore, LockScope

logger = logging.getLogger(__name__)

RATE_MIN = Decimal("0")
RATE_MAX = Decimal("1")

# decimal places the bond_cashflows columns can hold
RATE_PLACES = 6
MONEY_PLACES = 2


def _check_places(value: Decimal, places: int, field: str) -> None:
    """Reject values the column would round on write."""
    if value.normalize().as_tuple().exponent < -places:
        raise CashflowValidationError(
            f"{field} {value} has more than {places} decimal places", field=field)


def validate_rate(rate: Decimal) -> None:
    """Rates are fractions and must lie in [0, 1]."""
    if rate < RATE_MIN or rate > RATE_MAX:
        raise CashflowValidationError(
            f"Rate {rate} must be between {RATE_MIN} and {RATE_MAX}", field="rate")
    _check_places(rate, RATE_PLACES, "rate")


def validate_amort(amort: Decimal) -> None:
    if amort < 0:
        raise CashflowValidationError(
            f"Amortization {amort} must not be negative", field="amort")
    _check_places(amort, MONEY_PLACES, "amort")


def validate_amount(amount: Decimal) -> None:
    _check_places(amount, MONEY_PLACES, "amount")


class CashflowService:
    """Service for cashflow schedule operations."""

    def __init__(self, db: AsyncSession, principal: Optional[Decimal] = None):
        self.db = db
        self.store = BondStore(db)
        self.principal = principal if principal is not None else get_settings().principal

    async def list_for_bond(self, bond_id: int) -> List[CashflowResponse]:
        """List a bond's schedule ordered by sequence number."""
        async with self.store.transaction("list cashflows"):
            if not await self.store.bond_exists(bond_id):
                raise BondNotFoundError(bond_id)
            rows = await self.store.list_cashflows(bond_id, order_by="seq")

        return [CashflowResponse.model_validate(row) for row in rows]

    async def insert(self, bond_id: int, data: CashflowCreate) -> CashflowResponse:
        """Append a cashflow to the end of a bond's schedule.

        Raises:
            InvalidDateError: If the date cannot be parsed
            DateOrderingError: If the date is not after every existing date
            InvariantViolation: If the residual would go negative
            CashflowValidationError: If rate or amort are out of range
            BondNotFoundError: If the bond does not exist
        """
        validate_rate(data.rate)
        validate_amort(data.amort)
        validate_amount(data.amount)
        cf_date = parse_cashflow_date(data.date)

        async with self.store.transaction("insert cashflow"):
            cashflow = await self.store.with_exclusive_lock(
                LockScope.CASHFLOWS,
                lambda: self._append(bond_id, cf_date, data),
            )
        logger.info(
            f"Inserted cashflow {cashflow.id} (seq {cashflow.seq}) on bond {bond_id}")

        await self.recompute_ledger(bond_id)
        return CashflowResponse.model_validate(cashflow)

    async def update(
        self, bond_id: int, cashflow_id: int, data: CashflowUpdate
    ) -> CashflowResponse:
        """Edit a cashflow in place.

        Raises:
            SequenceConflictError: If the new sequence collides or leaves 1..N
            DateOrderingError: If the new date does not sit strictly between
                its neighbours
            InvariantViolation: If any residual would go negative
            CashflowNotFoundError: If the cashflow is not on this bond
        """
        if data.rate is not None:
            validate_rate(data.rate)
        if data.amort is not None:
            validate_amort(data.amort)
        if data.amount is not None:
            validate_amount(data.amount)
        cf_date = parse_cashflow_date(data.date) if data.date is not None else None

        async with self.store.transaction("update cashflow"):
            cashflow = await self.store.with_exclusive_lock(
                LockScope.CASHFLOWS,
                lambda: self._edit(bond_id, cashflow_id, data, cf_date),
            )
        logger.info(f"Updated cashflow {cashflow_id} on bond {bond_id}")

        await self.recompute_ledger(bond_id)
        return CashflowResponse.model_validate(cashflow)

    async def delete(self, bond_id: int, cashflow_id: int) -> None:
        """Delete a cashflow and close the gap it leaves in the sequence.

        The ledger recompute that follows is best-effort: the delete has
        already committed, so a failure there is logged and not raised.
        """
        async with self.store.transaction("delete cashflow"):
            await self.store.with_exclusive_lock(
                LockScope.CASHFLOWS,
                lambda: self._remove(bond_id, cashflow_id),
            )
        logger.info(f"Deleted cashflow {cashflow_id} from bond {bond_id}")

        try:
            await self.recompute_ledger(bond_id)
        except Exception:
            logger.exception(
                f"Ledger recompute failed after deleting cashflow {cashflow_id} "
                f"from bond {bond_id}; stored residuals may be stale")

    async def import_cashflows(
        self, bond_id: int, items: Sequence[CashflowCreate]
    ) -> CashflowImportResult:
        """Append a batch of cashflows, in the given order, all or nothing."""
        parsed: List[Tuple[dt.date, CashflowCreate]] = []
        for item in items:
            validate_rate(item.rate)
            validate_amort(item.amort)
            validate_amount(item.amount)
            parsed.append((parse_cashflow_date(item.date), item))

        async with self.store.transaction("import cashflows"):
            await self.store.with_exclusive_lock(
                LockScope.CASHFLOWS,
                lambda: self._append_all(bond_id, parsed),
            )
        logger.info(f"Imported {len(parsed)} cashflows into bond {bond_id}")

        if parsed:
            await self.recompute_ledger(bond_id)
        return CashflowImportResult(inserted=len(parsed))

    async def recompute_ledger(self, bond_id: int) -> List[CashflowResponse]:
        """Rewrite the residual of every cashflow of a bond from scratch."""
        async with self.store.transaction("recompute ledger"):
            rows = await self.store.with_exclusive_lock(
                LockScope.CASHFLOWS,
                lambda: self._rewrite_residuals(bond_id),
            )
        logger.debug(f"Recomputed {len(rows)} residuals for bond {bond_id}")

        return [CashflowResponse.model_validate(row) for row in rows]

    async def _append(
        self, bond_id: int, cf_date: dt.date, data: CashflowCreate
    ) -> Cashflow:
        if not await self.store.bond_exists(bond_id):
            raise BondNotFoundError(bond_id)

        rows = await self.store.list_cashflows(bond_id, order_by="date")
        validate_cashflow_date(
            [ScheduledDate(row.id, row.date) for row in rows], cf_date)

        seq = next_sequence(row.seq for row in rows)
        cashflow_id = await self.store.next_id(Cashflow)

        ordered = sorted(rows, key=lambda row: (row.seq, row.date))
        expected = None
        if not ordered:
            expected = round2(self.principal - data.amort)
        elif ordered[-1].residual is not None:
            expected = round2(ordered[-1].residual - data.amort)
        if expected is not None and expected < 0:
            raise InvariantViolation(cashflow_id, expected)

        # Re-walk the whole schedule; stored residuals are not trusted.
        entries = [LedgerEntry(row.id, row.amort) for row in ordered]
        entries.append(LedgerEntry(cashflow_id, data.amort))
        residual = compute_residuals(entries, self.principal)[-1].residual
        if expected is not None and residual != expected:
            logger.warning(
                f"Stale residuals on bond {bond_id}: last stored row implies "
                f"{expected}, full walk gives {residual}")

        cashflow = Cashflow(
            id=cashflow_id,
            bond_id=bond_id,
            seq=seq,
            date=cf_date,
            rate=data.rate,
            amort=data.amort,
            residual=residual,
            amount=data.amount,
        )
        return await self.store.write_cashflow(cashflow)

    async def _append_all(
        self, bond_id: int, parsed: Sequence[Tuple[dt.date, CashflowCreate]]
    ) -> None:
        if not await self.store.bond_exists(bond_id):
            raise BondNotFoundError(bond_id)
        for cf_date, item in parsed:
            await self._append(bond_id, cf_date, item)

    async def _edit(
        self,
        bond_id: int,
        cashflow_id: int,
        data: CashflowUpdate,
        cf_date: Optional[dt.date],
    ) -> Cashflow:
        cashflow = await self._get_or_raise(bond_id, cashflow_id)
        rows = await self.store.list_cashflows(bond_id, order_by="seq")

        if data.seq is not None:
            check_sequence(
                [ScheduledSeq(row.id, row.seq) for row in rows], cashflow_id, data.seq)
        if cf_date is not None:
            validate_cashflow_date(
                [ScheduledDate(row.id, row.date) for row in rows],
                cf_date,
                exclude_id=cashflow_id,
            )

        amort = data.amort if data.amort is not None else cashflow.amort
        lines = compute_residuals(
            [
                LedgerEntry(row.id, amort if row.id == cashflow_id else row.amort)
                for row in rows
            ],
            self.principal,
        )

        if data.seq is not None:
            cashflow.seq = data.seq
        if cf_date is not None:
            cashflow.date = cf_date
        if data.rate is not None:
            cashflow.rate = data.rate
        if data.amount is not None:
            cashflow.amount = data.amount
        cashflow.amort = amort
        cashflow.residual = next(
            line.residual for line in lines if line.cashflow_id == cashflow_id)

        await self.db.flush()
        return cashflow

    async def _remove(self, bond_id: int, cashflow_id: int) -> None:
        cashflow = await self._get_or_raise(bond_id, cashflow_id)
        await self.store.delete_cashflow(cashflow)
        moved = await self.store.renumber(bond_id)
        if moved:
            logger.debug(f"Renumbered {moved} cashflows on bond {bond_id}")

    async def _rewrite_residuals(self, bond_id: int) -> List[Cashflow]:
        if not await self.store.bond_exists(bond_id):
            raise BondNotFoundError(bond_id)

        rows = await self.store.list_cashflows(bond_id, order_by="seq")
        lines = compute_residuals(
            [LedgerEntry(row.id, row.amort) for row in rows], self.principal)
        for line in lines:
            await self.store.update_residual(line.cashflow_id, line.residual)
        return rows

    async def _get_or_raise(self, bond_id: int, cashflow_id: int) -> Cashflow:
        cashflow = await self.store.get_cashflow(bond_id, cashflow_id)
        if cashflow is None:
            if not await self.store.bond_exists(bond_id):
                raise BondNotFoundError(bond_id)
            raise CashflowNotFoundError(bond_id, cashflow_id)
        return cashflow
