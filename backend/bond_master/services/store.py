"""Storage collaborator used by the cashflow and bond services."""

import logging
from contextlib import asynccontextmanager
from decimal import Decimal
from enum import Enum
from typing import AsyncIterator, Awaitable, Callable, List, Optional, TypeVar

from sqlalchemy import delete, func, select, text, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from bond_master.core.exceptions import DatabaseError
from bond_master.models.db_models import Bond, Cashflow

logger = logging.getLogger(__name__)

T = TypeVar("T")


class LockScope(str, Enum):
    """Collections that can be locked exclusively; values are table names."""
    BONDS = "bonds"
    CASHFLOWS = "bond_cashflows"


ORDERINGS = {
    "seq": (Cashflow.seq, Cashflow.date),
    "date": (Cashflow.date, Cashflow.seq),
}


class BondStore:
    """Transaction, locking and row access over an AsyncSession."""

    def __init__(self, db: AsyncSession):
        self.db = db

    @asynccontextmanager
    async def transaction(self, operation: str = "unknown") -> AsyncIterator["BondStore"]:
        """Unit of work: commit on normal exit, roll back on any other.

        Driver and constraint failures are re-raised as DatabaseError.
        """
        try:
            yield self
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise DatabaseError(f"{operation} failed: {e}", operation=operation) from e
        except BaseException:
            await self.db.rollback()
            raise

    async def with_exclusive_lock(
        self, scope: LockScope, fn: Callable[[], Awaitable[T]]
    ) -> T:
        """Run ``fn`` holding an exclusive barrier on ``scope``.

        The lock lasts until the surrounding transaction commits or rolls
        back, so this must be called inside ``transaction()``.
        """
        await self.lock(scope)
        return await fn()

    async def lock(self, scope: LockScope) -> None:
        conn = await self.db.connection()
        if conn.dialect.name == "postgresql":
            await self.db.execute(
                text(f"LOCK TABLE {scope.value} IN EXCLUSIVE MODE"))
            logger.debug(f"Acquired exclusive lock on {scope.value}")
        # SQLite transactions already begin IMMEDIATE, which excludes
        # every other writer for their whole duration.

    async def next_id(self, model) -> int:
        """Return max(id) + 1 for a table (1 when empty)."""
        result = await self.db.execute(select(func.max(model.id)))
        current = result.scalar_one_or_none()
        return (current or 0) + 1

    async def bond_exists(self, bond_id: int) -> bool:
        result = await self.db.execute(
            select(Bond.id).where(Bond.id == bond_id)
        )
        return result.scalar_one_or_none() is not None

    async def get_bond(self, bond_id: int) -> Optional[Bond]:
        result = await self.db.execute(
            select(Bond).where(Bond.id == bond_id)
            .execution_options(populate_existing=True)
        )
        return result.unique().scalar_one_or_none()

    async def list_cashflows(
        self, bond_id: int, order_by: str = "seq"
    ) -> List[Cashflow]:
        """List a bond's cashflows ordered by ``"seq"`` or ``"date"``."""
        result = await self.db.execute(
            select(Cashflow)
            .where(Cashflow.bond_id == bond_id)
            .order_by(*ORDERINGS[order_by])
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())

    async def get_cashflow(self, bond_id: int, cashflow_id: int) -> Optional[Cashflow]:
        result = await self.db.execute(
            select(Cashflow).where(
                Cashflow.id == cashflow_id,
                Cashflow.bond_id == bond_id,
            )
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def write_cashflow(self, cashflow: Cashflow) -> Cashflow:
        self.db.add(cashflow)
        await self.db.flush()
        await self.db.refresh(cashflow)
        return cashflow

    async def update_residual(self, cashflow_id: int, value: Decimal) -> None:
        await self.db.execute(
            update(Cashflow)
            .where(Cashflow.id == cashflow_id)
            .values(residual=value)
        )

    async def delete_cashflow(self, cashflow: Cashflow) -> None:
        await self.db.execute(
            delete(Cashflow).where(Cashflow.id == cashflow.id)
        )

    async def renumber(self, bond_id: int) -> int:
        """Close gaps in a bond's sequence numbers, keeping their order.

        Rows are moved one at a time in ascending order so every target
        number is already free when it is written.

        Returns:
            Number of rows whose sequence changed
        """
        changed = 0
        rows = await self.list_cashflows(bond_id, order_by="seq")
        for expected, row in enumerate(rows, start=1):
            if row.seq != expected:
                await self.db.execute(
                    update(Cashflow)
                    .where(Cashflow.id == row.id)
                    .values(seq=expected)
                )
                changed += 1
        return changed
