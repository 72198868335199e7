"""Service for managing bonds."""

import logging
import datetime as dt
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from bond_master.models.db_models import Bond
from bond_master.models.schemas import BondCreate, BondUpdate, BondResponse
from bond_master.services.lookup_service import LookupService
from bond_master.services.store import BondStore, LockScope
from bond_master.core.exceptions import BondNotFoundError, BondValidationError

logger = logging.getLogger(__name__)


def validate_bond_terms(
    issue_date: dt.date, maturity_date: dt.date, coupon: Optional[Decimal]
) -> None:
    """Check the bond fields the server enforces.

    Raises:
        BondValidationError: If maturity is not after issue or the coupon is
            outside [0, 1]
    """
    if maturity_date <= issue_date:
        raise BondValidationError(
            f"Maturity {maturity_date.isoformat()} must be after issue date "
            f"{issue_date.isoformat()}",
            field="maturity_date",
        )
    if coupon is not None and (coupon < 0 or coupon > 1):
        raise BondValidationError(
            f"Coupon {coupon} must be between 0 and 1", field="coupon")


class BondService:
    """Service for bond CRUD operations."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.store = BondStore(db)
        self.lookups = LookupService(db)

    async def allocate_bond_id(self) -> int:
        """Next dense bond identifier.

        Takes the exclusive bonds lock, which is held until the caller's
        transaction ends, so the id stays reserved until the insert commits.
        """
        return await self.store.with_exclusive_lock(
            LockScope.BONDS, lambda: self.store.next_id(Bond))

    async def create(self, bond_data: BondCreate) -> BondResponse:
        """Create a new bond."""
        validate_bond_terms(
            bond_data.issue_date, bond_data.maturity_date, bond_data.coupon)

        async with self.store.transaction("create bond"):
            await self._check_day_count(bond_data.day_count_conv_id)
            index_type_id = await self.lookups.resolve_index_code(bond_data.index_code)

            bond_id = await self.allocate_bond_id()
            bond = Bond(
                id=bond_id,
                ticker=bond_data.ticker,
                issue_date=bond_data.issue_date,
                maturity_date=bond_data.maturity_date,
                coupon=bond_data.coupon,
                index_type_id=index_type_id,
                offset_days=bond_data.offset_days,
                day_count_conv_id=bond_data.day_count_conv_id,
                active=bond_data.active,
            )
            self.db.add(bond)
            await self.db.flush()
            await self.db.refresh(bond)

        logger.info(f"Created bond {bond.id} ({bond.ticker})")
        return BondResponse.model_validate(bond)

    async def get_by_id(self, bond_id: int) -> BondResponse:
        """Get a bond by ID."""
        async with self.store.transaction("get bond"):
            bond = await self.store.get_bond(bond_id)

        if bond is None:
            raise BondNotFoundError(bond_id)

        return BondResponse.model_validate(bond)

    async def list_all(self) -> List[BondResponse]:
        """List all bonds ordered by ID."""
        async with self.store.transaction("list bonds"):
            result = await self.db.execute(
                select(Bond)
                .order_by(Bond.id)
                .execution_options(populate_existing=True)
            )
            bonds = result.unique().scalars().all()

        return [BondResponse.model_validate(b) for b in bonds]

    async def update(self, bond_id: int, bond_data: BondUpdate) -> BondResponse:
        """Update a bond.

        ``index_code`` is re-resolved whenever it is present in the payload;
        sending it as null clears the index reference.
        """
        async with self.store.transaction("update bond"):
            bond = await self.store.get_bond(bond_id)
            if bond is None:
                raise BondNotFoundError(bond_id)

            fields = bond_data.model_fields_set
            issue_date = bond_data.issue_date or bond.issue_date
            maturity_date = bond_data.maturity_date or bond.maturity_date
            coupon = bond_data.coupon if "coupon" in fields else bond.coupon
            validate_bond_terms(issue_date, maturity_date, coupon)

            if "day_count_conv_id" in fields:
                await self._check_day_count(bond_data.day_count_conv_id)
                bond.day_count_conv_id = bond_data.day_count_conv_id
            if "index_code" in fields:
                bond.index_type_id = await self.lookups.resolve_index_code(
                    bond_data.index_code)

            if bond_data.ticker is not None:
                bond.ticker = bond_data.ticker
            if bond_data.offset_days is not None:
                bond.offset_days = bond_data.offset_days
            if bond_data.active is not None:
                bond.active = bond_data.active
            bond.issue_date = issue_date
            bond.maturity_date = maturity_date
            bond.coupon = coupon

            bond.updated_at = dt.datetime.utcnow()
            await self.db.flush()
            await self.db.refresh(bond)

        return BondResponse.model_validate(bond)

    async def delete(self, bond_id: int) -> bool:
        """Delete a bond together with its cashflow schedule."""
        async with self.store.transaction("delete bond"):
            bond = await self.store.get_bond(bond_id)
            if bond is None:
                raise BondNotFoundError(bond_id)
            await self.db.delete(bond)

        logger.info(f"Deleted bond {bond_id}")
        return True

    async def _check_day_count(self, convention_id: Optional[int]) -> None:
        if convention_id is None:
            return
        if not await self.lookups.day_count_convention_exists(convention_id):
            raise BondValidationError(
                f"Unknown day-count convention: {convention_id}",
                field="day_count_conv_id",
            )
