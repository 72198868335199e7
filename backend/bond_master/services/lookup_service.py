"""Reference data lookups: index types and day-count conventions."""

from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from bond_master.models.db_models import DayCountConvention, IndexType
from bond_master.models.schemas import DayCountConventionResponse


class LookupService:
    """Read-only access to reference tables."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_index_codes(self) -> List[str]:
        result = await self.db.execute(
            select(IndexType.code).order_by(IndexType.code)
        )
        return list(result.scalars().all())

    async def list_day_count_conventions(self) -> List[DayCountConventionResponse]:
        result = await self.db.execute(
            select(DayCountConvention).order_by(DayCountConvention.convention)
        )
        return [
            DayCountConventionResponse(id=row.id, code=row.convention)
            for row in result.scalars().all()
        ]

    async def resolve_index_code(self, code: Optional[str]) -> Optional[int]:
        """Map a human-readable index code to its reference; unknown codes map to None."""
        if not code:
            return None
        result = await self.db.execute(
            select(IndexType.id).where(IndexType.code == code).limit(1)
        )
        return result.scalar_one_or_none()

    async def day_count_convention_exists(self, convention_id: int) -> bool:
        result = await self.db.execute(
            select(DayCountConvention.id).where(DayCountConvention.id == convention_id)
        )
        return result.scalar_one_or_none() is not None
