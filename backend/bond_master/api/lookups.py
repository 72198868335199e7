"""Reference data endpoints."""

from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from bond_master.core.database import get_db
from bond_master.models.schemas import DayCountConventionResponse
from bond_master.services.lookup_service import LookupService

router = APIRouter()


@router.get("/indexes", response_model=List[str])
async def list_indexes(db: AsyncSession = Depends(get_db)):
    """List index codes."""
    service = LookupService(db)
    return await service.list_index_codes()


@router.get("/day-count-conventions", response_model=List[DayCountConventionResponse])
async def list_day_count_conventions(db: AsyncSession = Depends(get_db)):
    """List day-count conventions."""
    service = LookupService(db)
    return await service.list_day_count_conventions()
