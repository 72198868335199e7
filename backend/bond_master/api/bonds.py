"""Bond CRUD endpoints."""

from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from bond_master.core.database import get_db
from bond_master.models.schemas import BondCreate, BondUpdate, BondResponse
from bond_master.services.bond_service import BondService

router = APIRouter()


@router.get("", response_model=List[BondResponse])
async def list_bonds(db: AsyncSession = Depends(get_db)):
    """List all bonds."""
    service = BondService(db)
    return await service.list_all()


@router.post("", response_model=BondResponse, status_code=201)
async def create_bond(bond_data: BondCreate, db: AsyncSession = Depends(get_db)):
    """Create a new bond."""
    service = BondService(db)
    return await service.create(bond_data)


@router.get("/{bond_id}", response_model=BondResponse)
async def get_bond(bond_id: int, db: AsyncSession = Depends(get_db)):
    """Get a bond by ID."""
    service = BondService(db)
    return await service.get_by_id(bond_id)


@router.put("/{bond_id}", response_model=BondResponse)
async def update_bond(
    bond_id: int,
    bond_data: BondUpdate,
    db: AsyncSession = Depends(get_db),
):
    """Update a bond."""
    service = BondService(db)
    return await service.update(bond_id, bond_data)


@router.delete("/{bond_id}", status_code=204)
async def delete_bond(bond_id: int, db: AsyncSession = Depends(get_db)):
    """Delete a bond and its cashflows."""
    service = BondService(db)
    await service.delete(bond_id)
    return None
