"""Cashflow schedule endpoints."""

from typing import List

from fastapi import APIRouter, Depends, File, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from bond_master.core.database import get_db
from bond_master.models.schemas import (
    CashflowCreate,
    CashflowUpdate,
    CashflowResponse,
    CashflowImportResult,
)
from bond_master.services.cashflow_import import parse_cashflow_csv
from bond_master.services.cashflow_service import CashflowService

router = APIRouter()


@router.get("/{bond_id}/cashflows", response_model=List[CashflowResponse])
async def list_cashflows(bond_id: int, db: AsyncSession = Depends(get_db)):
    """List a bond's cashflows ordered by sequence."""
    service = CashflowService(db)
    return await service.list_for_bond(bond_id)


@router.post("/{bond_id}/cashflows", response_model=CashflowResponse, status_code=201)
async def create_cashflow(
    bond_id: int, cashflow_data: CashflowCreate, db: AsyncSession = Depends(get_db)
):
    """Append a cashflow to the schedule."""
    service = CashflowService(db)
    return await service.insert(bond_id, cashflow_data)


@router.put("/{bond_id}/cashflows/{cashflow_id}", response_model=CashflowResponse)
async def update_cashflow(
    bond_id: int,
    cashflow_id: int,
    cashflow_data: CashflowUpdate,
    db: AsyncSession = Depends(get_db),
):
    """Edit a cashflow."""
    service = CashflowService(db)
    return await service.update(bond_id, cashflow_id, cashflow_data)


@router.delete("/{bond_id}/cashflows/{cashflow_id}", status_code=204)
async def delete_cashflow(
    bond_id: int, cashflow_id: int, db: AsyncSession = Depends(get_db)
):
    """Delete a cashflow."""
    service = CashflowService(db)
    await service.delete(bond_id, cashflow_id)
    return None


@router.post("/{bond_id}/cashflows/recompute", response_model=List[CashflowResponse])
async def recompute_cashflows(bond_id: int, db: AsyncSession = Depends(get_db)):
    """Recompute every residual of the schedule."""
    service = CashflowService(db)
    return await service.recompute_ledger(bond_id)


@router.post("/{bond_id}/cashflows/bulk-json", response_model=CashflowImportResult)
async def import_cashflows_json(
    bond_id: int,
    rows: List[CashflowCreate],
    db: AsyncSession = Depends(get_db),
):
    """Append an array of cashflows in one transaction."""
    service = CashflowService(db)
    return await service.import_cashflows(bond_id, rows)


@router.post("/{bond_id}/cashflows/bulk", response_model=CashflowImportResult)
async def import_cashflows_csv(
    bond_id: int,
    file: UploadFile = File(...),
    db: AsyncSession = Depends(get_db),
):
    """Append cashflows from a CSV upload in one transaction."""
    content = await file.read()
    rows = parse_cashflow_csv(content)
    service = CashflowService(db)
    return await service.import_cashflows(bond_id, rows)
