"""Pydantic schemas for API request/response models."""

import datetime as dt
from decimal import Decimal
from typing import Optional, Union
from pydantic import BaseModel, Field


# Bond schemas
class BondBase(BaseModel):
    """Base bond schema."""
    ticker: str = Field(..., min_length=1, max_length=50)
    issue_date: dt.date
    maturity_date: dt.date
    coupon: Optional[Decimal] = None
    index_code: Optional[str] = None
    offset_days: int = 0
    day_count_conv_id: Optional[int] = None
    active: bool = True


class BondCreate(BondBase):
    """Schema for creating a bond."""
    pass


class BondUpdate(BaseModel):
    """Schema for updating a bond."""
    ticker: Optional[str] = Field(None, min_length=1, max_length=50)
    issue_date: Optional[dt.date] = None
    maturity_date: Optional[dt.date] = None
    coupon: Optional[Decimal] = None
    index_code: Optional[str] = None
    offset_days: Optional[int] = None
    day_count_conv_id: Optional[int] = None
    active: Optional[bool] = None


class BondResponse(BaseModel):
    """Schema for bond response."""
    id: int
    ticker: str
    issue_date: dt.date
    maturity_date: dt.date
    coupon: Optional[float] = None
    index_type_id: Optional[int] = None
    index_code: Optional[str] = None
    offset_days: int
    day_count_conv_id: Optional[int] = None
    day_count_conv: Optional[str] = None
    active: bool
    created_at: dt.datetime
    updated_at: dt.datetime

    model_config = {"from_attributes": True}


# Cashflow schemas
class CashflowCreate(BaseModel):
    """Schema for appending a cashflow to a bond's schedule.

    The date is left as received so that malformed values surface as
    InvalidDateError rather than a request validation failure.
    """
    date: Union[dt.date, str]
    rate: Decimal = Decimal("0")
    amort: Decimal
    amount: Decimal = Decimal("0")


class CashflowUpdate(BaseModel):
    """Schema for editing a cashflow."""
    seq: Optional[int] = None
    date: Optional[Union[dt.date, str]] = None
    rate: Optional[Decimal] = None
    amort: Optional[Decimal] = None
    amount: Optional[Decimal] = None


class CashflowResponse(BaseModel):
    """Schema for cashflow response."""
    id: int
    bond_id: int
    seq: int
    date: dt.date
    rate: float
    amort: float
    residual: Optional[float] = None
    amount: float
    created_at: dt.datetime

    model_config = {"from_attributes": True}


class CashflowImportResult(BaseModel):
    """Schema for bulk import response."""
    inserted: int


# Lookup schemas
class DayCountConventionResponse(BaseModel):
    """Day-count convention in the shape the frontend expects."""
    id: int
    code: str
    description: Optional[str] = None
