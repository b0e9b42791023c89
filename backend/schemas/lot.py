"""Pydantic schemas for lot-based cost basis tracking."""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict

from schemas.holding import HoldingResponse


class HoldingLotCreate(BaseModel):
    """Schema for adding a lot to an existing holding."""

    quantity: Decimal
    unit_cost: Decimal
    acquired_at: Optional[datetime] = None
    notes: Optional[str] = None
    fund_from_cash: bool = False


class HoldingLotUpdate(BaseModel):
    """Schema for correcting a lot. Only fields that are set are changed."""

    quantity: Optional[Decimal] = None
    unit_cost: Optional[Decimal] = None
    acquired_at: Optional[datetime] = None
    notes: Optional[str] = None


class HoldingLotResponse(BaseModel):
    """Schema for HoldingLot API response."""

    id: str
    quantity: Decimal
    unit_cost: Decimal
    acquired_at: datetime
    notes: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    # Computed by the route from quantity and unit_cost
    cost_basis: Optional[Decimal] = None

    model_config = ConfigDict(from_attributes=True)


class HoldingLotsResponse(BaseModel):
    """A holding's lots, oldest first, with its summary."""

    holding: HoldingResponse
    lots: list[HoldingLotResponse]
