"""Pydantic schemas for holdings."""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel

from models import AssetKind
from schemas.transaction import TransactionEntryResponse


class HoldingOpen(BaseModel):
    """Schema for buying into a holding, creating it if needed."""

    identifier: str
    display_name: Optional[str] = None
    asset_kind: AssetKind = AssetKind.EQUITY
    quantity: Decimal
    unit_cost: Decimal
    acquired_at: Optional[datetime] = None
    notes: Optional[str] = None
    fund_from_cash: bool = False


class HoldingUpdate(BaseModel):
    """Schema for renaming a holding."""

    display_name: str


class HoldingSell(BaseModel):
    """Schema for selling part or all of a holding."""

    quantity: Decimal
    sale_price: Decimal
    sale_date: Optional[datetime] = None
    notes: Optional[str] = None


class HoldingRemove(BaseModel):
    """Schema for removing a holding without a sale."""

    reason: Optional[str] = None
    removed_at: Optional[datetime] = None


class HoldingResponse(BaseModel):
    """A holding with the aggregates derived from its lots."""

    id: str
    identifier: str
    display_name: str
    asset_kind: str
    current_price: Decimal
    price_updated_at: Optional[datetime] = None
    is_stale: bool
    total_quantity: Decimal
    quantity_display: str
    total_cost_basis: Decimal
    average_cost: Decimal
    market_value: Decimal
    unrealized_gain: Decimal
    unrealized_gain_percent: Optional[Decimal] = None
    lot_count: int


class HoldingMutationResponse(BaseModel):
    """Response for a mutation that may close the holding."""

    account_version: int
    cash_balance: Decimal
    holding: Optional[HoldingResponse] = None  # None when the holding was closed
    transaction: Optional[TransactionEntryResponse] = None
    realized_gain: Optional[Decimal] = None


class PriceRefreshResult(BaseModel):
    """Outcome of refreshing one holding's price."""

    identifier: str
    status: str  # updated, unavailable, or skipped
    price: Optional[Decimal] = None
    error: Optional[dict] = None


class PriceRefreshResponse(BaseModel):
    """Per-holding outcomes of a batch price refresh."""

    results: list[PriceRefreshResult]
    updated: int
    unavailable: int
    skipped: int
