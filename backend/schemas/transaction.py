"""Pydantic schemas for the account transaction log."""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, computed_field


class LotDisposalResponse(BaseModel):
    """Schema for LotDisposal API response."""

    lot_id: str
    acquired_at: datetime
    quantity: Decimal
    unit_cost: Decimal
    proceeds_per_unit: Optional[Decimal] = None

    model_config = ConfigDict(from_attributes=True)


class TransactionEntryResponse(BaseModel):
    """Schema for TransactionEntry API response."""

    id: str
    sequence: int
    kind: str
    entry_date: datetime
    identifier: Optional[str] = None
    display_name: Optional[str] = None
    quantity: Optional[Decimal] = None
    unit_price: Optional[Decimal] = None
    amount: Decimal
    cash_delta: Decimal
    realized_gain: Optional[Decimal] = None
    notes: Optional[str] = None
    created_at: datetime
    disposals: list[LotDisposalResponse] = []

    model_config = ConfigDict(from_attributes=True)

    @computed_field
    @property
    def is_removal(self) -> bool:
        """True for holdings removed (not sold) so history can label them."""
        return self.kind == "REMOVE"
