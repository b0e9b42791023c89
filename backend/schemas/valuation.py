"""Pydantic schemas for account valuation."""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel

from schemas.holding import HoldingResponse


class AccountValuationResponse(BaseModel):
    """Holdings valuation plus account-level totals."""

    account_id: str
    account_version: int
    as_of: datetime
    holdings: list[HoldingResponse]
    holdings_value: Decimal
    cash_balance: Decimal
    total_value: Decimal
    total_cost_basis: Decimal
    total_unrealized_gain: Decimal
    total_realized_gain: Decimal
