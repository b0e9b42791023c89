"""Pydantic schemas for API request/response validation."""

from schemas.account import (
    CashTransactionCreate,
    DividendCreate,
    InvestmentAccountCreate,
    InvestmentAccountResponse,
    InvestmentAccountUpdate,
)
from schemas.holding import (
    HoldingMutationResponse,
    HoldingOpen,
    HoldingRemove,
    HoldingResponse,
    HoldingSell,
    HoldingUpdate,
    PriceRefreshResponse,
    PriceRefreshResult,
)
from schemas.lot import HoldingLotCreate, HoldingLotResponse, HoldingLotsResponse, HoldingLotUpdate
from schemas.transaction import LotDisposalResponse, TransactionEntryResponse
from schemas.valuation import AccountValuationResponse

__all__ = [
    "AccountValuationResponse",
    "CashTransactionCreate",
    "DividendCreate",
    "HoldingLotCreate",
    "HoldingLotResponse",
    "HoldingLotsResponse",
    "HoldingLotUpdate",
    "HoldingMutationResponse",
    "HoldingOpen",
    "HoldingRemove",
    "HoldingResponse",
    "HoldingSell",
    "HoldingUpdate",
    "InvestmentAccountCreate",
    "InvestmentAccountResponse",
    "InvestmentAccountUpdate",
    "LotDisposalResponse",
    "PriceRefreshResponse",
    "PriceRefreshResult",
    "TransactionEntryResponse",
]
