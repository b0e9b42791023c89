"""Shared API helpers for route handlers.

Caller identity, ledger error translation, and response builders used
across the investment route files.
"""

import logging
from typing import Optional

from fastapi import Header, HTTPException

from models import Holding, HoldingLot, InvestmentAccount
from schemas.transaction import TransactionEntryResponse
from services.exceptions import (
    ConcurrentModificationError,
    InsufficientFundsError,
    InsufficientQuantityError,
    LedgerError,
    LedgerValidationError,
    NotFoundError,
    PriceUnavailableError,
    UnauthorizedError,
)
from services.investment_account_service import MutationResult
from services.market_data_service import MarketDataService
from services.valuation_service import HoldingValuation, ValuationService
from utils.asset_display import format_quantity

logger = logging.getLogger(__name__)

_STATUS_BY_ERROR: list[tuple[type[LedgerError], int]] = [
    (LedgerValidationError, 400),
    (UnauthorizedError, 403),
    (NotFoundError, 404),
    (InsufficientQuantityError, 409),
    (InsufficientFundsError, 409),
    (ConcurrentModificationError, 409),
    (PriceUnavailableError, 503),
]


def get_current_user_id(x_user_id: Optional[str] = Header(default=None)) -> str:
    """Dependency returning the authenticated caller's id.

    Authentication happens upstream; the identity arrives in the
    ``X-User-Id`` header.

    Raises:
        HTTPException: 401 if the header is missing or blank.
    """
    if not x_user_id or not x_user_id.strip():
        raise HTTPException(status_code=401, detail="Missing X-User-Id header")
    return x_user_id.strip()


def parse_if_match(if_match: Optional[str]) -> Optional[int]:
    """Parse an ``If-Match`` header carrying an account version.

    Accepts ``3``, ``"3"`` and ``W/"3"``. Returns None when absent.
    """
    if if_match is None:
        return None
    value = if_match.strip()
    if value.startswith("W/"):
        value = value[2:]
    value = value.strip('"')
    try:
        return int(value)
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Invalid If-Match header: {if_match!r}")


def ledger_http_error(error: LedgerError) -> HTTPException:
    """Translate a ledger error into an HTTPException with its kind and context."""
    status_code = 400
    for error_type, code in _STATUS_BY_ERROR:
        if isinstance(error, error_type):
            status_code = code
            break
    return HTTPException(status_code=status_code, detail=error.to_dict())


def holding_response_dict(valuation: HoldingValuation) -> dict:
    """Build a HoldingResponse-compatible dict from a HoldingValuation."""
    holding, summary = valuation.holding, valuation.summary
    return {
        "id": holding.id,
        "identifier": holding.identifier,
        "display_name": holding.display_name,
        "asset_kind": holding.asset_kind,
        "current_price": holding.current_price,
        "price_updated_at": holding.price_updated_at,
        "is_stale": valuation.is_stale,
        "total_quantity": summary.total_quantity,
        "quantity_display": format_quantity(holding.asset_kind, summary.total_quantity),
        "total_cost_basis": summary.total_cost_basis,
        "average_cost": summary.average_cost,
        "market_value": summary.market_value,
        "unrealized_gain": summary.unrealized_gain,
        "unrealized_gain_percent": summary.unrealized_gain_percent,
        "lot_count": summary.lot_count,
    }


def holding_dict(holding: Holding) -> dict:
    return holding_response_dict(ValuationService.value_holding(holding))


def lot_response_dict(lot: HoldingLot) -> dict:
    """Build a HoldingLotResponse-compatible dict with the lot's cost basis."""
    return {
        "id": lot.id,
        "quantity": lot.quantity,
        "unit_cost": lot.unit_cost,
        "acquired_at": lot.acquired_at,
        "notes": lot.notes,
        "created_at": lot.created_at,
        "updated_at": lot.updated_at,
        "cost_basis": lot.quantity * lot.unit_cost,
    }


def mutation_response_dict(result: MutationResult) -> dict:
    """Build a HoldingMutationResponse-compatible dict from a MutationResult."""
    account: InvestmentAccount = result.account
    return {
        "account_version": account.version,
        "cash_balance": account.cash_balance,
        "holding": holding_dict(result.holding) if result.holding is not None else None,
        "transaction": (
            TransactionEntryResponse.model_validate(result.entry) if result.entry is not None else None
        ),
        "realized_gain": result.entry.realized_gain if result.entry is not None else None,
    }


def lots_response_dict(holding: Holding) -> dict:
    return {
        "holding": holding_dict(holding),
        "lots": [lot_response_dict(lot) for lot in holding.lots],
    }


def get_market_data_service() -> MarketDataService:
    """Dependency providing the price lookup service."""
    return MarketDataService()
