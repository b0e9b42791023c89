"""Holding API endpoints: buy, sell, remove, rename, and price refresh."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Header
from sqlalchemy.orm import Session

from api.helpers import (
    get_current_user_id,
    get_market_data_service,
    holding_dict,
    ledger_http_error,
    mutation_response_dict,
    parse_if_match,
)
from database import get_db
from schemas import (
    HoldingMutationResponse,
    HoldingOpen,
    HoldingRemove,
    HoldingResponse,
    HoldingSell,
    HoldingUpdate,
)
from services.exceptions import LedgerError
from services.investment_account_service import InvestmentAccountService
from services.market_data_service import MarketDataService
from services.price_refresh_service import PriceRefreshService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/investments/{account_id}/holdings", tags=["holdings"])


@router.post("", response_model=HoldingMutationResponse, status_code=201)
def open_holding(
    account_id: str,
    payload: HoldingOpen,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
    if_match: Optional[str] = Header(default=None),
):
    """Buy into a holding, creating it when the account does not hold it yet."""
    try:
        result = InvestmentAccountService.open_holding(
            db,
            account_id,
            user_id,
            identifier=payload.identifier,
            display_name=payload.display_name,
            asset_kind=payload.asset_kind,
            quantity=payload.quantity,
            unit_cost=payload.unit_cost,
            acquired_at=payload.acquired_at,
            notes=payload.notes,
            fund_from_cash=payload.fund_from_cash,
            expected_version=parse_if_match(if_match),
        )
    except LedgerError as e:
        raise ledger_http_error(e)
    return mutation_response_dict(result)


@router.patch("/{identifier}", response_model=HoldingMutationResponse)
def update_holding(
    account_id: str,
    identifier: str,
    payload: HoldingUpdate,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
    if_match: Optional[str] = Header(default=None),
):
    """Rename a holding."""
    try:
        result = InvestmentAccountService.update_holding_details(
            db,
            account_id,
            user_id,
            identifier,
            display_name=payload.display_name,
            expected_version=parse_if_match(if_match),
        )
    except LedgerError as e:
        raise ledger_http_error(e)
    return mutation_response_dict(result)


@router.post("/{identifier}/sell", response_model=HoldingMutationResponse)
def sell_holding(
    account_id: str,
    identifier: str,
    payload: HoldingSell,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
    if_match: Optional[str] = Header(default=None),
):
    """Sell part or all of a holding, oldest lots first."""
    try:
        result = InvestmentAccountService.sell_holding(
            db,
            account_id,
            user_id,
            identifier,
            quantity=payload.quantity,
            sale_price=payload.sale_price,
            sale_date=payload.sale_date,
            notes=payload.notes,
            expected_version=parse_if_match(if_match),
        )
    except LedgerError as e:
        raise ledger_http_error(e)
    return mutation_response_dict(result)


@router.post("/{identifier}/remove", response_model=HoldingMutationResponse)
def remove_holding(
    account_id: str,
    identifier: str,
    payload: Optional[HoldingRemove] = None,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
    if_match: Optional[str] = Header(default=None),
):
    """Remove a holding without recording a sale."""
    payload = payload or HoldingRemove()
    try:
        result = InvestmentAccountService.remove_holding(
            db,
            account_id,
            user_id,
            identifier,
            reason=payload.reason,
            removed_at=payload.removed_at,
            expected_version=parse_if_match(if_match),
        )
    except LedgerError as e:
        raise ledger_http_error(e)
    return mutation_response_dict(result)


@router.post("/{identifier}/price", response_model=HoldingResponse)
def refresh_holding_price(
    account_id: str,
    identifier: str,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
    market_data: MarketDataService = Depends(get_market_data_service),
):
    """Fetch and record the current price of one holding.

    Responds 503 when no price is available; the stored price is kept.
    """
    try:
        holding = PriceRefreshService.refresh_holding_price(
            db, account_id, user_id, identifier, market_data
        )
    except LedgerError as e:
        raise ledger_http_error(e)
    return holding_dict(holding)
