"""Investment account API endpoints."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Header, Query, Response
from sqlalchemy.orm import Session

from api.helpers import (
    get_current_user_id,
    get_market_data_service,
    holding_response_dict,
    ledger_http_error,
    mutation_response_dict,
    parse_if_match,
)
from database import get_db
from schemas import (
    AccountValuationResponse,
    CashTransactionCreate,
    DividendCreate,
    HoldingMutationResponse,
    InvestmentAccountCreate,
    InvestmentAccountResponse,
    InvestmentAccountUpdate,
    PriceRefreshResponse,
    TransactionEntryResponse,
)
from services.exceptions import LedgerError
from services.investment_account_service import InvestmentAccountService
from services.lot_ledger_service import UNSET
from services.market_data_service import MarketDataService
from services.price_refresh_service import (
    STATUS_SKIPPED,
    STATUS_UNAVAILABLE,
    STATUS_UPDATED,
    PriceRefreshService,
)
from services.valuation_service import ValuationService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/investments", tags=["investments"])


@router.get("", response_model=list[InvestmentAccountResponse])
def list_accounts(
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    """List the caller's investment accounts."""
    return InvestmentAccountService.list_accounts(db, user_id)


@router.post("", response_model=InvestmentAccountResponse, status_code=201)
def create_account(
    payload: InvestmentAccountCreate,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    """Create an empty investment account owned by the caller."""
    try:
        return InvestmentAccountService.create_account(
            db,
            owner_id=user_id,
            name=payload.name,
            account_type=payload.account_type,
            institution=payload.institution,
        )
    except LedgerError as e:
        raise ledger_http_error(e)


@router.get("/{account_id}", response_model=InvestmentAccountResponse)
def get_account(
    account_id: str,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    try:
        return InvestmentAccountService.get_owned_account(db, account_id, user_id)
    except LedgerError as e:
        raise ledger_http_error(e)


@router.patch("/{account_id}", response_model=InvestmentAccountResponse)
def update_account(
    account_id: str,
    payload: InvestmentAccountUpdate,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
    if_match: Optional[str] = Header(default=None),
):
    """Update account name, institution, or type."""
    try:
        return InvestmentAccountService.update_account(
            db,
            account_id,
            user_id,
            name=payload.name,
            institution=payload.institution if "institution" in payload.model_fields_set else UNSET,
            account_type=payload.account_type,
            expected_version=parse_if_match(if_match),
        )
    except LedgerError as e:
        raise ledger_http_error(e)


@router.delete("/{account_id}", status_code=204)
def delete_account(
    account_id: str,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
    if_match: Optional[str] = Header(default=None),
):
    """Delete an account with all of its holdings and history."""
    try:
        InvestmentAccountService.delete_account(
            db, account_id, user_id, expected_version=parse_if_match(if_match)
        )
    except LedgerError as e:
        raise ledger_http_error(e)
    return Response(status_code=204)


@router.get("/{account_id}/valuation", response_model=AccountValuationResponse)
def get_valuation(
    account_id: str,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    """Holdings valuation, cost basis, and gains for an account."""
    try:
        valuation = ValuationService.value_account(db, account_id, user_id)
    except LedgerError as e:
        raise ledger_http_error(e)

    account = valuation.account
    return {
        "account_id": account.id,
        "account_version": account.version,
        "as_of": account.updated_at,
        "holdings": [holding_response_dict(h) for h in valuation.holdings],
        "holdings_value": valuation.holdings_value,
        "cash_balance": valuation.cash_balance,
        "total_value": valuation.total_value,
        "total_cost_basis": valuation.total_cost_basis,
        "total_unrealized_gain": valuation.total_unrealized_gain,
        "total_realized_gain": valuation.total_realized_gain,
    }


@router.get("/{account_id}/transactions", response_model=list[TransactionEntryResponse])
def get_transactions(
    account_id: str,
    kind: Optional[str] = Query(default=None),
    identifier: Optional[str] = Query(default=None),
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    """The account's transaction log in the order entries were recorded."""
    try:
        return InvestmentAccountService.get_transactions(
            db, account_id, user_id, kind=kind, identifier=identifier
        )
    except LedgerError as e:
        raise ledger_http_error(e)


@router.post("/{account_id}/cash", response_model=HoldingMutationResponse, status_code=201)
def record_cash_transaction(
    account_id: str,
    payload: CashTransactionCreate,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
    if_match: Optional[str] = Header(default=None),
):
    """Deposit or withdraw cash."""
    try:
        result = InvestmentAccountService.record_cash_transaction(
            db,
            account_id,
            user_id,
            kind=payload.kind.upper(),
            amount=payload.amount,
            entry_date=payload.entry_date,
            notes=payload.notes,
            expected_version=parse_if_match(if_match),
        )
    except LedgerError as e:
        raise ledger_http_error(e)
    return mutation_response_dict(result)


@router.post("/{account_id}/dividends", response_model=HoldingMutationResponse, status_code=201)
def record_dividend(
    account_id: str,
    payload: DividendCreate,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
    if_match: Optional[str] = Header(default=None),
):
    """Record a dividend credited to the account's cash."""
    try:
        result = InvestmentAccountService.record_dividend(
            db,
            account_id,
            user_id,
            amount=payload.amount,
            identifier=payload.identifier,
            entry_date=payload.entry_date,
            notes=payload.notes,
            expected_version=parse_if_match(if_match),
        )
    except LedgerError as e:
        raise ledger_http_error(e)
    return mutation_response_dict(result)


@router.post("/{account_id}/prices/refresh", response_model=PriceRefreshResponse)
def refresh_all_prices(
    account_id: str,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
    market_data: MarketDataService = Depends(get_market_data_service),
):
    """Refresh the price of every holding; each reports its own outcome."""
    try:
        outcomes = PriceRefreshService.refresh_all_prices(db, account_id, user_id, market_data)
    except LedgerError as e:
        raise ledger_http_error(e)

    results = [
        {"identifier": o.identifier, "status": o.status, "price": o.price, "error": o.error}
        for o in outcomes
    ]
    return {
        "results": results,
        "updated": sum(1 for o in outcomes if o.status == STATUS_UPDATED),
        "unavailable": sum(1 for o in outcomes if o.status == STATUS_UNAVAILABLE),
        "skipped": sum(1 for o in outcomes if o.status == STATUS_SKIPPED),
    }
