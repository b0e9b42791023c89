"""Lot management API endpoints."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Header
from sqlalchemy.orm import Session

from api.helpers import (
    get_current_user_id,
    ledger_http_error,
    lots_response_dict,
    mutation_response_dict,
    parse_if_match,
)
from database import get_db
from schemas import HoldingLotCreate, HoldingLotsResponse, HoldingLotUpdate, HoldingMutationResponse
from services.exceptions import LedgerError
from services.investment_account_service import InvestmentAccountService
from services.lot_ledger_service import UNSET

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/investments/{account_id}/holdings/{identifier}/lots", tags=["lots"])


@router.get("", response_model=HoldingLotsResponse)
def get_lots(
    account_id: str,
    identifier: str,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    """A holding's lots, oldest first, with its summary."""
    try:
        holding, _ = InvestmentAccountService.get_lots(db, account_id, user_id, identifier)
    except LedgerError as e:
        raise ledger_http_error(e)
    return lots_response_dict(holding)


@router.post("", response_model=HoldingMutationResponse, status_code=201)
def add_lot(
    account_id: str,
    identifier: str,
    payload: HoldingLotCreate,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
    if_match: Optional[str] = Header(default=None),
):
    """Add a purchase lot to an existing holding."""
    try:
        result = InvestmentAccountService.add_lot(
            db,
            account_id,
            user_id,
            identifier,
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


@router.put("/{lot_id}", response_model=HoldingMutationResponse)
def update_lot(
    account_id: str,
    identifier: str,
    lot_id: str,
    payload: HoldingLotUpdate,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
    if_match: Optional[str] = Header(default=None),
):
    """Correct a lot's quantity, cost, acquisition time, or notes."""
    fields = {
        name: getattr(payload, name) if name in payload.model_fields_set else UNSET
        for name in ("quantity", "unit_cost", "acquired_at", "notes")
    }
    try:
        result = InvestmentAccountService.edit_lot(
            db,
            account_id,
            user_id,
            identifier,
            lot_id,
            expected_version=parse_if_match(if_match),
            **fields,
        )
    except LedgerError as e:
        raise ledger_http_error(e)
    return mutation_response_dict(result)


@router.delete("/{lot_id}", response_model=HoldingMutationResponse)
def delete_lot(
    account_id: str,
    identifier: str,
    lot_id: str,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
    if_match: Optional[str] = Header(default=None),
):
    """Delete a lot. Deleting the last lot removes the holding."""
    try:
        result = InvestmentAccountService.delete_lot(
            db, account_id, user_id, identifier, lot_id,
            expected_version=parse_if_match(if_match),
        )
    except LedgerError as e:
        raise ledger_http_error(e)
    return mutation_response_dict(result)
