"""Test fixtures and sample data."""
from datetime import datetime

import pytest
from sqlalchemy.orm import Session

from models import InvestmentAccount
from services.investment_account_service import InvestmentAccountService

OWNER_ID = "user-1"
OTHER_USER_ID = "user-2"


def open_position(
    db: Session,
    account: InvestmentAccount,
    identifier: str,
    quantity,
    unit_cost,
    acquired_at: datetime,
    asset_kind: str = "EQUITY",
):
    """Buy into a holding as the account owner, committing the change."""
    return InvestmentAccountService.open_holding(
        db,
        account.id,
        account.owner_id,
        identifier=identifier,
        quantity=quantity,
        unit_cost=unit_cost,
        acquired_at=acquired_at,
        asset_kind=asset_kind,
    )


@pytest.fixture
def account(db: Session) -> InvestmentAccount:
    """An empty brokerage account owned by OWNER_ID."""
    return InvestmentAccountService.create_account(
        db, OWNER_ID, "Taxable Brokerage", account_type="Brokerage", institution="Vanguard"
    )


@pytest.fixture
def account_with_lots(db: Session, account: InvestmentAccount) -> InvestmentAccount:
    """Account holding AAPL in two lots: 10 @ 100 (Jan) then 5 @ 120 (Feb)."""
    open_position(db, account, "AAPL", "10", "100", datetime(2024, 1, 2))
    open_position(db, account, "AAPL", "5", "120", datetime(2024, 2, 1))
    db.refresh(account)
    return account


@pytest.fixture
def funded_account(db: Session, account: InvestmentAccount) -> InvestmentAccount:
    """Account with $500.00 of cash deposited."""
    InvestmentAccountService.record_cash_transaction(
        db, account.id, OWNER_ID, "DEPOSIT", "500", entry_date=datetime(2024, 1, 1)
    )
    db.refresh(account)
    return account
