"""Service for read-only account valuation."""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Optional

from sqlalchemy.orm import Session

from config import settings
from models import Holding, InvestmentAccount, utc_now
from services.investment_account_service import InvestmentAccountService
from services.lot_ledger_service import ZERO, HoldingSummary, LotLedgerService
from services.transaction_log_service import TransactionLogService

logger = logging.getLogger(__name__)


@dataclass
class HoldingValuation:
    holding: Holding
    summary: HoldingSummary
    is_stale: bool


@dataclass
class AccountValuation:
    account: InvestmentAccount
    holdings: list[HoldingValuation]
    holdings_value: Decimal
    cash_balance: Decimal
    total_value: Decimal
    total_cost_basis: Decimal
    total_unrealized_gain: Decimal
    total_realized_gain: Decimal


class ValuationService:
    """Derives values and gains from an account's persisted state."""

    @staticmethod
    def is_price_stale(
        holding: Holding,
        now: Optional[datetime] = None,
        max_age: Optional[timedelta] = None,
    ) -> bool:
        """A price is stale when it was never fetched or is older than max_age."""
        if holding.price_updated_at is None:
            return True
        now = now or utc_now()
        max_age = max_age or timedelta(minutes=settings.PRICE_STALE_AFTER_MINUTES)
        return now - holding.price_updated_at > max_age

    @staticmethod
    def value_holding(holding: Holding, now: Optional[datetime] = None) -> HoldingValuation:
        return HoldingValuation(
            holding=holding,
            summary=LotLedgerService.summarize(holding),
            is_stale=ValuationService.is_price_stale(holding, now),
        )

    @staticmethod
    def value_account(db: Session, account_id: str, caller_id: str) -> AccountValuation:
        account = InvestmentAccountService.get_owned_account(db, account_id, caller_id)
        now = utc_now()
        holdings = [ValuationService.value_holding(h, now) for h in account.holdings]

        holdings_value = sum((h.summary.market_value for h in holdings), ZERO)
        cash_balance = account.cash_balance or ZERO
        total_cost_basis = sum((h.summary.total_cost_basis for h in holdings), ZERO)

        return AccountValuation(
            account=account,
            holdings=holdings,
            holdings_value=holdings_value,
            cash_balance=cash_balance,
            total_value=holdings_value + cash_balance,
            total_cost_basis=total_cost_basis,
            total_unrealized_gain=holdings_value - total_cost_basis,
            total_realized_gain=TransactionLogService.total_realized_gain(db, account_id),
        )
