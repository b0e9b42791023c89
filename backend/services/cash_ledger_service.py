"""Service for an account's cash balance."""

import logging
from decimal import Decimal
from typing import Any

from models import InvestmentAccount
from services.exceptions import InsufficientFundsError
from services.lot_ledger_service import ZERO, require_positive

logger = logging.getLogger(__name__)


class CashLedgerService:
    """Applies cash movements to ``InvestmentAccount.cash_balance``.

    The balance never goes negative: a withdrawal or debit larger than
    the balance is rejected outright, never clamped or partially applied.
    """

    @staticmethod
    def balance(account: InvestmentAccount) -> Decimal:
        return account.cash_balance if account.cash_balance is not None else ZERO

    @staticmethod
    def deposit(account: InvestmentAccount, amount: Any) -> Decimal:
        """Add amount to the balance. Returns the new balance."""
        amount = require_positive("amount", amount)
        account.cash_balance = CashLedgerService.balance(account) + amount
        return account.cash_balance

    @staticmethod
    def withdraw(account: InvestmentAccount, amount: Any) -> Decimal:
        """Subtract amount from the balance. Returns the new balance.

        Raises:
            InsufficientFundsError: amount exceeds the current balance.
        """
        amount = require_positive("amount", amount)
        balance = CashLedgerService.balance(account)
        if amount > balance:
            raise InsufficientFundsError(
                f"Cannot withdraw {amount}: cash balance is {balance}",
                account_id=account.id,
                requested=amount,
                available=balance,
            )
        account.cash_balance = balance - amount
        return account.cash_balance

    # Buy/sell settlement uses the same rules as deposit/withdraw
    credit = deposit
    debit = withdraw
