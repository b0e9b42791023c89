"""Service for investment accounts: the caller-facing ledger operations.

Every mutating method runs inside one AccountMutator unit of work and
composes the holding, lot, cash, and transaction-log services. A method
either applies all of its changes and appends its transaction entry, or
raises and leaves the account exactly as it was.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from models import (
    AccountType,
    Holding,
    HoldingLot,
    InvestmentAccount,
    TransactionEntry,
    TransactionKind,
    utc_now,
)
from services.account_mutator import AccountMutator, check_owner
from services.cash_ledger_service import CashLedgerService
from services.exceptions import LedgerValidationError, NotFoundError
from services.holding_service import HoldingService, SaleResult, parse_identifier
from services.lot_ledger_service import (
    UNSET,
    HoldingSummary,
    LotLedgerService,
    require_positive,
    require_timestamp,
)
from services.transaction_log_service import TransactionLogService

logger = logging.getLogger(__name__)

CENTS = Decimal("0.01")

CASH_KINDS = (TransactionKind.DEPOSIT, TransactionKind.WITHDRAWAL)


def to_cents(value: Decimal) -> Decimal:
    """Round a money amount to cents, half up."""
    return value.quantize(CENTS, rounding=ROUND_HALF_UP)


@dataclass
class MutationResult:
    """What a mutating operation changed.

    ``holding`` is None when the operation closed or deleted the holding.
    """

    account: InvestmentAccount
    entry: Optional[TransactionEntry] = None
    holding: Optional[Holding] = None
    lot: Optional[HoldingLot] = None
    sale: Optional[SaleResult] = None


def _entry_date(value: Any) -> datetime:
    return require_timestamp("entry_date", value) if value is not None else utc_now()


def _describe(value: Any) -> str:
    if isinstance(value, Decimal):
        return format(value.normalize(), "f")
    return str(value)


def _parse_account_type(account_type: Any) -> str:
    try:
        return AccountType(account_type).value
    except ValueError:
        raise LedgerValidationError(
            f"Unknown account type: {account_type!r}",
            field="account_type",
            value=account_type,
        )


def _require_name(name: Optional[str]) -> str:
    name = (name or "").strip()
    if not name:
        raise LedgerValidationError("name must not be empty", field="name")
    return name


def _parse_cash_kind(kind: Any) -> TransactionKind:
    try:
        kind = TransactionKind(kind)
    except ValueError:
        kind = None
    if kind not in CASH_KINDS:
        raise LedgerValidationError("Cash transactions must be DEPOSIT or WITHDRAWAL", field="kind")
    return kind


def _require_cents(amount: Any) -> Decimal:
    amount = to_cents(require_positive("amount", amount))
    if amount <= 0:
        raise LedgerValidationError("amount rounds to zero", field="amount")
    return amount


class InvestmentAccountService:
    """Account CRUD plus the atomic holding, lot, and cash operations."""

    # --- Accounts ---

    @staticmethod
    def create_account(
        db: Session,
        owner_id: str,
        name: str,
        account_type: Any = AccountType.BROKERAGE,
        institution: Optional[str] = None,
    ) -> InvestmentAccount:
        """Create an empty account: zero cash, no holdings, empty log."""
        account = InvestmentAccount(
            owner_id=owner_id,
            name=_require_name(name),
            institution=(institution or "").strip() or None,
            account_type=_parse_account_type(account_type),
            cash_balance=Decimal("0"),
        )
        db.add(account)
        db.commit()
        db.refresh(account)
        logger.info("Investment account created: %s (id=%s)", account.name, account.id)
        return account

    @staticmethod
    def list_accounts(db: Session, owner_id: str) -> list[InvestmentAccount]:
        return list(
            db.execute(
                select(InvestmentAccount)
                .where(InvestmentAccount.owner_id == owner_id)
                .order_by(InvestmentAccount.name)
            ).scalars()
        )

    @staticmethod
    def get_owned_account(db: Session, account_id: str, caller_id: str) -> InvestmentAccount:
        """Read an account, verifying the caller owns it."""
        account = db.get(InvestmentAccount, account_id)
        if account is None:
            raise NotFoundError(f"Account {account_id} not found", account_id=account_id)
        check_owner(account, caller_id)
        return account

    @staticmethod
    def update_account(
        db: Session,
        account_id: str,
        caller_id: str,
        name: Optional[str] = None,
        institution: Any = UNSET,
        account_type: Any = None,
        expected_version: Optional[int] = None,
    ) -> InvestmentAccount:
        """Change account metadata. Holdings, cash and the log are untouched."""
        with AccountMutator.mutate(db, account_id, caller_id, expected_version) as account:
            if name is not None:
                account.name = _require_name(name)
            if institution is not UNSET:
                account.institution = (institution or "").strip() or None
            if account_type is not None:
                account.account_type = _parse_account_type(account_type)
        logger.info("Investment account updated: %s", account_id)
        return account

    @staticmethod
    def delete_account(
        db: Session,
        account_id: str,
        caller_id: str,
        expected_version: Optional[int] = None,
    ) -> None:
        """Delete the account with its holdings, lots, and transaction log."""
        with AccountMutator.mutate(db, account_id, caller_id, expected_version) as account:
            db.delete(account)
        logger.info("Investment account deleted: %s", account_id)

    # --- Holdings ---

    @staticmethod
    def _fund_purchase(account: InvestmentAccount, quantity: Decimal, unit_cost: Decimal) -> Decimal:
        cost = to_cents(quantity * unit_cost)
        if cost <= 0:
            return Decimal("0")
        CashLedgerService.debit(account, cost)
        return -cost

    @staticmethod
    def open_holding(
        db: Session,
        account_id: str,
        caller_id: str,
        identifier: str,
        quantity: Any,
        unit_cost: Any,
        acquired_at: Any = None,
        display_name: Optional[str] = None,
        asset_kind: Any = "EQUITY",
        notes: Optional[str] = None,
        fund_from_cash: bool = False,
        expected_version: Optional[int] = None,
    ) -> MutationResult:
        """Buy into a holding, creating it if the account has none for identifier.

        When fund_from_cash is set the purchase cost is debited from the
        account's cash and InsufficientFundsError aborts the purchase.
        Otherwise the purchase is funded externally and cash is untouched.
        """
        with AccountMutator.mutate(db, account_id, caller_id, expected_version) as account:
            holding = HoldingService.find(account, identifier)
            if holding is None:
                holding = HoldingService.create(account, identifier, display_name, asset_kind)
            return InvestmentAccountService._buy(
                db, account, holding, quantity, unit_cost, acquired_at, notes, fund_from_cash
            )

    @staticmethod
    def add_lot(
        db: Session,
        account_id: str,
        caller_id: str,
        identifier: str,
        quantity: Any,
        unit_cost: Any,
        acquired_at: Any = None,
        notes: Optional[str] = None,
        fund_from_cash: bool = False,
        expected_version: Optional[int] = None,
    ) -> MutationResult:
        """Add a purchase lot to an existing holding."""
        with AccountMutator.mutate(db, account_id, caller_id, expected_version) as account:
            holding = HoldingService.get(account, identifier)
            return InvestmentAccountService._buy(
                db, account, holding, quantity, unit_cost, acquired_at, notes, fund_from_cash
            )

    @staticmethod
    def _buy(
        db: Session,
        account: InvestmentAccount,
        holding: Holding,
        quantity: Any,
        unit_cost: Any,
        acquired_at: Any,
        notes: Optional[str],
        fund_from_cash: bool,
    ) -> MutationResult:
        lot = HoldingService.buy(holding, quantity, unit_cost, acquired_at or utc_now(), notes)
        cash_delta = Decimal("0")
        if fund_from_cash:
            cash_delta = InvestmentAccountService._fund_purchase(account, lot.quantity, lot.unit_cost)

        entry = TransactionLogService.append(
            db,
            account,
            TransactionKind.BUY,
            entry_date=lot.acquired_at,
            identifier=holding.identifier,
            display_name=holding.display_name,
            quantity=lot.quantity,
            unit_price=lot.unit_cost,
            amount=to_cents(lot.quantity * lot.unit_cost),
            cash_delta=cash_delta,
            notes=notes,
        )
        logger.info(
            "Bought %s %s @ %s in account %s%s",
            lot.quantity, holding.identifier, lot.unit_cost, account.id,
            " (funded from cash)" if fund_from_cash else "",
        )
        return MutationResult(account=account, entry=entry, holding=holding, lot=lot)

    @staticmethod
    def sell_holding(
        db: Session,
        account_id: str,
        caller_id: str,
        identifier: str,
        quantity: Any,
        sale_price: Any,
        sale_date: Any = None,
        notes: Optional[str] = None,
        expected_version: Optional[int] = None,
    ) -> MutationResult:
        """Sell part or all of a holding.

        Lots are consumed FIFO, cash is credited with the proceeds, and a
        SELL entry records the realized gain. A holding sold down to zero
        is removed from the account.
        """
        with AccountMutator.mutate(db, account_id, caller_id, expected_version) as account:
            holding = HoldingService.get(account, identifier)
            sale = HoldingService.sell(holding, quantity, sale_price)

            proceeds = to_cents(sale.proceeds)
            if proceeds > 0:
                CashLedgerService.credit(account, proceeds)

            entry = TransactionLogService.append(
                db,
                account,
                TransactionKind.SELL,
                entry_date=_entry_date(sale_date),
                identifier=holding.identifier,
                display_name=holding.display_name,
                quantity=sale.quantity,
                unit_price=sale.sale_price,
                amount=proceeds,
                cash_delta=proceeds,
                realized_gain=to_cents(sale.realized_gain),
                notes=notes,
                consumed_lots=sale.consumed_lots,
                proceeds_per_unit=sale.sale_price,
            )
            HoldingService.drop_if_empty(account, holding)
            logger.info(
                "Sold %s %s @ %s in account %s (realized gain %s)",
                sale.quantity, holding.identifier, sale.sale_price, account.id, sale.realized_gain,
            )
        return MutationResult(
            account=account,
            entry=entry,
            holding=None if sale.holding_closed else holding,
            sale=sale,
        )

    @staticmethod
    def remove_holding(
        db: Session,
        account_id: str,
        caller_id: str,
        identifier: str,
        reason: Optional[str] = None,
        removed_at: Any = None,
        expected_version: Optional[int] = None,
    ) -> MutationResult:
        """Remove a holding without selling it.

        Records a REMOVE entry with the removed quantity and cost basis;
        no sale price, no realized gain, no cash effect.
        """
        with AccountMutator.mutate(db, account_id, caller_id, expected_version) as account:
            holding = HoldingService.get(account, identifier)
            removal = HoldingService.remove(holding)
            entry = TransactionLogService.append(
                db,
                account,
                TransactionKind.REMOVE,
                entry_date=_entry_date(removed_at),
                identifier=holding.identifier,
                display_name=holding.display_name,
                quantity=removal.quantity,
                amount=to_cents(removal.cost_basis),
                notes=reason,
                consumed_lots=removal.consumed_lots,
            )
            account.holdings.remove(holding)
            logger.info(
                "Removed holding %s (%s units) from account %s",
                holding.identifier, removal.quantity, account.id,
            )
        return MutationResult(account=account, entry=entry)

    @staticmethod
    def update_holding_details(
        db: Session,
        account_id: str,
        caller_id: str,
        identifier: str,
        display_name: str,
        expected_version: Optional[int] = None,
    ) -> MutationResult:
        """Rename a holding. The identifier itself cannot change."""
        with AccountMutator.mutate(db, account_id, caller_id, expected_version) as account:
            holding = HoldingService.get(account, identifier)
            HoldingService.rename(holding, display_name)
        logger.info("Holding %s renamed in account %s", holding.identifier, account_id)
        return MutationResult(account=account, holding=holding)

    # --- Lots ---

    @staticmethod
    def edit_lot(
        db: Session,
        account_id: str,
        caller_id: str,
        identifier: str,
        lot_id: str,
        quantity: Any = UNSET,
        unit_cost: Any = UNSET,
        acquired_at: Any = UNSET,
        notes: Any = UNSET,
        expected_version: Optional[int] = None,
    ) -> MutationResult:
        """Correct one lot and record an ADJUSTMENT entry describing the change."""
        with AccountMutator.mutate(db, account_id, caller_id, expected_version) as account:
            holding = HoldingService.get(account, identifier)
            lot = LotLedgerService.find_lot(holding, lot_id)
            before = (lot.quantity, lot.unit_cost, lot.acquired_at)

            LotLedgerService.edit_lot(
                holding, lot_id,
                quantity=quantity, unit_cost=unit_cost, acquired_at=acquired_at, notes=notes,
            )

            changes = [
                f"{label} {_describe(old)} -> {_describe(new)}"
                for label, old, new in zip(
                    ("quantity", "unit_cost", "acquired_at"),
                    before,
                    (lot.quantity, lot.unit_cost, lot.acquired_at),
                )
                if old != new
            ]
            entry = TransactionLogService.append(
                db,
                account,
                TransactionKind.ADJUSTMENT,
                identifier=holding.identifier,
                display_name=holding.display_name,
                quantity=lot.quantity,
                unit_price=lot.unit_cost,
                amount=to_cents(lot.quantity * lot.unit_cost),
                notes=f"Lot {lot.id}: " + ("; ".join(changes) or "notes updated"),
            )
            logger.info("Lot %s of %s edited in account %s", lot_id, holding.identifier, account.id)
        return MutationResult(account=account, entry=entry, holding=holding, lot=lot)

    @staticmethod
    def delete_lot(
        db: Session,
        account_id: str,
        caller_id: str,
        identifier: str,
        lot_id: str,
        expected_version: Optional[int] = None,
    ) -> MutationResult:
        """Delete one lot, recording a REMOVE for its quantity.

        Deleting the last lot removes the holding.
        """
        with AccountMutator.mutate(db, account_id, caller_id, expected_version) as account:
            holding = HoldingService.get(account, identifier)
            removed = LotLedgerService.delete_lot(holding, lot_id)
            entry = TransactionLogService.append(
                db,
                account,
                TransactionKind.REMOVE,
                identifier=holding.identifier,
                display_name=holding.display_name,
                quantity=removed.quantity,
                amount=to_cents(removed.cost_basis),
                notes=f"Lot {lot_id} deleted",
                consumed_lots=[removed],
            )
            closed = HoldingService.drop_if_empty(account, holding)
            logger.info("Lot %s of %s deleted from account %s", lot_id, holding.identifier, account.id)
        return MutationResult(account=account, entry=entry, holding=None if closed else holding)

    @staticmethod
    def get_lots(
        db: Session,
        account_id: str,
        caller_id: str,
        identifier: str,
    ) -> tuple[Holding, HoldingSummary]:
        """Lots of one holding, oldest first, with the holding's summary."""
        account = InvestmentAccountService.get_owned_account(db, account_id, caller_id)
        holding = HoldingService.get(account, identifier)
        return holding, LotLedgerService.summarize(holding)

    # --- Cash ---

    @staticmethod
    def record_cash_transaction(
        db: Session,
        account_id: str,
        caller_id: str,
        kind: Any,
        amount: Any,
        entry_date: Any = None,
        notes: Optional[str] = None,
        expected_version: Optional[int] = None,
    ) -> MutationResult:
        """Deposit or withdraw cash and record the entry."""
        with AccountMutator.mutate(db, account_id, caller_id, expected_version) as account:
            kind = _parse_cash_kind(kind)
            amount = _require_cents(amount)
            if kind == TransactionKind.DEPOSIT:
                CashLedgerService.deposit(account, amount)
                cash_delta = amount
            else:
                CashLedgerService.withdraw(account, amount)
                cash_delta = -amount
            entry = TransactionLogService.append(
                db,
                account,
                kind,
                entry_date=_entry_date(entry_date),
                amount=amount,
                cash_delta=cash_delta,
                notes=notes,
            )
            logger.info("%s of %s recorded in account %s", kind.value, amount, account.id)
        return MutationResult(account=account, entry=entry)

    @staticmethod
    def record_dividend(
        db: Session,
        account_id: str,
        caller_id: str,
        amount: Any,
        identifier: Optional[str] = None,
        entry_date: Any = None,
        notes: Optional[str] = None,
        expected_version: Optional[int] = None,
    ) -> MutationResult:
        """Credit a dividend to cash, optionally attributed to a holding."""
        with AccountMutator.mutate(db, account_id, caller_id, expected_version) as account:
            amount = _require_cents(amount)
            holding = HoldingService.get(account, identifier) if identifier else None
            CashLedgerService.credit(account, amount)
            entry = TransactionLogService.append(
                db,
                account,
                TransactionKind.DIVIDEND,
                entry_date=_entry_date(entry_date),
                identifier=holding.identifier if holding else None,
                display_name=holding.display_name if holding else None,
                amount=amount,
                cash_delta=amount,
                notes=notes,
            )
            logger.info("Dividend of %s recorded in account %s", amount, account.id)
        return MutationResult(account=account, entry=entry)

    # --- History ---

    @staticmethod
    def get_transactions(
        db: Session,
        account_id: str,
        caller_id: str,
        kind: Any = None,
        identifier: Optional[str] = None,
    ) -> list[TransactionEntry]:
        InvestmentAccountService.get_owned_account(db, account_id, caller_id)
        if kind is not None:
            try:
                kind = TransactionKind(kind)
            except ValueError:
                raise LedgerValidationError(f"Unknown transaction kind: {kind!r}", field="kind")
        if identifier is not None:
            identifier = parse_identifier(identifier)
        return TransactionLogService.list_entries(db, account_id, kind=kind, identifier=identifier)
