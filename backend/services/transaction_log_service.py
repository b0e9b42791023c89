"""Service for the append-only account transaction log."""

import logging
from datetime import datetime
from decimal import Decimal
from typing import Iterable, Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session, selectinload

from models import InvestmentAccount, LotDisposal, TransactionEntry, TransactionKind, utc_now
from services.lot_ledger_service import ConsumedLot

logger = logging.getLogger(__name__)


class TransactionLogService:
    """Appends and reads TransactionEntry rows.

    Sequence numbers are assigned per account as max + 1. Appends only
    happen inside an AccountMutator unit of work, which holds the
    account's write lock, so two appends can never claim the same
    sequence.
    """

    @staticmethod
    def next_sequence(db: Session, account_id: str) -> int:
        # Flush so entries appended earlier in this unit of work are counted
        db.flush()
        current = db.execute(
            select(func.max(TransactionEntry.sequence)).where(
                TransactionEntry.account_id == account_id
            )
        ).scalar()
        return (current or 0) + 1

    @staticmethod
    def append(
        db: Session,
        account: InvestmentAccount,
        kind: TransactionKind,
        entry_date: Optional[datetime] = None,
        identifier: Optional[str] = None,
        display_name: Optional[str] = None,
        quantity: Optional[Decimal] = None,
        unit_price: Optional[Decimal] = None,
        amount: Decimal = Decimal("0"),
        cash_delta: Decimal = Decimal("0"),
        realized_gain: Optional[Decimal] = None,
        notes: Optional[str] = None,
        consumed_lots: Iterable[ConsumedLot] = (),
        proceeds_per_unit: Optional[Decimal] = None,
    ) -> TransactionEntry:
        """Append one entry, with a disposal row per consumed lot."""
        entry = TransactionEntry(
            sequence=TransactionLogService.next_sequence(db, account.id),
            kind=TransactionKind(kind).value,
            entry_date=entry_date or utc_now(),
            identifier=identifier,
            display_name=display_name,
            quantity=quantity,
            unit_price=unit_price,
            amount=amount,
            cash_delta=cash_delta,
            realized_gain=realized_gain,
            notes=notes,
        )
        entry.disposals = [
            LotDisposal(
                lot_id=consumed.lot_id,
                acquired_at=consumed.acquired_at,
                quantity=consumed.quantity,
                unit_cost=consumed.unit_cost,
                proceeds_per_unit=proceeds_per_unit,
            )
            for consumed in consumed_lots
        ]
        account.transactions.append(entry)
        logger.debug(
            "Appended %s #%d to account %s", entry.kind, entry.sequence, account.id
        )
        return entry

    @staticmethod
    def list_entries(
        db: Session,
        account_id: str,
        kind: Optional[TransactionKind] = None,
        identifier: Optional[str] = None,
    ) -> list[TransactionEntry]:
        """Entries in append order, optionally filtered by kind and identifier."""
        query = (
            select(TransactionEntry)
            .where(TransactionEntry.account_id == account_id)
            .options(selectinload(TransactionEntry.disposals))
            .order_by(TransactionEntry.sequence)
        )
        if kind is not None:
            query = query.where(TransactionEntry.kind == TransactionKind(kind).value)
        if identifier is not None:
            query = query.where(TransactionEntry.identifier == identifier)
        return list(db.execute(query).scalars())

    @staticmethod
    def total_realized_gain(db: Session, account_id: str) -> Decimal:
        total = db.execute(
            select(func.sum(TransactionEntry.realized_gain)).where(
                TransactionEntry.account_id == account_id,
                TransactionEntry.kind == TransactionKind.SELL.value,
            )
        ).scalar()
        return Decimal(str(total)) if total is not None else Decimal("0")
