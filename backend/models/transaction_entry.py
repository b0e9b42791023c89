"""TransactionEntry model - append-only audit log of account mutations."""

from decimal import Decimal

from sqlalchemy import Column, DateTime, ForeignKey, Integer, Numeric, String, Text, UniqueConstraint, event
from sqlalchemy.orm import relationship

from database import Base
from models.utils import generate_uuid, utc_now


class TransactionEntry(Base):
    """One recorded event in an account's history.

    Entries are ordered by ``sequence`` (per account, gap-free,
    increasing) and never change after insert. ``amount`` is the gross
    value of the event; ``cash_delta`` is its signed effect on the cash
    balance (zero when cash was not touched).
    """

    __tablename__ = "transaction_entries"
    __table_args__ = (
        UniqueConstraint("account_id", "sequence", name="uix_transaction_account_sequence"),
    )

    id = Column(String(36), primary_key=True, default=generate_uuid)
    account_id = Column(
        String(36), ForeignKey("investment_accounts.id", ondelete="CASCADE"), nullable=False, index=True
    )
    sequence = Column(Integer, nullable=False)
    kind = Column(String, nullable=False)  # TransactionKind value
    entry_date = Column(DateTime, nullable=False)
    identifier = Column(String, nullable=True)
    display_name = Column(String, nullable=True)
    quantity = Column(Numeric(18, 8), nullable=True)
    unit_price = Column(Numeric(18, 8), nullable=True)
    amount = Column(Numeric(18, 2), nullable=False, default=Decimal("0"))
    cash_delta = Column(Numeric(18, 2), nullable=False, default=Decimal("0"))
    realized_gain = Column(Numeric(18, 2), nullable=True)  # SELL only
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, default=utc_now)

    # Relationships
    account = relationship("InvestmentAccount", back_populates="transactions")
    disposals = relationship(
        "LotDisposal",
        back_populates="transaction_entry",
        cascade="all, delete-orphan",
        order_by="LotDisposal.acquired_at",
    )


@event.listens_for(TransactionEntry, "before_update")
def _reject_entry_update(mapper, connection, target):
    raise ValueError(f"Transaction entry {target.id} is immutable")
