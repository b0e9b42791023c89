"""InvestmentAccount model - aggregate root of the holding ledger."""

from decimal import Decimal

from sqlalchemy import CheckConstraint, Column, DateTime, Integer, Numeric, String
from sqlalchemy.orm import relationship

from database import Base
from models.utils import generate_uuid, utc_now


class InvestmentAccount(Base):
    """An investment account owned by exactly one user.

    Holds the account's cash balance directly; holdings, their lots and
    the transaction log hang off it and are deleted with it. ``version``
    is bumped by every mutation and checked on UPDATE, so a write based
    on a stale read is rejected instead of silently overwriting.
    """

    __tablename__ = "investment_accounts"
    __table_args__ = (
        CheckConstraint("cash_balance >= 0", name="ck_investment_account_cash_non_negative"),
    )

    id = Column(String(36), primary_key=True, default=generate_uuid)
    owner_id = Column(String, nullable=False, index=True)
    name = Column(String, nullable=False)
    institution = Column(String, nullable=True)
    account_type = Column(String, nullable=False)  # AccountType value
    cash_balance = Column(Numeric(18, 2), nullable=False, default=Decimal("0"))
    version = Column(Integer, nullable=False)
    created_at = Column(DateTime, default=utc_now)
    updated_at = Column(DateTime, default=utc_now, onupdate=utc_now)

    __mapper_args__ = {"version_id_col": version}

    # Relationships
    holdings = relationship(
        "Holding",
        back_populates="account",
        cascade="all, delete-orphan",
        order_by="Holding.identifier",
    )
    transactions = relationship(
        "TransactionEntry",
        back_populates="account",
        cascade="all, delete-orphan",
        order_by="TransactionEntry.sequence",
    )
