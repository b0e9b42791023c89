"""Holding model - one security position inside an investment account."""

from decimal import Decimal

from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Numeric, String, UniqueConstraint
from sqlalchemy.orm import relationship

from database import Base
from models.utils import generate_uuid, utc_now


class Holding(Base):
    """A position in one security (equity or crypto) within an account.

    Quantity and cost are never stored here; they are derived from the
    holding's lots. A holding whose lots are all consumed is deleted.
    """

    __tablename__ = "holdings"
    __table_args__ = (
        UniqueConstraint("account_id", "identifier", name="uix_holding_account_identifier"),
        CheckConstraint("current_price >= 0", name="ck_holding_current_price_non_negative"),
    )

    id = Column(String(36), primary_key=True, default=generate_uuid)
    account_id = Column(
        String(36), ForeignKey("investment_accounts.id", ondelete="CASCADE"), nullable=False, index=True
    )
    identifier = Column(String, nullable=False)  # Ticker or crypto symbol, uppercase
    display_name = Column(String, nullable=False)
    asset_kind = Column(String, nullable=False)  # AssetKind value
    current_price = Column(Numeric(18, 8), nullable=False, default=Decimal("0"))
    price_updated_at = Column(DateTime, nullable=True)  # None until first priced
    created_at = Column(DateTime, default=utc_now)
    updated_at = Column(DateTime, default=utc_now, onupdate=utc_now)

    # Relationships
    account = relationship("InvestmentAccount", back_populates="holdings")
    lots = relationship(
        "HoldingLot",
        back_populates="holding",
        cascade="all, delete-orphan",
        order_by="[HoldingLot.acquired_at, HoldingLot.created_at]",
    )
