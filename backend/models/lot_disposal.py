"""LotDisposal model - the part of a lot consumed by a sell or removal."""

from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Numeric, String
from sqlalchemy.orm import relationship

from database import Base
from models.utils import generate_uuid, utc_now


class LotDisposal(Base):
    """Records how much of one lot a SELL or REMOVE entry consumed.

    A single sale can consume several lots (FIFO across them); each gets
    its own disposal row under the same transaction entry. The lot's
    cost and acquisition date are copied here because fully consumed
    lots are deleted. ``proceeds_per_unit`` is None for removals.
    """

    __tablename__ = "lot_disposals"
    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_lot_disposal_quantity_positive"),
    )

    id = Column(String(36), primary_key=True, default=generate_uuid)
    transaction_entry_id = Column(
        String(36), ForeignKey("transaction_entries.id", ondelete="CASCADE"), nullable=False, index=True
    )
    lot_id = Column(String(36), nullable=False)  # No FK: the lot may no longer exist
    acquired_at = Column(DateTime, nullable=False)
    quantity = Column(Numeric(18, 8), nullable=False)
    unit_cost = Column(Numeric(18, 8), nullable=False)
    proceeds_per_unit = Column(Numeric(18, 8), nullable=True)
    created_at = Column(DateTime, default=utc_now)

    # Relationships
    transaction_entry = relationship("TransactionEntry", back_populates="disposals")
