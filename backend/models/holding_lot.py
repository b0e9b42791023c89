"""HoldingLot model - one purchase of a security at a known cost."""

from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Numeric, String, Text
from sqlalchemy.orm import relationship

from database import Base
from models.utils import generate_uuid, utc_now


class HoldingLot(Base):
    """A discrete cost lot of a holding.

    ``quantity`` is what remains of the purchase. Sales reduce it in
    place; a lot that reaches zero is deleted rather than kept as an
    empty row, which the CHECK constraint enforces.
    """

    __tablename__ = "holding_lots"
    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_holding_lot_quantity_positive"),
        CheckConstraint("unit_cost >= 0", name="ck_holding_lot_unit_cost_non_negative"),
    )

    id = Column(String(36), primary_key=True, default=generate_uuid)
    holding_id = Column(
        String(36), ForeignKey("holdings.id", ondelete="CASCADE"), nullable=False, index=True
    )
    quantity = Column(Numeric(18, 8), nullable=False)
    unit_cost = Column(Numeric(18, 8), nullable=False)
    acquired_at = Column(DateTime, nullable=False)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, default=utc_now)
    updated_at = Column(DateTime, default=utc_now, onupdate=utc_now)

    # Relationships
    holding = relationship("Holding", back_populates="lots")
