"""Service for lot-based cost basis tracking.

Pure ledger logic over one Holding's lots: creating lots in acquisition
order, consuming them FIFO on sale or removal, direct lot corrections,
and the quantity / cost basis / gain aggregates derived from them.
Knows nothing about cash, the transaction log, or sessions; the
AccountMutator decides when the results are committed.
"""

import bisect
import logging
from dataclasses import dataclass
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Optional

from models import Holding, HoldingLot, to_naive_utc
from services.exceptions import InsufficientQuantityError, LedgerValidationError, NotFoundError

logger = logging.getLogger(__name__)

ZERO = Decimal("0")

# Scale of the quantity and per-unit price columns
DECIMAL_PLACES = 8
QUANTUM = Decimal(1).scaleb(-DECIMAL_PLACES)

# Sentinel for "field not supplied" in edit_lot (None is a valid notes value)
UNSET: Any = object()


@dataclass(frozen=True)
class ConsumedLot:
    """The portion of one lot taken by a consume/clear/delete call."""

    lot_id: str
    acquired_at: datetime
    unit_cost: Decimal
    quantity: Decimal

    @property
    def cost_basis(self) -> Decimal:
        return self.quantity * self.unit_cost


@dataclass(frozen=True)
class HoldingSummary:
    """Aggregates derived from a holding's lots and last known price."""

    total_quantity: Decimal
    total_cost_basis: Decimal
    average_cost: Decimal
    market_value: Decimal
    unrealized_gain: Decimal
    unrealized_gain_percent: Optional[Decimal]
    lot_count: int


def to_decimal(field: str, value: Any, rounded: bool = False) -> Decimal:
    """Coerce a numeric input to a finite Decimal or raise a validation error.

    Values finer than the stored scale are rejected, or rounded half-up to
    it when ``rounded`` is set (for quotes from price providers).
    """
    if value is None:
        raise LedgerValidationError(f"{field} is required", field=field)
    if isinstance(value, bool):
        raise LedgerValidationError(f"{field} must be a number", field=field, value=value)
    try:
        result = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise LedgerValidationError(f"{field} must be a number", field=field, value=value)
    if not result.is_finite():
        raise LedgerValidationError(f"{field} must be finite", field=field, value=value)
    if result.normalize().as_tuple().exponent < -DECIMAL_PLACES:
        if not rounded:
            raise LedgerValidationError(
                f"{field} allows at most {DECIMAL_PLACES} decimal places",
                field=field,
                value=result,
            )
        result = result.quantize(QUANTUM, rounding=ROUND_HALF_UP)
    return result


def require_positive(field: str, value: Any) -> Decimal:
    result = to_decimal(field, value)
    if result <= ZERO:
        raise LedgerValidationError(f"{field} must be greater than zero", field=field, value=result)
    return result


def require_non_negative(field: str, value: Any, rounded: bool = False) -> Decimal:
    result = to_decimal(field, value, rounded)
    if result < ZERO:
        raise LedgerValidationError(f"{field} must not be negative", field=field, value=result)
    return result


def require_timestamp(field: str, value: Any) -> datetime:
    if not isinstance(value, (date, datetime)):
        raise LedgerValidationError(f"{field} must be a date or datetime", field=field, value=value)
    return to_naive_utc(value)


def _consumed(lot: HoldingLot, quantity: Decimal) -> ConsumedLot:
    return ConsumedLot(
        lot_id=lot.id,
        acquired_at=lot.acquired_at,
        unit_cost=lot.unit_cost,
        quantity=quantity,
    )


class LotLedgerService:
    """Manages the ordered lots of a single holding."""

    # --- Creation ---

    @staticmethod
    def add_lot(
        holding: Holding,
        quantity: Any,
        unit_cost: Any,
        acquired_at: Any,
        notes: Optional[str] = None,
    ) -> HoldingLot:
        """Add a lot, keeping lots sorted by acquisition time.

        A lot acquired earlier than existing lots is inserted before
        them; lots with equal timestamps keep insertion order.
        """
        quantity = require_positive("quantity", quantity)
        unit_cost = require_non_negative("unit_cost", unit_cost)
        acquired_at = require_timestamp("acquired_at", acquired_at)

        lot = HoldingLot(
            quantity=quantity,
            unit_cost=unit_cost,
            acquired_at=acquired_at,
            notes=notes,
        )
        keys = [existing.acquired_at for existing in holding.lots]
        holding.lots.insert(bisect.bisect_right(keys, acquired_at), lot)
        logger.debug(
            "Added lot to %s: %s @ %s (%s)",
            holding.identifier, quantity, unit_cost, acquired_at.date(),
        )
        return lot

    # --- Consumption ---

    @staticmethod
    def consume(holding: Holding, quantity: Any) -> list[ConsumedLot]:
        """Consume quantity from the oldest lots first (FIFO).

        Partially consumed lots are reduced in place; fully consumed lots
        are removed from the holding. All-or-nothing: when the request
        exceeds what the lots hold, nothing is touched.

        Raises:
            InsufficientQuantityError: quantity exceeds the lot total.
        """
        quantity = require_positive("quantity", quantity)
        available = LotLedgerService.total_quantity(holding)
        if quantity > available:
            raise InsufficientQuantityError(
                f"Cannot consume {quantity} of {holding.identifier}: only {available} held",
                identifier=holding.identifier,
                requested=quantity,
                available=available,
            )

        # Plan the whole allocation before mutating any lot
        plan: list[tuple[HoldingLot, Decimal]] = []
        remaining = quantity
        for lot in sorted(holding.lots, key=lambda l: l.acquired_at):
            if remaining <= ZERO:
                break
            take = min(lot.quantity, remaining)
            plan.append((lot, take))
            remaining -= take

        consumed = []
        for lot, take in plan:
            consumed.append(_consumed(lot, take))
            if take == lot.quantity:
                holding.lots.remove(lot)
            else:
                lot.quantity = lot.quantity - take

        logger.debug(
            "Consumed %s of %s across %d lot(s)", quantity, holding.identifier, len(consumed)
        )
        return consumed

    @staticmethod
    def clear(holding: Holding) -> list[ConsumedLot]:
        """Remove every lot unconditionally, returning what was held."""
        consumed = [_consumed(lot, lot.quantity) for lot in holding.lots]
        holding.lots.clear()
        return consumed

    @staticmethod
    def realized_gain(consumed: list[ConsumedLot], sale_price: Any) -> Decimal:
        """Gain of selling the consumed lots at sale_price.

        Sum of consumed_quantity * (sale_price - unit_cost) per lot.
        """
        sale_price = require_non_negative("sale_price", sale_price)
        return sum(
            (c.quantity * (sale_price - c.unit_cost) for c in consumed),
            ZERO,
        )

    # --- Corrections ---

    @staticmethod
    def find_lot(holding: Holding, lot_id: str) -> HoldingLot:
        for lot in holding.lots:
            if lot.id == lot_id:
                return lot
        raise NotFoundError(
            f"Lot {lot_id} not found in {holding.identifier}",
            identifier=holding.identifier,
            lot_id=lot_id,
        )

    @staticmethod
    def edit_lot(
        holding: Holding,
        lot_id: str,
        quantity: Any = UNSET,
        unit_cost: Any = UNSET,
        acquired_at: Any = UNSET,
        notes: Any = UNSET,
    ) -> HoldingLot:
        """Correct fields of one lot in place.

        Validated like add_lot; every field is checked before any is
        applied. Changing acquired_at re-sorts the lots.
        """
        lot = LotLedgerService.find_lot(holding, lot_id)

        changes: dict[str, Any] = {}
        if quantity is not UNSET:
            changes["quantity"] = require_positive("quantity", quantity)
        if unit_cost is not UNSET:
            changes["unit_cost"] = require_non_negative("unit_cost", unit_cost)
        if acquired_at is not UNSET:
            changes["acquired_at"] = require_timestamp("acquired_at", acquired_at)
        if notes is not UNSET:
            changes["notes"] = notes
        if not changes:
            raise LedgerValidationError("No lot fields to update", lot_id=lot_id)

        for field, value in changes.items():
            setattr(lot, field, value)
        if "acquired_at" in changes:
            holding.lots.sort(key=lambda l: l.acquired_at)
        return lot

    @staticmethod
    def delete_lot(holding: Holding, lot_id: str) -> ConsumedLot:
        """Delete one lot outright, returning what it held."""
        lot = LotLedgerService.find_lot(holding, lot_id)
        removed = _consumed(lot, lot.quantity)
        holding.lots.remove(lot)
        return removed

    # --- Aggregation ---

    @staticmethod
    def total_quantity(holding: Holding) -> Decimal:
        return sum((lot.quantity for lot in holding.lots), ZERO)

    @staticmethod
    def total_cost_basis(holding: Holding) -> Decimal:
        return sum((lot.quantity * lot.unit_cost for lot in holding.lots), ZERO)

    @staticmethod
    def summarize(holding: Holding) -> HoldingSummary:
        """Compute quantity, cost basis, average cost, and gain for a holding.

        Average cost is zero for a holding with no quantity. Unrealized
        gain percent is None when the cost basis is zero.
        """
        total_quantity = LotLedgerService.total_quantity(holding)
        total_cost_basis = LotLedgerService.total_cost_basis(holding)
        average_cost = total_cost_basis / total_quantity if total_quantity > ZERO else ZERO
        market_value = total_quantity * (holding.current_price or ZERO)
        unrealized_gain = market_value - total_cost_basis

        unrealized_gain_percent = None
        if total_cost_basis != ZERO:
            unrealized_gain_percent = unrealized_gain / total_cost_basis * Decimal("100")

        return HoldingSummary(
            total_quantity=total_quantity,
            total_cost_basis=total_cost_basis,
            average_cost=average_cost,
            market_value=market_value,
            unrealized_gain=unrealized_gain,
            unrealized_gain_percent=unrealized_gain_percent,
            lot_count=len(holding.lots),
        )
