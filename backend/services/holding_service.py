"""Service for holding-level operations within an account.

A Holding binds a LotLedger to a priced security. This service creates
and finds holdings, applies buys, sells and removals through the lot
ledger, and updates prices. It does not touch cash or the transaction
log; InvestmentAccountService composes those.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any, Optional

from models import AssetKind, Holding, HoldingLot, InvestmentAccount, utc_now
from services.exceptions import LedgerValidationError, NotFoundError
from services.lot_ledger_service import (
    ConsumedLot,
    LotLedgerService,
    require_non_negative,
    require_positive,
    require_timestamp,
)
from utils.asset_display import normalize_identifier

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SaleResult:
    """Outcome of selling part or all of a holding."""

    consumed_lots: list[ConsumedLot]
    quantity: Decimal
    sale_price: Decimal
    proceeds: Decimal
    realized_gain: Decimal
    holding_closed: bool


@dataclass(frozen=True)
class RemovalResult:
    """Outcome of removing a holding without a sale."""

    consumed_lots: list[ConsumedLot]
    quantity: Decimal
    cost_basis: Decimal


def parse_identifier(identifier: str) -> str:
    try:
        return normalize_identifier(identifier)
    except ValueError as e:
        raise LedgerValidationError(str(e), field="identifier", value=identifier)


def parse_asset_kind(asset_kind: Any) -> AssetKind:
    try:
        return AssetKind(asset_kind)
    except ValueError:
        raise LedgerValidationError(
            f"Unknown asset kind: {asset_kind!r}",
            field="asset_kind",
            value=asset_kind,
        )


class HoldingService:
    """Operations on a single holding of a loaded account."""

    @staticmethod
    def find(account: InvestmentAccount, identifier: str) -> Optional[Holding]:
        identifier = parse_identifier(identifier)
        for holding in account.holdings:
            if holding.identifier == identifier:
                return holding
        return None

    @staticmethod
    def get(account: InvestmentAccount, identifier: str) -> Holding:
        holding = HoldingService.find(account, identifier)
        if holding is None:
            raise NotFoundError(
                f"Holding {identifier} not found in account {account.id}",
                account_id=account.id,
                identifier=identifier,
            )
        return holding

    @staticmethod
    def create(
        account: InvestmentAccount,
        identifier: str,
        display_name: Optional[str],
        asset_kind: Any,
    ) -> Holding:
        """Create an empty holding. The caller must add its first lot."""
        identifier = parse_identifier(identifier)
        display_name = (display_name or "").strip() or identifier
        holding = Holding(
            identifier=identifier,
            display_name=display_name,
            asset_kind=parse_asset_kind(asset_kind).value,
            current_price=Decimal("0"),
            price_updated_at=None,
        )
        account.holdings.append(holding)
        return holding

    @staticmethod
    def buy(
        holding: Holding,
        quantity: Any,
        unit_cost: Any,
        acquired_at: Any,
        notes: Optional[str] = None,
    ) -> HoldingLot:
        """Add a purchase lot. Cash is not moved here."""
        return LotLedgerService.add_lot(holding, quantity, unit_cost, acquired_at, notes)

    @staticmethod
    def sell(
        holding: Holding,
        quantity: Any,
        sale_price: Any,
    ) -> SaleResult:
        """Consume quantity FIFO and compute the realized gain at sale_price.

        A sale always carries a price; it must be greater than zero.
        InsufficientQuantityError leaves every lot untouched.
        """
        quantity = require_positive("quantity", quantity)
        sale_price = require_positive("sale_price", sale_price)

        consumed = LotLedgerService.consume(holding, quantity)
        realized_gain = LotLedgerService.realized_gain(consumed, sale_price)
        return SaleResult(
            consumed_lots=consumed,
            quantity=quantity,
            sale_price=sale_price,
            proceeds=quantity * sale_price,
            realized_gain=realized_gain,
            holding_closed=not holding.lots,
        )

    @staticmethod
    def remove(holding: Holding) -> RemovalResult:
        """Clear all lots; no price, no realized gain."""
        consumed = LotLedgerService.clear(holding)
        return RemovalResult(
            consumed_lots=consumed,
            quantity=sum((c.quantity for c in consumed), Decimal("0")),
            cost_basis=sum((c.cost_basis for c in consumed), Decimal("0")),
        )

    @staticmethod
    def drop_if_empty(account: InvestmentAccount, holding: Holding) -> bool:
        """Remove a holding with no lots from the account. Returns True if dropped."""
        if holding.lots:
            return False
        account.holdings.remove(holding)
        logger.debug("Dropped empty holding %s from account %s", holding.identifier, account.id)
        return True

    @staticmethod
    def refresh_price(holding: Holding, price: Any, as_of: Optional[datetime] = None) -> None:
        """Record a new market price. Idempotent for the same inputs."""
        holding.current_price = require_non_negative("price", price, rounded=True)
        holding.price_updated_at = require_timestamp("as_of", as_of) if as_of else utc_now()

    @staticmethod
    def rename(holding: Holding, display_name: str) -> None:
        display_name = (display_name or "").strip()
        if not display_name:
            raise LedgerValidationError("display_name must not be empty", field="display_name")
        holding.display_name = display_name
