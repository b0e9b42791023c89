"""Service for refreshing holding prices from the market data providers."""

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from sqlalchemy.orm import Session

from models import Holding
from services.account_mutator import AccountMutator
from services.exceptions import LedgerError, NotFoundError, PriceUnavailableError
from services.holding_service import HoldingService
from services.investment_account_service import InvestmentAccountService
from services.market_data_service import MarketDataService

logger = logging.getLogger(__name__)

STATUS_UPDATED = "updated"
STATUS_UNAVAILABLE = "unavailable"
STATUS_SKIPPED = "skipped"


@dataclass
class PriceRefreshOutcome:
    """Result of refreshing one holding in a batch."""

    identifier: str
    status: str
    price: Optional[Decimal] = None
    error: Optional[dict] = None


class PriceRefreshService:
    """Looks prices up outside the write lock, then applies each one atomically.

    Provider calls can block on the network, so they never run while an
    account is locked. A holding that was sold or removed while its
    price was being fetched is left alone.
    """

    @staticmethod
    def _apply_price(
        db: Session,
        account_id: str,
        caller_id: str,
        identifier: str,
        price: Decimal,
    ) -> Holding:
        with AccountMutator.mutate(db, account_id, caller_id) as account:
            holding = HoldingService.get(account, identifier)
            HoldingService.refresh_price(holding, price)
        return holding

    @staticmethod
    def refresh_holding_price(
        db: Session,
        account_id: str,
        caller_id: str,
        identifier: str,
        market_data: Optional[MarketDataService] = None,
    ) -> Holding:
        """Fetch and record the current price of one holding.

        Raises:
            PriceUnavailableError: The lookup failed; the holding keeps
                its previous price and price_updated_at.
        """
        market_data = market_data or MarketDataService()
        account = InvestmentAccountService.get_owned_account(db, account_id, caller_id)
        holding = HoldingService.get(account, identifier)
        identifier, asset_kind = holding.identifier, holding.asset_kind

        result = market_data.lookup_price(identifier, asset_kind)
        holding = PriceRefreshService._apply_price(db, account_id, caller_id, identifier, result.price)
        logger.info(
            "Price of %s in account %s refreshed to %s (%s)",
            identifier, account_id, result.price, result.source,
        )
        return holding

    @staticmethod
    def refresh_all_prices(
        db: Session,
        account_id: str,
        caller_id: str,
        market_data: Optional[MarketDataService] = None,
    ) -> list[PriceRefreshOutcome]:
        """Refresh every holding of an account, each independently.

        Lookups run concurrently. Each price is then written in its own
        unit of work, so one holding's failure never prevents another
        from being updated. Returns one outcome per holding.
        """
        market_data = market_data or MarketDataService()
        account = InvestmentAccountService.get_owned_account(db, account_id, caller_id)
        requests = [(h.identifier, h.asset_kind) for h in account.holdings]

        lookups = market_data.lookup_prices(requests)

        outcomes = []
        for identifier, _ in requests:
            lookup = lookups[identifier]
            if isinstance(lookup, PriceUnavailableError):
                outcomes.append(PriceRefreshOutcome(
                    identifier=identifier, status=STATUS_UNAVAILABLE, error=lookup.to_dict(),
                ))
                continue
            try:
                PriceRefreshService._apply_price(db, account_id, caller_id, identifier, lookup.price)
            except NotFoundError as e:
                logger.info("Holding %s disappeared during price refresh; skipped", identifier)
                outcomes.append(PriceRefreshOutcome(
                    identifier=identifier, status=STATUS_SKIPPED, error=e.to_dict(),
                ))
                continue
            except LedgerError as e:
                logger.warning("Price of %s not applied: %s", identifier, e)
                outcomes.append(PriceRefreshOutcome(
                    identifier=identifier, status=STATUS_SKIPPED, error=e.to_dict(),
                ))
                continue
            outcomes.append(PriceRefreshOutcome(
                identifier=identifier, status=STATUS_UPDATED, price=lookup.price,
            ))

        updated = sum(1 for o in outcomes if o.status == STATUS_UPDATED)
        logger.info(
            "Price refresh for account %s: %d/%d holdings updated",
            account_id, updated, len(outcomes),
        )
        return outcomes
