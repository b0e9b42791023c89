#!/usr/bin/env python
"""Refresh the prices of every holding in an investment account.

Looks up each holding's current price (Yahoo Finance for equities,
CoinGecko for crypto) and prints one line per holding. A holding whose
price cannot be fetched keeps its previous price.

Usage:
    python -m scripts.refresh_prices <account_id> --owner <user_id>
    python -m scripts.refresh_prices <account_id> --owner <user_id> --timeout 5
"""

import argparse
import sys

from database import get_session_local
from logging_config import setup_logging
from services.exceptions import LedgerError
from services.market_data_service import MarketDataService
from services.price_refresh_service import STATUS_UPDATED, PriceRefreshService


def refresh_prices(account_id: str, owner_id: str, timeout: float | None = None) -> int:
    """Refresh all holding prices and print the outcomes.

    Returns:
        Process exit code: 0 when every holding was updated, 1 when any
        holding was not, 2 when the account could not be refreshed.
    """
    SessionLocal = get_session_local()
    db = SessionLocal()

    try:
        outcomes = PriceRefreshService.refresh_all_prices(
            db, account_id, owner_id, MarketDataService(timeout=timeout)
        )
    except LedgerError as e:
        print(f"Error: {e.kind}: {e}")
        return 2
    finally:
        db.close()

    if not outcomes:
        print("Account has no holdings")
        return 0

    for outcome in outcomes:
        if outcome.status == STATUS_UPDATED:
            print(f"  {outcome.identifier:<12} updated      {outcome.price}")
        else:
            message = outcome.error["message"] if outcome.error else ""
            print(f"  {outcome.identifier:<12} {outcome.status:<12} {message}")

    updated = sum(1 for o in outcomes if o.status == STATUS_UPDATED)
    print(f"\n{updated}/{len(outcomes)} holdings updated")
    return 0 if updated == len(outcomes) else 1


if __name__ == "__main__":
    parser = argparse.ArgumentParser(
        description="Refresh holding prices for an investment account"
    )
    parser.add_argument("account_id", help="Investment account id")
    parser.add_argument("--owner", required=True, help="Id of the account owner")
    parser.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="Seconds allowed per price lookup (default: PRICE_LOOKUP_TIMEOUT_SECONDS)",
    )
    args = parser.parse_args()

    setup_logging()
    sys.exit(refresh_prices(args.account_id, args.owner, timeout=args.timeout))
