"""Tests for the PriceRefreshService."""

from datetime import datetime
from decimal import Decimal

import pytest
from sqlalchemy.orm import Session

from models import InvestmentAccount
from services.exceptions import NotFoundError, PriceUnavailableError, UnauthorizedError
from services.investment_account_service import InvestmentAccountService
from services.market_data_service import MarketDataService
from services.price_refresh_service import (
    STATUS_SKIPPED,
    STATUS_UNAVAILABLE,
    STATUS_UPDATED,
    PriceRefreshService,
)
from tests.fixtures import OTHER_USER_ID, OWNER_ID, open_position
from tests.fixtures.mocks import SAMPLE_CRYPTO_PRICES, SAMPLE_EQUITY_PRICES, MockPriceProvider


def _holding(db: Session, account_id: str, identifier: str):
    holding, _ = InvestmentAccountService.get_lots(db, account_id, OWNER_ID, identifier)
    return holding


@pytest.fixture
def mixed_account(db: Session, account: InvestmentAccount) -> InvestmentAccount:
    """AAPL, MSFT and BTC positions, none priced yet."""
    open_position(db, account, "AAPL", "10", "100", datetime(2024, 1, 2))
    open_position(db, account, "MSFT", "2", "300", datetime(2024, 1, 3))
    open_position(db, account, "BTC", "0.5", "40000", datetime(2024, 1, 4), asset_kind="CRYPTO")
    db.refresh(account)
    return account


class TestRefreshHoldingPrice:
    def test_updates_price_and_timestamp(
        self, db: Session, account_with_lots: InvestmentAccount, mock_market_data
    ):
        holding = PriceRefreshService.refresh_holding_price(
            db, account_with_lots.id, OWNER_ID, "aapl", mock_market_data
        )

        assert holding.current_price == Decimal("130")
        assert holding.price_updated_at is not None

    def test_not_recorded_in_transaction_log(
        self, db: Session, account_with_lots: InvestmentAccount, mock_market_data
    ):
        PriceRefreshService.refresh_holding_price(
            db, account_with_lots.id, OWNER_ID, "AAPL", mock_market_data
        )

        entries = InvestmentAccountService.get_transactions(db, account_with_lots.id, OWNER_ID)
        assert [e.kind for e in entries] == ["BUY", "BUY"]

    def test_failure_keeps_previous_price(
        self, db: Session, account_with_lots: InvestmentAccount, mock_market_data, failing_market_data
    ):
        PriceRefreshService.refresh_holding_price(
            db, account_with_lots.id, OWNER_ID, "AAPL", mock_market_data
        )
        priced_at = _holding(db, account_with_lots.id, "AAPL").price_updated_at
        version = db.get(InvestmentAccount, account_with_lots.id).version

        with pytest.raises(PriceUnavailableError):
            PriceRefreshService.refresh_holding_price(
                db, account_with_lots.id, OWNER_ID, "AAPL", failing_market_data
            )

        holding = _holding(db, account_with_lots.id, "AAPL")
        assert holding.current_price == Decimal("130")
        assert holding.price_updated_at == priced_at
        assert db.get(InvestmentAccount, account_with_lots.id).version == version

    def test_timeout_is_unavailable(self, db: Session, account_with_lots: InvestmentAccount):
        slow = MarketDataService(
            provider=MockPriceProvider(SAMPLE_EQUITY_PRICES, delay=1.0),
            crypto_provider=MockPriceProvider(SAMPLE_CRYPTO_PRICES),
            timeout=0.1,
        )

        with pytest.raises(PriceUnavailableError) as exc_info:
            PriceRefreshService.refresh_holding_price(db, account_with_lots.id, OWNER_ID, "AAPL", slow)

        assert exc_info.value.context["reason"] == "timeout"
        assert _holding(db, account_with_lots.id, "AAPL").price_updated_at is None

    def test_unknown_holding(self, db: Session, account: InvestmentAccount, mock_market_data):
        with pytest.raises(NotFoundError):
            PriceRefreshService.refresh_holding_price(db, account.id, OWNER_ID, "AAPL", mock_market_data)

    def test_other_user_rejected(self, db: Session, account_with_lots: InvestmentAccount, mock_market_data):
        with pytest.raises(UnauthorizedError):
            PriceRefreshService.refresh_holding_price(
                db, account_with_lots.id, OTHER_USER_ID, "AAPL", mock_market_data
            )
        assert mock_market_data.provider.calls == []


class TestRefreshAllPrices:
    def test_routes_equities_and_crypto(self, db: Session, mixed_account: InvestmentAccount, mock_market_data):
        outcomes = PriceRefreshService.refresh_all_prices(db, mixed_account.id, OWNER_ID, mock_market_data)

        assert {o.identifier: o.status for o in outcomes} == {
            "AAPL": STATUS_UPDATED,
            "MSFT": STATUS_UPDATED,
            "BTC": STATUS_UPDATED,
        }
        assert mock_market_data.crypto_provider.calls == ["BTC"]
        assert _holding(db, mixed_account.id, "BTC").current_price == Decimal("65000")

    def test_one_failure_does_not_block_others(self, db: Session, mixed_account: InvestmentAccount):
        market_data = MarketDataService(
            provider=MockPriceProvider(SAMPLE_EQUITY_PRICES, failing={"MSFT"}),
            crypto_provider=MockPriceProvider(SAMPLE_CRYPTO_PRICES),
            timeout=2.0,
            max_workers=3,
        )

        outcomes = {
            o.identifier: o
            for o in PriceRefreshService.refresh_all_prices(db, mixed_account.id, OWNER_ID, market_data)
        }

        assert outcomes["MSFT"].status == STATUS_UNAVAILABLE
        assert outcomes["MSFT"].error["error"] == "PriceUnavailable"
        assert outcomes["AAPL"].status == STATUS_UPDATED
        assert outcomes["BTC"].status == STATUS_UPDATED
        assert _holding(db, mixed_account.id, "MSFT").price_updated_at is None
        assert _holding(db, mixed_account.id, "AAPL").current_price == Decimal("130")

    def test_holding_sold_during_lookup_is_skipped(self, db: Session, mixed_account: InvestmentAccount):
        class SellingMarketData(MarketDataService):
            def lookup_prices(self, requests):
                results = super().lookup_prices(requests)
                InvestmentAccountService.sell_holding(db, mixed_account.id, OWNER_ID, "MSFT", "2", "400")
                return results

        market_data = SellingMarketData(
            provider=MockPriceProvider(SAMPLE_EQUITY_PRICES),
            crypto_provider=MockPriceProvider(SAMPLE_CRYPTO_PRICES),
            timeout=2.0,
        )

        outcomes = {
            o.identifier: o.status
            for o in PriceRefreshService.refresh_all_prices(db, mixed_account.id, OWNER_ID, market_data)
        }

        assert outcomes == {"AAPL": STATUS_UPDATED, "MSFT": STATUS_SKIPPED, "BTC": STATUS_UPDATED}

    def test_empty_account(self, db: Session, account: InvestmentAccount, mock_market_data):
        assert PriceRefreshService.refresh_all_prices(db, account.id, OWNER_ID, mock_market_data) == []
