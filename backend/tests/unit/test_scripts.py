"""Tests for the command-line scripts."""

from decimal import Decimal
from unittest.mock import MagicMock, patch

from sqlalchemy.orm import Session

from integrations.exceptions import ProviderAPIError
from integrations.market_data_protocol import PriceResult
from models import InvestmentAccount
from scripts import refresh_prices, setup_coingecko
from tests.fixtures import OTHER_USER_ID, OWNER_ID


def _run(db: Session, market_data, account_id: str, owner_id: str = OWNER_ID) -> int:
    with (
        patch.object(refresh_prices, "get_session_local", return_value=lambda: db),
        patch.object(refresh_prices, "MarketDataService", return_value=market_data),
    ):
        return refresh_prices.refresh_prices(account_id, owner_id, timeout=1.0)


class TestRefreshPrices:
    def test_all_updated(self, db: Session, account_with_lots: InvestmentAccount, mock_market_data, capsys):
        assert _run(db, mock_market_data, account_with_lots.id) == 0
        out = capsys.readouterr().out
        assert "AAPL" in out
        assert "1/1 holdings updated" in out

    def test_unavailable_price_exit_code(
        self, db: Session, account_with_lots: InvestmentAccount, failing_market_data, capsys
    ):
        assert _run(db, failing_market_data, account_with_lots.id) == 1
        assert "unavailable" in capsys.readouterr().out

    def test_empty_account(self, db: Session, account: InvestmentAccount, mock_market_data, capsys):
        assert _run(db, mock_market_data, account.id) == 0
        assert "no holdings" in capsys.readouterr().out

    def test_wrong_owner(self, db: Session, account: InvestmentAccount, mock_market_data, capsys):
        assert _run(db, mock_market_data, account.id, owner_id=OTHER_USER_ID) == 2
        assert "Unauthorized" in capsys.readouterr().out


class TestSetupCoinGecko:
    def test_validate_api_key(self):
        with patch.object(setup_coingecko, "CoinGeckoClient") as mock_cls:
            mock_cls.return_value.get_latest_price.return_value = PriceResult(
                symbol="BTC", price=Decimal("65000"), as_of=MagicMock(), source="coingecko"
            )
            assert setup_coingecko.validate_api_key("demo") == "65000"
        mock_cls.assert_called_once_with(api_key="demo")
        mock_cls.return_value.close.assert_called_once()

    def test_valid_key_stored(self, capsys):
        with (
            patch("builtins.input", side_effect=["demo-key", "y"]),
            patch.object(setup_coingecko, "validate_api_key", return_value="65000"),
            patch.object(setup_coingecko, "set_credential", return_value=True) as mock_set,
        ):
            setup_coingecko.main()

        mock_set.assert_called_once_with("COINGECKO_API_KEY", "demo-key")
        assert "Stored COINGECKO_API_KEY" in capsys.readouterr().out

    def test_invalid_key_not_stored(self, capsys):
        with (
            patch("builtins.input", side_effect=["bad-key"]),
            patch.object(
                setup_coingecko, "validate_api_key",
                side_effect=ProviderAPIError("401", "coingecko", status_code=401),
            ),
            patch.object(setup_coingecko, "set_credential") as mock_set,
        ):
            setup_coingecko.main()

        mock_set.assert_not_called()
        assert "Validation failed" in capsys.readouterr().out
