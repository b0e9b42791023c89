"""Tests for identifier normalization and quantity display."""

from decimal import Decimal

import pytest

from utils.asset_display import format_quantity, normalize_identifier, quantity_label


class TestNormalizeIdentifier:
    @pytest.mark.parametrize(
        "raw, expected",
        [("aapl", "AAPL"), (" vti ", "VTI"), ("BRK.B", "BRK.B"), ("btc-usd", "BTC-USD")],
    )
    def test_normalized(self, raw, expected):
        assert normalize_identifier(raw) == expected

    @pytest.mark.parametrize("raw", ["", "   ", None, "BAD TICKER", "$$$", "^GSPC", "A" * 21])
    def test_rejected(self, raw):
        with pytest.raises(ValueError):
            normalize_identifier(raw)


class TestQuantityDisplay:
    def test_labels(self):
        assert quantity_label("EQUITY", Decimal("1")) == "share"
        assert quantity_label("EQUITY", Decimal("2")) == "shares"
        assert quantity_label("CRYPTO", Decimal("0.1")) == "units"

    def test_whole_shares(self):
        assert format_quantity("EQUITY", Decimal("1200.00000000")) == "1,200 shares"

    def test_fractional_shares(self):
        assert format_quantity("EQUITY", Decimal("12.50000000")) == "12.5 shares"

    def test_crypto_eight_places(self):
        assert format_quantity("CRYPTO", Decimal("0.0042")) == "0.00420000 units"
