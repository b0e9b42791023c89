"""Utility functions for asset identifiers and quantity display.

Equities and crypto assets share one Holding model; the only
differences are how their identifiers are normalized and how their
quantities are labelled and rounded for display.
"""

import re
from decimal import Decimal

from models import AssetKind

_IDENTIFIER_RE = re.compile(r"^[A-Z0-9][A-Z0-9.\-^=]{0,19}$")

_QUANTITY_PLACES = {
    AssetKind.EQUITY: 4,
    AssetKind.CRYPTO: 8,
}

_QUANTITY_LABELS = {
    AssetKind.EQUITY: ("share", "shares"),
    AssetKind.CRYPTO: ("unit", "units"),
}


def normalize_identifier(identifier: str) -> str:
    """Normalize a ticker or crypto symbol to its stored form.

    Strips whitespace and uppercases. Raises ValueError when the result
    is empty or contains characters no ticker uses.
    """
    normalized = (identifier or "").strip().upper()
    if not _IDENTIFIER_RE.match(normalized):
        raise ValueError(f"Invalid security identifier: {identifier!r}")
    return normalized


def quantity_label(asset_kind: AssetKind | str, quantity: Decimal) -> str:
    """Return "share"/"shares" for equities and "unit"/"units" for crypto."""
    singular, plural = _QUANTITY_LABELS[AssetKind(asset_kind)]
    return singular if quantity == 1 else plural


def format_quantity(asset_kind: AssetKind | str, quantity: Decimal) -> str:
    """Format a quantity for display, e.g. ``"12.5 shares"`` or ``"0.00420000 units"``.

    Whole equity quantities drop their decimals.
    """
    kind = AssetKind(asset_kind)
    if kind == AssetKind.EQUITY and quantity == quantity.to_integral_value():
        text = f"{quantity:,.0f}"
    elif kind == AssetKind.EQUITY:
        text = f"{quantity.normalize():,f}"
    else:
        text = f"{quantity:,.{_QUANTITY_PLACES[kind]}f}"
    return f"{text} {quantity_label(kind, quantity)}"
