"""API route handlers."""
from . import accounts, holdings, lots

__all__ = ["accounts", "holdings", "lots"]
