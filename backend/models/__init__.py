"""SQLAlchemy ORM models."""

from .enums import AccountType, AssetKind, TransactionKind
from .holding import Holding
from .holding_lot import HoldingLot
from .investment_account import InvestmentAccount
from .lot_disposal import LotDisposal
from .transaction_entry import TransactionEntry
from .utils import generate_uuid, to_naive_utc, utc_now

__all__ = ["AccountType", "AssetKind", "Holding", "HoldingLot", "InvestmentAccount", "LotDisposal", "TransactionEntry", "TransactionKind", "generate_uuid", "to_naive_utc", "utc_now"]
