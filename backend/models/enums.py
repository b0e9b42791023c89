"""String enumerations stored in ledger columns."""

from enum import Enum


class AssetKind(str, Enum):
    """Kind of security a holding tracks."""

    EQUITY = "EQUITY"
    CRYPTO = "CRYPTO"


class TransactionKind(str, Enum):
    """Kind of event recorded in an account's transaction log."""

    BUY = "BUY"
    SELL = "SELL"
    REMOVE = "REMOVE"
    DIVIDEND = "DIVIDEND"
    DEPOSIT = "DEPOSIT"
    WITHDRAWAL = "WITHDRAWAL"
    ADJUSTMENT = "ADJUSTMENT"


class AccountType(str, Enum):
    """Investment account types offered when creating an account."""

    BROKERAGE = "Brokerage"
    RETIREMENT_401K = "401(k)"
    ROTH_IRA = "Roth IRA"
    TRADITIONAL_IRA = "Traditional IRA"
    EDUCATION_529 = "529 Plan"
    HSA = "HSA"
    CRYPTO_WALLET = "CryptoWallet"
    OTHER = "Other"
