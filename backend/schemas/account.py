"""Pydantic schemas for investment accounts."""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict

from models import AccountType


class InvestmentAccountCreate(BaseModel):
    """Schema for creating an investment account."""

    name: str
    account_type: AccountType = AccountType.BROKERAGE
    institution: Optional[str] = None


class InvestmentAccountUpdate(BaseModel):
    """Schema for updating account metadata. Omitted fields are unchanged."""

    name: Optional[str] = None
    account_type: Optional[AccountType] = None
    institution: Optional[str] = None


class InvestmentAccountResponse(BaseModel):
    """Schema for InvestmentAccount API response."""

    id: str
    owner_id: str
    name: str
    institution: Optional[str] = None
    account_type: str
    cash_balance: Decimal
    version: int
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class CashTransactionCreate(BaseModel):
    """Schema for a deposit or withdrawal."""

    kind: str  # DEPOSIT or WITHDRAWAL
    amount: Decimal
    entry_date: Optional[datetime] = None
    notes: Optional[str] = None


class DividendCreate(BaseModel):
    """Schema for recording a dividend credited to cash."""

    amount: Decimal
    identifier: Optional[str] = None
    entry_date: Optional[datetime] = None
    notes: Optional[str] = None
