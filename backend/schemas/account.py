"""Pydantic schemas for account and transaction responses."""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict


class AccountResponse(BaseModel):
    """A stored bank account."""

    model_config = ConfigDict(from_attributes=True)

    account_id: str
    item_id: str
    name: str
    official_name: Optional[str] = None
    type: Optional[str] = None
    subtype: Optional[str] = None
    available_balance: Optional[Decimal] = None
    current_balance: Optional[Decimal] = None
    currency: Optional[str] = None
    institution_id: Optional[str] = None
    institution_name: Optional[str] = None
    updated_at: Optional[datetime] = None


class TransactionResponse(BaseModel):
    """A stored transaction."""

    model_config = ConfigDict(from_attributes=True)

    transaction_id: str
    account_id: str
    amount: Decimal
    authorized_datetime: Optional[datetime] = None
    posted_datetime: Optional[datetime] = None
    personal_finance_category_primary: Optional[str] = None
    personal_finance_category_detailed: Optional[str] = None
    name: Optional[str] = None
    merchant_name: Optional[str] = None
    payment_channel: Optional[str] = None
    currency: Optional[str] = None
    pending: bool = False
