"""SQLAlchemy ORM models."""

from .account import Account
from .plaid_item import PlaidItem
from .transaction import Transaction
from .utils import generate_uuid

__all__ = ["Account", "PlaidItem", "Transaction", "generate_uuid"]
