"""Test fixtures and sample data."""
from datetime import datetime
from decimal import Decimal

import pytest

from integrations.aggregator_protocol import AggregatorTransaction, TransactionDelta
from models import PlaidItem

USER_ID = "user-123"
OTHER_USER_ID = "user-456"
ITEM_ID = "item-001"
ACCESS_TOKEN = "access-sandbox-001"


def make_transaction(
    transaction_id: str,
    account_id: str = "acc-checking",
    amount: str = "12.50",
    **overrides,
) -> AggregatorTransaction:
    """Build an AggregatorTransaction with sensible defaults."""
    values = {
        "transaction_id": transaction_id,
        "account_id": account_id,
        "amount": Decimal(amount),
        "authorized_datetime": datetime(2026, 3, 1, 9, 30),
        "posted_datetime": datetime(2026, 3, 2, 0, 0),
        "category_primary": "FOOD_AND_DRINK",
        "category_detailed": "FOOD_AND_DRINK_COFFEE",
        "name": f"Purchase {transaction_id}",
        "merchant_name": "Blue Bottle",
        "payment_channel": "in store",
        "currency": "USD",
        "pending": False,
    }
    values.update(overrides)
    return AggregatorTransaction(**values)


def make_page(
    next_cursor: str,
    has_more: bool = False,
    added: list[AggregatorTransaction] | None = None,
    modified: list[AggregatorTransaction] | None = None,
    removed: list[str] | None = None,
) -> TransactionDelta:
    """Build one /transactions/sync page."""
    return TransactionDelta(
        next_cursor=next_cursor,
        has_more=has_more,
        added=added or [],
        modified=modified or [],
        removed=removed or [],
    )


@pytest.fixture
def plaid_item(db) -> PlaidItem:
    """A linked Item with no cursor yet."""
    item = PlaidItem(
        item_id=ITEM_ID,
        user_id=USER_ID,
        access_token=ACCESS_TOKEN,
        institution_id="ins_109508",
        institution_name="First Platypus Bank",
    )
    db.add(item)
    db.commit()
    return item
