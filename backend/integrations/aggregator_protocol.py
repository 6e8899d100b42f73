"""Aggregator protocol definitions.

This module defines the normalized shapes the sync core consumes and the
interface an account-aggregation provider must implement. Plaid is the
only implementation today; any client satisfying :class:`AggregatorClient`
is interchangeable.
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Protocol


@dataclass
class AggregatorItem:
    """The institution connection an account snapshot belongs to."""

    item_id: str
    institution_id: str | None = None
    institution_name: str | None = None


@dataclass
class AggregatorAccount:
    """Normalized account data from the aggregator."""

    account_id: str  # Aggregator's external ID, the upsert key
    name: str
    official_name: str | None = None
    type: str | None = None
    subtype: str | None = None
    available_balance: Decimal | None = None
    current_balance: Decimal | None = None
    currency: str | None = None  # ISO currency code


@dataclass
class AggregatorTransaction:
    """Normalized transaction data from the aggregator."""

    transaction_id: str  # Aggregator's external ID, the upsert key
    account_id: str
    amount: Decimal  # Positive = money out of the account
    authorized_datetime: datetime | None = None
    posted_datetime: datetime | None = None
    category_primary: str | None = None
    category_detailed: str | None = None
    name: str | None = None
    merchant_name: str | None = None
    payment_channel: str | None = None
    currency: str | None = None
    pending: bool = False


@dataclass
class AccountSnapshot:
    """Current accounts for one Item."""

    accounts: list[AggregatorAccount]
    item: AggregatorItem


@dataclass
class TransactionDelta:
    """One page of incremental transaction changes."""

    next_cursor: str
    has_more: bool
    added: list[AggregatorTransaction] = field(default_factory=list)
    modified: list[AggregatorTransaction] = field(default_factory=list)
    removed: list[str] = field(default_factory=list)  # transaction ids


class AggregatorClient(Protocol):
    """Protocol that aggregator clients must implement."""

    def fetch_account_snapshot(self, access_token: str) -> AccountSnapshot:
        """Fetch current account balances and Item metadata.

        Raises:
            ProviderError: If the aggregator call fails.
        """
        ...

    def fetch_transaction_delta(
        self, access_token: str, cursor: str | None
    ) -> TransactionDelta:
        """Fetch one page of transaction changes since ``cursor``.

        Args:
            access_token: The Item's access credential.
            cursor: Resumption token from the previous page, or None to
                start from the beginning of history.

        Raises:
            ProviderError: If the aggregator call fails.
        """
        ...
