"""External API integrations.

This package contains:
- Aggregator protocol: the interface the sync core consumes
- Plaid client: Integration with the Plaid API
"""

from integrations.aggregator_protocol import (
    AccountSnapshot,
    AggregatorAccount,
    AggregatorClient,
    AggregatorItem,
    AggregatorTransaction,
    TransactionDelta,
)

__all__ = [
    "AccountSnapshot",
    "AggregatorAccount",
    "AggregatorClient",
    "AggregatorItem",
    "AggregatorTransaction",
    "TransactionDelta",
]
