#!/usr/bin/env python
"""Scheduled transaction sync for linked Plaid Items.

Meant to be run from cron or another scheduler. Each Item is synced
independently; the exit status is non-zero when any Item failed so the
scheduler can retry.

Usage:
    python -m scripts.sync_items
    python -m scripts.sync_items --user-id 7f3c...
    python -m scripts.sync_items --item-id item-abc123 --refresh-accounts
"""

import argparse
import logging
import sys

from database import get_session_local
from integrations.plaid_client import PlaidClient
from logging_config import setup_logging
from services.account_service import AccountService
from services.exceptions import FinanceSyncError, SyncFailed
from services.item_service import ItemService
from services.transaction_sync_service import ItemSyncOutcome, TransactionSyncService

logger = logging.getLogger(__name__)


def _sync_one(db, service: TransactionSyncService, item_id: str) -> ItemSyncOutcome:
    item = ItemService.get_item(db, item_id)
    try:
        result = service.sync_transactions(db, item.access_token, item_id, item.user_id, wait=True)
    except SyncFailed as e:
        return ItemSyncOutcome(
            item_id=item_id,
            status="failed",
            error=str(e),
            retriable=getattr(e.cause, "retriable", False),
        )
    return ItemSyncOutcome(item_id=item_id, status="success", result=result)


def _refresh_accounts(db, client: PlaidClient, item_ids: list[str]) -> int:
    """Refresh accounts for the given Items; returns the number of failures."""
    failures = 0
    for item_id in item_ids:
        item = ItemService.get_item(db, item_id)
        try:
            AccountService.fetch_and_store_accounts(db, client, item.access_token, item.user_id)
        except FinanceSyncError as e:
            failures += 1
            print(f"  {item_id}: account refresh failed: {e}")
    return failures


def print_outcomes(outcomes: list[ItemSyncOutcome]) -> None:
    for outcome in outcomes:
        if outcome.status == "success" and outcome.result is not None:
            r = outcome.result
            print(
                f"  {outcome.item_id}: ok "
                f"(+{r.added} ~{r.modified} -{r.removed}, {r.pages} pages)"
            )
        else:
            hint = " [retriable]" if outcome.retriable else ""
            print(f"  {outcome.item_id}: {outcome.status}{hint}: {outcome.error}")


def main(argv: list[str] | None = None) -> int:
    """Entry point: parse args and run the sync."""
    parser = argparse.ArgumentParser(
        description="Sync Plaid transactions for linked Items.",
    )
    parser.add_argument("--user-id", help="Only sync Items owned by this user")
    parser.add_argument("--item-id", help="Only sync this Item")
    parser.add_argument(
        "--refresh-accounts",
        action="store_true",
        help="Also refresh account balances for each synced Item",
    )
    args = parser.parse_args(argv)

    setup_logging()

    client = PlaidClient()
    if not client.is_configured():
        print("Error: PLAID_CLIENT_ID and PLAID_SECRET must be configured")
        return 2

    service = TransactionSyncService(client)
    db = get_session_local()()
    try:
        if args.item_id:
            try:
                outcomes = [_sync_one(db, service, args.item_id)]
            except FinanceSyncError as e:
                print(f"Error: {e}")
                return 1
        else:
            outcomes = service.sync_all_items(db, user_id=args.user_id)

        print(f"Synced {len(outcomes)} item(s)")
        print_outcomes(outcomes)

        failures = sum(1 for o in outcomes if o.status != "success")
        if args.refresh_accounts:
            failures += _refresh_accounts(db, client, [o.item_id for o in outcomes])
    finally:
        db.close()

    return 1 if failures else 0


if __name__ == "__main__":
    sys.exit(main())
