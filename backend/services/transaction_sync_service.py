"""Transaction sync service - cursor-based incremental sync per Plaid Item.

One invocation of :meth:`TransactionSyncService.sync_transactions`:

1. loads the Item's stored cursor,
2. pages ``fetch_transaction_delta`` until ``has_more`` is false, keeping
   every page's added/modified/removed in fetch order,
3. merges the pages into one upsert set and one removal set,
4. upserts, deletes and advances the cursor inside a single database
   transaction.

Nothing is written until every page has been fetched, and the cursor only
moves when all three writes succeed. A failed invocation leaves the
stored cursor where it was, so a retry re-fetches the same range.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone

from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from config import settings
from integrations.aggregator_protocol import AggregatorClient, AggregatorTransaction
from models import PlaidItem, Transaction
from services.exceptions import (
    AuthenticationRequired,
    FinanceSyncError,
    ItemNotFound,
    StorageWriteFailed,
    SyncFailed,
    UpstreamFetchFailed,
)
from services.item_lock import ItemLockRegistry, default_item_locks
from services.item_service import ItemService

logger = logging.getLogger(__name__)

# Keeps IN (...) lists under SQLite's bound-parameter limit
_CHUNK_SIZE = 500


@dataclass
class AccumulatedDelta:
    """Every page's changes concatenated in fetch order."""

    added: list[AggregatorTransaction]
    modified: list[AggregatorTransaction]
    removed: list[str]
    final_cursor: str | None
    pages_fetched: int


@dataclass
class MergedDelta:
    """Changes ready to apply: one entry per transaction id."""

    upserts: list[AggregatorTransaction]
    removed: list[str]
    # Split of the upserts: ids first seen in "added" vs. only in "modified"
    added: int = 0
    modified: int = 0


@dataclass
class SyncResult:
    """Outcome of a successful sync invocation."""

    item_id: str
    added: int
    modified: int
    removed: int
    pages: int
    cursor: str | None
    message: str = "Transactions synced successfully"

    def to_dict(self) -> dict:
        return {
            "message": self.message,
            "item_id": self.item_id,
            "added": self.added,
            "modified": self.modified,
            "removed": self.removed,
            "pages": self.pages,
        }


@dataclass
class ItemSyncOutcome:
    """Per-item entry in a :meth:`TransactionSyncService.sync_all_items` run."""

    item_id: str
    status: str  # "success" | "failed" | "skipped"
    result: SyncResult | None = None
    error: str | None = None
    retriable: bool = False


def _chunks(values: list, size: int = _CHUNK_SIZE):
    for start in range(0, len(values), size):
        yield values[start:start + size]


class TransactionSyncService:
    """Service for syncing transactions for Plaid Items.

    The aggregator client is injected rather than looked up globally so
    tests and schedulers control exactly which client a sync talks to.
    """

    def __init__(
        self,
        client: AggregatorClient,
        item_locks: ItemLockRegistry | None = None,
        max_pages: int | None = None,
    ):
        """Initialize the service.

        Args:
            client: Aggregator client used to fetch transaction pages.
            item_locks: Lock table serializing syncs per item. Defaults to
                the process-wide registry.
            max_pages: Page bound per invocation; 0 disables the bound.
                Defaults to ``settings.SYNC_MAX_PAGES``.
        """
        self._client = client
        self._locks = item_locks or default_item_locks
        self._max_pages = settings.SYNC_MAX_PAGES if max_pages is None else max_pages

    def is_sync_in_progress(self, item_id: str) -> bool:
        return self._locks.is_locked(item_id)

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    def sync_transactions(
        self,
        db: Session,
        access_token: str,
        item_id: str,
        user_id: str,
        wait: bool = False,
    ) -> SyncResult:
        """Sync all transaction changes for one Item since its stored cursor.

        Args:
            db: Database session. Committed on success, rolled back on failure.
            access_token: The Item's Plaid access token.
            item_id: The Item to sync.
            user_id: Owner every written row is attributed to.
            wait: Block until a running sync of the same item finishes
                instead of failing with SyncInProgress.

        Returns:
            SyncResult with change counts.

        Raises:
            AuthenticationRequired: If ``user_id`` is empty.
            SyncInProgress: If the item is already being synced.
            SyncFailed: If the Item is missing, any page fetch fails, or any
                write fails. The stored cursor is unchanged.
        """
        if not user_id:
            raise AuthenticationRequired()

        with self._locks.hold(item_id, blocking=wait):
            try:
                item = ItemService.get_item(db, item_id, user_id)
            except ItemNotFound as e:
                raise SyncFailed(item_id, e) from e
            start_cursor = item.cursor

            logger.info(
                "Transaction sync started for item %s (cursor: %s)",
                item_id, "stored" if start_cursor else "initial",
            )

            try:
                delta = self.fetch_delta(access_token, start_cursor)
            except UpstreamFetchFailed as e:
                logger.warning("Transaction sync failed for item %s: %s", item_id, e)
                raise SyncFailed(item_id, e) from e

            merged = self.merge_delta(delta)

            try:
                self.apply_delta(
                    db, item_id, user_id, merged, start_cursor, delta.final_cursor,
                )
            except StorageWriteFailed as e:
                logger.error("Transaction sync failed for item %s: %s", item_id, e)
                raise SyncFailed(item_id, e) from e

        result = SyncResult(
            item_id=item_id,
            added=merged.added,
            modified=merged.modified,
            removed=len(merged.removed),
            pages=delta.pages_fetched,
            cursor=delta.final_cursor,
        )
        logger.info(
            "Transaction sync complete for item %s: %d added, %d modified, "
            "%d removed across %d pages",
            item_id, result.added, result.modified, result.removed, result.pages,
        )
        return result

    def sync_all_items(self, db: Session, user_id: str | None = None) -> list[ItemSyncOutcome]:
        """Sync every Item (optionally one user's) independently.

        A failure for one Item is recorded and the run moves on; Items
        already being synced elsewhere are reported as skipped.
        """
        outcomes: list[ItemSyncOutcome] = []
        # Snapshot the fields up front; a failed sync rolls the session back
        targets = [
            (item.item_id, item.access_token, item.user_id)
            for item in ItemService.list_items(db, user_id)
        ]
        for item_id, access_token, owner_id in targets:
            try:
                result = self.sync_transactions(db, access_token, item_id, owner_id)
            except SyncFailed as e:
                outcomes.append(ItemSyncOutcome(
                    item_id=item_id,
                    status="failed",
                    error=str(e),
                    retriable=getattr(e.cause, "retriable", False),
                ))
            except FinanceSyncError as e:
                outcomes.append(ItemSyncOutcome(item_id=item_id, status="skipped", error=str(e)))
            else:
                outcomes.append(ItemSyncOutcome(item_id=item_id, status="success", result=result))
        return outcomes

    # ------------------------------------------------------------------
    # Pagination
    # ------------------------------------------------------------------

    def fetch_delta(self, access_token: str, cursor: str | None) -> AccumulatedDelta:
        """Page the aggregator from ``cursor`` until ``has_more`` is false.

        Raises:
            UpstreamFetchFailed: If a page fetch fails or the page bound is
                exceeded. Pages accumulated so far are discarded.
        """
        added: list[AggregatorTransaction] = []
        modified: list[AggregatorTransaction] = []
        removed: list[str] = []
        pages = 0
        has_more = True

        while has_more:
            if self._max_pages and pages >= self._max_pages:
                raise UpstreamFetchFailed(
                    "transactions_page",
                    f"has_more still true after {pages} pages",
                    page=pages + 1,
                )
            try:
                page = self._client.fetch_transaction_delta(access_token, cursor)
            except Exception as e:
                raise UpstreamFetchFailed("transactions_page", str(e), page=pages + 1) from e
            pages += 1

            added.extend(page.added)
            modified.extend(page.modified)
            removed.extend(page.removed)
            cursor = page.next_cursor
            has_more = page.has_more

            logger.debug(
                "Page %d: %d added, %d modified, %d removed (has_more=%s)",
                pages, len(page.added), len(page.modified), len(page.removed), has_more,
            )

        return AccumulatedDelta(
            added=added,
            modified=modified,
            removed=removed,
            final_cursor=cursor,
            pages_fetched=pages,
        )

    # ------------------------------------------------------------------
    # Merge & apply
    # ------------------------------------------------------------------

    @staticmethod
    def merge_delta(delta: AccumulatedDelta) -> MergedDelta:
        """Collapse the accumulated pages to one change per transaction id.

        Modified entries replace added entries with the same id, later pages
        replace earlier ones, and any id in the removed set is dropped from
        the upserts.
        """
        by_id: dict[str, AggregatorTransaction] = {}
        for txn in delta.added:
            by_id[txn.transaction_id] = txn
        for txn in delta.modified:
            by_id[txn.transaction_id] = txn

        removed = list(dict.fromkeys(delta.removed))
        removed_set = set(removed)
        upserts = [txn for txn_id, txn in by_id.items() if txn_id not in removed_set]
        added_ids = {txn.transaction_id for txn in delta.added} - removed_set
        return MergedDelta(
            upserts=upserts,
            removed=removed,
            added=len(added_ids),
            modified=len(upserts) - len(added_ids),
        )

    def apply_delta(
        self,
        db: Session,
        item_id: str,
        user_id: str,
        merged: MergedDelta,
        expected_cursor: str | None,
        new_cursor: str | None,
    ) -> None:
        """Upsert, delete and advance the cursor as one database transaction.

        Raises:
            StorageWriteFailed: Naming the failing step. Everything written by
                this call has been rolled back.
        """
        try:
            self._upsert_transactions(db, user_id, merged.upserts)
            if merged.removed:
                self._delete_transactions(db, merged.removed)
            self._commit_cursor(db, item_id, expected_cursor, new_cursor)
            try:
                db.commit()
            except SQLAlchemyError as e:
                raise StorageWriteFailed("cursor", str(e)) from e
        except BaseException:
            db.rollback()
            raise

    def _upsert_transactions(
        self,
        db: Session,
        user_id: str,
        transactions: list[AggregatorTransaction],
    ) -> None:
        try:
            for chunk in _chunks(transactions):
                ids = [txn.transaction_id for txn in chunk]
                existing = {
                    row.transaction_id: row
                    for row in db.query(Transaction).filter(Transaction.transaction_id.in_(ids))
                }
                for txn in chunk:
                    values = self._transaction_values(txn, user_id)
                    row = existing.get(txn.transaction_id)
                    if row is None:
                        db.add(Transaction(transaction_id=txn.transaction_id, **values))
                    else:
                        for key, value in values.items():
                            setattr(row, key, value)
                db.flush()
        except SQLAlchemyError as e:
            raise StorageWriteFailed("upsert", str(e)) from e

    @staticmethod
    def _transaction_values(txn: AggregatorTransaction, user_id: str) -> dict:
        return {
            "user_id": user_id,
            "account_id": txn.account_id,
            "amount": txn.amount,
            "authorized_datetime": txn.authorized_datetime,
            "posted_datetime": txn.posted_datetime,
            "personal_finance_category_primary": txn.category_primary,
            "personal_finance_category_detailed": txn.category_detailed,
            "name": txn.name,
            "merchant_name": txn.merchant_name,
            "payment_channel": txn.payment_channel,
            "currency": txn.currency,
            "pending": txn.pending,
        }

    def _delete_transactions(self, db: Session, transaction_ids: list[str]) -> None:
        try:
            for chunk in _chunks(transaction_ids):
                db.query(Transaction).filter(
                    Transaction.transaction_id.in_(chunk)
                ).delete(synchronize_session="fetch")
            db.flush()
        except SQLAlchemyError as e:
            raise StorageWriteFailed("delete", str(e)) from e

    def _commit_cursor(
        self,
        db: Session,
        item_id: str,
        expected_cursor: str | None,
        new_cursor: str | None,
    ) -> None:
        """Advance the cursor only if nobody else moved it since we read it."""
        if expected_cursor is None:
            unchanged = PlaidItem.cursor.is_(None)
        else:
            unchanged = PlaidItem.cursor == expected_cursor
        stmt = (
            update(PlaidItem)
            .where(PlaidItem.item_id == item_id, unchanged)
            .values(cursor=new_cursor, last_synced_at=datetime.now(timezone.utc))
            .execution_options(synchronize_session=False)
        )
        try:
            result = db.execute(stmt)
        except SQLAlchemyError as e:
            raise StorageWriteFailed("cursor", str(e)) from e
        if result.rowcount != 1:
            raise StorageWriteFailed(
                "cursor",
                f"cursor for item {item_id} changed while syncing",
            )
