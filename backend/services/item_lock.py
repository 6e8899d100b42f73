"""Per-item mutual exclusion for transaction syncs.

Two syncs of the same Item would read the same starting cursor and race to
commit theirs, so syncs are serialized per item id. Syncs of different
items never contend.

This covers a single process. Across processes the conditional cursor
update in TransactionSyncService rejects the slower writer.
"""

import logging
import threading
from contextlib import contextmanager
from typing import Iterator

from services.exceptions import SyncInProgress

logger = logging.getLogger(__name__)


class ItemLockRegistry:
    """Lock table keyed by item id.

    An entry lives only while some caller holds or waits on it, so the table
    stays bounded by the number of in-flight syncs.
    """

    def __init__(self):
        self._guard = threading.Lock()
        self._locks: dict[str, threading.Lock] = {}
        self._users: dict[str, int] = {}

    def _checkout(self, item_id: str) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(item_id)
            if lock is None:
                lock = threading.Lock()
                self._locks[item_id] = lock
            self._users[item_id] = self._users.get(item_id, 0) + 1
            return lock

    def _checkin(self, item_id: str) -> None:
        with self._guard:
            remaining = self._users[item_id] - 1
            if remaining:
                self._users[item_id] = remaining
            else:
                del self._users[item_id]
                del self._locks[item_id]

    def is_locked(self, item_id: str) -> bool:
        """Check whether a sync for ``item_id`` is currently running."""
        with self._guard:
            lock = self._locks.get(item_id)
        return lock is not None and lock.locked()

    @contextmanager
    def hold(
        self,
        item_id: str,
        blocking: bool = False,
        timeout: float | None = None,
    ) -> Iterator[None]:
        """Hold the lock for ``item_id`` for the duration of the block.

        Raises:
            SyncInProgress: If the lock could not be acquired (immediately
                when ``blocking`` is False, or within ``timeout`` seconds).
        """
        lock = self._checkout(item_id)
        try:
            if blocking:
                acquired = lock.acquire(timeout=-1 if timeout is None else timeout)
            else:
                acquired = lock.acquire(blocking=False)
            if not acquired:
                logger.warning("Sync blocked: item %s is already syncing", item_id)
                raise SyncInProgress(item_id)
            try:
                yield
            finally:
                lock.release()
        finally:
            self._checkin(item_id)


# Shared by every TransactionSyncService in the process unless one is injected
default_item_locks = ItemLockRegistry()
