"""Error taxonomy for the sync core.

Provider-level failures live in :mod:`integrations.exceptions`; the
exceptions here describe what went wrong for a whole operation and are
what the API layer and schedulers handle.
"""


class FinanceSyncError(Exception):
    """Base exception for sync core failures."""

    pass


class AuthenticationRequired(FinanceSyncError):
    """No authenticated user identity could be resolved for a write."""

    def __init__(self, message: str = "User not found"):
        super().__init__(message)


class UpstreamFetchFailed(FinanceSyncError):
    """An aggregator call failed.

    ``stage`` is ``"accounts_snapshot"`` or ``"transactions_page"``; ``page``
    is the 1-based page number for transaction pages.
    """

    def __init__(self, stage: str, message: str, page: int | None = None):
        self.stage = stage
        self.page = page
        where = f"{stage} (page {page})" if page is not None else stage
        super().__init__(f"Upstream fetch failed during {where}: {message}")

    @property
    def retriable(self) -> bool:
        cause = self.__cause__
        return bool(getattr(cause, "retriable", False))


class StorageWriteFailed(FinanceSyncError):
    """A database write failed.

    ``step`` names the failing write: ``"upsert"``, ``"delete"``,
    ``"cursor"`` or ``"accounts_upsert"``.
    """

    def __init__(self, step: str, message: str):
        self.step = step
        super().__init__(f"Storage write failed at step '{step}': {message}")


class SyncFailed(FinanceSyncError):
    """Umbrella failure for a whole transaction sync invocation.

    The cause (an UpstreamFetchFailed, StorageWriteFailed or lookup failure)
    is available both as ``cause`` and via exception chaining.
    """

    def __init__(self, item_id: str, cause: Exception):
        self.item_id = item_id
        self.cause = cause
        super().__init__(f"Failed to sync transactions for item {item_id}: {cause}")


class ItemNotFound(FinanceSyncError):
    """The requested Plaid item does not exist (or is not the user's)."""

    def __init__(self, item_id: str):
        self.item_id = item_id
        super().__init__(f"Item not found: {item_id}")


class SyncInProgress(FinanceSyncError):
    """Another sync for the same item currently holds its lock."""

    def __init__(self, item_id: str):
        self.item_id = item_id
        super().__init__(f"Sync already in progress for item {item_id}")
