"""Unit tests for the sync core error taxonomy."""

from integrations.exceptions import ProviderAPIError, ProviderConnectionError
from services.exceptions import (
    AuthenticationRequired,
    FinanceSyncError,
    ItemNotFound,
    StorageWriteFailed,
    SyncFailed,
    SyncInProgress,
    UpstreamFetchFailed,
)


def _chained(exc: Exception, cause: Exception) -> Exception:
    try:
        try:
            raise cause
        except Exception as e:
            raise exc from e
    except FinanceSyncError as raised:
        return raised


class TestHierarchy:
    def test_all_are_finance_sync_errors(self):
        for exc in [
            AuthenticationRequired(),
            UpstreamFetchFailed("transactions_page", "boom", page=1),
            StorageWriteFailed("upsert", "boom"),
            SyncFailed("item-1", StorageWriteFailed("delete", "boom")),
            ItemNotFound("item-1"),
            SyncInProgress("item-1"),
        ]:
            assert isinstance(exc, FinanceSyncError)

    def test_authentication_required_default_message(self):
        assert str(AuthenticationRequired()) == "User not found"


class TestUpstreamFetchFailed:
    def test_message_names_stage_and_page(self):
        exc = UpstreamFetchFailed("transactions_page", "timeout", page=3)
        assert exc.stage == "transactions_page"
        assert exc.page == 3
        assert "page 3" in str(exc)
        assert "timeout" in str(exc)

    def test_snapshot_stage_has_no_page(self):
        exc = UpstreamFetchFailed("accounts_snapshot", "boom")
        assert exc.page is None
        assert "accounts_snapshot" in str(exc)

    def test_retriable_follows_cause(self):
        exc = _chained(
            UpstreamFetchFailed("transactions_page", "x", page=1),
            ProviderConnectionError("timeout"),
        )
        assert exc.retriable is True

        exc = _chained(
            UpstreamFetchFailed("transactions_page", "x", page=1),
            ProviderAPIError("bad request", status_code=400),
        )
        assert exc.retriable is False

    def test_not_retriable_without_cause(self):
        assert UpstreamFetchFailed("transactions_page", "x").retriable is False


class TestStorageWriteFailed:
    def test_step_is_exposed(self):
        exc = StorageWriteFailed("cursor", "locked")
        assert exc.step == "cursor"
        assert "cursor" in str(exc)


class TestSyncFailed:
    def test_cause_is_exposed(self):
        cause = StorageWriteFailed("delete", "boom")
        exc = SyncFailed("item-1", cause)
        assert exc.item_id == "item-1"
        assert exc.cause is cause
        assert "item-1" in str(exc)
