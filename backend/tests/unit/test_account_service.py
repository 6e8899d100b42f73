"""Unit tests for AccountService."""

from datetime import datetime
from decimal import Decimal
from unittest.mock import patch

import pytest
from sqlalchemy.exc import OperationalError

from integrations.aggregator_protocol import AggregatorAccount, AggregatorItem
from models import Account, Transaction
from models.plaid_item import UNKNOWN_INSTITUTION
from services.account_service import AccountService
from services.exceptions import AuthenticationRequired, StorageWriteFailed, UpstreamFetchFailed
from tests.fixtures import ACCESS_TOKEN, OTHER_USER_ID, USER_ID
from tests.fixtures.mocks import MockAggregatorClient


def _accounts(db):
    return {a.account_id: a for a in db.query(Account).all()}


class TestFetchAndStoreAccounts:
    def test_stores_snapshot(self, db):
        result = AccountService.fetch_and_store_accounts(
            db, MockAggregatorClient(), ACCESS_TOKEN, USER_ID
        )

        assert result == {"message": "Successfully stored accounts"}
        stored = _accounts(db)
        assert set(stored) == {"acc-checking", "acc-credit"}

        checking = stored["acc-checking"]
        assert checking.user_id == USER_ID
        assert checking.item_id == "item-001"
        assert checking.available_balance == Decimal("100.00")
        assert checking.current_balance == Decimal("110.00")
        assert checking.institution_id == "ins_109508"
        assert checking.institution_name == "First Platypus Bank"
        assert checking.type == "depository"
        assert checking.subtype == "checking"

        credit = stored["acc-credit"]
        assert credit.available_balance is None
        assert credit.official_name is None

    def test_refresh_overwrites_existing_rows(self, db):
        AccountService.fetch_and_store_accounts(
            db, MockAggregatorClient(), ACCESS_TOKEN, USER_ID
        )
        updated = AggregatorAccount(
            account_id="acc-checking",
            name="Renamed Checking",
            official_name=None,
            type="depository",
            subtype="checking",
            available_balance=Decimal("55.00"),
            current_balance=Decimal("60.00"),
            currency="USD",
        )

        AccountService.fetch_and_store_accounts(
            db, MockAggregatorClient(accounts=[updated]), ACCESS_TOKEN, USER_ID
        )

        stored = _accounts(db)
        assert len(stored) == 2
        assert stored["acc-checking"].name == "Renamed Checking"
        assert stored["acc-checking"].available_balance == Decimal("55.00")
        assert stored["acc-checking"].official_name is None

    def test_missing_institution_name_defaults(self, db):
        client = MockAggregatorClient(
            item=AggregatorItem(item_id="item-001", institution_id=None, institution_name=None)
        )

        AccountService.fetch_and_store_accounts(db, client, ACCESS_TOKEN, USER_ID)

        assert all(
            a.institution_name == UNKNOWN_INSTITUTION for a in _accounts(db).values()
        )

    def test_snapshot_failure_writes_nothing(self, db):
        client = MockAggregatorClient(fail_snapshot=True, failure_type="auth")

        with pytest.raises(UpstreamFetchFailed) as exc_info:
            AccountService.fetch_and_store_accounts(db, client, ACCESS_TOKEN, USER_ID)

        assert exc_info.value.stage == "accounts_snapshot"
        assert exc_info.value.retriable is False
        assert db.query(Account).count() == 0

    def test_non_provider_snapshot_error_is_wrapped(self, db):
        """Errors outside the provider hierarchy still report the snapshot stage."""
        client = MockAggregatorClient(fail_snapshot=True, failure_type="generic")

        with pytest.raises(UpstreamFetchFailed) as exc_info:
            AccountService.fetch_and_store_accounts(db, client, ACCESS_TOKEN, USER_ID)

        assert exc_info.value.stage == "accounts_snapshot"
        assert exc_info.value.retriable is False
        assert type(exc_info.value.__cause__) is Exception
        assert db.query(Account).count() == 0

    def test_write_failure_rolls_back(self, db):
        with patch.object(
            db, "flush", side_effect=OperationalError("INSERT", {}, Exception("disk full"))
        ):
            with pytest.raises(StorageWriteFailed) as exc_info:
                AccountService.fetch_and_store_accounts(
                    db, MockAggregatorClient(), ACCESS_TOKEN, USER_ID
                )

        assert exc_info.value.step == "accounts_upsert"
        assert db.query(Account).count() == 0

    def test_requires_user(self, db):
        with pytest.raises(AuthenticationRequired):
            AccountService.fetch_and_store_accounts(
                db, MockAggregatorClient(), ACCESS_TOKEN, ""
            )


class TestListQueries:
    def test_list_accounts_is_per_user(self, db):
        AccountService.fetch_and_store_accounts(
            db, MockAggregatorClient(), ACCESS_TOKEN, USER_ID
        )

        assert len(AccountService.list_accounts(db, USER_ID)) == 2
        assert AccountService.list_accounts(db, OTHER_USER_ID) == []

    def test_list_transactions_newest_first_and_filtered(self, db):
        db.add_all([
            Transaction(
                transaction_id="old", account_id="acc-checking", user_id=USER_ID,
                amount=Decimal("1"), posted_datetime=datetime(2026, 1, 1),
            ),
            Transaction(
                transaction_id="new", account_id="acc-checking", user_id=USER_ID,
                amount=Decimal("2"), posted_datetime=datetime(2026, 2, 1),
            ),
            Transaction(
                transaction_id="credit", account_id="acc-credit", user_id=USER_ID,
                amount=Decimal("3"), posted_datetime=datetime(2026, 1, 15),
            ),
            Transaction(
                transaction_id="theirs", account_id="acc-other", user_id=OTHER_USER_ID,
                amount=Decimal("4"), posted_datetime=datetime(2026, 3, 1),
            ),
        ])
        db.commit()

        all_ids = [t.transaction_id for t in AccountService.list_transactions(db, USER_ID)]
        assert all_ids == ["new", "credit", "old"]

        checking = AccountService.list_transactions(db, USER_ID, account_id="acc-checking")
        assert [t.transaction_id for t in checking] == ["new", "old"]

    def test_list_requires_user(self, db):
        with pytest.raises(AuthenticationRequired):
            AccountService.list_accounts(db, "")
        with pytest.raises(AuthenticationRequired):
            AccountService.list_transactions(db, "")
