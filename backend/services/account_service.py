"""Account service - refreshes account balances and reads stored data."""

import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from integrations.aggregator_protocol import AggregatorAccount, AggregatorClient, AggregatorItem
from models import Account, Transaction
from models.plaid_item import UNKNOWN_INSTITUTION
from services.exceptions import AuthenticationRequired, StorageWriteFailed, UpstreamFetchFailed

logger = logging.getLogger(__name__)


class AccountService:
    """Non-incremental account refresh plus per-user read queries."""

    @staticmethod
    def fetch_and_store_accounts(
        db: Session,
        client: AggregatorClient,
        access_token: str,
        user_id: str,
    ) -> dict:
        """Fetch the current account snapshot for an Item and upsert it.

        Every call is a full overwrite of the mapped fields for each account
        reported, keyed by ``account_id``. A failed write is rolled back;
        rerunning the refresh converges.

        Raises:
            AuthenticationRequired: If ``user_id`` is empty.
            UpstreamFetchFailed: If the snapshot fetch fails.
            StorageWriteFailed: If the upsert fails.
        """
        if not user_id:
            raise AuthenticationRequired()

        try:
            snapshot = client.fetch_account_snapshot(access_token)
        except Exception as e:
            logger.warning("Error fetching accounts: %s", e)
            raise UpstreamFetchFailed("accounts_snapshot", str(e)) from e

        try:
            for remote in snapshot.accounts:
                AccountService._upsert_account(db, remote, snapshot.item, user_id)
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.error("Error inserting accounts for item %s: %s", snapshot.item.item_id, e)
            raise StorageWriteFailed("accounts_upsert", str(e)) from e

        logger.info(
            "Stored %d accounts for item %s",
            len(snapshot.accounts), snapshot.item.item_id,
        )
        return {"message": "Successfully stored accounts"}

    @staticmethod
    def _upsert_account(
        db: Session,
        remote: AggregatorAccount,
        item: AggregatorItem,
        user_id: str,
    ) -> Account:
        values = {
            "item_id": item.item_id,
            "user_id": user_id,
            "available_balance": remote.available_balance,
            "current_balance": remote.current_balance,
            "currency": remote.currency,
            "name": remote.name,
            "official_name": remote.official_name,
            "type": remote.type,
            "subtype": remote.subtype,
            "institution_id": item.institution_id,
            "institution_name": item.institution_name or UNKNOWN_INSTITUTION,
        }
        existing = (
            db.query(Account)
            .filter(Account.account_id == remote.account_id)
            .first()
        )
        if existing:
            for key, value in values.items():
                setattr(existing, key, value)
            account = existing
        else:
            account = Account(account_id=remote.account_id, **values)
            db.add(account)
        db.flush()
        return account

    @staticmethod
    def list_accounts(db: Session, user_id: str) -> list[Account]:
        """Return all stored accounts for a user."""
        if not user_id:
            raise AuthenticationRequired()
        return (
            db.query(Account)
            .filter(Account.user_id == user_id)
            .order_by(Account.institution_name, Account.name)
            .all()
        )

    @staticmethod
    def list_transactions(
        db: Session,
        user_id: str,
        account_id: str | None = None,
    ) -> list[Transaction]:
        """Return stored transactions for a user, newest first."""
        if not user_id:
            raise AuthenticationRequired()
        query = db.query(Transaction).filter(Transaction.user_id == user_id)
        if account_id:
            query = query.filter(Transaction.account_id == account_id)
        return query.order_by(
            Transaction.posted_datetime.desc(),
            Transaction.transaction_id,
        ).all()
