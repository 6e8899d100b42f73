"""Item service - stores and looks up linked Plaid Items."""

import logging

from sqlalchemy.orm import Session

from models.plaid_item import UNKNOWN_INSTITUTION, PlaidItem
from services.exceptions import AuthenticationRequired, ItemNotFound

logger = logging.getLogger(__name__)


class ItemService:
    """Service for persisting the result of a Plaid Link token exchange."""

    @staticmethod
    def store_item(
        db: Session,
        user_id: str,
        access_token: str,
        item_id: str,
        institution_id: str | None = None,
        institution_name: str | None = None,
    ) -> dict:
        """Insert or update an Item keyed by ``item_id``.

        Re-linking an institution replaces its access token and institution
        details but keeps the existing sync cursor, so the next sync resumes
        where the previous one stopped.

        Returns:
            A success acknowledgment ``{"message": ...}``.
        """
        if not user_id:
            raise AuthenticationRequired()

        existing = db.query(PlaidItem).filter(PlaidItem.item_id == item_id).first()
        if existing:
            existing.user_id = user_id
            existing.access_token = access_token
            if institution_id:
                existing.institution_id = institution_id
            if institution_name:
                existing.institution_name = institution_name
            logger.info("Updated PlaidItem %s", item_id)
        else:
            db.add(PlaidItem(
                item_id=item_id,
                user_id=user_id,
                access_token=access_token,
                institution_id=institution_id,
                institution_name=institution_name or UNKNOWN_INSTITUTION,
            ))
            logger.info("Created PlaidItem %s for %s", item_id, institution_name)
        db.flush()
        return {"message": "Successfully stored Plaid item"}

    @staticmethod
    def get_item(db: Session, item_id: str, user_id: str | None = None) -> PlaidItem:
        """Fetch an Item, optionally restricted to one user.

        Raises:
            ItemNotFound: If no matching Item exists.
        """
        query = db.query(PlaidItem).filter(PlaidItem.item_id == item_id)
        if user_id is not None:
            query = query.filter(PlaidItem.user_id == user_id)
        item = query.first()
        if item is None:
            raise ItemNotFound(item_id)
        return item

    @staticmethod
    def list_items(db: Session, user_id: str | None = None) -> list[PlaidItem]:
        """List Items, newest first; all users when ``user_id`` is None."""
        query = db.query(PlaidItem)
        if user_id is not None:
            query = query.filter(PlaidItem.user_id == user_id)
        return query.order_by(PlaidItem.created_at.desc()).all()

    @staticmethod
    def delete_item(db: Session, item_id: str, user_id: str) -> PlaidItem:
        """Delete a user's Item row. Accounts and transactions are kept."""
        item = ItemService.get_item(db, item_id, user_id)
        db.delete(item)
        db.flush()
        logger.info("Deleted PlaidItem %s", item_id)
        return item
