"""PlaidItem model - stores Plaid access tokens and sync cursors per linked institution."""

from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, String, Text

from database import Base
from models.utils import generate_uuid

UNKNOWN_INSTITUTION = "Unknown Institution"


class PlaidItem(Base):
    """A Plaid Item representing a linked financial institution.

    Each institution linked via Plaid Link gets its own access_token. The
    ``cursor`` marks how far ``/transactions/sync`` has been applied and is
    only advanced by the transaction sync service.
    """

    __tablename__ = "plaid_items"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    item_id = Column(String, unique=True, index=True, nullable=False)
    user_id = Column(String, index=True, nullable=False)
    access_token = Column(String, nullable=False)
    institution_id = Column(String, nullable=True)
    institution_name = Column(String, nullable=False, default=UNKNOWN_INSTITUTION)
    cursor = Column(Text, nullable=True)  # None until the first successful sync
    last_synced_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(
        DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    def __repr__(self) -> str:
        # access_token is deliberately left out
        return f"<PlaidItem item_id={self.item_id!r} institution={self.institution_name!r}>"
