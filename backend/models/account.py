"""Account model - represents a bank account under a linked Plaid Item."""

from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Numeric, String

from database import Base
from models.utils import generate_uuid


class Account(Base):
    """A financial account reported by Plaid for one Item.

    ``account_id`` is Plaid's identifier and the upsert key: every account
    refresh overwrites the balance and naming fields of the matching row.
    """

    __tablename__ = "accounts"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    account_id = Column(String, unique=True, index=True, nullable=False)
    item_id = Column(String, index=True, nullable=False)
    user_id = Column(String, index=True, nullable=False)
    available_balance = Column(Numeric(18, 4), nullable=True)
    current_balance = Column(Numeric(18, 4), nullable=True)
    currency = Column(String(3), nullable=True)
    name = Column(String, nullable=False)
    official_name = Column(String, nullable=True)
    type = Column(String, nullable=True)  # e.g., "depository", "credit", "loan"
    subtype = Column(String, nullable=True)  # e.g., "checking", "credit card"
    institution_id = Column(String, nullable=True)
    institution_name = Column(String, nullable=True)
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(
        DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )
