"""Transaction model - a bank transaction synced from Plaid."""

from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, DateTime, Numeric, String

from database import Base
from models.utils import generate_uuid


class Transaction(Base):
    """A transaction record kept in step with ``/transactions/sync``.

    Rows are upserted from the added/modified sets keyed on
    ``transaction_id`` and physically deleted when Plaid reports them
    removed. ``amount`` keeps Plaid's sign convention (positive = money
    leaving the account).
    """

    __tablename__ = "transactions"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    transaction_id = Column(String, unique=True, index=True, nullable=False)
    account_id = Column(String, index=True, nullable=False)
    user_id = Column(String, index=True, nullable=False)
    amount = Column(Numeric(18, 4), nullable=False)
    authorized_datetime = Column(DateTime, nullable=True)
    posted_datetime = Column("datetime", DateTime, nullable=True)
    personal_finance_category_primary = Column(String, nullable=True)
    personal_finance_category_detailed = Column(String, nullable=True)
    name = Column(String, nullable=True)
    merchant_name = Column(String, nullable=True)
    payment_channel = Column(String, nullable=True)  # "online" | "in store" | "other"
    currency = Column(String(3), nullable=True)
    pending = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(
        DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )
