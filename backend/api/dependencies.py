"""Shared FastAPI dependencies.

Authentication is handled by an upstream identity service; requests reach
this backend with the authenticated user's id in the ``X-User-Id`` header.
"""

from typing import Optional

from fastapi import Depends, Header, HTTPException

from integrations.plaid_client import PlaidClient
from services.exceptions import AuthenticationRequired
from services.transaction_sync_service import TransactionSyncService

USER_ID_HEADER = "X-User-Id"


def resolve_user_id(raw_user_id: Optional[str]) -> str:
    """Return the authenticated user id or raise AuthenticationRequired."""
    user_id = (raw_user_id or "").strip()
    if not user_id:
        raise AuthenticationRequired()
    return user_id


def get_current_user_id(
    x_user_id: Optional[str] = Header(default=None, alias=USER_ID_HEADER),
) -> str:
    """Dependency resolving the current user; 401 when absent."""
    try:
        return resolve_user_id(x_user_id)
    except AuthenticationRequired:
        raise HTTPException(status_code=401, detail="Authentication required")


def get_plaid_client() -> PlaidClient:
    """Dependency for injecting the Plaid client (overridable in tests)."""
    return PlaidClient()


def get_transaction_sync_service(
    client: PlaidClient = Depends(get_plaid_client),
) -> TransactionSyncService:
    """Dependency building a sync service around the request's Plaid client."""
    return TransactionSyncService(client)
