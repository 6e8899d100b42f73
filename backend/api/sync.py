"""Sync API endpoints."""

import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from api.dependencies import get_current_user_id, get_plaid_client, get_transaction_sync_service
from database import get_db
from integrations.exceptions import ProviderAuthError
from integrations.plaid_client import PlaidClient
from schemas import MessageResponse, SyncResponse
from services.account_service import AccountService
from services.exceptions import (
    ItemNotFound,
    StorageWriteFailed,
    SyncFailed,
    SyncInProgress,
    UpstreamFetchFailed,
)
from services.item_service import ItemService
from services.transaction_sync_service import TransactionSyncService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/items", tags=["sync"])

_IN_PROGRESS_DETAIL = "Sync already in progress for this item. Please wait for it to complete."


def _upstream_http_error(e: UpstreamFetchFailed) -> HTTPException:
    if isinstance(e.__cause__, ProviderAuthError):
        return HTTPException(
            status_code=502,
            detail="The bank connection needs to be re-authenticated. Please relink it.",
        )
    return HTTPException(
        status_code=502,
        detail="The account aggregator request failed. Please try again later.",
    )


@router.post("/{item_id}/sync", response_model=SyncResponse)
def sync_transactions(
    item_id: str,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
    sync_service: TransactionSyncService = Depends(get_transaction_sync_service),
):
    """Incrementally sync an Item's transactions from its stored cursor.

    Raises:
        HTTPException:
            - 404 Not Found: Unknown item
            - 409 Conflict: A sync for this item is already running
            - 502 Bad Gateway: Plaid request failed
            - 500 Internal Server Error: Storage failure (cursor not advanced)
    """
    try:
        item = ItemService.get_item(db, item_id, user_id)
    except ItemNotFound:
        raise HTTPException(status_code=404, detail=f"Item not found: {item_id}")

    if sync_service.is_sync_in_progress(item_id):
        raise HTTPException(status_code=409, detail=_IN_PROGRESS_DETAIL)

    try:
        result = sync_service.sync_transactions(db, item.access_token, item_id, user_id)
    except SyncInProgress:
        raise HTTPException(status_code=409, detail=_IN_PROGRESS_DETAIL)
    except SyncFailed as e:
        cause = e.cause
        if isinstance(cause, ItemNotFound):
            raise HTTPException(status_code=404, detail=f"Item not found: {item_id}")
        if isinstance(cause, UpstreamFetchFailed):
            raise _upstream_http_error(cause)
        if isinstance(cause, StorageWriteFailed):
            logger.error("Storage failure during sync of %s (step=%s)", item_id, cause.step)
        raise HTTPException(status_code=500, detail="Failed to sync transactions")

    return SyncResponse(**result.to_dict())


@router.post("/{item_id}/accounts/refresh", response_model=MessageResponse)
def refresh_accounts(
    item_id: str,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
    client: PlaidClient = Depends(get_plaid_client),
):
    """Re-fetch and overwrite all accounts for an Item."""
    try:
        item = ItemService.get_item(db, item_id, user_id)
    except ItemNotFound:
        raise HTTPException(status_code=404, detail=f"Item not found: {item_id}")

    try:
        result = AccountService.fetch_and_store_accounts(db, client, item.access_token, user_id)
    except UpstreamFetchFailed as e:
        raise _upstream_http_error(e)
    except StorageWriteFailed:
        raise HTTPException(status_code=500, detail="Failed to store accounts")

    return MessageResponse(**result)
