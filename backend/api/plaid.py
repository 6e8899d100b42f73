"""Plaid Link API endpoints.

Provides the server-side endpoints for the Plaid Link browser-based
flow: creating link tokens, exchanging public tokens, and managing the
current user's linked institutions (PlaidItems).
"""

import logging

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlalchemy.orm import Session

from api.dependencies import get_current_user_id, get_plaid_client
from database import get_db
from integrations.exceptions import ProviderError
from integrations.plaid_client import PlaidClient
from services.account_service import AccountService
from services.exceptions import FinanceSyncError, ItemNotFound
from services.item_service import ItemService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/plaid", tags=["plaid"])


# ------------------------------------------------------------------
# Request / Response schemas
# ------------------------------------------------------------------


class LinkTokenResponse(BaseModel):
    link_token: str


class ExchangeTokenRequest(BaseModel):
    public_token: str
    institution_id: str | None = None
    institution_name: str | None = None


class ExchangeTokenResponse(BaseModel):
    item_id: str
    institution_name: str | None = None
    accounts_refreshed: bool = False


class PlaidItemResponse(BaseModel):
    item_id: str
    institution_id: str | None = None
    institution_name: str | None = None
    has_cursor: bool = False
    last_synced_at: str | None = None
    created_at: str | None = None


# ------------------------------------------------------------------
# Endpoints
# ------------------------------------------------------------------


@router.post("/link-token", response_model=LinkTokenResponse)
def create_link_token(
    user_id: str = Depends(get_current_user_id),
    client: PlaidClient = Depends(get_plaid_client),
):
    """Create a Plaid Link token for the frontend."""
    if not client.is_configured():
        raise HTTPException(status_code=400, detail="Plaid is not configured")

    try:
        return LinkTokenResponse(link_token=client.create_link_token(user_id))
    except ProviderError as e:
        error_detail = str(e)
        # Surface actionable hint for the most common error
        if "INVALID_API_KEYS" in error_detail:
            hint = (
                "Plaid rejected the credentials. Check that PLAID_ENVIRONMENT "
                "matches your keys (sandbox or production). "
                "Each environment has different secrets."
            )
            logger.error("Plaid INVALID_API_KEYS: %s", hint)
            raise HTTPException(status_code=400, detail=hint)
        logger.error("Failed to create Plaid link token: %s", e)
        raise HTTPException(status_code=502, detail="Failed to create link token")


@router.post("/exchange-token", response_model=ExchangeTokenResponse)
def exchange_token(
    body: ExchangeTokenRequest,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
    client: PlaidClient = Depends(get_plaid_client),
):
    """Exchange a Plaid Link public_token, store the Item and load its accounts."""
    if not client.is_configured():
        raise HTTPException(status_code=400, detail="Plaid is not configured")

    try:
        result = client.exchange_public_token(body.public_token)
    except ProviderError as e:
        logger.error("Failed to exchange Plaid token: %s", e)
        raise HTTPException(status_code=502, detail="Failed to exchange token")

    item_id = result["item_id"]
    access_token = result["access_token"]

    ItemService.store_item(
        db,
        user_id=user_id,
        access_token=access_token,
        item_id=item_id,
        institution_id=body.institution_id,
        institution_name=body.institution_name,
    )
    db.commit()

    # The Item is already stored; a failed account load is retried via refresh
    accounts_refreshed = False
    try:
        AccountService.fetch_and_store_accounts(db, client, access_token, user_id)
        accounts_refreshed = True
    except FinanceSyncError as e:
        logger.warning("Initial account refresh failed for item %s: %s", item_id, e)

    return ExchangeTokenResponse(
        item_id=item_id,
        institution_name=body.institution_name,
        accounts_refreshed=accounts_refreshed,
    )


@router.get("/items", response_model=list[PlaidItemResponse])
def list_items(
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """List the current user's linked Plaid Items."""
    return [
        PlaidItemResponse(
            item_id=item.item_id,
            institution_id=item.institution_id,
            institution_name=item.institution_name,
            has_cursor=item.cursor is not None,
            last_synced_at=item.last_synced_at.isoformat() if item.last_synced_at else None,
            created_at=item.created_at.isoformat() if item.created_at else None,
        )
        for item in ItemService.list_items(db, user_id)
    ]


@router.delete("/items/{item_id}")
def remove_item(
    item_id: str,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
    client: PlaidClient = Depends(get_plaid_client),
):
    """Remove a linked Plaid Item (revokes token with Plaid, then deletes locally)."""
    try:
        item = ItemService.get_item(db, item_id, user_id)
    except ItemNotFound:
        raise HTTPException(status_code=404, detail=f"Item not found: {item_id}")

    # Revoke the access token with Plaid; proceed with local delete even if this fails
    try:
        client.remove_item(item.access_token)
    except ProviderError as e:
        logger.warning("Failed to remove Plaid item remotely (removing locally anyway): %s", e)

    ItemService.delete_item(db, item_id, user_id)
    db.commit()
    return {"status": "ok", "item_id": item_id}
