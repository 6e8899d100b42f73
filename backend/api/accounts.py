"""Account and transaction read endpoints for the current user."""

from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from api.dependencies import get_current_user_id
from database import get_db
from schemas import AccountResponse, TransactionResponse
from services.account_service import AccountService

router = APIRouter(prefix="/api", tags=["accounts"])


@router.get("/accounts", response_model=list[AccountResponse])
def list_accounts(
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """List the current user's accounts with their latest balances."""
    return AccountService.list_accounts(db, user_id)


@router.get("/transactions", response_model=list[TransactionResponse])
def list_transactions(
    account_id: Optional[str] = None,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """List the current user's transactions, newest first."""
    return AccountService.list_transactions(db, user_id, account_id=account_id)
