"""Pydantic schemas for API request/response validation."""

from schemas.account import AccountResponse, TransactionResponse
from schemas.sync import MessageResponse, SyncResponse

__all__ = ["AccountResponse", "MessageResponse", "SyncResponse", "TransactionResponse"]
