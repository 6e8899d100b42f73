"""Pydantic schemas for sync endpoints."""

from pydantic import BaseModel


class MessageResponse(BaseModel):
    """Plain success acknowledgment."""

    message: str


class SyncResponse(BaseModel):
    """Result of a transaction sync for one Item."""

    message: str
    item_id: str
    added: int
    modified: int
    removed: int
    pages: int
