"""API route handlers."""
from . import accounts, plaid, sync

__all__ = ["accounts", "plaid", "sync"]
