"""FastAPI application entry point."""

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api import accounts, plaid, sync
from config import settings
from logging_config import setup_logging

setup_logging()
logger = logging.getLogger(__name__)


app = FastAPI(
    title="Plaid Ledger",
    description="Linked bank accounts, balances and synced transaction history",
    version="0.1.0",
)

# CORS configuration for frontend
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include API routers
app.include_router(accounts.router)
app.include_router(plaid.router)
app.include_router(sync.router)


@app.get("/health")
def health_check():
    """Health check endpoint."""
    return {"status": "ok"}
