"""Pytest configuration and fixtures."""

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from api.dependencies import get_plaid_client, get_transaction_sync_service
from database import Base, get_db
from main import app
from services.item_lock import ItemLockRegistry
from services.transaction_sync_service import TransactionSyncService
# Pytest fixtures - imported to make them available to tests
from tests.fixtures import USER_ID, plaid_item  # noqa: F401
from tests.fixtures.mocks import MockAggregatorClient


@pytest.fixture(name="db")
def db_fixture():
    """Create an in-memory SQLite database for testing."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)

    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSessionLocal()

    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(name="mock_plaid_client")
def mock_plaid_client_fixture():
    """A scripted aggregator client with no transaction pages."""
    return MockAggregatorClient()


@pytest.fixture(name="item_locks")
def item_locks_fixture():
    """A lock table private to one test."""
    return ItemLockRegistry()


@pytest.fixture(name="client")
def client_fixture(db, mock_plaid_client, item_locks):
    """Create a test client with the test database and mocked Plaid client.

    Requests carry the ``X-User-Id`` header for ``USER_ID`` by default.
    """

    def override_get_db():
        try:
            yield db
        finally:
            pass

    def override_get_plaid_client():
        return mock_plaid_client

    def override_get_sync_service():
        return TransactionSyncService(mock_plaid_client, item_locks=item_locks)

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_plaid_client] = override_get_plaid_client
    app.dependency_overrides[get_transaction_sync_service] = override_get_sync_service
    client = TestClient(app, headers={"X-User-Id": USER_ID})
    yield client
    app.dependency_overrides.clear()
