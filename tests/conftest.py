"""
Pytest configuration and shared fixtures for MDB_GATEWAY tests.

This module provides:
- Mock Motor client, database and collection fixtures
- A mocked DocumentStore and a Gateway wired to it
- Environment and metrics isolation between tests
"""

from typing import Any, Dict
from unittest.mock import AsyncMock, MagicMock

import pytest
from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorCollection

from mdb_gateway.core.gateway import Gateway
from mdb_gateway.database.store import DocumentStore
from mdb_gateway.observability import clear_tenant_context, get_metrics_collector

TENANT_ID = "acme-5f0c6d1e2a3b4c5d6e7f8091-dev"
"""A tenant identifier with the shared-mode shape."""

OTHER_TENANT_ID = "globex-0123456789abcdefABCDEF01-prod"


def pytest_configure(config):
    config.addinivalue_line("markers", "unit: fast tests without a real MongoDB")


# ============================================================================
# MOCK MONGODB FIXTURES
# ============================================================================


def make_cursor(documents: list[Dict[str, Any]]) -> MagicMock:
    """Create a mock Motor cursor whose modifiers chain and whose to_list returns documents."""
    cursor = MagicMock()
    cursor.sort.return_value = cursor
    cursor.skip.return_value = cursor
    cursor.limit.return_value = cursor
    cursor.to_list = AsyncMock(return_value=documents)
    return cursor


def make_collection(name: str) -> MagicMock:
    """Create a mock Motor collection with async CRUD methods."""
    collection = MagicMock(spec=AsyncIOMotorCollection)
    collection.name = name
    collection.find = MagicMock(return_value=make_cursor([]))
    collection.find_one = AsyncMock(return_value=None)
    collection.insert_one = AsyncMock(return_value=MagicMock(inserted_id="test_id"))
    collection.insert_many = AsyncMock(return_value=MagicMock(inserted_ids=["id1", "id2"]))
    collection.update_one = AsyncMock(return_value=MagicMock(matched_count=1, modified_count=1))
    collection.delete_one = AsyncMock(return_value=MagicMock(deleted_count=1))
    collection.delete_many = AsyncMock(return_value=MagicMock(deleted_count=2))
    collection.create_index = AsyncMock(return_value="test_index")
    return collection


@pytest.fixture
def mock_mongo_client() -> MagicMock:
    """Create a mock MongoDB client whose ping succeeds."""
    client = MagicMock(spec=AsyncIOMotorClient)
    client.admin = MagicMock()
    client.admin.command = AsyncMock(return_value={"ok": 1})
    client.close = MagicMock()
    return client


@pytest.fixture
def mock_mongo_database(mock_mongo_client: MagicMock) -> MagicMock:
    """
    Create a mock MongoDB database.

    ``db[name]`` returns the same mock collection for the same name, so
    tests can configure a collection and then exercise the store.
    """
    collections: Dict[str, MagicMock] = {}

    def get_collection(name: str) -> MagicMock:
        if name not in collections:
            collections[name] = make_collection(name)
        return collections[name]

    db = MagicMock()
    db.name = "test_db"
    db.client = mock_mongo_client
    db.__getitem__.side_effect = get_collection
    db.list_collection_names = AsyncMock(return_value=[])
    db.command = AsyncMock(return_value={"size": 0, "count": 0, "ok": 1})
    db.drop_collection = AsyncMock(return_value={"nIndexesWas": 1, "ok": 1.0})
    return db


# ============================================================================
# GATEWAY FIXTURES
# ============================================================================


@pytest.fixture
def mock_store() -> MagicMock:
    """Create a mocked DocumentStore for gateway-level tests."""
    store = MagicMock(spec=DocumentStore)
    store.database_name = "test_db"
    store.create_id_from_hex = MagicMock(side_effect=ObjectId)
    store.create = AsyncMock(return_value=[])
    store.find = AsyncMock(return_value=[])
    store.find_all = AsyncMock(return_value=[])
    store.find_one = AsyncMock(return_value=None)
    store.update = AsyncMock(return_value=1)
    store.remove = AsyncMock(return_value=1)
    store.remove_all = AsyncMock(return_value=0)
    store.drop_collection = AsyncMock(return_value={"ok": 1.0})
    store.collection_names = AsyncMock(return_value=[])
    store.collection_info = AsyncMock(return_value={"size": 0, "count": 0})
    store.index = AsyncMock(return_value="test_index")
    store.check_status = AsyncMock()
    return store


@pytest.fixture
def gateway(mock_store: MagicMock) -> Gateway:
    """Create a Gateway wired to the mocked store."""
    return Gateway(store=mock_store)


@pytest.fixture
def base_params() -> Dict[str, Any]:
    """Parameters naming a valid shared-mode tenant and entity type."""
    return {"tenant_id": TENANT_ID, "entity_type": "orders"}


@pytest.fixture
def orders_collection() -> str:
    """Physical collection name of the base_params entity type."""
    return f"fh_{TENANT_ID}_orders"


# ============================================================================
# ENVIRONMENT FIXTURES
# ============================================================================


@pytest.fixture(autouse=True)
def reset_environment(monkeypatch):
    """Reset environment variables, metrics and logging context before each test."""
    env_vars_to_clear = [
        "MONGO_URI",
        "DB_NAME",
        "MONGO_MAX_POOL_SIZE",
        "MONGO_MIN_POOL_SIZE",
        "MONGO_SERVER_SELECTION_TIMEOUT_MS",
        "MONGO_MAX_IDLE_TIME_MS",
        "GATEWAY_FANOUT_LIMIT",
        "GATEWAY_HEALTH_TIMEOUT_SECONDS",
    ]
    for var in env_vars_to_clear:
        monkeypatch.delenv(var, raising=False)
    get_metrics_collector().reset()
    clear_tenant_context()
    yield
