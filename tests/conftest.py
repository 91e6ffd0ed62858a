"""
Pytest configuration and shared fixtures for MDB_INDEX_SYNC tests.

This module provides:
- Recording and mock store handles
- Entity descriptor factories
- Testcontainers fixtures for integration tests
"""

import threading
import time
from typing import Any, Dict, List, Tuple
from unittest.mock import MagicMock

import pytest

from mdb_index_sync.config import SyncConfig
from mdb_index_sync.exceptions import StoreUnavailableError
from mdb_index_sync.indexes.declarations import (
    CompoundIndexDeclaration,
    EntityDescriptor,
    GeoIndexDeclaration,
    IndexDirection,
    PropertyDescriptor,
    SimpleIndexDeclaration,
)
from mdb_index_sync.observability.metrics import MetricsCollector


def pytest_configure(config):
    config.addinivalue_line("markers", "integration: tests that need a real MongoDB")


# ============================================================================
# STORE FIXTURES
# ============================================================================


class RecordingStore:
    """Thread-safe IndexStore that records every call it receives."""

    def __init__(self, delay: float = 0.0) -> None:
        self.calls: List[Tuple[str, str, Dict[str, Any], Dict[str, Any]]] = []
        self._lock = threading.Lock()
        self._delay = delay
        self.fail_on: set = set()

    def _record(self, kind: str, collection: str, keys: Dict[str, Any], options: Dict[str, Any]):
        if self._delay:
            time.sleep(self._delay)
        name = options.get("name")
        if name in self.fail_on:
            raise StoreUnavailableError(
                "server rejected index", collection=collection, index_name=name
            )
        with self._lock:
            self.calls.append((kind, collection, dict(keys), dict(options)))
        return name

    def ensure_index(self, collection, keys, options):
        return self._record("index", collection, keys, options)

    def ensure_geo_index(self, collection, keys, options):
        return self._record("geo", collection, keys, options)

    def names(self) -> List[str]:
        with self._lock:
            return [call[3]["name"] for call in self.calls]


@pytest.fixture
def recording_store() -> RecordingStore:
    """Store handle that records requests in memory."""
    return RecordingStore()


@pytest.fixture
def slow_store() -> RecordingStore:
    """Recording store whose calls take a few milliseconds, to widen race windows."""
    return RecordingStore(delay=0.005)


@pytest.fixture
def mock_store() -> MagicMock:
    """MagicMock store handle."""
    store = MagicMock()
    store.ensure_index = MagicMock(return_value="test_index")
    store.ensure_geo_index = MagicMock(return_value="test_geo_index")
    return store


@pytest.fixture
def metrics() -> MetricsCollector:
    """Isolated metrics collector."""
    return MetricsCollector()


@pytest.fixture
def sync_config() -> SyncConfig:
    """Config with retries of failed types enabled."""
    return SyncConfig(
        mongo_uri="mongodb://localhost:27017", db_name="test_db", retry_failed_types=True
    )


# ============================================================================
# TEST DATA FACTORIES
# ============================================================================


@pytest.fixture
def user_entity() -> EntityDescriptor:
    """User { id, email(simple, unique, sparse) } stored in 'users'."""
    return EntityDescriptor(
        type_id="app.models.User",
        collection="users",
        properties=(
            PropertyDescriptor(name="id"),
            PropertyDescriptor(
                name="email", index=SimpleIndexDeclaration(unique=True, sparse=True)
            ),
        ),
    )


@pytest.fixture
def venue_entity() -> EntityDescriptor:
    """Entity with one index of every kind."""
    return EntityDescriptor(
        type_id="app.models.Venue",
        collection="venues",
        compound_indexes=(
            CompoundIndexDeclaration(name="city_rating", definition='{"city": 1, "rating": -1}'),
        ),
        properties=(
            PropertyDescriptor(name="id"),
            PropertyDescriptor(
                name="name",
                index=SimpleIndexDeclaration(direction=IndexDirection.DESCENDING),
            ),
            PropertyDescriptor(name="location", index=GeoIndexDeclaration(min=-90, max=90)),
        ),
    )


def make_entity(type_id: str, indexed_fields: int = 1, collection: str = "") -> EntityDescriptor:
    """Build an entity with ``indexed_fields`` simple-indexed properties."""
    return EntityDescriptor(
        type_id=type_id,
        collection=collection or type_id.rsplit(".", 1)[-1].lower(),
        properties=tuple(
            PropertyDescriptor(name=f"field{i}", index=SimpleIndexDeclaration())
            for i in range(indexed_fields)
        ),
    )


@pytest.fixture
def entity_factory():
    """Factory fixture for simple entities."""
    return make_entity


# ============================================================================
# TESTCONTAINERS FIXTURES (Real MongoDB for Integration Tests)
# ============================================================================


@pytest.fixture(scope="session")
def mongodb_container():
    """
    Start a MongoDB container for integration tests.

    Session-scoped: container starts once and is reused for all integration tests.
    """
    try:
        from testcontainers.mongodb import MongoDbContainer
    except ImportError:
        pytest.skip("testcontainers not installed. Install with: pip install -e '.[test]'")

    with MongoDbContainer(image="mongo:7.0") as container:
        yield container


@pytest.fixture
def real_mongo_db(mongodb_container):
    """
    Real pymongo database on the test container.

    Uses a unique database name per test and drops it afterwards.
    """
    import os

    from pymongo import MongoClient

    client = MongoClient(mongodb_container.get_connection_url())
    db_name = f"test_db_{os.getpid()}_{time.time_ns()}"
    yield client[db_name]

    client.drop_database(db_name)
    client.close()
