"""
Store handle for index synchronization.

The engine talks to the data store through the small ``IndexStore``
protocol. ``MongoIndexStore`` implements it on top of a pymongo database and
translates driver failures into ``StoreUnavailableError``.

This module is part of MDB_INDEX_SYNC.

Usage:
    from pymongo import MongoClient
    from mdb_index_sync.database import MongoIndexStore

    store = MongoIndexStore(MongoClient(mongo_uri)["my_database"])
    store.ensure_index("users", {"email": 1}, {"name": "email", ...})
"""

import logging
from typing import Any, Protocol, runtime_checkable

from pymongo import MongoClient
from pymongo.database import Database
from pymongo.errors import (
    ConnectionFailure,
    InvalidOperation,
    OperationFailure,
    ServerSelectionTimeoutError,
)

from ..config import SyncConfig
from ..constants import DEFAULT_APP_NAME, OPTION_NAME
from ..exceptions import StoreUnavailableError

logger = logging.getLogger(__name__)

# Driver errors that mean "the store did not accept this request"
STORE_ERRORS = (
    ConnectionFailure,
    ServerSelectionTimeoutError,
    OperationFailure,
    InvalidOperation,
)


@runtime_checkable
class IndexStore(Protocol):
    """Blocking index operations the engine needs from a store."""

    def ensure_index(
        self, collection: str, keys: dict[str, Any], options: dict[str, Any]
    ) -> Any:
        """Create the index if absent; no-op when an equivalent index exists."""
        ...

    def ensure_geo_index(
        self, collection: str, keys: dict[str, Any], options: dict[str, Any]
    ) -> Any:
        """Create a geospatial index directly on ``collection``."""
        ...


class MongoIndexStore:
    """
    pymongo-backed ``IndexStore``.

    ``create_index`` is idempotent on the server: an identical request for an
    existing index is a no-op.
    """

    def __init__(self, db: Database, client: MongoClient | None = None) -> None:
        """
        Args:
            db: pymongo database that owns the target collections
            client: Client to close in ``close()``; only set when this store
                created the client itself
        """
        self._db = db
        self._owned_client = client

    @classmethod
    def from_config(cls, config: SyncConfig) -> "MongoIndexStore":
        """
        Build a store with its own MongoClient.

        Raises:
            ConfigurationError: If the configuration is invalid
        """
        config.validate()
        logger.info(
            f"Creating MongoDB client for index sync "
            f"(db_name={config.db_name}, "
            f"server_selection_timeout_ms={config.server_selection_timeout_ms})"
        )
        client = MongoClient(
            config.mongo_uri,
            serverSelectionTimeoutMS=config.server_selection_timeout_ms,
            appname=DEFAULT_APP_NAME,
        )
        return cls(client[config.db_name], client=client)

    @property
    def database(self) -> Database:
        return self._db

    def ensure_index(
        self, collection: str, keys: dict[str, Any], options: dict[str, Any]
    ) -> str:
        """
        Ensure a regular (simple or compound) index exists.

        Returns:
            The index name reported by the server

        Raises:
            StoreUnavailableError: If the store cannot be reached or rejects the index
        """
        return self._create_index(collection, keys, options)

    def ensure_geo_index(
        self, collection: str, keys: dict[str, Any], options: dict[str, Any]
    ) -> str:
        """
        Ensure a 2d geospatial index exists.

        Raises:
            StoreUnavailableError: If the store cannot be reached or rejects the index
        """
        return self._create_index(collection, keys, options)

    def _create_index(
        self, collection: str, keys: dict[str, Any], options: dict[str, Any]
    ) -> str:
        index_name = options.get(OPTION_NAME)
        try:
            return self._db[collection].create_index(list(keys.items()), **options)
        except STORE_ERRORS as e:
            raise StoreUnavailableError(
                f"Failed to ensure index on '{collection}': {e}",
                collection=collection,
                index_name=index_name,
            ) from e
        except (TypeError, ValueError) as e:
            # pymongo validates key specifiers client-side before any round trip
            raise StoreUnavailableError(
                f"Index specification for '{collection}' was rejected: {e}",
                collection=collection,
                index_name=index_name,
            ) from e

    def verify_connection(self) -> bool:
        """
        Ping the server.

        Returns:
            True if the server answered, False otherwise
        """
        try:
            self._db.client.admin.command("ping")
            return True
        except STORE_ERRORS as e:
            logger.warning(f"MongoDB ping failed: {e}")
            return False

    def close(self) -> None:
        """Close the client if this store created it."""
        if self._owned_client is not None:
            self._owned_client.close()
            self._owned_client = None
