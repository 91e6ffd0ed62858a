"""
Configuration management for MDB_INDEX_SYNC.

Values come from explicit constructor arguments first and environment
variables second. The engine itself only needs ``retry_failed_types``; the
connection settings are used when the package builds its own store handle.
"""

import os

from .constants import DEFAULT_SERVER_SELECTION_TIMEOUT_MS, MIN_SERVER_SELECTION_TIMEOUT_MS
from .exceptions import ConfigurationError

_TRUE_VALUES = ("1", "true", "yes", "on")
_FALSE_VALUES = ("0", "false", "no", "off")


def _env_bool(key: str, default: bool) -> bool:
    raw = os.getenv(key)
    if raw is None or raw.strip() == "":
        return default
    value = raw.strip().lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    raise ConfigurationError(
        f"{key} must be a boolean (one of {_TRUE_VALUES + _FALSE_VALUES})",
        config_key=key,
        config_value=raw,
    )


def _env_int(key: str, default: int) -> int:
    raw = os.getenv(key)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError as e:
        raise ConfigurationError(
            f"{key} must be an integer", config_key=key, config_value=raw
        ) from e


class SyncConfig:
    """
    Index synchronization configuration.

    Example:
        # Using environment variables
        config = SyncConfig()
        store = MongoIndexStore.from_config(config)

        # Or using direct parameters
        config = SyncConfig(mongo_uri="mongodb://localhost:27017", db_name="app")
    """

    def __init__(
        self,
        mongo_uri: str | None = None,
        db_name: str | None = None,
        server_selection_timeout_ms: int | None = None,
        retry_failed_types: bool | None = None,
    ):
        """
        Initialize configuration.

        Args:
            mongo_uri: MongoDB connection URI (defaults to MONGO_URI env var)
            db_name: Database name (defaults to DB_NAME env var)
            server_selection_timeout_ms: Server selection timeout in ms
                (defaults to MONGO_SERVER_SELECTION_TIMEOUT_MS or 5000)
            retry_failed_types: Leave a type eligible for reprocessing when one
                of its store calls failed (defaults to
                INDEX_SYNC_RETRY_FAILED_TYPES or True)
        """
        self.mongo_uri = mongo_uri or os.getenv("MONGO_URI", "")
        self.db_name = db_name or os.getenv("DB_NAME", "")
        if server_selection_timeout_ms is None:
            server_selection_timeout_ms = _env_int(
                "MONGO_SERVER_SELECTION_TIMEOUT_MS", DEFAULT_SERVER_SELECTION_TIMEOUT_MS
            )
        self.server_selection_timeout_ms = server_selection_timeout_ms
        if retry_failed_types is None:
            retry_failed_types = _env_bool("INDEX_SYNC_RETRY_FAILED_TYPES", True)
        self.retry_failed_types = retry_failed_types

    def validate(self) -> None:
        """
        Validate the connection settings.

        Raises:
            ConfigurationError: If required configuration is missing or invalid
        """
        if not self.mongo_uri:
            raise ConfigurationError(
                "mongo_uri is required (set MONGO_URI environment variable or pass directly)",
                config_key="mongo_uri",
            )

        if not self.db_name:
            raise ConfigurationError(
                "db_name is required (set DB_NAME environment variable or pass directly)",
                config_key="db_name",
            )

        if self.server_selection_timeout_ms < MIN_SERVER_SELECTION_TIMEOUT_MS:
            raise ConfigurationError(
                f"server_selection_timeout_ms must be >= {MIN_SERVER_SELECTION_TIMEOUT_MS}, "
                f"got {self.server_selection_timeout_ms}",
                config_key="server_selection_timeout_ms",
                config_value=self.server_selection_timeout_ms,
            )

    def __repr__(self) -> str:
        return (
            f"SyncConfig(db_name={self.db_name!r}, "
            f"server_selection_timeout_ms={self.server_selection_timeout_ms}, "
            f"retry_failed_types={self.retry_failed_types})"
        )
