"""
Constants for MDB_INDEX_SYNC.

This module contains the shared constants used across the package: wire-level
option keys, geospatial defaults, and metric names.
"""

from typing import Final

from pymongo import GEO2D

# ============================================================================
# INDEX OPTIONS DOCUMENT
# ============================================================================

OPTION_NAME: Final[str] = "name"
OPTION_DROP_DUPS: Final[str] = "dropDups"
OPTION_SPARSE: Final[str] = "sparse"
OPTION_UNIQUE: Final[str] = "unique"

INDEX_OPTION_KEYS: Final[tuple[str, ...]] = (
    OPTION_NAME,
    OPTION_DROP_DUPS,
    OPTION_SPARSE,
    OPTION_UNIQUE,
)
"""Keys of the options document sent with simple and compound indexes, in order."""

# ============================================================================
# GEOSPATIAL INDEX CONSTANTS
# ============================================================================

GEO_INDEX_TYPE: Final[str] = GEO2D
"""Key marker for legacy coordinate-pair geospatial indexes ("2d")."""

OPTION_MIN: Final[str] = "min"
OPTION_MAX: Final[str] = "max"

DEFAULT_GEO_MIN: Final[int] = -180
"""Default lower bound for 2d index coordinates."""

DEFAULT_GEO_MAX: Final[int] = 180
"""Default upper bound for 2d index coordinates."""

# ============================================================================
# STORE CONNECTION CONSTANTS
# ============================================================================

DEFAULT_SERVER_SELECTION_TIMEOUT_MS: Final[int] = 5000
"""Default server selection timeout in milliseconds."""

MIN_SERVER_SELECTION_TIMEOUT_MS: Final[int] = 100
"""Lowest accepted server selection timeout in milliseconds."""

DEFAULT_APP_NAME: Final[str] = "MDB_INDEX_SYNC"
"""Application name reported to the server by clients this package creates."""

# ============================================================================
# METRIC NAMES
# ============================================================================

METRIC_ENSURE_INDEX: Final[str] = "index_sync.ensure_index"
METRIC_PROCESS_ENTITY: Final[str] = "index_sync.process_entity"
