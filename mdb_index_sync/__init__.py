"""
MDB_INDEX_SYNC - MongoDB Index Synchronization

Keeps the indexes of a MongoDB database in line with the index declarations
of the entity types an application maps, processing each type once.
"""

from .config import SyncConfig
from .database import IndexStore, MongoIndexStore
from .exceptions import (
    ConfigurationError,
    IndexDefinitionParseError,
    IndexSyncError,
    ManifestValidationError,
    StoreUnavailableError,
)
from .indexes import (
    CompoundIndexDeclaration,
    EntityDescriptor,
    EntityIndexCreator,
    EntitySyncResult,
    GeoIndexDeclaration,
    IndexDirection,
    NamingAdvisory,
    PropertyDescriptor,
    SeenTypeCache,
    SimpleIndexDeclaration,
)
from .mapping import EntityEventBus, MappingContext, load_entity_descriptors

__version__ = "0.1.0"

__all__ = [
    # Engine
    "EntityIndexCreator",
    "EntitySyncResult",
    "SeenTypeCache",
    # Declarations
    "IndexDirection",
    "SimpleIndexDeclaration",
    "CompoundIndexDeclaration",
    "GeoIndexDeclaration",
    "PropertyDescriptor",
    "EntityDescriptor",
    "NamingAdvisory",
    # Store
    "IndexStore",
    "MongoIndexStore",
    # Mapping
    "EntityEventBus",
    "MappingContext",
    "load_entity_descriptors",
    # Config
    "SyncConfig",
    # Errors
    "IndexSyncError",
    "IndexDefinitionParseError",
    "StoreUnavailableError",
    "ConfigurationError",
    "ManifestValidationError",
]
