"""
Index Management Module

Index declarations, request building, the seen-type cache and the
synchronization engine that ties them together.

This module is part of MDB_INDEX_SYNC.
"""

from .cache import SeenTypeCache
from .declarations import (
    CompoundIndexDeclaration,
    EntityDescriptor,
    GeoIndexDeclaration,
    IndexDirection,
    PropertyDescriptor,
    SimpleIndexDeclaration,
)
from .helpers import (
    GeoIndexRequest,
    IndexRequest,
    NamingAdvisory,
    build_compound_key_document,
    build_compound_request,
    build_geo_request,
    build_options_document,
    build_simple_key_document,
    build_simple_request,
    check_naming_advisory,
    generate_index_name,
    resolve_collection,
    resolve_name,
)
from .manager import EntityIndexCreator, EntitySyncResult

__all__ = [
    # Declarations
    "IndexDirection",
    "SimpleIndexDeclaration",
    "CompoundIndexDeclaration",
    "GeoIndexDeclaration",
    "PropertyDescriptor",
    "EntityDescriptor",
    # Request building
    "IndexRequest",
    "GeoIndexRequest",
    "NamingAdvisory",
    "resolve_collection",
    "resolve_name",
    "check_naming_advisory",
    "generate_index_name",
    "build_simple_key_document",
    "build_compound_key_document",
    "build_options_document",
    "build_simple_request",
    "build_compound_request",
    "build_geo_request",
    # Cache and engine
    "SeenTypeCache",
    "EntityIndexCreator",
    "EntitySyncResult",
]
