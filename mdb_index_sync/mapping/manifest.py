"""
Entity manifest loading.

Builds ``EntityDescriptor`` values from a declarative JSON manifest, so that
applications without their own mapping layer can still declare indexes:

    {
        "entities": [
            {
                "type": "app.models.User",
                "collection": "users",
                "compound_indexes": [
                    {"name": "name_age", "definition": "{\"lastName\": 1, \"age\": -1}"}
                ],
                "properties": [
                    {"name": "id"},
                    {"name": "email", "indexed": {"unique": true, "sparse": true}},
                    {"name": "location", "geo_indexed": {"min": -90, "max": 90}}
                ]
            }
        ]
    }

A property may carry ``indexed`` or ``geo_indexed`` but not both.
"""

import logging
from typing import Any, Dict, List, Optional, Tuple

from jsonschema import SchemaError, ValidationError, validate

from ..exceptions import ManifestValidationError
from ..indexes.declarations import (
    CompoundIndexDeclaration,
    EntityDescriptor,
    GeoIndexDeclaration,
    IndexDirection,
    PropertyDescriptor,
    SimpleIndexDeclaration,
)

logger = logging.getLogger(__name__)

_DIRECTIONS = {
    1: IndexDirection.ASCENDING,
    -1: IndexDirection.DESCENDING,
    "asc": IndexDirection.ASCENDING,
    "desc": IndexDirection.DESCENDING,
    "ascending": IndexDirection.ASCENDING,
    "descending": IndexDirection.DESCENDING,
}

_INDEX_FLAGS = {
    "unique": {"type": "boolean"},
    "sparse": {"type": "boolean"},
    "drop_dups": {"type": "boolean"},
}

ENTITY_MANIFEST_SCHEMA: Dict[str, Any] = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "type": "object",
    "required": ["entities"],
    "properties": {
        "entities": {"type": "array", "items": {"$ref": "#/definitions/entity"}},
    },
    "definitions": {
        "direction": {"enum": list(_DIRECTIONS.keys())},
        "simpleIndex": {
            "type": "object",
            "additionalProperties": False,
            "properties": {
                "name": {"type": "string"},
                "direction": {"$ref": "#/definitions/direction"},
                "collection": {"type": "string"},
                **_INDEX_FLAGS,
            },
        },
        "compoundIndex": {
            "type": "object",
            "additionalProperties": False,
            "required": ["definition"],
            "properties": {
                "name": {"type": "string"},
                "definition": {"type": "string"},
                "direction": {"$ref": "#/definitions/direction"},
                "collection": {"type": "string"},
                **_INDEX_FLAGS,
            },
        },
        "geoIndex": {
            "type": "object",
            "additionalProperties": False,
            "properties": {
                "name": {"type": "string"},
                "min": {"type": "number"},
                "max": {"type": "number"},
                "collection": {"type": "string"},
            },
        },
        "property": {
            "type": "object",
            "additionalProperties": False,
            "required": ["name"],
            "properties": {
                "name": {"type": "string", "minLength": 1},
                "field_name": {"type": "string"},
                "indexed": {"$ref": "#/definitions/simpleIndex"},
                "geo_indexed": {"$ref": "#/definitions/geoIndex"},
            },
            "not": {"required": ["indexed", "geo_indexed"]},
        },
        "entity": {
            "type": "object",
            "additionalProperties": False,
            "required": ["type", "collection"],
            "properties": {
                "type": {"type": "string", "minLength": 1},
                "collection": {"type": "string", "minLength": 1},
                "properties": {"type": "array", "items": {"$ref": "#/definitions/property"}},
                "compound_indexes": {
                    "type": "array",
                    "items": {"$ref": "#/definitions/compoundIndex"},
                },
            },
        },
    },
}


def validate_entity_manifest(
    manifest: Dict[str, Any],
) -> Tuple[bool, Optional[str], Optional[List[str]]]:
    """
    Validate an entity manifest against ``ENTITY_MANIFEST_SCHEMA``.

    Returns:
        Tuple of (is_valid, error_message, error_paths)
    """
    try:
        validate(instance=manifest, schema=ENTITY_MANIFEST_SCHEMA)
    except ValidationError as e:
        path_parts = list(e.absolute_path)
        error_path = ".".join(str(p) for p in path_parts) if path_parts else "root"
        return False, e.message, [error_path]
    except SchemaError as e:
        return False, f"Invalid schema definition: {e.message}", ["schema"]

    seen: set[str] = set()
    for position, entity in enumerate(manifest["entities"]):
        if entity["type"] in seen:
            return (
                False,
                f"Duplicate entity type '{entity['type']}'",
                [f"entities.{position}.type"],
            )
        seen.add(entity["type"])

    return True, None, None


def _direction(raw: Any) -> IndexDirection:
    if isinstance(raw, str):
        raw = raw.lower()
    return _DIRECTIONS[raw]


def _simple_index(entry: Dict[str, Any]) -> SimpleIndexDeclaration:
    return SimpleIndexDeclaration(
        name=entry.get("name", ""),
        direction=_direction(entry.get("direction", 1)),
        unique=entry.get("unique", False),
        drop_dups=entry.get("drop_dups", False),
        sparse=entry.get("sparse", False),
        collection=entry.get("collection", ""),
    )


def _geo_index(entry: Dict[str, Any]) -> GeoIndexDeclaration:
    defaults = GeoIndexDeclaration()
    return GeoIndexDeclaration(
        name=entry.get("name", ""),
        min=entry.get("min", defaults.min),
        max=entry.get("max", defaults.max),
        collection=entry.get("collection", ""),
    )


def _compound_index(entry: Dict[str, Any]) -> CompoundIndexDeclaration:
    return CompoundIndexDeclaration(
        definition=entry["definition"],
        name=entry.get("name", ""),
        direction=_direction(entry.get("direction", 1)),
        unique=entry.get("unique", False),
        drop_dups=entry.get("drop_dups", False),
        sparse=entry.get("sparse", False),
        collection=entry.get("collection", ""),
    )


def _property(entry: Dict[str, Any]) -> PropertyDescriptor:
    index = None
    if "indexed" in entry:
        index = _simple_index(entry["indexed"])
    elif "geo_indexed" in entry:
        index = _geo_index(entry["geo_indexed"])
    return PropertyDescriptor(
        name=entry["name"], field_name=entry.get("field_name", ""), index=index
    )


def load_entity_descriptors(manifest: Dict[str, Any]) -> List[EntityDescriptor]:
    """
    Validate ``manifest`` and build one EntityDescriptor per entry.

    Compound key expressions are not parsed here; a malformed one surfaces
    as an ``IndexDefinitionParseError`` when the engine processes the entity.

    Raises:
        ManifestValidationError: If the manifest does not match the schema
    """
    is_valid, error, error_paths = validate_entity_manifest(manifest)
    if not is_valid:
        raise ManifestValidationError(
            f"Invalid entity manifest: {error}", error_paths=error_paths
        )

    descriptors = [
        EntityDescriptor(
            type_id=entity["type"],
            collection=entity["collection"],
            properties=tuple(_property(p) for p in entity.get("properties", [])),
            compound_indexes=tuple(
                _compound_index(c) for c in entity.get("compound_indexes", [])
            ),
        )
        for entity in manifest["entities"]
    ]
    logger.debug(f"Loaded {len(descriptors)} entity descriptor(s) from manifest")
    return descriptors
