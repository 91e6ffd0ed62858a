"""
Helper functions that turn index declarations into store requests.

Everything here is pure: given a declaration and its entity context, build
the key-ordering document and the options document the store expects.

Wire shapes:
    simple     {<field>: 1 | -1}          + {name, dropDups, sparse, unique}
    compound   parsed key expression      + {name, dropDups, sparse, unique}
    geo        {<field>: "2d"}            + {name, min, max}
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Optional, Union

import json5
from bson import json_util

from ..constants import (
    GEO_INDEX_TYPE,
    OPTION_DROP_DUPS,
    OPTION_MAX,
    OPTION_MIN,
    OPTION_NAME,
    OPTION_SPARSE,
    OPTION_UNIQUE,
)
from ..exceptions import IndexDefinitionParseError
from .declarations import (
    CompoundIndexDeclaration,
    EntityDescriptor,
    GeoIndexDeclaration,
    IndexDirection,
    PropertyDescriptor,
    SimpleIndexDeclaration,
)

logger = logging.getLogger(__name__)

AnyDeclaration = Union[SimpleIndexDeclaration, CompoundIndexDeclaration, GeoIndexDeclaration]


@dataclass(frozen=True)
class IndexRequest:
    """A resolved key + options pair for the generic ensure-index path."""

    collection: str
    keys: dict[str, Any]
    options: dict[str, Any]

    @property
    def name(self) -> str:
        return self.options[OPTION_NAME]


@dataclass(frozen=True)
class GeoIndexRequest:
    """A resolved 2d geospatial index request, issued directly to its collection."""

    collection: str
    keys: dict[str, Any]
    options: dict[str, Any]

    @property
    def name(self) -> str:
        return self.options[OPTION_NAME]


@dataclass(frozen=True)
class NamingAdvisory:
    """
    Warning about a unique, non-sparse index whose name differs from its property.

    Such an index makes the server reject documents that omit the field once
    another document already stores null for it. Setting sparse avoids that.
    """

    type_id: str
    property_name: str
    index_name: str
    message: str = field(default="", compare=False)

    def __post_init__(self) -> None:
        if not self.message:
            object.__setattr__(
                self,
                "message",
                f"The index name '{self.index_name}' doesn't match this property name: "
                f"'{self.property_name}'. Setting sparse=true on this index will prevent "
                f"errors when inserting documents.",
            )


def resolve_collection(declaration: AnyDeclaration, entity: EntityDescriptor) -> str:
    """Return the declaration's collection override, or the entity's collection."""
    return declaration.collection or entity.collection


def resolve_name(
    declaration: AnyDeclaration,
    prop: Optional[PropertyDescriptor] = None,
    keys: Optional[dict[str, Any]] = None,
) -> str:
    """
    Resolve the index name for a declaration.

    Args:
        declaration: The index declaration
        prop: Owning property (required for simple and geo declarations)
        keys: Parsed key document of a compound declaration, used to generate
            the server-style default name when the declaration has none

    Returns:
        The explicit name if set, otherwise:
        - simple: the property's stored field name
        - geo: the property's attribute name
        - compound: the default name generated from ``keys``
    """
    if declaration.name:
        return declaration.name

    if isinstance(declaration, CompoundIndexDeclaration):
        if keys is None:
            keys = build_compound_key_document(declaration.definition)
        return generate_index_name(keys)

    if prop is None:
        raise ValueError(
            f"A property is required to resolve the name of a "
            f"{type(declaration).__name__}"
        )
    if isinstance(declaration, GeoIndexDeclaration):
        return prop.name
    return prop.field_name


def check_naming_advisory(
    declaration: SimpleIndexDeclaration,
    prop: PropertyDescriptor,
    type_id: str = "",
) -> Optional[NamingAdvisory]:
    """
    Return a NamingAdvisory for an explicitly named unique, non-sparse index
    whose name differs from the property name, otherwise None.
    """
    if not declaration.name or declaration.name == prop.name:
        return None
    if declaration.unique and not declaration.sparse:
        return NamingAdvisory(
            type_id=type_id, property_name=prop.name, index_name=declaration.name
        )
    return None


def generate_index_name(keys: dict[str, Any]) -> str:
    """Generate the server's default index name, e.g. ``lastName_1_age_-1``."""
    return "_".join(f"{key}_{value}" for key, value in keys.items())


def build_simple_key_document(field_name: str, direction: IndexDirection) -> dict[str, int]:
    """Build ``{field_name: 1}`` for ascending or ``{field_name: -1}`` for descending."""
    return {field_name: IndexDirection(direction).value}


def _relaxed_pairs(pairs: list[tuple[str, Any]]) -> Any:
    return json_util.object_pairs_hook(pairs)


def _parse_definition(definition: str) -> Any:
    """Parse strict extended JSON, falling back to the relaxed single-quoted form."""
    try:
        return json_util.loads(definition)
    except Exception as strict_error:  # noqa: BLE001
        try:
            return json5.loads(definition, object_pairs_hook=_relaxed_pairs)
        except Exception as e:  # noqa: BLE001
            raise IndexDefinitionParseError(
                f"Compound index definition is not well-formed: {strict_error}",
                definition=definition,
            ) from e


def _is_index_specifier(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    return isinstance(value, (int, float, str))


def build_compound_key_document(definition: str) -> dict[str, Any]:
    """
    Parse a serialized key document.

    Accepts MongoDB extended JSON and the relaxed form with single-quoted or
    bare keys (``{'lastName': 1, 'age': -1}``). Key order is preserved and the
    document is otherwise returned unmodified.

    Raises:
        IndexDefinitionParseError: If the expression is empty, malformed, not
            a document, or has a value that is not a direction or index type
    """
    if not definition or not definition.strip():
        raise IndexDefinitionParseError(
            "Compound index definition is empty", definition=definition
        )
    parsed = _parse_definition(definition)

    if not isinstance(parsed, dict):
        raise IndexDefinitionParseError(
            f"Compound index definition must be a document, got {type(parsed).__name__}",
            definition=definition,
        )
    if not parsed:
        raise IndexDefinitionParseError(
            "Compound index definition has no keys", definition=definition
        )
    for key, value in parsed.items():
        if not _is_index_specifier(value):
            raise IndexDefinitionParseError(
                f"Compound index key '{key}' must map to a direction or index type, "
                f"got {type(value).__name__}",
                definition=definition,
            )
    return parsed


def build_options_document(
    name: str, unique: bool, sparse: bool, drop_dups: bool
) -> dict[str, Any]:
    """Build the options document: exactly name, dropDups, sparse and unique."""
    return {
        OPTION_NAME: name,
        OPTION_DROP_DUPS: bool(drop_dups),
        OPTION_SPARSE: bool(sparse),
        OPTION_UNIQUE: bool(unique),
    }


def build_simple_request(
    declaration: SimpleIndexDeclaration,
    prop: PropertyDescriptor,
    entity: EntityDescriptor,
) -> IndexRequest:
    """Build the request for a single-field index on ``prop``."""
    name = resolve_name(declaration, prop)
    return IndexRequest(
        collection=resolve_collection(declaration, entity),
        keys=build_simple_key_document(prop.field_name, declaration.direction),
        options=build_options_document(
            name, declaration.unique, declaration.sparse, declaration.drop_dups
        ),
    )


def build_compound_request(
    declaration: CompoundIndexDeclaration, entity: EntityDescriptor
) -> IndexRequest:
    """
    Build the request for an entity-level compound index.

    Raises:
        IndexDefinitionParseError: If the key expression does not parse
    """
    try:
        keys = build_compound_key_document(declaration.definition)
    except IndexDefinitionParseError as e:
        # Re-raise with the declared name attached for logging
        raise IndexDefinitionParseError(
            e.message,
            definition=declaration.definition,
            index_name=declaration.name or None,
            context={"type_id": entity.type_id},
        ) from e

    return IndexRequest(
        collection=resolve_collection(declaration, entity),
        keys=keys,
        options=build_options_document(
            resolve_name(declaration, keys=keys),
            declaration.unique,
            declaration.sparse,
            declaration.drop_dups,
        ),
    )


def build_geo_request(
    declaration: GeoIndexDeclaration,
    prop: PropertyDescriptor,
    entity: EntityDescriptor,
) -> GeoIndexRequest:
    """Build a 2d geospatial request keyed on the property's stored field name."""
    return GeoIndexRequest(
        collection=resolve_collection(declaration, entity),
        keys={prop.field_name: GEO_INDEX_TYPE},
        options={
            OPTION_NAME: resolve_name(declaration, prop),
            OPTION_MIN: declaration.min,
            OPTION_MAX: declaration.max,
        },
    )
