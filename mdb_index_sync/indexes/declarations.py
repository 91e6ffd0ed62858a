"""
Index declaration model.

Immutable value types describing what a mapping layer declared about an
entity type's indexes. They carry no behavior beyond construction and
accessors; resolution rules live in ``helpers``.

This module is part of MDB_INDEX_SYNC.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Union

from pymongo import ASCENDING, DESCENDING

from ..constants import DEFAULT_GEO_MAX, DEFAULT_GEO_MIN


class IndexDirection(Enum):
    """Sort direction of an indexed field."""

    ASCENDING = ASCENDING
    DESCENDING = DESCENDING


@dataclass(frozen=True)
class SimpleIndexDeclaration:
    """Single-field index declared on a property."""

    name: str = ""
    direction: IndexDirection = IndexDirection.ASCENDING
    unique: bool = False
    drop_dups: bool = False
    sparse: bool = False
    collection: str = ""


@dataclass(frozen=True)
class CompoundIndexDeclaration:
    """
    Multi-field index declared at the entity level.

    ``definition`` is a serialized key document such as
    ``'{"lastName": 1, "age": -1}'``. It is passed to the store verbatim once
    parsed, so ``direction`` only documents intent and does not rewrite it.
    """

    definition: str
    name: str = ""
    direction: IndexDirection = IndexDirection.ASCENDING
    unique: bool = False
    drop_dups: bool = False
    sparse: bool = False
    collection: str = ""


@dataclass(frozen=True)
class GeoIndexDeclaration:
    """2d geospatial index declared on a coordinate-valued property."""

    name: str = ""
    min: int = DEFAULT_GEO_MIN
    max: int = DEFAULT_GEO_MAX
    collection: str = ""


PropertyIndex = Union[SimpleIndexDeclaration, GeoIndexDeclaration, None]
"""Per-property index slot: no index, a simple index, or a geo index."""


@dataclass(frozen=True)
class PropertyDescriptor:
    """
    A mapped property of an entity type.

    ``name`` is the attribute name on the entity, ``field_name`` the key the
    value is stored under (defaults to ``name``). A property holds at most one
    index declaration.
    """

    name: str
    field_name: str = ""
    index: PropertyIndex = None

    def __post_init__(self) -> None:
        if not self.field_name:
            object.__setattr__(self, "field_name", self.name)
        if self.index is not None and not isinstance(
            self.index, (SimpleIndexDeclaration, GeoIndexDeclaration)
        ):
            raise TypeError(
                f"Property '{self.name}' index must be a SimpleIndexDeclaration or "
                f"GeoIndexDeclaration, got {type(self.index).__name__}"
            )

    @property
    def simple_index(self) -> Optional[SimpleIndexDeclaration]:
        return self.index if isinstance(self.index, SimpleIndexDeclaration) else None

    @property
    def geo_index(self) -> Optional[GeoIndexDeclaration]:
        return self.index if isinstance(self.index, GeoIndexDeclaration) else None


@dataclass(frozen=True)
class EntityDescriptor:
    """
    Read-only description of an entity type and its declared indexes.

    ``type_id`` is a stable identifier for the type (for example its
    fully-qualified class name) and is the key used for deduplication.
    """

    type_id: str
    collection: str
    properties: tuple[PropertyDescriptor, ...] = field(default_factory=tuple)
    compound_indexes: tuple[CompoundIndexDeclaration, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        # Accept any iterable but store tuples so the descriptor stays hashable.
        object.__setattr__(self, "properties", tuple(self.properties))
        object.__setattr__(self, "compound_indexes", tuple(self.compound_indexes))

    @property
    def indexed_properties(self) -> tuple[PropertyDescriptor, ...]:
        return tuple(p for p in self.properties if p.index is not None)
