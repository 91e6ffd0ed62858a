"""
Mapping collaborators.

Sources of entity descriptors: an in-memory mapping context that publishes
newly discovered types, and a loader for declarative JSON manifests.
"""

from .context import EntityEventBus, MappingContext
from .manifest import ENTITY_MANIFEST_SCHEMA, load_entity_descriptors, validate_entity_manifest

__all__ = [
    "EntityEventBus",
    "MappingContext",
    "ENTITY_MANIFEST_SCHEMA",
    "load_entity_descriptors",
    "validate_entity_manifest",
]
