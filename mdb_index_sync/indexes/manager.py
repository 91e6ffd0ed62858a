"""
Index synchronization orchestration.

``EntityIndexCreator`` inspects entity descriptors for index declarations
and ensures the declared indexes exist in the store. Every currently known
type is processed at construction; types discovered later arrive through
``on_entity_discovered``, typically from an ``EntityEventBus`` subscription.
Each type is analyzed at most once per creator.

This module is part of MDB_INDEX_SYNC.
"""

import time
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from typing import Any

from ..config import SyncConfig
from ..constants import METRIC_ENSURE_INDEX, METRIC_PROCESS_ENTITY
from ..database.connection import IndexStore
from ..exceptions import IndexDefinitionParseError, StoreUnavailableError
from ..observability.logging import get_logger, reset_entity_context, set_entity_context
from ..observability.metrics import MetricsCollector, get_metrics_collector
from .cache import SeenTypeCache
from .declarations import EntityDescriptor
from .helpers import (
    GeoIndexRequest,
    IndexRequest,
    NamingAdvisory,
    build_compound_request,
    build_geo_request,
    build_simple_request,
    check_naming_advisory,
)

logger = get_logger(__name__)


@dataclass
class EntitySyncResult:
    """Outcome of one ``process_entity`` call."""

    type_id: str
    skipped: bool = False
    submitted: list[IndexRequest | GeoIndexRequest] = field(default_factory=list)
    parse_errors: list[IndexDefinitionParseError] = field(default_factory=list)
    advisories: list[NamingAdvisory] = field(default_factory=list)

    @property
    def index_names(self) -> list[str]:
        return [request.name for request in self.submitted]


class EntityIndexCreator:
    """
    Ensures indexes declared on entity types exist in the store.

    Example:
        context = MappingContext(load_entity_descriptors(manifest))
        creator = EntityIndexCreator(store, context.get_entities(), events=context.events)
        # later, on another thread:
        context.add_entity(order_descriptor)
    """

    def __init__(
        self,
        store: IndexStore,
        entities: Iterable[EntityDescriptor] = (),
        *,
        events: Any = None,
        cache: SeenTypeCache | None = None,
        config: SyncConfig | None = None,
        metrics: MetricsCollector | None = None,
    ) -> None:
        """
        Initialize the creator and process ``entities``.

        Args:
            store: Store handle that receives index requests
            entities: Snapshot of entity types known at construction time,
                processed synchronously in order
            events: Optional event source exposing ``subscribe(callback)``;
                subscribed once, after the initial snapshot is processed
            cache: Seen-type cache (a fresh one by default)
            config: Sync configuration (environment defaults if omitted)
            metrics: Metrics collector (the global collector by default)

        Raises:
            StoreUnavailableError: If the store fails while processing the snapshot
        """
        if store is None:
            raise ValueError("store must not be None")
        self._store = store
        self._cache = cache if cache is not None else SeenTypeCache()
        self._config = config or SyncConfig()
        self._metrics = metrics or get_metrics_collector()
        self._unsubscribe: Callable[[], None] | None = None

        self.initialize(entities)

        if events is not None:
            self.subscribe(events)

    @property
    def cache(self) -> SeenTypeCache:
        return self._cache

    @property
    def store(self) -> IndexStore:
        return self._store

    def initialize(self, entities: Iterable[EntityDescriptor]) -> list[EntitySyncResult]:
        """Process each entity in order."""
        return [self.process_entity(entity) for entity in entities]

    def subscribe(self, events: Any) -> None:
        """Subscribe ``on_entity_discovered`` to ``events``; only one subscription is kept."""
        if self._unsubscribe is not None:
            raise RuntimeError("EntityIndexCreator is already subscribed to an event source")
        self._unsubscribe = events.subscribe(self.on_entity_discovered)

    def close(self) -> None:
        """Stop receiving discovery events."""
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def on_entity_discovered(self, entity: Any) -> EntitySyncResult | None:
        """
        Handle a newly discovered entity type.

        Anything that is not an ``EntityDescriptor`` is ignored.
        """
        if not isinstance(entity, EntityDescriptor):
            logger.debug(f"Ignoring discovery event for non-entity {type(entity).__name__}")
            return None
        return self.process_entity(entity)

    def process_entity(self, entity: EntityDescriptor) -> EntitySyncResult:
        """
        Analyze ``entity`` for index declarations and ensure them.

        Compound indexes are submitted first, then per-property indexes. A
        malformed compound key expression only skips that index. A store
        failure stops processing of the entity and propagates; earlier
        submissions are not rolled back.

        Returns:
            EntitySyncResult describing what was submitted

        Raises:
            StoreUnavailableError: If the store rejects or cannot receive a request
        """
        type_id = entity.type_id
        if not self._cache.try_claim(type_id):
            logger.debug(f"[{type_id}] Already analyzed or in progress; skipping.")
            return EntitySyncResult(type_id=type_id, skipped=True)

        token = set_entity_context(type_id, collection=entity.collection)
        result = EntitySyncResult(type_id=type_id)
        start_time = time.time()
        succeeded = False
        try:
            logger.debug(f"[{type_id}] Analyzing entity for index information.")
            self._process_compound_indexes(entity, result)
            self._process_property_indexes(entity, result)
            succeeded = True
        finally:
            if succeeded or not self._config.retry_failed_types:
                self._cache.mark_processed(type_id)
            else:
                self._cache.release(type_id)
                logger.warning(
                    f"[{type_id}] Index creation failed; type left eligible for reprocessing."
                )
            self._metrics.record_operation(
                METRIC_PROCESS_ENTITY, (time.time() - start_time) * 1000, succeeded
            )
            reset_entity_context(token)

        logger.info(
            f"[{type_id}] Ensured {len(result.submitted)} index(es) "
            f"({len(result.parse_errors)} skipped as malformed)."
        )
        return result

    def _process_compound_indexes(
        self, entity: EntityDescriptor, result: EntitySyncResult
    ) -> None:
        for declaration in entity.compound_indexes:
            try:
                request = build_compound_request(declaration, entity)
            except IndexDefinitionParseError as e:
                logger.error(
                    f"[{entity.type_id}] Skipping compound index "
                    f"'{declaration.name or declaration.definition}': {e}"
                )
                result.parse_errors.append(e)
                continue

            self.ensure_index(request)
            result.submitted.append(request)
            logger.debug(
                f"[{entity.type_id} -> {request.collection}] "
                f"Created compound index {request.name}"
            )

    def _process_property_indexes(
        self, entity: EntityDescriptor, result: EntitySyncResult
    ) -> None:
        for prop in entity.properties:
            simple = prop.simple_index
            geo = prop.geo_index
            if simple is not None:
                advisory = check_naming_advisory(simple, prop, entity.type_id)
                if advisory is not None:
                    logger.warning(f"[{entity.type_id}] {advisory.message}")
                    result.advisories.append(advisory)

                request = build_simple_request(simple, prop, entity)
                self.ensure_index(request)
                result.submitted.append(request)
                logger.debug(
                    f"[{entity.type_id} -> {request.collection}] "
                    f"Created property index {request.name}"
                )
            elif geo is not None:
                geo_request = build_geo_request(geo, prop, entity)
                self.ensure_geo_index(geo_request)
                result.submitted.append(geo_request)
                logger.debug(
                    f"[{entity.type_id} -> {geo_request.collection}] "
                    f"Created geospatial index {geo_request.name}"
                )

    def ensure_index(self, request: IndexRequest) -> Any:
        """
        Submit a key + options request through the store's ensure-index operation.

        Raises:
            StoreUnavailableError: If the store call fails
        """
        return self._timed_submit(self._store.ensure_index, request)

    def ensure_geo_index(self, request: GeoIndexRequest) -> Any:
        """
        Submit a geospatial request directly to its collection.

        Raises:
            StoreUnavailableError: If the store call fails
        """
        return self._timed_submit(self._store.ensure_geo_index, request)

    def _timed_submit(
        self, submit: Callable[..., Any], request: IndexRequest | GeoIndexRequest
    ) -> Any:
        start_time = time.time()
        success = False
        try:
            created = submit(request.collection, request.keys, request.options)
            success = True
            return created
        except StoreUnavailableError as e:
            logger.error(
                f"[{request.collection}] Failed to ensure index '{request.name}': {e}",
                exc_info=True,
            )
            raise
        finally:
            self._metrics.record_operation(
                METRIC_ENSURE_INDEX,
                (time.time() - start_time) * 1000,
                success,
                collection=request.collection,
            )
