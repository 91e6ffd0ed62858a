"""
Unit tests for EntityIndexCreator.

Tests bootstrap processing, deduplication, per-index failure isolation,
store failure handling, naming advisories and concurrent discovery.
"""

import logging
import threading

import pytest

from mdb_index_sync.config import SyncConfig
from mdb_index_sync.constants import METRIC_ENSURE_INDEX, METRIC_PROCESS_ENTITY
from mdb_index_sync.exceptions import StoreUnavailableError
from mdb_index_sync.indexes.cache import SeenTypeCache
from mdb_index_sync.indexes.declarations import (
    CompoundIndexDeclaration,
    EntityDescriptor,
    GeoIndexDeclaration,
    PropertyDescriptor,
    SimpleIndexDeclaration,
)
from mdb_index_sync.indexes.manager import EntityIndexCreator
from mdb_index_sync.mapping.context import EntityEventBus, MappingContext

MANAGER_LOGGER = "mdb_index_sync.indexes.manager"


@pytest.fixture
def creator_factory(sync_config, metrics):
    """Build creators that share the test's config and metrics collector."""

    def factory(store, entities=(), **kwargs):
        kwargs.setdefault("config", sync_config)
        kwargs.setdefault("metrics", metrics)
        return EntityIndexCreator(store, entities, **kwargs)

    return factory


class TestBootstrap:
    """Test processing of the initial snapshot."""

    def test_user_scenario(self, recording_store, creator_factory, user_entity, caplog):
        with caplog.at_level(logging.WARNING, logger=MANAGER_LOGGER):
            creator = creator_factory(recording_store, [user_entity])

        assert recording_store.calls == [
            (
                "index",
                "users",
                {"email": 1},
                {"name": "email", "dropDups": False, "sparse": True, "unique": True},
            )
        ]
        assert not [r for r in caplog.records if r.levelno >= logging.WARNING]
        assert creator.cache.has_been_processed("app.models.User")

    def test_entities_processed_in_order(self, recording_store, creator_factory, entity_factory):
        entities = [entity_factory(f"app.models.T{i}") for i in range(5)]
        creator_factory(recording_store, entities)

        assert [call[1] for call in recording_store.calls] == [f"t{i}" for i in range(5)]

    def test_no_entities(self, mock_store, creator_factory):
        creator = creator_factory(mock_store)
        assert len(creator.cache) == 0
        mock_store.ensure_index.assert_not_called()

    def test_store_required(self):
        with pytest.raises(ValueError):
            EntityIndexCreator(None)


class TestProcessEntity:
    """Test processing of a single entity."""

    def test_one_call_per_declared_index(self, recording_store, creator_factory, venue_entity):
        creator = creator_factory(recording_store)
        result = creator.process_entity(venue_entity)

        assert recording_store.calls == [
            (
                "index",
                "venues",
                {"city": 1, "rating": -1},
                {"name": "city_rating", "dropDups": False, "sparse": False, "unique": False},
            ),
            (
                "index",
                "venues",
                {"name": -1},
                {"name": "name", "dropDups": False, "sparse": False, "unique": False},
            ),
            ("geo", "venues", {"location": "2d"}, {"name": "location", "min": -90, "max": 90}),
        ]
        assert result.index_names == ["city_rating", "name", "location"]
        assert not result.skipped

    def test_counts_n_plus_m_plus_geo(self, mock_store, creator_factory):
        entity = EntityDescriptor(
            type_id="app.models.Order",
            collection="orders",
            compound_indexes=(
                CompoundIndexDeclaration(name="c1", definition='{"a": 1, "b": 1}'),
                CompoundIndexDeclaration(name="c2", definition='{"b": -1, "c": 1}'),
            ),
            properties=(
                PropertyDescriptor(name="a", index=SimpleIndexDeclaration()),
                PropertyDescriptor(name="b", index=SimpleIndexDeclaration()),
                PropertyDescriptor(name="c", index=SimpleIndexDeclaration()),
                PropertyDescriptor(name="where", index=GeoIndexDeclaration()),
                PropertyDescriptor(name="notes"),
            ),
        )
        creator_factory(mock_store, [entity])

        assert mock_store.ensure_index.call_count == 5
        assert mock_store.ensure_geo_index.call_count == 1
        for call in mock_store.ensure_index.call_args_list:
            collection, keys, options = call.args
            assert collection == "orders"
            assert set(options) == {"name", "dropDups", "sparse", "unique"}

    def test_second_call_is_noop(self, mock_store, creator_factory, venue_entity):
        creator = creator_factory(mock_store)
        creator.process_entity(venue_entity)
        result = creator.process_entity(venue_entity)

        assert result.skipped
        assert result.submitted == []
        assert mock_store.ensure_index.call_count == 2
        assert mock_store.ensure_geo_index.call_count == 1

    def test_collection_override(self, recording_store, creator_factory):
        entity = EntityDescriptor(
            type_id="app.models.Event",
            collection="events",
            properties=(
                PropertyDescriptor(
                    name="ts", index=SimpleIndexDeclaration(collection="events_archive")
                ),
            ),
        )
        creator_factory(recording_store, [entity])
        assert recording_store.calls[0][1] == "events_archive"

    def test_shared_cache_across_creators(self, recording_store, creator_factory, user_entity):
        cache = SeenTypeCache()
        creator_factory(recording_store, [user_entity], cache=cache)
        creator_factory(recording_store, [user_entity], cache=cache)
        assert len(recording_store.calls) == 1

    def test_independent_creators(self, recording_store, creator_factory, user_entity):
        creator_factory(recording_store, [user_entity])
        creator_factory(recording_store, [user_entity])
        assert len(recording_store.calls) == 2


class TestMalformedCompoundIndex:
    """Test isolation of compound key parse failures."""

    @pytest.fixture
    def entity(self):
        return EntityDescriptor(
            type_id="app.models.Broken",
            collection="broken",
            compound_indexes=(
                CompoundIndexDeclaration(name="bad", definition="{lastName: 1"),
                CompoundIndexDeclaration(name="good", definition='{"a": 1, "b": -1}'),
            ),
            properties=(PropertyDescriptor(name="age", index=SimpleIndexDeclaration()),),
        )

    def test_siblings_still_submitted(self, recording_store, creator_factory, entity, caplog):
        creator = creator_factory(recording_store)
        with caplog.at_level(logging.ERROR, logger=MANAGER_LOGGER):
            result = creator.process_entity(entity)

        assert recording_store.names() == ["good", "age"]
        assert len(result.parse_errors) == 1
        assert result.parse_errors[0].index_name == "bad"
        assert "Skipping compound index 'bad'" in caplog.text

    def test_type_still_marked_processed(self, recording_store, creator_factory, entity):
        creator = creator_factory(recording_store, [entity])
        assert creator.cache.has_been_processed("app.models.Broken")

    @pytest.mark.parametrize(
        "definition",
        ['{"$binary": {"base64": "AA=="}}', '{"a": [1]}', '{"a": {"$numberDecimal": "1"}}'],
    )
    def test_invalid_key_document_isolated(
        self, recording_store, creator_factory, definition
    ):
        entity = EntityDescriptor(
            type_id="app.models.Odd",
            collection="odd",
            compound_indexes=(CompoundIndexDeclaration(name="bad", definition=definition),),
            properties=(PropertyDescriptor(name="age", index=SimpleIndexDeclaration()),),
        )
        creator = creator_factory(recording_store)

        result = creator.process_entity(entity)

        assert recording_store.names() == ["age"]
        assert [e.index_name for e in result.parse_errors] == ["bad"]
        assert creator.cache.has_been_processed("app.models.Odd")

    def test_single_quoted_definition_submitted(self, recording_store, creator_factory):
        entity = EntityDescriptor(
            type_id="app.models.Person",
            collection="people",
            compound_indexes=(
                CompoundIndexDeclaration(
                    name="name_age", definition="{'lastName': 1, 'age': -1}"
                ),
            ),
        )

        result = creator_factory(recording_store).process_entity(entity)

        assert result.parse_errors == []
        (call,) = recording_store.calls
        assert call[2] == {"lastName": 1, "age": -1}


class TestNamingAdvisory:
    """Test the unique + non-sparse name mismatch warning."""

    @pytest.fixture
    def entity(self):
        return EntityDescriptor(
            type_id="app.models.Person",
            collection="people",
            properties=(
                PropertyDescriptor(
                    name="age",
                    index=SimpleIndexDeclaration(name="custom", unique=True, sparse=False),
                ),
            ),
        )

    def test_warns_and_still_submits(self, recording_store, creator_factory, entity, caplog):
        creator = creator_factory(recording_store)
        with caplog.at_level(logging.WARNING, logger=MANAGER_LOGGER):
            result = creator.process_entity(entity)

        assert len(result.advisories) == 1
        assert result.advisories[0].index_name == "custom"
        assert "doesn't match this property name" in caplog.text
        assert recording_store.calls == [
            (
                "index",
                "people",
                {"age": 1},
                {"name": "custom", "dropDups": False, "sparse": False, "unique": True},
            )
        ]


class TestStoreFailures:
    """Test propagation of store errors and reprocessing of failed types."""

    def test_error_propagates(self, recording_store, creator_factory, venue_entity):
        recording_store.fail_on.add("name")
        creator = creator_factory(recording_store)

        with pytest.raises(StoreUnavailableError):
            creator.process_entity(venue_entity)

        # compound index submitted before the failure is kept, geo never reached
        assert recording_store.names() == ["city_rating"]

    def test_failed_type_is_retried(self, recording_store, creator_factory, venue_entity):
        recording_store.fail_on.add("name")
        creator = creator_factory(recording_store)
        with pytest.raises(StoreUnavailableError):
            creator.process_entity(venue_entity)
        assert not creator.cache.has_been_processed(venue_entity.type_id)
        assert venue_entity.type_id not in creator.cache

        recording_store.fail_on.clear()
        result = creator.process_entity(venue_entity)

        assert not result.skipped
        assert creator.cache.has_been_processed(venue_entity.type_id)
        assert recording_store.names() == ["city_rating", "city_rating", "name", "location"]

    def test_failed_type_not_retried_when_disabled(
        self, recording_store, metrics, venue_entity
    ):
        recording_store.fail_on.add("location")
        config = SyncConfig(retry_failed_types=False)
        creator = EntityIndexCreator(recording_store, config=config, metrics=metrics)

        with pytest.raises(StoreUnavailableError):
            creator.process_entity(venue_entity)

        assert creator.cache.has_been_processed(venue_entity.type_id)
        assert creator.process_entity(venue_entity).skipped

    def test_bootstrap_failure_propagates(self, recording_store, creator_factory, user_entity):
        recording_store.fail_on.add("email")
        with pytest.raises(StoreUnavailableError):
            creator_factory(recording_store, [user_entity])


class TestDiscovery:
    """Test handling of discovery notifications."""

    def test_ignores_non_entities(self, mock_store, creator_factory):
        creator = creator_factory(mock_store)
        assert creator.on_entity_discovered(object()) is None
        assert creator.on_entity_discovered("app.models.User") is None
        mock_store.ensure_index.assert_not_called()

    def test_discovered_entity_processed(self, recording_store, creator_factory, user_entity):
        creator = creator_factory(recording_store)
        result = creator.on_entity_discovered(user_entity)
        assert result.index_names == ["email"]

    def test_subscribes_to_event_bus(self, recording_store, creator_factory, user_entity):
        bus = EntityEventBus()
        creator_factory(recording_store, events=bus)

        assert bus.listener_count == 1
        bus.publish(user_entity)
        bus.publish(user_entity)
        assert recording_store.names() == ["email"]

    def test_close_unsubscribes(self, recording_store, creator_factory, user_entity):
        bus = EntityEventBus()
        creator = creator_factory(recording_store, events=bus)
        creator.close()

        assert bus.listener_count == 0
        bus.publish(user_entity)
        assert recording_store.calls == []

    def test_single_subscription(self, mock_store, creator_factory):
        bus = EntityEventBus()
        creator = creator_factory(mock_store, events=bus)
        with pytest.raises(RuntimeError):
            creator.subscribe(bus)

    def test_mapping_context_flow(self, recording_store, creator_factory, user_entity, venue_entity):
        context = MappingContext([user_entity])
        creator_factory(recording_store, context.get_entities(), events=context.events)

        context.add_entity(venue_entity)
        context.add_entity(venue_entity)

        assert recording_store.names() == ["email", "city_rating", "name", "location"]


class TestConcurrency:
    """Test concurrent discovery notifications."""

    def test_distinct_types_each_submitted_once(self, slow_store, creator_factory, entity_factory):
        creator = creator_factory(slow_store)
        entities = [entity_factory(f"app.models.T{i}", indexed_fields=2) for i in range(12)]
        num_threads = 6
        barrier = threading.Barrier(num_threads)

        def deliver_all():
            barrier.wait()
            for entity in entities:
                creator.on_entity_discovered(entity)

        threads = [threading.Thread(target=deliver_all) for _ in range(num_threads)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        submitted = [(call[1], call[3]["name"]) for call in slow_store.calls]
        assert len(submitted) == len(entities) * 2
        assert len(set(submitted)) == len(submitted)
        assert len(creator.cache.processed_types()) == len(entities)

    def test_same_type_concurrently(self, slow_store, creator_factory, venue_entity):
        creator = creator_factory(slow_store)
        num_threads = 8
        barrier = threading.Barrier(num_threads)
        results = []
        lock = threading.Lock()

        def deliver():
            barrier.wait()
            result = creator.on_entity_discovered(venue_entity)
            with lock:
                results.append(result)

        threads = [threading.Thread(target=deliver) for _ in range(num_threads)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert len(slow_store.calls) == 3
        assert sum(1 for r in results if not r.skipped) == 1


class TestMetrics:
    """Test metrics recorded by the creator."""

    def test_records_submissions(self, recording_store, creator_factory, metrics, venue_entity):
        creator_factory(recording_store, [venue_entity])

        assert metrics.get_operation_count(METRIC_ENSURE_INDEX) == 3
        assert metrics.get_operation_count(METRIC_PROCESS_ENTITY) == 1
        assert metrics.get_error_count(METRIC_ENSURE_INDEX) == 0

    def test_records_failures(self, recording_store, creator_factory, metrics, user_entity):
        recording_store.fail_on.add("email")
        with pytest.raises(StoreUnavailableError):
            creator_factory(recording_store, [user_entity])

        assert metrics.get_error_count(METRIC_ENSURE_INDEX) == 1
        assert metrics.get_error_count(METRIC_PROCESS_ENTITY) == 1

    def test_skipped_entities_not_recorded(
        self, recording_store, creator_factory, metrics, user_entity
    ):
        creator = creator_factory(recording_store, [user_entity])
        creator.process_entity(user_entity)
        assert metrics.get_operation_count(METRIC_PROCESS_ENTITY) == 1
