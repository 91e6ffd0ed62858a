"""
Mapping context and entity discovery events.

``MappingContext`` is a registry of entity descriptors. Adding a type it has
not seen before publishes the descriptor on its ``EntityEventBus``; anything
subscribed to the bus (such as an ``EntityIndexCreator``) is called on the
publishing thread.
"""

import logging
import threading
from collections.abc import Callable, Iterable

from ..indexes.declarations import EntityDescriptor

logger = logging.getLogger(__name__)

EntityListener = Callable[[EntityDescriptor], object]


class EntityEventBus:
    """
    Thread-safe publish/subscribe channel for newly discovered entity types.

    Delivery is synchronous on the caller's thread. Every subscriber is
    called even when an earlier one raises; the first error is re-raised once
    all subscribers have run.
    """

    def __init__(self) -> None:
        self._listeners: list[EntityListener] = []
        self._lock = threading.Lock()

    def subscribe(self, listener: EntityListener) -> Callable[[], None]:
        """
        Register ``listener``.

        Returns:
            A callable that removes the subscription
        """
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def publish(self, entity: EntityDescriptor) -> int:
        """
        Deliver ``entity`` to every subscriber.

        Returns:
            Number of subscribers notified
        """
        with self._lock:
            listeners = list(self._listeners)

        first_error: Exception | None = None
        for listener in listeners:
            try:
                listener(entity)
            except Exception as e:  # noqa: BLE001 - re-raised after delivery completes
                logger.error(
                    f"Listener {listener!r} failed for entity '{entity.type_id}': {e}",
                    exc_info=True,
                )
                if first_error is None:
                    first_error = e

        if first_error is not None:
            raise first_error
        return len(listeners)

    @property
    def listener_count(self) -> int:
        with self._lock:
            return len(self._listeners)


class MappingContext:
    """
    Registry of known entity types.

    Example:
        context = MappingContext()
        creator = EntityIndexCreator(store, context.get_entities(), events=context.events)
        context.add_entity(user_descriptor)  # indexes for User are ensured here
    """

    def __init__(
        self,
        entities: Iterable[EntityDescriptor] = (),
        events: EntityEventBus | None = None,
    ) -> None:
        self._entities: dict[str, EntityDescriptor] = {}
        self._lock = threading.Lock()
        self.events = events or EntityEventBus()
        for entity in entities:
            self._entities.setdefault(entity.type_id, entity)

    def add_entity(self, entity: EntityDescriptor) -> bool:
        """
        Register ``entity`` and publish it if its type id is new.

        Returns:
            True if the entity was new and has been published
        """
        with self._lock:
            if entity.type_id in self._entities:
                return False
            self._entities[entity.type_id] = entity

        logger.debug(f"Discovered entity type '{entity.type_id}' ({entity.collection})")
        self.events.publish(entity)
        return True

    def get_entity(self, type_id: str) -> EntityDescriptor | None:
        with self._lock:
            return self._entities.get(type_id)

    def get_entities(self) -> list[EntityDescriptor]:
        """Snapshot of registered entities in registration order."""
        with self._lock:
            return list(self._entities.values())

    def __len__(self) -> int:
        with self._lock:
            return len(self._entities)
