"""
Seen-type cache.

Records which entity types an engine has already analyzed so each type is
processed at most once for the lifetime of the engine. The cache is owned by
an engine instance and passed in through its constructor.
"""

import threading

_IN_PROGRESS = "in_progress"
_PROCESSED = "processed"


class SeenTypeCache:
    """
    Thread-safe map of type id -> processing state.

    A type moves from absent to in-progress through ``try_claim`` and from
    in-progress (or absent) to processed through ``mark_processed``. A
    processed marker is never removed. ``release`` drops an in-progress
    placeholder so the type can be claimed again.
    """

    def __init__(self) -> None:
        self._states: dict[str, str] = {}
        self._lock = threading.Lock()

    def has_been_processed(self, type_id: str) -> bool:
        """Return True once ``mark_processed`` has completed for ``type_id``."""
        with self._lock:
            return self._states.get(type_id) == _PROCESSED

    def mark_processed(self, type_id: str) -> None:
        with self._lock:
            self._states[type_id] = _PROCESSED

    def try_claim(self, type_id: str) -> bool:
        """
        Atomically insert an in-progress placeholder for ``type_id``.

        Returns:
            True if this caller now owns the type, False if it is already
            being processed or has been processed
        """
        with self._lock:
            if type_id in self._states:
                return False
            self._states[type_id] = _IN_PROGRESS
            return True

    def release(self, type_id: str) -> bool:
        """
        Drop the in-progress placeholder for ``type_id``.

        Returns:
            True if a placeholder was removed
        """
        with self._lock:
            if self._states.get(type_id) == _IN_PROGRESS:
                del self._states[type_id]
                return True
            return False

    def is_in_progress(self, type_id: str) -> bool:
        with self._lock:
            return self._states.get(type_id) == _IN_PROGRESS

    def processed_types(self) -> list[str]:
        """Snapshot of processed type ids in the order they were first claimed."""
        with self._lock:
            return [t for t, state in self._states.items() if state == _PROCESSED]

    def __contains__(self, type_id: object) -> bool:
        with self._lock:
            return type_id in self._states

    def __len__(self) -> int:
        with self._lock:
            return len(self._states)
