"""Thread-safe set of pods whose deletion is underway.

Written by a watcher's sync handler when a deletion marker is first seen and
by the deletion-completion callback once the pod is gone, so every access is
guarded by a lock.
"""

from __future__ import annotations

import threading
from collections.abc import Iterator

from brigade_observer.types import PodKey


class DeletingPodsSet:
    """PodKeys observed with a deletion marker and not yet fully removed."""

    def __init__(self) -> None:
        self._keys: set[PodKey] = set()
        self._lock = threading.Lock()

    def add(self, key: PodKey) -> bool:
        """Mark *key* as being deleted.

        Returns:
            True if this is the first time the deletion was observed.
        """
        with self._lock:
            if key in self._keys:
                return False
            self._keys.add(key)
            return True

    def discard(self, key: PodKey) -> None:
        with self._lock:
            self._keys.discard(key)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._keys

    def __len__(self) -> int:
        with self._lock:
            return len(self._keys)

    def __iter__(self) -> Iterator[PodKey]:
        """Iterate over a snapshot of the keys."""
        with self._lock:
            return iter(list(self._keys))

    def __repr__(self) -> str:
        with self._lock:
            count = len(self._keys)
        return f"<DeletingPodsSet pods={count}>"
