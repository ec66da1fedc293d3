"""
In-memory shared storage.

A SharedStorageArea plays the part of the host's storage; each
MemoryKeyValueStore bound to it is one execution context (a tab).
"""

from typing import Callable, Dict, List, Optional

from ..errors import StorageFullError, StorageUnavailableError
from .kv import KeyValueStore, StorageEvent


Listener = Callable[[StorageEvent], None]


class SharedStorageArea:
    """
    Storage area shared by any number of contexts.

    Every successful write is broadcast to all watchers, tagged with the
    writer's context id. Watchers decide which events concern them.
    """

    def __init__(self, quota: Optional[int] = None):
        """
        Args:
            quota: maximum total size in characters (keys plus values),
                or None for unlimited
        """
        self.quota = quota
        self.available = True
        self._data: Dict[str, str] = {}
        self._watchers: List[Listener] = []

    def read(self, key: str) -> Optional[str]:
        self._check_available('read', key)
        return self._data.get(key)

    def write(self, key: str, value: str, origin: Optional[str] = None) -> None:
        self._check_available('write', key)

        if self.quota is not None:
            old = self._data.get(key)
            used = self.used()
            if old is not None:
                used -= len(key) + len(old)
            if used + len(key) + len(value) > self.quota:
                raise StorageFullError('write', key)

        old_value = self._data.get(key)
        self._data[key] = value
        self._broadcast(StorageEvent(key, old_value, value, origin))

    def list_keys(self) -> list:
        self._check_available('list_keys')
        return list(self._data)

    def clear(self, origin: Optional[str] = None) -> None:
        """Remove every key, as a user clearing site data would."""
        self._check_available('clear')
        self._data.clear()
        self._broadcast(StorageEvent(None, None, None, origin))

    def used(self) -> int:
        """Total size in characters of all keys and values."""
        return sum(len(k) + len(v) for k, v in self._data.items())

    def watch(self, listener: Listener) -> Callable[[], None]:
        """
        Register a listener for every write to this area.

        Returns a function that removes the listener.
        """
        self._watchers.append(listener)

        def unwatch() -> None:
            if listener in self._watchers:
                self._watchers.remove(listener)

        return unwatch

    def _broadcast(self, event: StorageEvent) -> None:
        for listener in list(self._watchers):
            listener(event)

    def _check_available(self, operation: str, key: Optional[str] = None) -> None:
        if not self.available:
            raise StorageUnavailableError(operation, key)


class MemoryKeyValueStore(KeyValueStore):
    """One execution context's view of a SharedStorageArea."""

    def __init__(self, area: Optional[SharedStorageArea] = None, context_id: Optional[str] = None):
        """
        Args:
            area: storage area to share (a private one is created if omitted)
            context_id: identifies this context in broadcast events
        """
        super().__init__(context_id)
        self.area = area if area is not None else SharedStorageArea()

    def _read(self, key: str) -> Optional[str]:
        return self.area.read(key)

    def _write(self, key: str, value: str) -> None:
        self.area.write(key, value, origin=self.context_id)

    def _list_keys(self) -> list:
        return self.area.list_keys()

    def __repr__(self) -> str:
        return f"MemoryKeyValueStore(context_id={self.context_id!r})"
