"""
Key/value storage abstraction.

The host's shared, process-wide storage is reached only through this
interface, so core logic can run against an in-memory fake.
"""

import uuid
from abc import ABC, abstractmethod
from typing import Dict, Iterator, Optional


class StorageEvent:
    """
    A change to one key of shared storage.

    key is None when the whole storage area was cleared.
    origin is the context_id of the writer, or None if unknown.
    """

    def __init__(
        self,
        key: Optional[str],
        old_value: Optional[str],
        new_value: Optional[str],
        origin: Optional[str] = None,
    ):
        self.key = key
        self.old_value = old_value
        self.new_value = new_value
        self.origin = origin

    def __eq__(self, other) -> bool:
        if not isinstance(other, StorageEvent):
            return NotImplemented
        return (
            (self.key, self.old_value, self.new_value, self.origin)
            == (other.key, other.old_value, other.new_value, other.origin)
        )

    def __repr__(self) -> str:
        return f"StorageEvent(key={self.key!r}, origin={self.origin!r})"


class KeyValueStore(ABC):
    """
    String key/value storage shared between execution contexts.

    Subclasses implement _read, _write and _list_keys. Reads are never
    cached: another context may change storage between any two calls.
    """

    def __init__(self, context_id: Optional[str] = None):
        """
        Args:
            context_id: identifies the execution context writing through
                this store (generated if omitted)
        """
        self.context_id = context_id or uuid.uuid4().hex
        self._local_writes: Dict[str, str] = {}

    def get(self, key: str) -> Optional[str]:
        """
        Get the value stored under key, or None if absent.

        Raises StorageUnavailableError if storage cannot be read.
        """
        return self._read(key)

    def set(self, key: str, value: str) -> None:
        """
        Store value under key.

        Raises StorageFullError or StorageUnavailableError if the host
        refuses the write.
        """
        if not isinstance(value, str):
            raise TypeError(f"Storage values must be strings, got {type(value).__name__}")
        self._write(key, value)
        self._local_writes[key] = value

    def keys(self) -> Iterator[str]:
        """
        Iterate over existing keys.

        Each call starts a new, finite iteration.
        """
        return iter(self._list_keys())

    def last_written(self, key: str) -> Optional[str]:
        """Value this store itself last wrote under key, if any."""
        return self._local_writes.get(key)

    @abstractmethod
    def _read(self, key: str) -> Optional[str]:
        ...

    @abstractmethod
    def _write(self, key: str, value: str) -> None:
        ...

    @abstractmethod
    def _list_keys(self) -> list:
        ...
