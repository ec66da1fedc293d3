from .engine import InventoryEngine
from .config import RepairPolicy, StoreConfig
from .model.item import Item
from .model.snapshot import Snapshot, serialize, deserialize
from .integrity.hashing import hash_snapshot
from .notifier import ChangeNotifier, PollingChangeSource
from .resolver import VersionResolver
from .mutations import MutationEngine
from .storage.kv import KeyValueStore, StorageEvent
from .storage.memory import MemoryKeyValueStore, SharedStorageArea
from .storage.filesystem import FileKeyValueStore
from .storage.version_store import VersionStore
from .errors import (
    InventoryStoreError,
    MalformedSnapshotError,
    SnapshotNotFoundError,
    SnapshotCorruptedError,
    InventoryValidationError,
    DuplicateNameError,
    EmptyNameError,
    SchemaViolationError,
    StorageError,
    StorageUnavailableError,
    StorageFullError,
    InvariantViolationError,
)

__all__ = [
    'InventoryEngine',
    'RepairPolicy',
    'StoreConfig',
    'Item',
    'Snapshot',
    'serialize',
    'deserialize',
    'hash_snapshot',
    'ChangeNotifier',
    'PollingChangeSource',
    'VersionResolver',
    'MutationEngine',
    'KeyValueStore',
    'StorageEvent',
    'MemoryKeyValueStore',
    'SharedStorageArea',
    'FileKeyValueStore',
    'VersionStore',
    'InventoryStoreError',
    'MalformedSnapshotError',
    'SnapshotNotFoundError',
    'SnapshotCorruptedError',
    'InventoryValidationError',
    'DuplicateNameError',
    'EmptyNameError',
    'SchemaViolationError',
    'StorageError',
    'StorageUnavailableError',
    'StorageFullError',
    'InvariantViolationError',
]
