"""
Inventory Engine.

Main entry point coordinating all components.
"""

import logging
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

from .config import StoreConfig
from .errors import (
    InvariantViolationError,
    MalformedSnapshotError,
    SnapshotCorruptedError,
    SnapshotNotFoundError,
)
from .integration.item_exchange import (
    dump_items_json,
    export_items,
    load_items_json,
)
from .integrity.verification import scan_store
from .invariants import verify_store_invariants
from .model.item import Item
from .model.snapshot import Snapshot, utc_now
from .mutations import MutationEngine
from .notifier import ChangeNotifier, PollingChangeSource
from .resolver import VersionResolver
from .storage.filesystem import FileKeyValueStore
from .storage.kv import KeyValueStore, StorageEvent
from .storage.memory import MemoryKeyValueStore
from .storage.version_store import VersionStore


logger = logging.getLogger(__name__)


class InventoryEngine:
    """
    Main engine for the versioned inventory.

    This is the primary interface for:
    - Resolving the current inventory snapshot
    - Editing items (each edit commits a new snapshot)
    - Browsing and restoring history
    - Bulk import/export of item maps
    - Hearing about changes made by other contexts
    - Verifying stored snapshots
    """

    def __init__(
        self,
        store: Optional[KeyValueStore] = None,
        config: Optional[StoreConfig] = None,
        clock: Optional[Callable] = None,
    ):
        """
        Initialize an engine over a key/value store.

        Args:
            store: shared key/value storage (a private in-memory store if omitted)
            config: store configuration (defaults if omitted)
            clock: returns the current datetime (defaults to UTC now)
        """
        self.kv = store if store is not None else MemoryKeyValueStore()
        self.config = config or StoreConfig()
        self.clock = clock or utc_now

        layout = self.config.key_layout()
        self.versions = VersionStore(
            self.kv,
            layout=layout,
            algorithm=self.config.hash_algorithm,
            verify_on_read=self.config.verify_on_read,
        )
        self.resolver = VersionResolver(self.versions, self.config.repair_policy, self.clock)
        self.mutations = MutationEngine(self.versions, self.resolver, self.clock)
        self.notifier = ChangeNotifier(self.kv.context_id, layout)

        self._disconnect = None
        if isinstance(self.kv, MemoryKeyValueStore):
            self._disconnect = self.notifier.connect(self.kv.area)

    @classmethod
    def open(cls, path: str | Path, config: Optional[StoreConfig] = None, **kwargs) -> 'InventoryEngine':
        """Open an engine over a directory-backed store."""
        store = FileKeyValueStore(path)
        store.initialize()
        return cls(store, config, **kwargs)

    # ========== Reading ==========

    def resolve_current(self) -> Tuple[Snapshot, str]:
        """
        Return the current (snapshot, digest).

        Seeds an empty store and repairs a lost pointer as needed.
        """
        return self.resolver.resolve_current()

    def current_items(self) -> Mapping[str, Item]:
        """Items of the current snapshot."""
        snapshot, _ = self.resolve_current()
        return snapshot.items

    def get_version(self, digest: str) -> Snapshot:
        """Retrieve a snapshot by digest."""
        return self.versions.get_snapshot(digest)

    def list_all_versions(self) -> Dict[str, Snapshot]:
        """
        Get every readable snapshot.

        Returns dict of digest -> Snapshot ordered by timestamp (oldest
        first), ties by digest. Unreadable snapshots are skipped.
        """
        entries = sorted(
            self.versions.iter_snapshots(),
            key=lambda entry: (entry[1].parsed_timestamp(), entry[0]),
        )
        return dict(entries)

    def history(self, digest: Optional[str] = None) -> List[Tuple[str, Snapshot]]:
        """
        Get the chain of snapshots from a snapshot back to its root.

        Walks previous_version links, newest first. Starts at the current
        snapshot if digest is omitted. Stops at the first ancestor that is
        missing or unreadable.

        Raises InvariantViolationError if the links form a cycle.
        """
        if digest is None:
            snapshot, digest = self.resolve_current()
        else:
            snapshot = self.versions.get_snapshot(digest)

        chain = [(digest, snapshot)]
        visited = {digest}  # Detect cycles

        while snapshot.has_parent():
            parent = snapshot.previous_version
            if parent in visited:
                raise InvariantViolationError(
                    "acyclic_history",
                    f"Cycle detected in snapshot chain at {parent}"
                )
            try:
                snapshot = self.versions.get_snapshot(parent)
            except (SnapshotNotFoundError, MalformedSnapshotError, SnapshotCorruptedError) as e:
                logger.warning("History of %s stops at %s: %s", chain[0][0], parent, e)
                break
            visited.add(parent)
            chain.append((parent, snapshot))

        return chain

    # ========== Editing ==========

    def upsert_item(self, old_name: Optional[str], new_name: str, item: Any) -> str:
        """
        Add an item, or replace/rename the item called old_name.

        Returns the new current digest.
        Raises EmptyNameError or DuplicateNameError without committing.
        """
        return self.mutations.upsert_item(old_name, new_name, item)

    def delete_item(self, name: str) -> str:
        """Remove an item (absent names still commit). Returns the new digest."""
        return self.mutations.delete_item(name)

    def replace_all(self, items: Any) -> str:
        """
        Replace every item with externally supplied data.

        Raises SchemaViolationError without committing.
        """
        return self.mutations.replace_all(items)

    def restore_to(self, digest: str) -> str:
        """Commit a new snapshot carrying the items of an earlier one."""
        return self.mutations.restore_to(digest)

    # ========== Import / Export ==========

    def export_items(self, digest: Optional[str] = None) -> Dict[str, dict]:
        """Export items of a snapshot (default: current) as plain data."""
        return export_items(self._snapshot_for(digest))

    def export_items_json(self, digest: Optional[str] = None, indent: int = 2) -> str:
        """Export items of a snapshot (default: current) as JSON text."""
        return dump_items_json(self._snapshot_for(digest), indent=indent)

    def import_items_json(self, text: str) -> str:
        """
        Replace every item with items parsed from JSON text.

        Raises SchemaViolationError without committing.
        """
        return self.mutations.replace_all(load_items_json(text))

    # ========== Change Notification ==========

    def subscribe_to_external_change(self, callback: Callable[[StorageEvent], None]) -> Callable[[], None]:
        """
        Call callback whenever another context changes the inventory.

        Returns a function that unsubscribes.
        """
        return self.notifier.subscribe(callback)

    def watch_for_changes(self) -> PollingChangeSource:
        """
        Create a polling change source connected to this engine's notifier.

        For stores without native change events; call poll() on the result
        from the host's event loop.
        """
        source = PollingChangeSource(self.kv, self.versions.layout)
        self.notifier.connect(source)
        return source

    def close(self) -> None:
        """Detach from the shared storage area's change events."""
        if self._disconnect is not None:
            self._disconnect()
            self._disconnect = None

    # ========== Integrity Verification ==========

    def verify_store(self) -> dict:
        """
        Verify every stored snapshot and the current pointer.

        Returns dict with verified count, corrupted/malformed digests,
        dangling parent links and current pointer status.
        """
        return scan_store(self.versions)

    def check_invariants(self) -> dict:
        """Verify core invariants. Returns dict with passed/failed lists."""
        return verify_store_invariants(self.versions)

    # ========== Statistics ==========

    def get_statistics(self) -> dict:
        """
        Get store statistics.

        Returns snapshot count, stored size and current digest.
        """
        return self.versions.get_stats()

    def _snapshot_for(self, digest: Optional[str]) -> Snapshot:
        if digest is None:
            snapshot, _ = self.resolve_current()
            return snapshot
        return self.versions.get_snapshot(digest)

    def __repr__(self) -> str:
        stats = self.get_statistics()
        return (
            f"InventoryEngine("
            f"store={self.kv!r}, "
            f"snapshots={stats.get('snapshot_count', 0)}, "
            f"current={stats.get('current')})"
        )
