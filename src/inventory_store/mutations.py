"""
Mutation engine.

Turns an edit into a new committed snapshot linked to the current one.
"""

import logging
from typing import Any, Callable, Mapping, Optional

from .errors import DuplicateNameError, EmptyNameError
from .integration.item_exchange import validate_items
from .model.item import Item
from .model.snapshot import Snapshot, format_timestamp, utc_now
from .resolver import VersionResolver
from .storage.version_store import VersionStore


logger = logging.getLogger(__name__)


class MutationEngine:
    """
    Applies edits as new snapshots.

    Every operation:
    1. resolves the current (snapshot, digest)
    2. builds a new item mapping (the current one is never modified)
    3. commits Snapshot(new_items, previous_version=digest, timestamp=now)
    4. advances the current pointer and returns the new digest

    There is no isolation between contexts: the last commit wins the
    current pointer, but no committed snapshot is ever lost.
    """

    def __init__(
        self,
        store: VersionStore,
        resolver: VersionResolver,
        clock: Optional[Callable] = None,
    ):
        self.store = store
        self.resolver = resolver
        self.clock = clock or utc_now

    def upsert_item(self, old_name: Optional[str], new_name: str, item: Any) -> str:
        """
        Add an item, or replace/rename an existing one.

        Args:
            old_name: name being edited, or None to add a new item
            new_name: name to store the item under
            item: Item or {quantity, tags} mapping; quantity is normalized

        Returns the digest of the new current snapshot.

        Raises EmptyNameError if new_name is empty.
        Raises DuplicateNameError if new_name is taken by another item.
        Raises SchemaViolationError if tags are not strings.
        Nothing is committed when an error is raised.
        """
        if not isinstance(new_name, str) or not new_name.strip():
            raise EmptyNameError()

        new_item = Item.coerce(item)
        current, digest = self.resolver.resolve_current()

        if new_name in current.items and new_name != old_name:
            raise DuplicateNameError(new_name)

        items = {}
        renamed = old_name is not None and old_name != new_name and old_name in current.items
        for name, existing in current.items.items():
            if renamed and name == old_name:
                # Renamed item keeps its position.
                items[new_name] = new_item
            else:
                items[name] = existing
        items[new_name] = new_item

        return self._commit(items, digest)

    def delete_item(self, name: str) -> str:
        """
        Remove an item.

        Deleting an absent name still commits a new snapshot with the same
        items and a fresh timestamp.

        Returns the digest of the new current snapshot.
        """
        current, digest = self.resolver.resolve_current()
        items = {k: v for k, v in current.items.items() if k != name}
        if len(items) == len(current.items):
            logger.debug("Delete of absent item %r", name)
        return self._commit(items, digest)

    def replace_all(self, items: Any) -> str:
        """
        Replace the whole inventory with externally supplied item data.

        Raises SchemaViolationError (nothing committed) if the data does not
        match the item schema.
        """
        validated = validate_items(items)
        _, digest = self.resolver.resolve_current()
        return self._commit(validated, digest)

    def restore_to(self, target_digest: str) -> str:
        """
        Make an earlier snapshot's items current again.

        Creates a new snapshot with the target's items whose previous
        version is the current snapshot, so history keeps growing.

        Raises SnapshotNotFoundError, MalformedSnapshotError or
        SnapshotCorruptedError if the target cannot be read.
        """
        target = self.store.get_snapshot(target_digest)
        _, digest = self.resolver.resolve_current()
        new_digest = self._commit(target.copy_items(), digest)
        logger.info("Restored items of %s as %s", target_digest, new_digest)
        return new_digest

    def _commit(self, items: Mapping[str, Item], parent_digest: str) -> str:
        snapshot = Snapshot(items, parent_digest, format_timestamp(self.clock()))
        new_digest = self.store.commit(snapshot)
        logger.debug("Committed %s (parent %s, %d items)", new_digest, parent_digest, len(items))
        return new_digest
