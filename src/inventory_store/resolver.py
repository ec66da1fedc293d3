"""
Current version resolution.

Decides which snapshot is current, seeding an empty store and repairing a
missing or dangling current pointer.
"""

import logging
from typing import Callable, List, Optional, Tuple

from .config import RepairPolicy
from .errors import (
    MalformedSnapshotError,
    SnapshotCorruptedError,
    SnapshotNotFoundError,
    StorageUnavailableError,
)
from .integrity.hashing import is_valid_digest
from .model.item import Item
from .model.snapshot import Snapshot, format_timestamp, utc_now
from .storage.version_store import VersionStore


logger = logging.getLogger(__name__)

MAX_PASSES = 2


def seed_items() -> dict:
    """The example inventory committed into an empty store."""
    return {
        'Example Item': Item(2, ['example tag', 'another example tag']),
        'Example Item #2': Item(20, ['example tag']),
    }


def select_replacement(
    candidates: List[Tuple[str, Snapshot]],
    policy: RepairPolicy = RepairPolicy.EARLIEST,
) -> Tuple[str, Snapshot]:
    """
    Pick the snapshot to make current when the pointer is lost.

    EARLIEST picks the minimum timestamp, ties broken by smallest digest.
    LATEST picks the maximum timestamp, ties broken by largest digest.
    """
    if not candidates:
        raise ValueError("No candidate snapshots")

    def sort_key(entry):
        digest, snapshot = entry
        return snapshot.parsed_timestamp(), digest

    if policy == RepairPolicy.LATEST:
        return max(candidates, key=sort_key)
    return min(candidates, key=sort_key)


class VersionResolver:
    """
    Resolves the current snapshot, bootstrapping and repairing as needed.

    Runs before every operation that needs the current snapshot. Storage
    is re-read on every call.
    """

    def __init__(
        self,
        store: VersionStore,
        policy: RepairPolicy = RepairPolicy.EARLIEST,
        clock: Optional[Callable] = None,
    ):
        """
        Args:
            store: snapshot storage
            policy: how to choose a replacement for a lost pointer
            clock: returns the current datetime (defaults to UTC now)
        """
        self.store = store
        self.policy = policy
        self.clock = clock or utc_now

    def resolve_current(self) -> Tuple[Snapshot, str]:
        """
        Return the current (snapshot, digest).

        1. A pointer naming an intact snapshot is returned as-is.
        2. Otherwise the pointer is repaired from the readable snapshots.
        3. An empty store is seeded once, then resolved again.

        Raises StorageUnavailableError if storage cannot be used or does not
        keep what was written.
        """
        for attempt in range(MAX_PASSES):
            found = self._read_pointer()
            if found is not None:
                return found

            candidates = list(self.store.iter_snapshots())
            if candidates:
                return self._repair(candidates)

            if attempt == 0:
                self._bootstrap()

        raise StorageUnavailableError('resolve', self.store.layout.current_key)

    def _read_pointer(self) -> Optional[Tuple[Snapshot, str]]:
        digest = self.store.get_current_pointer()
        if digest is None:
            return None
        if not is_valid_digest(digest):
            # Never used as a key: it could name a path outside the store.
            logger.warning("Current pointer holds a non-digest value %r", digest)
            return None

        try:
            return self.store.get_snapshot(digest), digest
        except SnapshotNotFoundError:
            logger.warning("Current pointer names missing snapshot %s", digest)
        except (MalformedSnapshotError, SnapshotCorruptedError) as e:
            logger.warning("Current pointer names unreadable snapshot %s: %s", digest, e)
        return None

    def _repair(self, candidates: List[Tuple[str, Snapshot]]) -> Tuple[Snapshot, str]:
        digest, snapshot = select_replacement(candidates, self.policy)
        self.store.set_current_pointer(digest)
        logger.warning(
            "Repaired current pointer to %s (%s of %d snapshots, timestamp %s)",
            digest, self.policy.value, len(candidates), snapshot.timestamp,
        )
        return snapshot, digest

    def _bootstrap(self) -> str:
        seed = Snapshot(seed_items(), None, format_timestamp(self.clock()))
        try:
            digest = self.store.commit(seed)
        except SnapshotNotFoundError as e:
            raise StorageUnavailableError('bootstrap', self.store.layout.current_key, e) from e
        logger.info("Seeded empty store with example snapshot %s", digest)
        return digest
