"""
Content-addressed snapshot storage.

Persists immutable snapshots and the current pointer in a key/value store.
"""

import logging
from typing import Iterator, List, Optional, Tuple

from ..errors import (
    MalformedSnapshotError,
    SnapshotCorruptedError,
    SnapshotNotFoundError,
)
from ..integrity.hashing import DEFAULT_ALGORITHM, hash_text
from ..integrity.verification import verify_snapshot_text
from ..model.snapshot import Snapshot, deserialize, serialize
from .kv import KeyValueStore
from .layout import KeyLayout


logger = logging.getLogger(__name__)


class VersionStore:
    """
    Content-addressed snapshot store with immutable snapshots.

    Snapshots are stored under the digest of their canonical text.
    Once written, a snapshot key is never rewritten with different content
    and never deleted.
    """

    def __init__(
        self,
        kv: KeyValueStore,
        layout: Optional[KeyLayout] = None,
        algorithm: str = DEFAULT_ALGORITHM,
        verify_on_read: bool = True,
    ):
        """
        Args:
            kv: underlying key/value storage
            layout: key naming (defaults to current-sha / data-version-)
            algorithm: digest algorithm for content addressing
            verify_on_read: recompute digests when reading snapshots
        """
        self.kv = kv
        self.layout = layout or KeyLayout()
        self.algorithm = algorithm
        self.verify_on_read = verify_on_read

    def put_snapshot(self, snapshot: Snapshot) -> str:
        """
        Store a snapshot and return its digest.

        The snapshot is stored immutably:
        - Digest is computed from the canonical text
        - If an intact copy already exists, nothing is written (idempotent)

        Storage errors propagate unchanged.
        """
        text = serialize(snapshot)
        digest = hash_text(text, self.algorithm)
        key = self.layout.version_key(digest)

        existing = self.kv.get(key)
        if existing is not None:
            if existing == text:
                return digest
            logger.warning("Overwriting damaged snapshot %s", digest)

        self.kv.set(key, text)
        logger.debug("Stored snapshot %s (%d items)", digest, snapshot.item_count())
        return digest

    def get_snapshot(self, digest: str, verify: Optional[bool] = None) -> Snapshot:
        """
        Retrieve a snapshot by digest.

        If verify (default: verify_on_read), checks that the stored text
        re-hashes to digest.

        Raises SnapshotNotFoundError if the snapshot doesn't exist.
        Raises MalformedSnapshotError if the stored text cannot be decoded.
        Raises SnapshotCorruptedError if verification fails.
        """
        key = self.layout.version_key(digest)
        text = self.kv.get(key)

        if text is None:
            raise SnapshotNotFoundError(digest)

        snapshot = deserialize(text, key)

        if self.verify_on_read if verify is None else verify:
            verify_snapshot_text(snapshot, digest, self.algorithm)

        return snapshot

    def get_raw(self, digest: str) -> Optional[str]:
        """Get the stored text of a snapshot without decoding it."""
        return self.kv.get(self.layout.version_key(digest))

    def has_snapshot(self, digest: str) -> bool:
        """Check if a snapshot key exists (its content is not checked)."""
        return self.kv.get(self.layout.version_key(digest)) is not None

    def list_digests(self) -> List[str]:
        """List all snapshot digests in storage."""
        digests = []
        for key in self.kv.keys():
            digest = self.layout.digest_from_key(key)
            if digest is not None:
                digests.append(digest)
        return digests

    def iter_snapshots(self, verify: Optional[bool] = None) -> Iterator[Tuple[str, Snapshot]]:
        """
        Yield (digest, snapshot) for every readable snapshot.

        Unreadable snapshots are logged and skipped so one damaged key never
        stops a scan. Storage errors propagate.
        """
        for digest in self.list_digests():
            try:
                yield digest, self.get_snapshot(digest, verify=verify)
            except SnapshotNotFoundError:
                # Listed, then vanished: not a snapshot any more.
                continue
            except (MalformedSnapshotError, SnapshotCorruptedError) as e:
                logger.warning("Skipping unreadable snapshot %s: %s", digest, e)

    def get_current_pointer(self) -> Optional[str]:
        """
        Get the digest named by the current pointer.

        Returns None if no pointer is stored.
        """
        value = self.kv.get(self.layout.current_key)
        if value is None:
            return None
        return value.strip()

    def set_current_pointer(self, digest: str) -> None:
        """
        Point the current pointer at a stored snapshot.

        Raises SnapshotNotFoundError if no snapshot is stored under digest.
        """
        if not self.has_snapshot(digest):
            raise SnapshotNotFoundError(digest)
        self.kv.set(self.layout.current_key, digest)

    def commit(self, snapshot: Snapshot) -> str:
        """
        Store a snapshot and make it current.

        Returns the new digest.
        """
        digest = self.put_snapshot(snapshot)
        self.set_current_pointer(digest)
        return digest

    def get_stats(self) -> dict:
        """
        Get storage statistics.

        Returns dict with:
        - snapshot_count: number of snapshot keys
        - total_size_chars: combined length of all snapshot texts
        - current: digest named by the current pointer (or None)
        """
        stats = {
            'snapshot_count': 0,
            'total_size_chars': 0,
            'current': self.get_current_pointer(),
        }

        for digest in self.list_digests():
            text = self.get_raw(digest)
            if text is not None:
                stats['snapshot_count'] += 1
                stats['total_size_chars'] += len(text)

        return stats

    def __repr__(self) -> str:
        return f"VersionStore(kv={self.kv!r}, algorithm={self.algorithm!r})"

