"""
Key layout for snapshot storage.

Maps snapshots and the current pointer onto flat key/value keys.
"""

from typing import Optional

from ..integrity.hashing import is_valid_digest


CURRENT_KEY = 'current-sha'

VERSION_KEY_PREFIX = 'data-version-'


class KeyLayout:
    """
    Manages the two key families used in shared storage.

    Layout:
        current-sha               # digest of the current snapshot
        data-version-<digest>     # canonical snapshot JSON

    The key names do not record which algorithm produced the digests.
    Stores are written with BLAKE3 by default; a store shared with a client
    that writes SHA-256 digests must be opened with hash_algorithm='sha256'
    (INVENTORY_HASH_ALGORITHM=sha256). Otherwise every snapshot of that
    store fails verification and resolution seeds a new chain beside the
    existing one.
    """

    def __init__(self, current_key: str = CURRENT_KEY, version_prefix: str = VERSION_KEY_PREFIX):
        if not current_key:
            raise ValueError("Current key cannot be empty")
        if not version_prefix:
            raise ValueError("Version prefix cannot be empty")
        if current_key.startswith(version_prefix):
            raise ValueError("Current key must not share the version prefix")
        self.current_key = current_key
        self.version_prefix = version_prefix

    def version_key(self, digest: str) -> str:
        """Get the storage key for a snapshot digest."""
        return self.version_prefix + digest

    def digest_from_key(self, key: str) -> Optional[str]:
        """
        Extract the digest from a version key.

        Returns None for keys outside the version family or whose suffix is
        not a digest.
        """
        if not key.startswith(self.version_prefix):
            return None
        digest = key[len(self.version_prefix):]
        if not is_valid_digest(digest):
            return None
        return digest

    def is_tracked_key(self, key: Optional[str]) -> bool:
        """Check if a key belongs to either key family."""
        if key is None:
            return False
        return key == self.current_key or key.startswith(self.version_prefix)

    def __repr__(self) -> str:
        return f"KeyLayout(current_key={self.current_key!r}, version_prefix={self.version_prefix!r})"
