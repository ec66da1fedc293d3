"""
Integrity verification for stored snapshots.

Provides tamper detection and chain (parent link) checks.
"""

from typing import Dict, List, Set

from ..errors import (
    MalformedSnapshotError,
    SnapshotCorruptedError,
)
from .hashing import hash_snapshot


def verify_snapshot_text(snapshot, expected_digest: str, algorithm: str) -> None:
    """
    Verify that a decoded snapshot re-hashes to the digest it is stored under.

    Raises SnapshotCorruptedError if mismatch detected.
    """
    actual = hash_snapshot(snapshot, algorithm)
    if actual != expected_digest:
        raise SnapshotCorruptedError(expected_digest, actual)


def find_dangling_parents(snapshots: Dict[str, object], known: Set[str]) -> List[tuple]:
    """
    Find snapshots whose previous_version names no stored snapshot.

    snapshots: digest -> Snapshot for every readable snapshot
    known: every digest with a stored key, readable or not

    Returns list of (digest, missing_parent) tuples.
    """
    dangling = []
    for digest, snapshot in snapshots.items():
        parent = snapshot.previous_version
        if parent is not None and parent not in known:
            dangling.append((digest, parent))
    return dangling


def scan_store(version_store) -> dict:
    """
    Verify every stored snapshot and the current pointer.

    Returns dict with:
        - verified: count of intact snapshots
        - corrupted: digests whose content does not match their key
        - malformed: digests whose text cannot be decoded
        - dangling_parents: (digest, missing_parent) tuples
        - current: digest named by the current pointer (or None)
        - current_valid: True if current names an intact snapshot
        - errors: list of error messages
    """
    result = {
        'verified': 0,
        'corrupted': [],
        'malformed': [],
        'dangling_parents': [],
        'current': None,
        'current_valid': False,
        'errors': [],
    }

    digests = version_store.list_digests()
    intact = {}

    for digest in digests:
        try:
            intact[digest] = version_store.get_snapshot(digest, verify=True)
            result['verified'] += 1
        except SnapshotCorruptedError as e:
            result['corrupted'].append(digest)
            result['errors'].append(f"{digest}: {e}")
        except MalformedSnapshotError as e:
            result['malformed'].append(digest)
            result['errors'].append(f"{digest}: {e}")

    result['dangling_parents'] = find_dangling_parents(intact, set(digests))

    current = version_store.get_current_pointer()
    result['current'] = current
    result['current_valid'] = current is not None and current in intact

    return result
