"""
Content-addressed hashing using BLAKE3 or SHA-256.

Snapshot digests are computed over the canonical serialization, so the
digest names one exact historical commit (timestamp included).
"""

import hashlib
import string

import blake3

from ..model.snapshot import serialize


DEFAULT_ALGORITHM = 'blake3'

HASH_ALGORITHMS = ('blake3', 'sha256')

DIGEST_LENGTH = 64


def compute_hash(data: bytes, algorithm: str = DEFAULT_ALGORITHM) -> str:
    """
    Compute hash of raw bytes.

    Returns hex-encoded hash string (64 characters for both algorithms).
    Raises ValueError for an unknown algorithm.
    """
    if algorithm == 'blake3':
        return blake3.blake3(data).hexdigest()
    if algorithm == 'sha256':
        return hashlib.sha256(data).hexdigest()
    raise ValueError(f"Unknown hash algorithm: {algorithm}")


def hash_text(text: str, algorithm: str = DEFAULT_ALGORITHM) -> str:
    """Hash the UTF-8 encoding of a serialized snapshot."""
    return compute_hash(text.encode('utf-8'), algorithm)


def hash_snapshot(snapshot, algorithm: str = DEFAULT_ALGORITHM) -> str:
    """
    Compute the content digest of a snapshot.

    Pure and deterministic: the digest changes whenever any field of the
    snapshot changes, including its timestamp.
    """
    return hash_text(serialize(snapshot), algorithm)


def is_valid_digest(value: str) -> bool:
    """Check that a value looks like a hex digest produced by compute_hash."""
    return (
        isinstance(value, str)
        and len(value) == DIGEST_LENGTH
        and all(c in string.hexdigits for c in value)
    )
