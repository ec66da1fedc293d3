"""
Test hash determinism.

Verifies that the same snapshot always produces the same digest, and that
any change to a snapshot changes it.
"""

import hashlib

import blake3
import pytest

from inventory_store import InventoryEngine, Item, Snapshot, StoreConfig, hash_snapshot, serialize
from inventory_store.integrity.hashing import compute_hash, is_valid_digest


T0 = '2024-01-01T00:00:00.000Z'
T1 = '2024-01-01T00:00:01.000Z'


def make_snapshot(**overrides):
    fields = {
        'items': {
            'Hammer': Item(3, ['tools', 'garage']),
            'Nails': Item(200, ['tools']),
        },
        'previous_version': None,
        'timestamp': T0,
    }
    fields.update(overrides)
    return Snapshot(fields['items'], fields['previous_version'], fields['timestamp'])


class TestHashDeterminism:
    """Test that hashing is deterministic."""

    def test_snapshot_hash_determinism(self):
        """Same snapshot produces same hash on repeated calls."""
        snapshot = make_snapshot()

        assert hash_snapshot(snapshot) == hash_snapshot(snapshot)
        assert hash_snapshot(snapshot) == hash_snapshot(make_snapshot())

    def test_hash_differs_when_tag_added(self):
        """Adding a tag changes the hash."""
        original = make_snapshot()
        changed = make_snapshot(items={
            'Hammer': Item(3, ['tools', 'garage', 'heavy']),
            'Nails': Item(200, ['tools']),
        })

        assert hash_snapshot(original) != hash_snapshot(changed)

    def test_hash_differs_when_quantity_changes(self):
        changed = make_snapshot(items={
            'Hammer': Item(4, ['tools', 'garage']),
            'Nails': Item(200, ['tools']),
        })

        assert hash_snapshot(make_snapshot()) != hash_snapshot(changed)

    def test_hash_differs_with_timestamp(self):
        """Identical items committed at different times get different hashes."""
        assert hash_snapshot(make_snapshot(timestamp=T0)) != hash_snapshot(make_snapshot(timestamp=T1))

    def test_hash_differs_with_parent(self):
        parent = hash_snapshot(make_snapshot())

        assert hash_snapshot(make_snapshot(previous_version=parent)) != hash_snapshot(make_snapshot())

    def test_hash_depends_on_item_order(self):
        """Item order is part of the canonical form."""
        forward = make_snapshot(items={'A': Item(1), 'B': Item(2)})
        backward = make_snapshot(items={'B': Item(2), 'A': Item(1)})

        assert hash_snapshot(forward) != hash_snapshot(backward)

    def test_hash_survives_round_trip(self):
        from inventory_store import deserialize

        snapshot = make_snapshot()

        assert hash_snapshot(deserialize(serialize(snapshot))) == hash_snapshot(snapshot)

    def test_blake3_is_default(self):
        snapshot = make_snapshot()
        expected = blake3.blake3(serialize(snapshot).encode('utf-8')).hexdigest()

        assert hash_snapshot(snapshot) == expected

    def test_sha256_algorithm(self):
        snapshot = make_snapshot()
        expected = hashlib.sha256(serialize(snapshot).encode('utf-8')).hexdigest()

        assert hash_snapshot(snapshot, 'sha256') == expected
        assert hash_snapshot(snapshot, 'sha256') != hash_snapshot(snapshot, 'blake3')

    def test_digest_format(self):
        digest = hash_snapshot(make_snapshot())

        assert len(digest) == 64
        assert is_valid_digest(digest)
        assert not is_valid_digest(digest[:-1])
        assert not is_valid_digest('z' * 64)

    def test_unknown_algorithm_rejected(self):
        with pytest.raises(ValueError):
            compute_hash(b'data', 'md5')


class TestStoredDigests:
    """Digests used as storage keys match the stored content."""

    @pytest.fixture
    def store(self, clock):
        return InventoryEngine(clock=clock)

    def test_committed_digest_matches_content(self, store):
        _, seed_digest = store.resolve_current()
        digest = store.upsert_item(None, 'Hammer', Item(1, ['tools']))

        for d in (seed_digest, digest):
            assert hash_snapshot(store.get_version(d)) == d

    def test_stored_text_is_canonical(self, store):
        _, digest = store.resolve_current()
        text = store.kv.get('data-version-' + digest)

        assert text == serialize(store.get_version(digest))

    def test_sha256_store(self, clock):
        store = InventoryEngine(config=StoreConfig(hash_algorithm='sha256'), clock=clock)
        snapshot, digest = store.resolve_current()

        assert digest == hash_snapshot(snapshot, 'sha256')

    def test_store_shared_with_sha256_writer(self, kv, clock):
        writer = InventoryEngine(kv, StoreConfig(hash_algorithm='sha256'), clock=clock)
        digest = writer.upsert_item(None, 'Hammer', Item(1))

        reader = InventoryEngine(kv, StoreConfig(hash_algorithm='sha256'), clock=clock)

        assert reader.resolve_current()[1] == digest

    def test_algorithm_mismatch_keeps_existing_snapshots(self, kv, clock):
        writer = InventoryEngine(kv, StoreConfig(hash_algorithm='sha256'), clock=clock)
        digest = writer.upsert_item(None, 'Hammer', Item(1))

        _, current = InventoryEngine(kv, clock=clock).resolve_current()

        assert current != digest
        assert kv.get('data-version-' + digest) is not None
