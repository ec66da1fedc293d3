"""
Test tamper detection.

Verifies that tampering with stored snapshots is detected.
"""

import pytest

from inventory_store import (
    InventoryEngine,
    InvariantViolationError,
    Item,
    Snapshot,
    SnapshotCorruptedError,
    StoreConfig,
    serialize,
)
from inventory_store.invariants import create_core_invariants


T0 = '2024-02-01T00:00:00.000Z'


def tamper(kv, digest):
    """Change the Hammer quantity inside a stored snapshot."""
    key = 'data-version-' + digest
    text = kv.get(key)
    assert '"Hammer":{"quantity":1' in text
    kv.set(key, text.replace('"Hammer":{"quantity":1', '"Hammer":{"quantity":9'))


class TestTamperDetection:
    """Test detection of tampered snapshots."""

    def test_detect_modified_content(self, engine, kv):
        """Detect when snapshot content is modified."""
        digest = engine.upsert_item(None, 'Hammer', Item(1))

        tamper(kv, digest)

        with pytest.raises(SnapshotCorruptedError) as exc_info:
            engine.get_version(digest)
        assert exc_info.value.digest == digest

    def test_verify_store_reports_corruption(self, engine, kv):
        engine.resolve_current()
        digest = engine.upsert_item(None, 'Hammer', Item(1))

        tamper(kv, digest)
        result = engine.verify_store()

        assert result['corrupted'] == [digest]
        assert result['verified'] == 1
        assert result['current'] == digest
        assert not result['current_valid']

    def test_verify_store_reports_malformed(self, engine, kv):
        engine.resolve_current()
        kv.set('data-version-' + 'c' * 64, '{broken')

        result = engine.verify_store()

        assert result['malformed'] == ['c' * 64]
        assert result['current_valid']

    def test_no_false_positives(self, engine):
        """Untampered stores verify cleanly."""
        engine.resolve_current()
        engine.upsert_item(None, 'Hammer', Item(1))
        engine.upsert_item('Hammer', 'Mallet', Item(2, ['wood']))
        engine.delete_item('Example Item')

        result = engine.verify_store()
        invariants = engine.check_invariants()

        assert result['verified'] == 4
        assert result['corrupted'] == []
        assert result['malformed'] == []
        assert result['dangling_parents'] == []
        assert result['current_valid']
        assert invariants['all_passed']

    def test_tampered_current_is_repaired(self, engine, kv):
        _, seed = engine.resolve_current()
        digest = engine.upsert_item(None, 'Hammer', Item(1))

        tamper(kv, digest)
        _, current = engine.resolve_current()

        assert current == seed

    def test_invariants_report_tampering(self, engine, kv):
        digest = engine.upsert_item(None, 'Hammer', Item(1))

        tamper(kv, digest)
        result = engine.check_invariants()
        failed = [name for name, _ in result['failed']]

        assert not result['all_passed']
        assert 'content_addressing' in failed
        assert 'current_pointer_valid' in failed


class TestInvariantRegistry:

    def test_core_invariants_listed(self, engine):
        registry = create_core_invariants(engine.versions)

        assert [name for name, _ in registry.list_invariants()] == [
            'content_addressing',
            'snapshots_decodable',
            'current_pointer_valid',
            'parent_links_resolve',
        ]

    def test_verify_one(self, engine, kv):
        registry = create_core_invariants(engine.versions)
        engine.resolve_current()

        assert registry.verify_one('snapshots_decodable')

        kv.set('data-version-' + 'c' * 64, '{broken')
        with pytest.raises(InvariantViolationError) as exc_info:
            registry.verify_one('snapshots_decodable')
        assert exc_info.value.invariant == 'snapshots_decodable'

        with pytest.raises(ValueError):
            registry.verify_one('no_such_invariant')


class TestChainIntegrity:
    """Parent links that lead nowhere are reported, not followed."""

    def test_dangling_parent_detected(self, engine):
        engine.resolve_current()
        orphan = engine.versions.put_snapshot(Snapshot({}, 'd' * 64, T0))

        result = engine.verify_store()

        assert result['dangling_parents'] == [(orphan, 'd' * 64)]
        failed = [name for name, _ in engine.check_invariants()['failed']]
        assert failed == ['parent_links_resolve']

    def test_history_stops_at_missing_ancestor(self, engine):
        orphan = engine.versions.put_snapshot(Snapshot({}, 'd' * 64, T0))

        chain = engine.history(orphan)

        assert [digest for digest, _ in chain] == [orphan]

    def test_history_stops_at_corrupted_ancestor(self, engine, kv):
        engine.resolve_current()
        middle = engine.upsert_item(None, 'Hammer', Item(1))
        newest = engine.upsert_item(None, 'Saw', Item(1))

        tamper(kv, middle)

        assert [digest for digest, _ in engine.history(newest)] == [newest]

    def test_cycle_detected(self, kv, clock):
        """Hand-written keys can form a cycle; history refuses to loop."""
        engine = InventoryEngine(kv, StoreConfig(verify_on_read=False), clock=clock)
        a, b = 'a' * 64, 'b' * 64
        kv.set('data-version-' + a, serialize(Snapshot({}, b, T0)))
        kv.set('data-version-' + b, serialize(Snapshot({}, a, T0)))

        with pytest.raises(InvariantViolationError):
            engine.history(a)


class TestVerifyOnRead:

    def test_disabled_verification_reads_tampered_text(self, kv, clock):
        engine = InventoryEngine(kv, StoreConfig(verify_on_read=False), clock=clock)
        digest = engine.upsert_item(None, 'Hammer', Item(1))

        tamper(kv, digest)

        assert engine.get_version(digest).items['Hammer'].quantity == 9
        assert engine.verify_store()['corrupted'] == [digest]


class TestFileTampering:
    """Tampering with files of a directory-backed store."""

    def test_edited_file_detected(self, tmp_path, clock):
        engine = InventoryEngine.open(tmp_path / "store", clock=clock)
        _, seed = engine.resolve_current()
        digest = engine.upsert_item(None, 'Hammer', Item(1))

        path = engine.kv.get_path('data-version-' + digest)
        path.write_text(path.read_text().replace('"quantity":1', '"quantity":5'), encoding='utf-8')

        with pytest.raises(SnapshotCorruptedError):
            engine.get_version(digest)
        assert engine.resolve_current()[1] == seed

    def test_truncated_file_is_malformed(self, tmp_path, clock):
        engine = InventoryEngine.open(tmp_path / "store", clock=clock)
        digest = engine.upsert_item(None, 'Hammer', Item(1))

        path = engine.kv.get_path('data-version-' + digest)
        path.write_text(path.read_text()[:20], encoding='utf-8')

        assert engine.verify_store()['malformed'] == [digest]

    def test_undecodable_bytes_are_malformed(self, tmp_path, clock):
        engine = InventoryEngine.open(tmp_path / "store", clock=clock)
        engine.resolve_current()
        (tmp_path / "store" / ('data-version-' + 'e' * 64)).write_bytes(b'\xff\xfe\x00garbage')

        assert engine.verify_store()['malformed'] == ['e' * 64]
