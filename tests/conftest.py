"""
Shared fixtures.
"""

from datetime import datetime, timedelta, timezone

import pytest

from inventory_store import InventoryEngine, MemoryKeyValueStore, SharedStorageArea


class FakeClock:
    """Deterministic clock: each call returns the next second."""

    def __init__(self, start=None, step=timedelta(seconds=1)):
        self.now = start or datetime(2024, 1, 1, tzinfo=timezone.utc)
        self.step = step

    def __call__(self):
        current = self.now
        self.now += self.step
        return current


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def area():
    return SharedStorageArea()


@pytest.fixture
def kv(area):
    return MemoryKeyValueStore(area, context_id='tab-a')


@pytest.fixture
def engine(kv, clock):
    """Engine over an empty in-memory store."""
    engine = InventoryEngine(kv, clock=clock)
    yield engine
    engine.close()
