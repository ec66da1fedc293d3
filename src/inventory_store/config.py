"""
Configuration for the inventory store.
"""

import os
from dataclasses import dataclass
from enum import Enum

from .integrity.hashing import DEFAULT_ALGORITHM, HASH_ALGORITHMS
from .storage.layout import CURRENT_KEY, VERSION_KEY_PREFIX, KeyLayout


class RepairPolicy(str, Enum):
    """Which stored snapshot becomes current when the pointer is lost."""

    EARLIEST = 'earliest'
    LATEST = 'latest'


_TRUE_VALUES = {'1', 'true', 'yes', 'on'}
_FALSE_VALUES = {'0', 'false', 'no', 'off'}


def _parse_bool(name: str, value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise ValueError(f"{name} must be a boolean, got {value!r}")


@dataclass
class StoreConfig:
    """Configuration for an InventoryEngine."""
    hash_algorithm: str = DEFAULT_ALGORITHM
    repair_policy: RepairPolicy = RepairPolicy.EARLIEST
    verify_on_read: bool = True
    current_key: str = CURRENT_KEY
    version_prefix: str = VERSION_KEY_PREFIX

    def __post_init__(self):
        if self.hash_algorithm not in HASH_ALGORITHMS:
            raise ValueError(
                f"hash_algorithm must be one of {', '.join(HASH_ALGORITHMS)}, "
                f"got {self.hash_algorithm!r}"
            )
        self.repair_policy = RepairPolicy(self.repair_policy)

    @classmethod
    def from_env(cls) -> "StoreConfig":
        """Create config from environment variables."""
        verify = os.environ.get("INVENTORY_VERIFY_ON_READ")
        return cls(
            hash_algorithm=os.environ.get("INVENTORY_HASH_ALGORITHM", DEFAULT_ALGORITHM),
            repair_policy=os.environ.get("INVENTORY_REPAIR_POLICY", RepairPolicy.EARLIEST.value),
            verify_on_read=True if verify is None else _parse_bool("INVENTORY_VERIFY_ON_READ", verify),
            current_key=os.environ.get("INVENTORY_CURRENT_KEY", CURRENT_KEY),
            version_prefix=os.environ.get("INVENTORY_VERSION_PREFIX", VERSION_KEY_PREFIX),
        )

    def key_layout(self) -> KeyLayout:
        return KeyLayout(self.current_key, self.version_prefix)
