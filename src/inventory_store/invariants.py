"""
Store invariants and their verification.

Each invariant is a predicate over one scan of the store (see
integrity.verification.scan_store), so a full check reads storage once.
"""

from typing import Callable, List, Optional

from .errors import InvariantViolationError
from .integrity.verification import scan_store


# A check inspects a scan result and returns a description of what is
# wrong, or None if the invariant holds.
Check = Callable[[dict], Optional[str]]


class Invariant:
    """A named guarantee about stored snapshots."""

    def __init__(self, name: str, description: str, check: Check):
        self.name = name
        self.description = description
        self.check = check

    def evaluate(self, scan: dict) -> None:
        """
        Evaluate against a scan result.

        Raises InvariantViolationError naming what was found if it fails.
        """
        problem = self.check(scan)
        if problem is not None:
            raise InvariantViolationError(self.name, f"{self.description}: {problem}")


class InvariantRegistry:
    """Invariants checked together against one version store."""

    def __init__(self, version_store):
        self.version_store = version_store
        self.invariants: List[Invariant] = []

    def register(self, name: str, description: str, check: Check) -> None:
        self.invariants.append(Invariant(name, description, check))

    def verify_all(self) -> dict:
        """
        Scan the store once and evaluate every invariant.

        Returns dict with:
            - passed: invariant names that hold
            - failed: (name, message) tuples
            - all_passed: True if nothing failed
        """
        scan = scan_store(self.version_store)
        result = {'passed': [], 'failed': [], 'all_passed': True}

        for invariant in self.invariants:
            try:
                invariant.evaluate(scan)
            except InvariantViolationError as e:
                result['failed'].append((invariant.name, str(e)))
                result['all_passed'] = False
            else:
                result['passed'].append(invariant.name)

        return result

    def verify_one(self, name: str) -> bool:
        """
        Evaluate one invariant against a fresh scan.

        Returns True if it holds, raises InvariantViolationError if not.
        Raises ValueError for an unknown name.
        """
        for invariant in self.invariants:
            if invariant.name == name:
                invariant.evaluate(scan_store(self.version_store))
                return True
        raise ValueError(f"Unknown invariant: {name}")

    def list_invariants(self) -> List[tuple]:
        """Return (name, description) for each registered invariant."""
        return [(inv.name, inv.description) for inv in self.invariants]


def _listed(digests) -> Optional[str]:
    if not digests:
        return None
    return ', '.join(str(d) for d in digests)


def _current_pointer(scan: dict) -> Optional[str]:
    if scan['current'] is None or scan['current_valid']:
        return None
    return f"current pointer names {scan['current']}"


def _parent_links(scan: dict) -> Optional[str]:
    return _listed([f"{digest} -> {parent}" for digest, parent in scan['dangling_parents']])


def create_core_invariants(version_store) -> InvariantRegistry:
    """Register the guarantees every version store must keep."""
    registry = InvariantRegistry(version_store)

    registry.register(
        "content_addressing",
        "Every stored snapshot re-hashes to the digest it is stored under",
        lambda scan: _listed(scan['corrupted']),
    )
    registry.register(
        "snapshots_decodable",
        "Every stored snapshot decodes into a valid snapshot",
        lambda scan: _listed(scan['malformed']),
    )
    registry.register(
        "current_pointer_valid",
        "The current pointer, if present, names an intact snapshot",
        _current_pointer,
    )
    registry.register(
        "parent_links_resolve",
        "Every previous version names a stored snapshot",
        _parent_links,
    )

    return registry


def verify_store_invariants(version_store) -> dict:
    """Verify all core invariants of a version store."""
    return create_core_invariants(version_store).verify_all()
