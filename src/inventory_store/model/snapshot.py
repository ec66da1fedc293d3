"""
Snapshot object model.

A snapshot is the whole inventory at one moment plus a link to the
snapshot it was derived from.
"""

import json
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Dict, Mapping, Optional

from ..errors import MalformedSnapshotError
from ..integrity.canonical import canonical_json_str
from .item import Item


def format_timestamp(moment: datetime) -> str:
    """
    Format an instant as ISO-8601 UTC with millisecond precision.

    Naive datetimes are taken as UTC.
    """
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    moment = moment.astimezone(timezone.utc)
    return moment.isoformat(timespec='milliseconds').replace('+00:00', 'Z')


def parse_timestamp(text: str) -> datetime:
    """
    Parse an ISO-8601 instant into an aware datetime.

    Raises ValueError if the text is not an ISO-8601 instant.
    """
    if not isinstance(text, str):
        raise ValueError(f"Timestamp must be a string, got {type(text).__name__}")
    value = text[:-1] + '+00:00' if text.endswith(('Z', 'z')) else text
    moment = datetime.fromisoformat(value)
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment


def utc_now() -> datetime:
    """Default clock."""
    return datetime.now(timezone.utc)


class Snapshot:
    """
    Immutable snapshot of the full inventory.

    A snapshot holds:
    - An ordered mapping of item name to Item
    - The digest of the snapshot it was derived from (None for a root)
    - The ISO-8601 instant it was created

    Snapshots form a tree through previous_version links. They are never
    modified; every change produces a new Snapshot.
    """

    def __init__(
        self,
        items: Mapping[str, Item],
        previous_version: Optional[str] = None,
        timestamp: Optional[str] = None,
    ):
        """
        Create a snapshot.

        Args:
            items: mapping of item name to Item (copied)
            previous_version: digest of the parent snapshot, or None
            timestamp: ISO-8601 creation instant (defaults to now)
        """
        self._items = MappingProxyType(dict(items))  # Copy to ensure immutability
        self._previous_version = previous_version
        self._timestamp = timestamp if timestamp is not None else format_timestamp(utc_now())

    @property
    def items(self) -> Mapping[str, Item]:
        """Read-only view of the items, in insertion order."""
        return self._items

    @property
    def previous_version(self) -> Optional[str]:
        return self._previous_version

    @property
    def timestamp(self) -> str:
        return self._timestamp

    def copy_items(self) -> Dict[str, Item]:
        """Return a fresh mutable copy of the item mapping."""
        return dict(self._items)

    def to_dict(self) -> dict:
        """
        Convert snapshot to its stored dictionary representation.

        Key order is fixed: items, previousVersion, timestamp.
        """
        return {
            'items': {name: item.to_dict() for name, item in self._items.items()},
            'previousVersion': self.previous_version,
            'timestamp': self.timestamp,
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'Snapshot':
        """
        Reconstruct snapshot from stored dictionary.

        Raises ValueError if data is invalid.
        """
        if not isinstance(data, dict):
            raise ValueError("Snapshot must be an object")

        for field in ('items', 'previousVersion', 'timestamp'):
            if field not in data:
                raise ValueError(f"Snapshot missing {field} field")

        raw_items = data['items']
        if not isinstance(raw_items, dict):
            raise ValueError("Snapshot items must be an object")

        items = {}
        for name, raw_item in raw_items.items():
            try:
                items[name] = Item.from_dict(raw_item)
            except ValueError as e:
                raise ValueError(f"Item {name!r}: {e}")

        previous_version = data['previousVersion']
        if previous_version is not None and not isinstance(previous_version, str):
            raise ValueError("Snapshot previousVersion must be a string or null")

        timestamp = data['timestamp']
        parse_timestamp(timestamp)

        return cls(items, previous_version, timestamp)

    def parsed_timestamp(self) -> datetime:
        """Creation instant as an aware datetime."""
        return parse_timestamp(self.timestamp)

    def has_parent(self) -> bool:
        """Check if this snapshot has a parent."""
        return self.previous_version is not None

    def item_count(self) -> int:
        return len(self._items)

    def __eq__(self, other) -> bool:
        if not isinstance(other, Snapshot):
            return NotImplemented
        # Item order is part of the serialized form, so it is compared too.
        return (
            list(self._items.items()) == list(other._items.items())
            and self.previous_version == other.previous_version
            and self.timestamp == other.timestamp
        )

    def __repr__(self) -> str:
        parent_preview = self.previous_version[:8] + "..." if self.previous_version else "None"
        return f"Snapshot(items={len(self._items)}, parent={parent_preview}, timestamp={self.timestamp})"


def serialize(snapshot: Snapshot) -> str:
    """Encode a snapshot to its canonical JSON text."""
    return canonical_json_str(snapshot.to_dict())


def deserialize(text: str, key: Optional[str] = None) -> Snapshot:
    """
    Decode canonical JSON text into a snapshot.

    Raises MalformedSnapshotError if the text is not JSON or does not
    describe a valid snapshot.
    """
    try:
        data = json.loads(text)
    except (TypeError, ValueError) as e:
        raise MalformedSnapshotError(f"invalid JSON: {e}", key)

    try:
        return Snapshot.from_dict(data)
    except ValueError as e:
        raise MalformedSnapshotError(str(e), key)
