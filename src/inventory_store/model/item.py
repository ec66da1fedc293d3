"""
Item object model.

An item is one named inventory record: a quantity and free-text tags.
The name lives in the snapshot's mapping, not on the item.
"""

import re
from typing import Any, Iterable, Sequence

from ..errors import SchemaViolationError


DEFAULT_QUANTITY = 1

# Leading integer of form text: optional sign, then ASCII digits.
_LEADING_INTEGER = re.compile(r'\s*([+-]?)([0-9]+)')


def normalize_quantity(value: Any) -> int:
    """
    Coerce a supplied quantity to a non-negative integer.

    Non-negative ints are kept. Strings are read the way the form reads
    them: the leading integer counts and the rest is ignored, so "12abc"
    gives 12 and "3.7" gives 3. Anything else becomes DEFAULT_QUANTITY,
    including floats, booleans and negative values.
    """
    if isinstance(value, bool):
        return DEFAULT_QUANTITY
    if isinstance(value, int):
        return value if value >= 0 else DEFAULT_QUANTITY
    if isinstance(value, str):
        match = _LEADING_INTEGER.match(value)
        if match:
            sign, digits = match.groups()
            number = int(digits)
            if sign != '-' or number == 0:
                return number
    return DEFAULT_QUANTITY


def _check_tags(tags: Any) -> Sequence[str]:
    if isinstance(tags, (str, bytes)) or not isinstance(tags, Iterable):
        raise SchemaViolationError(f"tags must be a sequence of strings, got {type(tags).__name__}")
    tags = list(tags)
    for tag in tags:
        if not isinstance(tag, str):
            raise SchemaViolationError(f"tag {tag!r} is not a string")
    return tags


class Item:
    """
    Immutable inventory item.

    Tags are kept exactly as supplied: the model neither sorts nor
    deduplicates them.
    """

    def __init__(self, quantity: int, tags: Iterable[str] = ()):
        """
        Create an item.

        Args:
            quantity: item count (see coerce for normalizing user input)
            tags: ordered tags

        Raises SchemaViolationError if tags is not a sequence of strings.
        """
        self._quantity = quantity
        self._tags = tuple(_check_tags(tags))

    @property
    def quantity(self) -> int:
        return self._quantity

    @property
    def tags(self) -> tuple:
        return self._tags

    @classmethod
    def from_input(cls, quantity: Any, tags: Any = ()) -> 'Item':
        """
        Build an item from user-supplied values.

        The quantity is normalized (see normalize_quantity); tags must be a
        sequence of strings or SchemaViolationError is raised.
        """
        return cls(normalize_quantity(quantity), tags)

    @classmethod
    def coerce(cls, value: Any) -> 'Item':
        """
        Build a committable item from an Item or a {quantity, tags} mapping.

        Both shapes go through from_input, so an Item built directly with
        a negative quantity is normalized like any other user input.
        """
        if isinstance(value, Item):
            return cls.from_input(value.quantity, value.tags)
        if isinstance(value, dict):
            return cls.from_input(value.get('quantity'), value.get('tags', ()))
        raise SchemaViolationError(f"item must be an object, got {type(value).__name__}")

    def to_dict(self) -> dict:
        """Convert item to its stored representation."""
        return {
            'quantity': self._quantity,
            'tags': list(self._tags),
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'Item':
        """
        Reconstruct an item from its stored representation.

        Stored items are read strictly. Raises ValueError if data is invalid.
        """
        if not isinstance(data, dict):
            raise ValueError("Item must be an object")

        if 'quantity' not in data:
            raise ValueError("Item missing quantity field")

        quantity = data['quantity']
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 0:
            raise ValueError(f"Item quantity must be a non-negative integer, got {quantity!r}")

        tags = data.get('tags', [])
        if not isinstance(tags, list) or not all(isinstance(t, str) for t in tags):
            raise ValueError("Item tags must be a list of strings")

        return cls(quantity, tags)

    def __eq__(self, other) -> bool:
        if not isinstance(other, Item):
            return NotImplemented
        return self._quantity == other._quantity and self._tags == other._tags

    def __hash__(self) -> int:
        return hash((self._quantity, self._tags))

    def __repr__(self) -> str:
        return f"Item(quantity={self._quantity}, tags={list(self._tags)})"
