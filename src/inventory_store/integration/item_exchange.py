"""
Bulk import/export of item maps.

The boundary with external editors: plain {name: {quantity, tags}} data
in, validated Items out, and back again.
"""

import json
from typing import Any, Dict

from ..errors import SchemaViolationError
from ..model.item import Item, normalize_quantity
from ..model.snapshot import Snapshot


ITEM_FIELDS = ('quantity', 'tags')


def validate_items(data: Any) -> Dict[str, Item]:
    """
    Validate externally supplied item data.

    The data must be a mapping of non-empty names to objects with exactly
    the fields quantity (a number) and tags (a list of strings). Valid
    quantities are then normalized: anything that is not a non-negative
    integer becomes 1.

    Returns a new name -> Item dict in the input's order.
    Raises SchemaViolationError describing the first problem found.
    """
    if not isinstance(data, dict):
        raise SchemaViolationError(
            f"items must be an object mapping names to items, got {type(data).__name__}"
        )

    items = {}

    for name, raw in data.items():
        if not isinstance(name, str) or not name.strip():
            raise SchemaViolationError(f"item names must be non-empty strings, got {name!r}")

        if not isinstance(raw, dict):
            raise SchemaViolationError(f"item {name!r} must be an object, got {type(raw).__name__}")

        for field in ITEM_FIELDS:
            if field not in raw:
                raise SchemaViolationError(f"item {name!r} is missing field {field!r}")

        extra = sorted(set(raw) - set(ITEM_FIELDS))
        if extra:
            raise SchemaViolationError(f"item {name!r} has unexpected fields: {', '.join(map(str, extra))}")

        quantity = raw['quantity']
        if isinstance(quantity, bool) or not isinstance(quantity, (int, float)):
            raise SchemaViolationError(
                f"item {name!r}: quantity must be a number, got {type(quantity).__name__}"
            )

        tags = raw['tags']
        if not isinstance(tags, list):
            raise SchemaViolationError(
                f"item {name!r}: tags must be a list of strings, got {type(tags).__name__}"
            )
        for tag in tags:
            if not isinstance(tag, str):
                raise SchemaViolationError(f"item {name!r}: tag {tag!r} is not a string")

        items[name] = Item(normalize_quantity(quantity), tags)

    return items


def load_items_json(text: str) -> Any:
    """
    Decode JSON item data without validating it.

    Raises SchemaViolationError if the text is not JSON.
    """
    try:
        return json.loads(text)
    except (TypeError, ValueError) as e:
        raise SchemaViolationError("items are not valid JSON", e)


def parse_items_json(text: str) -> Dict[str, Item]:
    """
    Parse and validate JSON item data.

    Raises SchemaViolationError if the text is not JSON or fails validation.
    """
    return validate_items(load_items_json(text))


def export_items(snapshot: Snapshot) -> Dict[str, dict]:
    """
    Export a snapshot's items as plain data.

    Returns a fresh dict, safe for the caller to modify.
    """
    return {name: item.to_dict() for name, item in snapshot.items.items()}


def dump_items_json(snapshot: Snapshot, indent: int = 2) -> str:
    """Export a snapshot's items as JSON text for editing."""
    return json.dumps(export_items(snapshot), indent=indent, ensure_ascii=False)
