"""
Canonical encoding for deterministic hashing.

Ensures the same snapshot always produces the same bytes.
"""

import json
from typing import Any


def canonical_json_str(obj: Any) -> str:
    """
    Encode an object to canonical JSON text.

    Rules:
    - Keys kept in mapping order (item order is part of the snapshot)
    - No whitespace
    - Non-ASCII characters kept verbatim
    - NaN and infinities rejected
    - No trailing newline

    Same input always produces same output.
    """
    return json.dumps(
        obj,
        separators=(',', ':'),
        ensure_ascii=False,
        allow_nan=False,
    )
