"""
Rough size estimates and human-readable byte counts.
"""

from __future__ import annotations

import math
import re
from collections.abc import Mapping
from datetime import datetime
from typing import Any

from bson import Decimal128, ObjectId, json_util
from bson.regex import Regex

_UNITS = ["KB", "MB", "GB", "TB"]


def estimate_byte_size(value: Any) -> int:
    """
    Estimate the in-memory footprint of a BSON value.

    This is a cheap heuristic, not the encoded BSON size: strings count two
    bytes per character, scalars a fixed width, and every container entry
    eight bytes of overhead. A container reachable twice is counted once.
    """
    seen: set[int] = set()

    def recurse(item: Any) -> int:
        if item is None:
            return 0
        if isinstance(item, bool):
            return 4
        if isinstance(item, str):
            return len(item) * 2
        if isinstance(item, (int, float, Decimal128, datetime)):
            return 8
        if isinstance(item, ObjectId):
            return 12
        if isinstance(item, (bytes, bytearray)):
            return len(item)
        if isinstance(item, Regex):
            return len(item.pattern) * 2
        if isinstance(item, re.Pattern):
            return len(item.pattern) * 2
        to_dict = getattr(item, "to_dict", None)
        if callable(to_dict):
            return recurse(to_dict())
        if isinstance(item, (Mapping, list, tuple)):
            if id(item) in seen:
                return 0
            seen.add(id(item))
            values = item.values() if isinstance(item, Mapping) else item
            return sum(8 + recurse(v) for v in values)
        return len(str(item)) * 2

    return recurse(value)


def human_readable_size(num_bytes: int) -> str:
    """
    Format a byte count with two decimals at most.

    Example:
        >>> human_readable_size(512)
        '512 Bytes'
        >>> human_readable_size(1536)
        '1.5 KB'
    """
    num_bytes = int(num_bytes)
    if num_bytes < 1024:
        return f"{num_bytes} Bytes"
    power = 1
    while power < len(_UNITS) and num_bytes >= 1024 ** (power + 1):
        power += 1
    scaled = math.floor(num_bytes / 1024**power * 100 + 0.5) / 100
    return f"{scaled:g} {_UNITS[power - 1]}"


def serialize_value(value: Any) -> str:
    """Serialize a value as relaxed Extended JSON (the export/preview format)."""
    return json_util.dumps(value, json_options=json_util.RELAXED_JSON_OPTIONS)
