"""
Type coercion for simple key/value filters.

The browse form sends a field name, a raw string value and a one-letter type
tag. Each tag maps to exactly one converter:

    J -> Extended JSON document or value
    N -> number
    O -> ObjectId (exactly 24 hex characters)
    R -> case-insensitive regular expression
    U -> UUID-like hex string as Binary subtype 4
    S -> string, unchanged
"""

from __future__ import annotations

import math
import re
from enum import Enum
from typing import Any, Callable

from bson import Binary, ObjectId
from bson import json_util
from bson.errors import BSONError

from ..errors import (
    InvalidBinary,
    InvalidIdentifier,
    InvalidLiteral,
    InvalidPattern,
    UnsupportedType,
)

UUID_SUBTYPE = 4

_OBJECT_ID_RE = re.compile(r"[0-9a-fA-F]{24}")
_HEX_RE = re.compile(r"[0-9a-fA-F]+")


class ValueType(str, Enum):
    """Type tag sent alongside a simple filter value."""

    JSON = "J"
    NUMBER = "N"
    OBJECT_ID = "O"
    REGEX = "R"
    UUID = "U"
    STRING = "S"

    @classmethod
    def parse(cls, tag: str | None) -> "ValueType":
        """Resolve a case-insensitive tag, rejecting anything outside the set."""
        normalized = (tag or "").strip().upper()
        try:
            return cls(normalized)
        except ValueError:
            raise UnsupportedType(f"Invalid query type: {tag or '(none)'}") from None


def _to_json(raw: str) -> Any:
    try:
        return json_util.loads(raw)
    except (ValueError, TypeError, ArithmeticError, RecursionError, BSONError) as e:
        raise InvalidLiteral(f"Value is not valid JSON: {e}") from None


def _to_number(raw: str) -> int | float:
    text = raw.strip()
    if "_" in text:
        raise InvalidLiteral(f'Value "{raw}" is not a number')
    try:
        return int(text)
    except ValueError:
        pass
    try:
        number = float(text)
    except ValueError:
        raise InvalidLiteral(f'Value "{raw}" is not a number') from None
    if math.isnan(number) or math.isinf(number):
        raise InvalidLiteral(f'Value "{raw}" is not a finite number')
    return number


def _to_object_id(raw: str) -> ObjectId:
    if not _OBJECT_ID_RE.fullmatch(raw):
        raise InvalidIdentifier("ObjectIDs must be 24 hex characters long!")
    return ObjectId(raw)


def _to_regex(raw: str) -> re.Pattern[str]:
    try:
        return re.compile(raw, re.IGNORECASE)
    except re.error as e:
        raise InvalidPattern(f"Invalid regular expression: {e}") from None


def _to_binary(raw: str) -> Binary:
    digits = raw.replace("-", "")
    # bytes.fromhex tolerates whitespace between pairs; only bare hex is valid here
    if not _HEX_RE.fullmatch(digits) or len(digits) % 2:
        raise InvalidBinary(f'Value "{raw}" is not an even-length hex string')
    return Binary(bytes.fromhex(digits), UUID_SUBTYPE)


def _to_string(raw: str) -> str:
    return raw


_CONVERTERS: dict[ValueType, Callable[[str], Any]] = {
    ValueType.JSON: _to_json,
    ValueType.NUMBER: _to_number,
    ValueType.OBJECT_ID: _to_object_id,
    ValueType.REGEX: _to_regex,
    ValueType.UUID: _to_binary,
    ValueType.STRING: _to_string,
}


def coerce_value(tag: str | ValueType | None, raw: str) -> Any:
    """
    Convert a raw request value according to its type tag.

    Args:
        tag: One of J, N, O, R, U, S (case-insensitive)
        raw: Value exactly as received

    Returns:
        The typed value to place in a filter document

    Raises:
        UnsupportedType: tag is missing or unknown
        InvalidLiteral, InvalidIdentifier, InvalidPattern, InvalidBinary:
            raw cannot be converted for the given tag
    """
    value_type = tag if isinstance(tag, ValueType) else ValueType.parse(tag)
    return _CONVERTERS[value_type](raw)
