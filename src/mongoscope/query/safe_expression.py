"""
Safe expression evaluator for client-supplied query text.

Turns MongoDB shell-style text into a structured BSON value without ever
evaluating it as code. The accepted grammar is closed:

    value       := object | array | string | number | regex | call
                 | "true" | "false" | "null"
    object      := "{" [ key ":" value ("," key ":" value)* [","] ] "}"
    array       := "[" [ value ("," value)* [","] ] "]"
    key         := string | identifier
    call        := ["new"] constructor "(" [ value ("," value)* ] ")"
    regex       := "/" pattern "/" flags

Strings may use single or double quotes. Constructors are limited to the
shell helpers listed in ``_CONSTRUCTORS``; any other identifier is rejected.
Operators that ship JavaScript to the server ($where, $function,
$accumulator) are rejected wherever they appear.

Example:
    >>> evaluate_safe_expression('{age: {$gt: 30}, _id: ObjectId("5f1d7c0e9b1e8a3c4d5e6f70")}')
    {'age': {'$gt': 30}, '_id': ObjectId('5f1d7c0e9b1e8a3c4d5e6f70')}
    >>> evaluate_safe_expression("{invalid") is None
    True
"""

from __future__ import annotations

import base64
import logging
import re
import uuid
from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any, Callable

from bson import Binary, Decimal128, Int64, MaxKey, MinKey, ObjectId, Timestamp
from bson.errors import InvalidId
from bson.regex import Regex

logger = logging.getLogger("mongoscope.query.safe_expression")

MAX_DEPTH = 64

FORBIDDEN_OPERATORS = frozenset({"$where", "$function", "$accumulator"})

_INT64_MIN = -(2**63)
_INT64_MAX = 2**63 - 1

_NUMBER_RE = re.compile(r"-?(?:0|[1-9]\d*)(?:\.\d+)?(?:[eE][+-]?\d+)?")
_IDENT_RE = re.compile(r"[A-Za-z_$][\w$]*")
_REGEX_FLAGS = frozenset("imsxu")

_ESCAPES = {
    '"': '"',
    "'": "'",
    "\\": "\\",
    "/": "/",
    "b": "\b",
    "f": "\f",
    "n": "\n",
    "r": "\r",
    "t": "\t",
}


class ExpressionSyntaxError(ValueError):
    """Raised internally when the text falls outside the grammar."""


def _parse_datetime(args: list[Any]) -> datetime:
    if not args:
        return datetime.now(timezone.utc)
    (value,) = args
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
    if isinstance(value, str):
        parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return parsed
    raise ExpressionSyntaxError("Date expects an ISO string or epoch milliseconds")


def _parse_object_id(args: list[Any]) -> ObjectId:
    if not args:
        return ObjectId()
    (value,) = args
    if not isinstance(value, str):
        raise ExpressionSyntaxError("ObjectId expects a hex string")
    return ObjectId(value)


def _parse_int32(args: list[Any]) -> int:
    (value,) = args
    number = int(value)
    if not -(2**31) <= number < 2**31:
        raise ExpressionSyntaxError("NumberInt out of range")
    return number


def _parse_int64(args: list[Any]) -> Int64:
    (value,) = args
    number = int(value)
    if not _INT64_MIN <= number <= _INT64_MAX:
        raise ExpressionSyntaxError("NumberLong out of range")
    return Int64(number)


def _parse_decimal(args: list[Any]) -> Decimal128:
    (value,) = args
    return Decimal128(str(value))


def _parse_uuid(args: list[Any]) -> Binary:
    (value,) = args
    return Binary(uuid.UUID(str(value)).bytes, 4)


def _parse_bindata(args: list[Any]) -> Binary:
    subtype, payload = args
    if not isinstance(subtype, int) or not isinstance(payload, str):
        raise ExpressionSyntaxError("BinData expects (subtype, base64)")
    return Binary(base64.b64decode(payload, validate=True), subtype)


def _parse_timestamp(args: list[Any]) -> Timestamp:
    seconds, increment = args
    return Timestamp(int(seconds), int(increment))


def _parse_regexp(args: list[Any]) -> Regex:
    if len(args) == 1:
        (pattern,) = args
        flags = ""
    else:
        pattern, flags = args
    if isinstance(pattern, Regex):
        return pattern
    if not isinstance(pattern, str) or not isinstance(flags, str):
        raise ExpressionSyntaxError("RegExp expects (pattern, flags)")
    if set(flags) - _REGEX_FLAGS:
        raise ExpressionSyntaxError(f"Unsupported regex flags: {flags}")
    return Regex(pattern, flags)


def _no_args(factory: Callable[[], Any]) -> Callable[[list[Any]], Any]:
    def build(args: list[Any]) -> Any:
        if args:
            raise ExpressionSyntaxError("constructor takes no arguments")
        return factory()

    return build


_CONSTRUCTORS: dict[str, Callable[[list[Any]], Any]] = {
    "ObjectId": _parse_object_id,
    "ISODate": _parse_datetime,
    "Date": _parse_datetime,
    "NumberInt": _parse_int32,
    "NumberLong": _parse_int64,
    "NumberDecimal": _parse_decimal,
    "UUID": _parse_uuid,
    "BinData": _parse_bindata,
    "Timestamp": _parse_timestamp,
    "RegExp": _parse_regexp,
    "MinKey": _no_args(MinKey),
    "MaxKey": _no_args(MaxKey),
}


class _Parser:
    """Recursive-descent parser over a single expression string."""

    def __init__(self, text: str):
        self.text = text
        self.pos = 0

    def parse(self) -> Any:
        value = self._value(depth=0)
        self._skip_ws()
        if self.pos != len(self.text):
            raise ExpressionSyntaxError(f"Unexpected trailing input at {self.pos}")
        return value

    # Lexing helpers

    def _skip_ws(self) -> None:
        while self.pos < len(self.text) and self.text[self.pos].isspace():
            self.pos += 1

    def _peek(self) -> str:
        self._skip_ws()
        if self.pos >= len(self.text):
            raise ExpressionSyntaxError("Unexpected end of input")
        return self.text[self.pos]

    def _expect(self, char: str) -> None:
        if self._peek() != char:
            raise ExpressionSyntaxError(f"Expected {char!r} at {self.pos}")
        self.pos += 1

    def _identifier(self) -> str:
        self._skip_ws()
        match = _IDENT_RE.match(self.text, self.pos)
        if not match:
            raise ExpressionSyntaxError(f"Expected identifier at {self.pos}")
        self.pos = match.end()
        return match.group()

    # Grammar

    def _value(self, depth: int) -> Any:
        if depth > MAX_DEPTH:
            raise ExpressionSyntaxError("Expression nested too deeply")
        char = self._peek()
        if char == "{":
            return self._object(depth)
        if char == "[":
            return self._array(depth)
        if char in "\"'":
            return self._string()
        if char == "/":
            return self._regex()
        if char == "-" or char.isdigit():
            return self._number()
        return self._word(depth)

    def _object(self, depth: int) -> dict[str, Any]:
        self._expect("{")
        result: dict[str, Any] = {}
        while self._peek() != "}":
            key = self._string() if self._peek() in "\"'" else self._identifier()
            if key in FORBIDDEN_OPERATORS:
                raise ExpressionSyntaxError(f"Operator {key} is not allowed")
            self._expect(":")
            result[key] = self._value(depth + 1)
            if self._peek() == ",":
                self.pos += 1
            elif self._peek() != "}":
                raise ExpressionSyntaxError(f"Expected ',' or '}}' at {self.pos}")
        self.pos += 1
        return result

    def _array(self, depth: int) -> list[Any]:
        self._expect("[")
        items: list[Any] = []
        while self._peek() != "]":
            items.append(self._value(depth + 1))
            if self._peek() == ",":
                self.pos += 1
            elif self._peek() != "]":
                raise ExpressionSyntaxError(f"Expected ',' or ']' at {self.pos}")
        self.pos += 1
        return items

    def _string(self) -> str:
        quote = self._peek()
        self.pos += 1
        chars: list[str] = []
        while True:
            if self.pos >= len(self.text):
                raise ExpressionSyntaxError("Unterminated string")
            char = self.text[self.pos]
            self.pos += 1
            if char == quote:
                return "".join(chars)
            if char == "\\":
                if self.pos >= len(self.text):
                    raise ExpressionSyntaxError("Unterminated escape")
                escape = self.text[self.pos]
                self.pos += 1
                if escape == "u":
                    digits = self.text[self.pos : self.pos + 4]
                    if len(digits) != 4:
                        raise ExpressionSyntaxError("Truncated unicode escape")
                    chars.append(chr(int(digits, 16)))
                    self.pos += 4
                elif escape in _ESCAPES:
                    chars.append(_ESCAPES[escape])
                else:
                    raise ExpressionSyntaxError(f"Invalid escape \\{escape}")
            elif char == "\n":
                raise ExpressionSyntaxError("Newline in string")
            else:
                chars.append(char)

    def _number(self) -> int | float:
        self._skip_ws()
        match = _NUMBER_RE.match(self.text, self.pos)
        if not match:
            raise ExpressionSyntaxError(f"Invalid number at {self.pos}")
        self.pos = match.end()
        literal = match.group()
        if any(c in literal for c in ".eE"):
            return float(literal)
        number = int(literal)
        if not _INT64_MIN <= number <= _INT64_MAX:
            return float(number)
        return number

    def _regex(self) -> Regex:
        self._expect("/")
        start = self.pos
        in_class = False
        while True:
            if self.pos >= len(self.text):
                raise ExpressionSyntaxError("Unterminated regex literal")
            char = self.text[self.pos]
            if char == "\\":
                self.pos += 2
                continue
            if char == "[":
                in_class = True
            elif char == "]":
                in_class = False
            elif char == "/" and not in_class:
                break
            elif char == "\n":
                raise ExpressionSyntaxError("Newline in regex literal")
            self.pos += 1
        pattern = self.text[start : self.pos]
        self.pos += 1
        flags_start = self.pos
        while self.pos < len(self.text) and self.text[self.pos].isalpha():
            self.pos += 1
        flags = self.text[flags_start : self.pos]
        if not pattern or set(flags) - _REGEX_FLAGS:
            raise ExpressionSyntaxError("Invalid regex literal")
        return Regex(pattern, flags)

    def _word(self, depth: int) -> Any:
        word = self._identifier()
        if word == "true":
            return True
        if word == "false":
            return False
        if word == "null":
            return None
        if word == "new":
            word = self._identifier()
        constructor = _CONSTRUCTORS.get(word)
        if constructor is None:
            raise ExpressionSyntaxError(f"Unknown identifier {word!r}")
        self._expect("(")
        args: list[Any] = []
        while self._peek() != ")":
            args.append(self._value(depth + 1))
            if self._peek() == ",":
                self.pos += 1
            elif self._peek() != ")":
                raise ExpressionSyntaxError(f"Expected ',' or ')' at {self.pos}")
        self.pos += 1
        return constructor(args)


def find_forbidden_operator(value: Any) -> str | None:
    """
    Return the first operator in ``value`` that would run JavaScript on the server.

    Walks nested documents and arrays; values built outside the parser (simple
    filter keys, Extended JSON literals) go through here too.
    """
    if isinstance(value, Mapping):
        for key, item in value.items():
            if key in FORBIDDEN_OPERATORS:
                return key
            found = find_forbidden_operator(item)
            if found is not None:
                return found
    elif isinstance(value, (list, tuple)):
        for item in value:
            found = find_forbidden_operator(item)
            if found is not None:
                return found
    return None


def evaluate_safe_expression(text: str) -> Any | None:
    """
    Parse client-supplied expression text into a structured value.

    Args:
        text: Shell-style query, projection or pipeline text

    Returns:
        The parsed value (usually a dict or a list of stages), or None when the
        text is empty, outside the grammar, or uses a forbidden operator
    """
    if not text or not text.strip():
        return None
    try:
        return _Parser(text).parse()
    except (InvalidId, ValueError, TypeError, ArithmeticError, OSError) as e:
        logger.debug(f"[SAFE_EXPR] Rejected expression: {e}")
        return None
