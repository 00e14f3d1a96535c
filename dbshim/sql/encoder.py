"""Rendering of caller-supplied string values as SQL literals."""

import re
from typing import Dict, Mapping

NULL_MARKER = "null"
PLACEHOLDER = "?"

_NUMBER_PATTERN = re.compile(r"[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?")


def is_number(value: str) -> bool:
    """Return True if value is a plain decimal number literal."""
    return _NUMBER_PATTERN.fullmatch(value) is not None


def quote(value: str) -> str:
    """Wrap value in single quotes, doubling any embedded quote."""
    escaped = value.replace("'", "''")
    return f"'{escaped}'"


def encode_value(value: str) -> str:
    """Return the literal to embed in SQL for a raw string value.

    Null and placeholder markers (bare or already quoted) are emitted
    unquoted, as are numbers, so that drivers can coerce them to numeric
    columns. Everything else becomes a quoted string literal.

    Args:
        value: Raw value as supplied by the caller

    Returns:
        SQL literal text
    """
    if value == NULL_MARKER or value == "'null'":
        return NULL_MARKER
    if value == PLACEHOLDER or value == "'?'":
        return PLACEHOLDER
    if is_number(value):
        return value
    return quote(value)


def encode_values(columns: Mapping[str, str]) -> Dict[str, str]:
    """Encode every value of a column map."""
    encoded = {}
    for name, value in columns.items():
        encoded[name] = encode_value(value)
    return encoded
