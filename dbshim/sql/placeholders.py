"""Positional placeholder scanning that ignores quoted string literals."""

from typing import List, Tuple

from .encoder import PLACEHOLDER


def split_literals(sql: str) -> List[Tuple[str, bool]]:
    """Split SQL text into (segment, is_quoted_literal) pairs.

    A quote with no closing partner does not open a literal; the rest of the
    text is returned as unquoted.
    """
    segments: List[Tuple[str, bool]] = []
    pos = 0
    while True:
        start = sql.find("'", pos)
        if start < 0:
            break
        end = sql.find("'", start + 1)
        if end < 0:
            break
        segments.append((sql[pos:start], False))
        segments.append((sql[start:end + 1], True))
        pos = end + 1
    segments.append((sql[pos:], False))
    return segments


def count_placeholders(sql: str) -> int:
    """Count ``?`` placeholders outside single-quoted literals."""
    count = 0
    for segment, quoted in split_literals(sql):
        if not quoted:
            count += segment.count(PLACEHOLDER)
    return count


def replace_placeholders(sql: str, marker: str) -> str:
    """Replace every unquoted ``?`` placeholder with a driver's marker."""
    parts = []
    for segment, quoted in split_literals(sql):
        if quoted:
            parts.append(segment)
        else:
            parts.append(segment.replace(PLACEHOLDER, marker))
    return "".join(parts)
