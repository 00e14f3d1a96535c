"""SQL text generation."""

from .builder import SQLBuilder, ValueMode, ordered_columns
from .dialect import Dialect, DialectProfile, detect_dialect
from .encoder import NULL_MARKER, PLACEHOLDER, encode_value, encode_values, is_number
from .placeholders import count_placeholders, replace_placeholders

__all__ = [
    "SQLBuilder",
    "ValueMode",
    "ordered_columns",
    "Dialect",
    "DialectProfile",
    "detect_dialect",
    "NULL_MARKER",
    "PLACEHOLDER",
    "encode_value",
    "encode_values",
    "is_number",
    "count_placeholders",
    "replace_placeholders",
]
