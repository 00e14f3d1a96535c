"""Connections, the prepared statement registry and query results."""

from .connection import Connection
from .factory import open_connection
from .result import QueryResult, read_cursor

__all__ = [
    "Connection",
    "QueryResult",
    "open_connection",
    "read_cursor",
]
