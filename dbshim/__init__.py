"""Relational database access shim with a prepared statement registry."""

from .connection import Connection, QueryResult, open_connection
from .errors import DbShimError, DriverError, RowLockedError
from .sql import Dialect, SQLBuilder, ValueMode
from .statements import PreparedStatement, PreparedStatementTemplate, ReturnType

__version__ = "0.1.0"

__all__ = [
    "Connection",
    "QueryResult",
    "open_connection",
    "DbShimError",
    "DriverError",
    "RowLockedError",
    "Dialect",
    "SQLBuilder",
    "ValueMode",
    "PreparedStatement",
    "PreparedStatementTemplate",
    "ReturnType",
]
