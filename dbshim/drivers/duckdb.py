"""DuckDB driver implementation."""

from typing import Any, Dict, List, Optional, Tuple
import duckdb
import logging

from ..errors import DriverError
from ..sql.dialect import detect_dialect
from ..sql.placeholders import count_placeholders
from .base import Driver, DriverConnection, DriverCursor, DriverPreparedStatement

logger = logging.getLogger(__name__)


def _wrap_error(action: str, error: duckdb.Error) -> DriverError:
    """Translate a DuckDB exception; DuckDB reports no numeric codes."""
    return DriverError(f"{action} failed: {error}")


class DuckDBCursor(DriverCursor):
    """Cursor over a fully fetched DuckDB result."""

    def __init__(self, description, rows: List[Tuple[Any, ...]]):
        self._columns = self._extract_column_names(description)
        self._rows = iter(rows)

    def columns(self) -> List[str]:
        return list(self._columns)

    def next(self) -> Optional[Tuple[Any, ...]]:
        return next(self._rows, None)

    def close(self) -> None:
        self._rows = iter(())

    def _extract_column_names(self, description) -> List[str]:
        """Extract column names from cursor description."""
        columns = []
        for desc in description or []:
            columns.append(desc[0])
        return columns


class DuckDBPreparedStatement(DriverPreparedStatement):
    """Parameterized DuckDB statement.

    DuckDB caches the prepared plan per connection, so the handle only keeps
    the SQL and the bound values.
    """

    def __init__(self, connection: "DuckDBConnection", sql: str):
        self._connection = connection
        self.sql = sql
        self._params: List[Optional[str]] = [None] * count_placeholders(sql)
        self._closed = False

    def bind_at(self, position: int, value: str) -> None:
        if position < 1 or position > len(self._params):
            raise DriverError(
                f"Parameter position {position} out of range 1..{len(self._params)}"
            )
        self._params[position - 1] = value

    def execute_update(self) -> int:
        self._check_open()
        return self._connection.run(self.sql, self._params)

    def execute_query(self) -> DriverCursor:
        self._check_open()
        return self._connection.fetch(self.sql, self._params)

    def close(self) -> None:
        self._closed = True
        self._params = []

    def _check_open(self) -> None:
        if self._closed:
            raise DriverError("Prepared statement is closed")


class DuckDBConnection(DriverConnection):
    """Live DuckDB connection.

    With autocommit off a transaction is opened explicitly and re-opened
    after every commit or rollback.
    """

    def __init__(self, native: duckdb.DuckDBPyConnection, autocommit: bool):
        super().__init__(autocommit, detect_dialect(type(native).__module__))
        self.native = native
        self._in_transaction = False
        if not autocommit:
            self._begin()

    def execute(self, sql: str) -> int:
        return self.run(sql, None)

    def query(self, sql: str) -> DriverCursor:
        return self.fetch(sql, None)

    def prepare(self, sql: str) -> DriverPreparedStatement:
        return DuckDBPreparedStatement(self, sql)

    def run(self, sql: str, params: Optional[List[Optional[str]]]) -> int:
        """Execute a statement and return its affected row count."""
        try:
            self._execute(sql, params)
            return self._affected_rows()
        except duckdb.Error as e:
            raise _wrap_error("Statement", e) from e

    def fetch(self, sql: str, params: Optional[List[Optional[str]]]) -> DriverCursor:
        """Execute a query and fetch all of its rows."""
        try:
            self._execute(sql, params)
            description = self.native.description
            rows = self.native.fetchall()
            return DuckDBCursor(description, rows)
        except duckdb.Error as e:
            raise _wrap_error("Query", e) from e

    def commit(self) -> None:
        if not self._in_transaction:
            return
        try:
            self.native.commit()
            self._in_transaction = False
        except duckdb.Error as e:
            raise _wrap_error("Commit", e) from e
        self._begin()

    def rollback(self) -> None:
        if not self._in_transaction:
            return
        try:
            self.native.rollback()
            self._in_transaction = False
        except duckdb.Error as e:
            raise _wrap_error("Rollback", e) from e
        self._begin()

    def close(self) -> None:
        try:
            self.native.close()
        except duckdb.Error as e:
            raise _wrap_error("Close", e) from e

    def _execute(self, sql: str, params: Optional[List[Optional[str]]]) -> None:
        logger.debug(f"Executing on DuckDB: {sql[:100]}")
        if not params:
            self.native.execute(sql)
        else:
            self.native.execute(sql, params)

    def _affected_rows(self) -> int:
        """DML in DuckDB yields a single ``Count`` column."""
        description = self.native.description
        if not description or description[0][0] != "Count":
            return 0
        row = self.native.fetchone()
        if row is None:
            return 0
        return int(row[0])

    def _begin(self) -> None:
        if self.autocommit:
            return
        try:
            self.native.begin()
            self._in_transaction = True
        except duckdb.Error as e:
            raise _wrap_error("Begin transaction", e) from e


class DuckDBDriver(Driver):
    """DuckDB driver.

    Params:
        - path: Path to DuckDB database file (or :memory: for in-memory)
        - read_only: Whether to open in read-only mode (default: False)
    """

    name = "duckdb"

    def connect(self, params: Dict[str, Any], autocommit: bool) -> DriverConnection:
        path = params.get("path", ":memory:")
        read_only = params.get("read_only", False)
        logger.info(f"Connecting to DuckDB at '{path}'")
        try:
            native = duckdb.connect(path, read_only=read_only)
        except duckdb.Error as e:
            logger.error(f"Failed to connect to DuckDB at '{path}': {e}")
            raise _wrap_error("DuckDB connection", e) from e
        return DuckDBConnection(native, autocommit)

    def describe(self, params: Dict[str, Any]) -> str:
        return f"duckdb:{params.get('path', ':memory:')}"
