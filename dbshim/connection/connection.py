"""Connection wrapper owning the prepared statement registry.

A ``Connection`` remembers everything needed to rebuild its session: the
driver, the connect parameters, the autocommit flag, the session date
format and every prepared statement registered by name. ``reconnect()``
replays all of it on a fresh driver connection, so callers keep executing
statements by name across a lost connection.
"""

from typing import Any, Dict, Iterable, List, Mapping, Optional

from ..drivers.base import Driver, DriverConnection
from ..errors import (
    DriverError,
    InvalidArgumentError,
    RowLockedError,
    UnknownStatementError,
)
from ..sql.builder import SQLBuilder, ValueMode
from ..sql.dialect import Dialect
from ..statements.prepared import PreparedStatement
from ..statements.template import PreparedStatementTemplate, ReturnType
from ..utils.logging import get_contextual_logger
from .result import QueryResult, read_cursor


def _value_mode(encode: bool) -> ValueMode:
    if encode:
        return ValueMode.ENCODE
    return ValueMode.RAW


class Connection:
    """One logical database connection and its prepared statements."""

    def __init__(
        self,
        driver: Driver,
        params: Optional[Dict[str, Any]] = None,
        autocommit: bool = False,
        dialect: Optional[Dialect] = None,
        name: str = "default",
    ):
        """Initialize connection; nothing is opened until ``connect()``.

        Args:
            driver: Driver used to open the underlying connection
            params: Driver-specific connect parameters, kept for reconnects
            autocommit: Commit every statement as its own transaction
            dialect: Force a dialect instead of detecting it from the driver
            name: Name used to tag log records
        """
        if driver is None:
            raise InvalidArgumentError("driver must not be None")
        self.driver = driver
        self.params: Dict[str, Any] = dict(params or {})
        self.autocommit = autocommit
        self.name = name
        self._configured_dialect = dialect
        self.dialect = dialect or Dialect.GENERIC
        self.builder = SQLBuilder(self.dialect)
        self.uncommitted_rows = 0
        self.date_format: Optional[str] = None
        self._handle: Optional[DriverConnection] = None
        self._statements: Dict[str, PreparedStatement] = {}
        self._last_sql: Optional[str] = None
        self.logger = get_contextual_logger(__name__, {"connection": name})

    # Lifecycle

    def connect(self) -> None:
        """Open the driver connection with the remembered parameters.

        Raises:
            DriverError: If the driver cannot connect
        """
        if self._handle is not None:
            return
        self._open()

    @property
    def is_connected(self) -> bool:
        return self._handle is not None

    def reconnect(self) -> None:
        """Replace the driver connection and restore the session.

        The old connection is released best-effort, a new one is opened,
        every registered statement is prepared on it and a remembered date
        format is reapplied. There is no retry: on failure the connection
        is left closed and the error propagates.

        Raises:
            DriverError: If any step against the new connection fails
        """
        self.logger.info(f"Reconnecting to {self.driver.describe(self.params)}")
        self._release()
        try:
            self._open()
            self.reinstate_prepared_statements()
            if self.date_format is not None:
                self._apply_date_format(self.date_format)
        except DriverError as e:
            self.logger.error(f"Reconnect failed: {e}")
            self._release()
            raise

    def close(self) -> None:
        """Close every prepared statement, then the driver connection.

        Cleanup failures are logged and otherwise ignored. Registered
        statements stay known, so a later ``reconnect()`` restores them.
        """
        self._release()
        self.logger.info("Connection closed")

    def _open(self) -> None:
        description = self.driver.describe(self.params)
        self.logger.info(f"Opening connection to {description}")
        try:
            handle = self.driver.connect(self.params, self.autocommit)
        except DriverError as e:
            self.logger.error(f"Failed to connect to {description}: {e}")
            raise
        self._handle = handle
        if self._configured_dialect is None:
            self.dialect = handle.dialect
        self.builder = SQLBuilder(self.dialect)
        self.logger.info(f"Connected to {description} (dialect={self.dialect.value})")

    def _release(self) -> None:
        """Best-effort close of statement handles and the connection."""
        self.close_prepared_statements()
        handle = self._handle
        self._handle = None
        if handle is None:
            return
        try:
            handle.close()
        except DriverError as e:
            self.logger.warning(f"Ignoring failure while closing connection: {e}")

    def _require_handle(self) -> DriverConnection:
        if self._handle is None:
            raise InvalidArgumentError(f"Connection {self.name} is not open")
        return self._handle

    # Session state

    def set_date_format(self, date_format: str) -> None:
        """Set the session's default date format and remember it.

        Raises:
            DialectFeatureError: If the dialect has no date format directive
        """
        if not date_format:
            raise InvalidArgumentError("date format must not be empty")
        self._apply_date_format(date_format)
        self.date_format = date_format

    def _apply_date_format(self, date_format: str) -> None:
        sql = self.builder.build_date_format(date_format)
        self._run_update(sql, "Set date format")

    @property
    def last_sql(self) -> Optional[str]:
        """SQL text of the most recent statement sent to the driver."""
        return self._last_sql

    # Ad-hoc statements

    def select(
        self,
        table: str,
        select_cols: Iterable[str],
        where_cols: Optional[Mapping[str, str]] = None,
        encode: bool = True,
        return_type: ReturnType = ReturnType.COLUMNS,
    ) -> QueryResult:
        """Run a SELECT built from column names and WHERE pairs.

        Args:
            table: Table to read
            select_cols: Columns to return
            where_cols: Column/value pairs that must all match
            encode: Encode WHERE values; False means they are SQL literals
            return_type: Shape tag for the result

        Returns:
            Matching rows
        """
        sql = self.builder.build_select(table, select_cols, where_cols, _value_mode(encode))
        return self._run_query(sql, "Select", return_type)

    def insert(self, table: str, columns: Mapping[str, str], encode: bool = True) -> int:
        """Insert one row and return the number of rows inserted."""
        sql = self.builder.build_insert(table, columns, _value_mode(encode))
        return self._count(self._run_update(sql, "Insert"))

    def update(
        self,
        table: str,
        set_cols: Mapping[str, str],
        where_cols: Mapping[str, str],
        encode: bool = True,
    ) -> int:
        """Update the qualified rows and return how many changed."""
        sql = self.builder.build_update(table, set_cols, where_cols, _value_mode(encode))
        return self._count(self._run_update(sql, "Update"))

    def delete(
        self,
        table: str,
        where_cols: Optional[Mapping[str, str]] = None,
        encode: bool = True,
    ) -> int:
        """Delete the qualified rows (all rows without qualifiers)."""
        sql = self.builder.build_delete(table, where_cols, _value_mode(encode))
        return self._count(self._run_update(sql, "Delete"))

    def lock_for_update(
        self, table: str, where_cols: Mapping[str, str], encode: bool = True
    ) -> int:
        """Lock the qualified rows until the transaction ends.

        Returns:
            Number of rows locked

        Raises:
            RowLockedError: If another session already holds the lock
            DialectFeatureError: If the dialect cannot lock rows
        """
        sql = self.builder.build_lock_for_update(table, where_cols, _value_mode(encode))
        try:
            result = self._run_query(sql, "Lock", ReturnType.COLUMNS)
        except DriverError as e:
            if self.dialect.is_lock_conflict(e.native_code):
                raise RowLockedError(
                    f"Rows of {table} are locked by another session", e.native_code
                ) from e
            raise
        return len(result)

    def execute_sql(self, sql: str) -> int:
        """Run a complete non-query statement, e.g. DDL, as given."""
        if not sql:
            raise InvalidArgumentError("SQL text must not be empty")
        return self._count(self._run_update(sql, "Statement"))

    def _run_update(self, sql: str, action: str) -> int:
        handle = self._require_handle()
        self._last_sql = sql
        self.logger.debug(f"{action}: {sql}")
        try:
            return handle.execute(sql)
        except DriverError as e:
            self.logger.error(f"{action} failed: {e}")
            raise DriverError(f"{action} failed: {e}", e.native_code) from e

    def _run_query(self, sql: str, action: str, return_type: ReturnType) -> QueryResult:
        handle = self._require_handle()
        self._last_sql = sql
        self.logger.debug(f"{action}: {sql}")
        try:
            cursor = handle.query(sql)
            return read_cursor(cursor, return_type)
        except DriverError as e:
            self.logger.error(f"{action} failed: {e}")
            raise DriverError(f"{action} failed: {e}", e.native_code) from e

    def _count(self, rows: int) -> int:
        self.uncommitted_rows += rows
        return rows

    # Prepared statement registry

    def prepare(self, template: PreparedStatementTemplate) -> PreparedStatement:
        """Register a statement from a template; existing names are kept.

        Raises:
            ParameterCountMismatchError: If the template's parameter list
                does not match its placeholders
        """
        if template is None:
            raise InvalidArgumentError("prepared statement template must not be None")
        existing = self._statements.get(template.name)
        if existing is not None:
            return existing
        return self._register(PreparedStatement.from_template(template))

    def prepare_insert(
        self, name: str, table: str, columns: Mapping[str, str]
    ) -> PreparedStatement:
        """Register an INSERT whose ``?`` values are bound at execution."""
        existing = self._statements.get(name)
        if existing is not None:
            return existing
        return self._register(
            PreparedStatement.for_insert(name, table, columns, self.dialect)
        )

    def prepare_select(
        self,
        name: str,
        table: str,
        select_cols: Iterable[str],
        where_cols: Iterable[str],
        return_type: ReturnType = ReturnType.COLUMNS,
    ) -> PreparedStatement:
        """Register a SELECT taking one parameter per WHERE column."""
        existing = self._statements.get(name)
        if existing is not None:
            return existing
        return self._register(
            PreparedStatement.for_select(
                name, table, select_cols, where_cols, self.dialect, return_type
            )
        )

    def prepare_delete(
        self, name: str, table: str, where_cols: Iterable[str]
    ) -> PreparedStatement:
        """Register a DELETE taking one parameter per WHERE column."""
        existing = self._statements.get(name)
        if existing is not None:
            return existing
        return self._register(
            PreparedStatement.for_delete(name, table, where_cols, self.dialect)
        )

    def _register(self, statement: PreparedStatement) -> PreparedStatement:
        handle = self._require_handle()
        self.logger.debug(f"Preparing {statement.name}: {statement.sql}")
        try:
            statement.prepare(handle)
        except DriverError as e:
            self.logger.error(f"Failed to prepare {statement.name}: {e}")
            raise
        self._statements[statement.name] = statement
        self.logger.info(f"Prepared statement {statement.name} registered")
        return statement

    def has_prepared_statement(self, name: str) -> bool:
        return name in self._statements

    def prepared_statement_names(self) -> List[str]:
        return sorted(self._statements)

    def get_prepared_statement(self, name: str) -> PreparedStatement:
        statement = self._statements.get(name)
        if statement is None:
            raise UnknownStatementError(name)
        return statement

    def execute(self, name: str, values: Mapping[str, Optional[str]]) -> int:
        """Execute a registered update statement.

        Args:
            name: Registered statement name
            values: Column name to value for each parameter

        Returns:
            Rows affected; also added to the uncommitted row counter

        Raises:
            UnknownStatementError: If no statement has this name
            ParameterCountMismatchError: If the value count is wrong
        """
        statement = self.get_prepared_statement(name)
        if statement.is_query:
            raise InvalidArgumentError(
                f"Prepared statement {name} is a query; use execute_query"
            )
        self._last_sql = statement.sql
        try:
            rows = statement.bind_and_run(values)
        except DriverError as e:
            self.logger.error(f"Execution of {name} failed: {e}")
            raise
        return self._count(rows)

    def execute_query(self, name: str, values: Mapping[str, Optional[str]]) -> QueryResult:
        """Execute a registered query and return its rows.

        Raises:
            UnknownStatementError: If no statement has this name
            ParameterCountMismatchError: If the value count is wrong
        """
        statement = self.get_prepared_statement(name)
        if not statement.is_query:
            raise InvalidArgumentError(
                f"Prepared statement {name} is not a query; use execute"
            )
        self._last_sql = statement.sql
        try:
            cursor = statement.bind_and_run(values)
            return read_cursor(cursor, statement.return_type)
        except DriverError as e:
            self.logger.error(f"Query {name} failed: {e}")
            raise

    def reinstate_prepared_statements(self) -> None:
        """Prepare every registered statement on the current connection."""
        for name in list(self._statements):
            self.reinstate_prepared_statement(name)

    def reinstate_prepared_statement(self, name: str) -> None:
        statement = self.get_prepared_statement(name)
        handle = self._require_handle()
        statement.prepare(handle)
        self.logger.info(f"Prepared statement {name} reinstated")

    def close_prepared_statements(self) -> None:
        """Release every statement handle, keeping the registrations."""
        for name in list(self._statements):
            self.close_prepared_statement(name)

    def close_prepared_statement(self, name: str) -> None:
        statement = self.get_prepared_statement(name)
        try:
            statement.close()
        except DriverError as e:
            self.logger.warning(f"Ignoring failure while closing {name}: {e}")

    def remove_prepared_statement(self, name: str) -> None:
        """Close a statement and forget it."""
        self.close_prepared_statement(name)
        del self._statements[name]
        self.logger.info(f"Prepared statement {name} removed")

    # Transactions

    def commit(self) -> None:
        """Commit; the uncommitted row counter resets even on failure."""
        handle = self._require_handle()
        try:
            handle.commit()
        except DriverError as e:
            self.logger.error(f"Commit failed: {e}")
            raise
        finally:
            self.uncommitted_rows = 0

    def rollback(self) -> None:
        """Roll back; the uncommitted row counter resets even on failure."""
        handle = self._require_handle()
        try:
            handle.rollback()
        except DriverError as e:
            self.logger.error(f"Rollback failed: {e}")
            raise
        finally:
            self.uncommitted_rows = 0

    def commit_if_reached(self, limit: int) -> bool:
        """Commit once at least ``limit`` rows are uncommitted.

        Returns:
            True if a commit was issued
        """
        if self.uncommitted_rows < limit:
            return False
        self.logger.debug(f"Committing {self.uncommitted_rows} rows (limit {limit})")
        self.commit()
        return True

    def __enter__(self) -> "Connection":
        self.connect()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def __repr__(self) -> str:
        return (
            f"Connection(name={self.name}, dialect={self.dialect.value}, "
            f"connected={self.is_connected}, statements={len(self._statements)})"
        )
