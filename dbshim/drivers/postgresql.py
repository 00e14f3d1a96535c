"""PostgreSQL driver implementation."""

from typing import Any, Dict, List, Optional, Tuple
import psycopg2
import logging

from ..errors import DriverError
from ..sql.dialect import detect_dialect
from ..sql.placeholders import count_placeholders, replace_placeholders
from .base import Driver, DriverConnection, DriverCursor, DriverPreparedStatement

logger = logging.getLogger(__name__)


def _wrap_error(action: str, error: psycopg2.Error) -> DriverError:
    """Translate a psycopg2 exception, keeping its SQLSTATE."""
    return DriverError(f"{action} failed: {error}", error.pgcode)


def to_pyformat(sql: str) -> str:
    """Rewrite ``?`` placeholders into psycopg2's ``%s`` markers.

    Literal percent signs are doubled since psycopg2 interpolates the whole
    statement text whenever parameters are passed.
    """
    return replace_placeholders(sql.replace("%", "%%"), "%s")


class PostgreSQLCursor(DriverCursor):
    """Server-side result read row by row from a psycopg2 cursor."""

    def __init__(self, cursor):
        self._cursor = cursor

    def columns(self) -> List[str]:
        columns = []
        for desc in self._cursor.description or []:
            columns.append(desc[0])
        return columns

    def next(self) -> Optional[Tuple[Any, ...]]:
        try:
            return self._cursor.fetchone()
        except psycopg2.Error as e:
            raise _wrap_error("Fetch", e) from e

    def close(self) -> None:
        self._cursor.close()


class PostgreSQLPreparedStatement(DriverPreparedStatement):
    """Parameterized PostgreSQL statement."""

    def __init__(self, connection: "PostgreSQLConnection", sql: str):
        self._connection = connection
        self.sql = to_pyformat(sql)
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
        return self._connection.run(self.sql, tuple(self._params))

    def execute_query(self) -> DriverCursor:
        self._check_open()
        return self._connection.fetch(self.sql, tuple(self._params))

    def close(self) -> None:
        self._closed = True
        self._params = []

    def _check_open(self) -> None:
        if self._closed:
            raise DriverError("Prepared statement is closed")


class PostgreSQLConnection(DriverConnection):
    """Live psycopg2 connection."""

    def __init__(self, native, autocommit: bool):
        super().__init__(autocommit, detect_dialect(type(native).__module__))
        self.native = native
        self.native.autocommit = autocommit

    def execute(self, sql: str) -> int:
        return self.run(sql, None)

    def query(self, sql: str) -> DriverCursor:
        return self.fetch(sql, None)

    def prepare(self, sql: str) -> DriverPreparedStatement:
        return PostgreSQLPreparedStatement(self, sql)

    def run(self, sql: str, params: Optional[Tuple[Optional[str], ...]]) -> int:
        """Execute a statement and return its affected row count."""
        try:
            with self.native.cursor() as cursor:
                logger.debug(f"Executing on PostgreSQL: {sql[:100]}")
                cursor.execute(sql, params)
                return max(cursor.rowcount, 0)
        except psycopg2.Error as e:
            raise _wrap_error("Statement", e) from e

    def fetch(self, sql: str, params: Optional[Tuple[Optional[str], ...]]) -> DriverCursor:
        """Execute a query and hand back its open cursor."""
        cursor = self.native.cursor()
        try:
            logger.debug(f"Querying PostgreSQL: {sql[:100]}")
            cursor.execute(sql, params)
        except psycopg2.Error as e:
            cursor.close()
            raise _wrap_error("Query", e) from e
        return PostgreSQLCursor(cursor)

    def commit(self) -> None:
        try:
            self.native.commit()
        except psycopg2.Error as e:
            raise _wrap_error("Commit", e) from e

    def rollback(self) -> None:
        try:
            self.native.rollback()
        except psycopg2.Error as e:
            raise _wrap_error("Rollback", e) from e

    def close(self) -> None:
        try:
            self.native.close()
        except psycopg2.Error as e:
            raise _wrap_error("Close", e) from e


class PostgreSQLDriver(Driver):
    """PostgreSQL driver over psycopg2.

    Params:
        - host: Database host
        - port: Database port (default: 5432)
        - database: Database name
        - user: Username
        - password: Password
    """

    name = "postgresql"

    def connect(self, params: Dict[str, Any], autocommit: bool) -> DriverConnection:
        logger.info(
            f"Connecting to PostgreSQL database '{params.get('database')}' at {params.get('host')}"
        )
        try:
            native = psycopg2.connect(
                host=params.get("host"),
                port=params.get("port", 5432),
                dbname=params.get("database"),
                user=params.get("user"),
                password=params.get("password"),
            )
        except psycopg2.Error as e:
            logger.error(f"Failed to connect to PostgreSQL: {e}")
            raise _wrap_error("PostgreSQL connection", e) from e
        return PostgreSQLConnection(native, autocommit)

    def describe(self, params: Dict[str, Any]) -> str:
        return (
            f"postgresql://{params.get('user')}@{params.get('host')}:"
            f"{params.get('port', 5432)}/{params.get('database')}"
        )
