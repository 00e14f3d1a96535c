"""Shared fixtures: a recording fake driver and in-memory DuckDB connections."""

from typing import Any, Dict, List, Optional, Tuple

import pytest

from dbshim.connection import Connection
from dbshim.drivers.base import (
    Driver,
    DriverConnection,
    DriverCursor,
    DriverPreparedStatement,
)
from dbshim.drivers.duckdb import DuckDBDriver
from dbshim.errors import DriverError
from dbshim.sql.dialect import Dialect


class FakeCursor(DriverCursor):
    def __init__(self, columns: List[str], rows: List[Tuple[Any, ...]]):
        self._columns = columns
        self._rows = list(rows)
        self.closed = False

    def columns(self) -> List[str]:
        return list(self._columns)

    def next(self) -> Optional[Tuple[Any, ...]]:
        if not self._rows:
            return None
        return self._rows.pop(0)

    def close(self) -> None:
        self.closed = True


class FakePreparedStatement(DriverPreparedStatement):
    def __init__(self, connection: "FakeConnection", sql: str):
        self.connection = connection
        self.sql = sql
        self.bound: Dict[int, Optional[str]] = {}
        self.closed = False
        self.close_error: Optional[DriverError] = None

    def bind_at(self, position: int, value: str) -> None:
        self.connection.calls.append(("bind", self.sql, position, value))
        self.bound[position] = value

    def execute_update(self) -> int:
        self.connection.calls.append(("execute_update", self.sql))
        return self.connection.update_count

    def execute_query(self) -> DriverCursor:
        self.connection.calls.append(("execute_query", self.sql))
        cursor = FakeCursor(self.connection.result_columns, self.connection.result_rows)
        self.connection.cursors.append(cursor)
        return cursor

    def close(self) -> None:
        self.closed = True
        if self.close_error is not None:
            raise self.close_error


class FakeConnection(DriverConnection):
    """Records every call; results are configured by the test."""

    def __init__(self, autocommit: bool, dialect: Dialect):
        super().__init__(autocommit, dialect)
        self.calls: List[Tuple[Any, ...]] = []
        self.statements: List[FakePreparedStatement] = []
        self.cursors: List[FakeCursor] = []
        self.update_count = 1
        self.result_columns: List[str] = []
        self.result_rows: List[Tuple[Any, ...]] = []
        self.query_error: Optional[DriverError] = None
        self.commit_error: Optional[DriverError] = None
        self.close_error: Optional[DriverError] = None
        self.closed = False

    def execute(self, sql: str) -> int:
        self.calls.append(("execute", sql))
        return self.update_count

    def query(self, sql: str) -> DriverCursor:
        self.calls.append(("query", sql))
        if self.query_error is not None:
            raise self.query_error
        cursor = FakeCursor(self.result_columns, self.result_rows)
        self.cursors.append(cursor)
        return cursor

    def prepare(self, sql: str) -> DriverPreparedStatement:
        self.calls.append(("prepare", sql))
        statement = FakePreparedStatement(self, sql)
        self.statements.append(statement)
        return statement

    def commit(self) -> None:
        self.calls.append(("commit",))
        if self.commit_error is not None:
            raise self.commit_error

    def rollback(self) -> None:
        self.calls.append(("rollback",))

    def close(self) -> None:
        self.calls.append(("close",))
        self.closed = True
        if self.close_error is not None:
            raise self.close_error


class FakeDriver(Driver):
    """Hands out FakeConnections and remembers every one of them."""

    name = "fake"

    def __init__(self, dialect: Dialect = Dialect.GENERIC):
        self.dialect = dialect
        self.connections: List[FakeConnection] = []
        self.connect_error: Optional[DriverError] = None

    def connect(self, params: Dict[str, Any], autocommit: bool) -> DriverConnection:
        if self.connect_error is not None:
            raise self.connect_error
        connection = FakeConnection(autocommit, self.dialect)
        self.connections.append(connection)
        return connection

    @property
    def current(self) -> FakeConnection:
        return self.connections[-1]


@pytest.fixture
def fake_driver():
    return FakeDriver()


@pytest.fixture
def driver_connection():
    """Bare fake driver connection, for statement-level tests."""
    return FakeConnection(autocommit=False, dialect=Dialect.GENERIC)


@pytest.fixture
def fake_connection(fake_driver):
    """Open Connection over the fake driver."""
    connection = Connection(fake_driver, params={"target": "fake"}, name="fake")
    connection.connect()
    yield connection
    connection.close()


@pytest.fixture
def duckdb_connection():
    """Open Connection to an in-memory DuckDB with a people table."""
    connection = Connection(DuckDBDriver(), params={"path": ":memory:"}, name="duck")
    connection.connect()
    connection.execute_sql(
        """
        CREATE TABLE people (
            id INTEGER,
            name VARCHAR,
            city VARCHAR
        )
        """
    )
    connection.insert("people", {"id": "1", "name": "Alice", "city": "Paris"})
    connection.insert("people", {"id": "2", "name": "Bob", "city": "null"})
    connection.commit()

    yield connection

    connection.close()
