"""Base database driver interface.

The shim never talks to a DB-API module directly. Each driver adapts one
module to the small set of primitives below and translates every native
exception into ``DriverError``, keeping the native error code.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Tuple

from ..sql.dialect import Dialect


class DriverCursor(ABC):
    """Row-producing result of a query."""

    @abstractmethod
    def columns(self) -> List[str]:
        """Return the result column names in order."""
        pass

    @abstractmethod
    def next(self) -> Optional[Tuple[Any, ...]]:
        """Return the next row, or None when the result is exhausted."""
        pass

    @abstractmethod
    def close(self) -> None:
        """Release the cursor."""
        pass


class DriverPreparedStatement(ABC):
    """Driver-native handle of a parameterized statement."""

    @abstractmethod
    def bind_at(self, position: int, value: str) -> None:
        """Bind a value to a 1-based placeholder position.

        Args:
            position: Placeholder position, starting at 1
            value: Value to bind; always sent as a string
        """
        pass

    @abstractmethod
    def execute_update(self) -> int:
        """Run the bound statement and return the number of rows affected."""
        pass

    @abstractmethod
    def execute_query(self) -> DriverCursor:
        """Run the bound statement and return its rows."""
        pass

    @abstractmethod
    def close(self) -> None:
        """Release the native handle."""
        pass


class DriverConnection(ABC):
    """A live connection opened by a driver."""

    def __init__(self, autocommit: bool, dialect: Dialect):
        self.autocommit = autocommit
        self.dialect = dialect

    @abstractmethod
    def execute(self, sql: str) -> int:
        """Execute a non-query statement.

        Args:
            sql: SQL text

        Returns:
            Number of rows affected
        """
        pass

    @abstractmethod
    def query(self, sql: str) -> DriverCursor:
        """Execute a query and return a cursor over its rows."""
        pass

    @abstractmethod
    def prepare(self, sql: str) -> DriverPreparedStatement:
        """Prepare a statement with ``?`` placeholders."""
        pass

    @abstractmethod
    def commit(self) -> None:
        """Commit the current transaction."""
        pass

    @abstractmethod
    def rollback(self) -> None:
        """Roll back the current transaction."""
        pass

    @abstractmethod
    def close(self) -> None:
        """Close the connection."""
        pass

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(dialect={self.dialect.value})"


class Driver(ABC):
    """Opens connections to one kind of database."""

    name = "driver"

    @abstractmethod
    def connect(self, params: Dict[str, Any], autocommit: bool) -> DriverConnection:
        """Open a connection.

        Args:
            params: Driver-specific connection parameters
            autocommit: Commit every statement as its own transaction

        Returns:
            Live driver connection

        Raises:
            DriverError: If the connection cannot be established
        """
        pass

    def describe(self, params: Dict[str, Any]) -> str:
        """Return a loggable description of the target, without secrets."""
        return self.name

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}()"
