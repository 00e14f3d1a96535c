"""Prepared statements and their parameter binding.

A prepared statement either declares the column behind each ``?`` position
explicitly (templates from configuration) or relies on sorted key order
(statements generated from column maps). In the second case the builder
sorted the columns when it wrote the SQL, and ``bind_and_run`` sorts the
supplied value keys the same way, so position N always receives the value
of the Nth column.
"""

from typing import Iterable, List, Mapping, Optional, Sequence, Union

from ..drivers.base import DriverConnection, DriverCursor, DriverPreparedStatement
from ..errors import InvalidArgumentError, ParameterCountMismatchError
from ..sql.builder import SQLBuilder, ValueMode, ordered_columns
from ..sql.dialect import Dialect
from ..sql.placeholders import count_placeholders
from .template import PreparedStatementTemplate, ReturnType, StatementKind, statement_kind


class PreparedStatement:
    """One parameterized statement and its (transient) driver handle."""

    def __init__(
        self,
        name: str,
        sql: str,
        param_columns: Optional[Sequence[str]] = None,
        return_type: ReturnType = ReturnType.COLUMNS,
    ):
        """Initialize prepared statement.

        Args:
            name: Unique key of the statement
            sql: Statement text with ``?`` placeholders
            param_columns: Column name for each placeholder, in order; None
                to bind in sorted key order
            return_type: Expected shape of query results

        Raises:
            ParameterCountMismatchError: If param_columns does not match the
                number of placeholders in sql
        """
        if not name:
            raise InvalidArgumentError("prepared statement name must not be empty")
        if not sql:
            raise InvalidArgumentError(f"prepared statement {name} has no SQL")
        self.name = name
        self.sql = sql
        self.return_type = return_type
        self.kind = statement_kind(sql)
        # Counted by hand: not every driver reports parameter metadata
        self.num_parameters = count_placeholders(sql)
        self.param_columns: Optional[List[str]] = None
        if param_columns is not None:
            self.param_columns = list(param_columns)
            if len(self.param_columns) != self.num_parameters:
                raise ParameterCountMismatchError(
                    f"Prepared statement {name} had incorrect number of parameters: "
                    f"found {len(self.param_columns)} expected {self.num_parameters}",
                    expected=self.num_parameters,
                    found=len(self.param_columns),
                )
        self._handle: Optional[DriverPreparedStatement] = None

    @classmethod
    def from_template(cls, template: PreparedStatementTemplate) -> "PreparedStatement":
        """Create a statement from a template with declared parameters."""
        if template is None:
            raise InvalidArgumentError("prepared statement template must not be None")
        return cls(template.name, template.sql, template.params, template.return_type)

    @classmethod
    def for_insert(
        cls,
        name: str,
        table: str,
        columns: Mapping[str, str],
        dialect: Dialect = Dialect.GENERIC,
    ) -> "PreparedStatement":
        """Create an INSERT whose ``?`` values become parameters.

        Values other than ``?`` are encoded as constants. Parameters are
        bound later in sorted key order.
        """
        sql = SQLBuilder(dialect).build_insert(table, columns, mode=ValueMode.ENCODE)
        return cls(name, sql)

    @classmethod
    def for_select(
        cls,
        name: str,
        table: str,
        select_cols: Iterable[str],
        where_cols: Iterable[str],
        dialect: Dialect = Dialect.GENERIC,
        return_type: ReturnType = ReturnType.COLUMNS,
    ) -> "PreparedStatement":
        """Create a SELECT with one parameter per WHERE column."""
        where = ordered_columns(where_cols)
        sql = SQLBuilder(dialect).build_select(
            table, select_cols, dict.fromkeys(where, ""), mode=ValueMode.PLACEHOLDER
        )
        return cls(name, sql, where, return_type)

    @classmethod
    def for_delete(
        cls,
        name: str,
        table: str,
        where_cols: Iterable[str],
        dialect: Dialect = Dialect.GENERIC,
    ) -> "PreparedStatement":
        """Create a DELETE with one parameter per WHERE column."""
        where = ordered_columns(where_cols)
        sql = SQLBuilder(dialect).build_delete(
            table, dict.fromkeys(where, ""), mode=ValueMode.PLACEHOLDER
        )
        return cls(name, sql, where)

    @property
    def is_prepared(self) -> bool:
        return self._handle is not None

    @property
    def is_query(self) -> bool:
        return self.kind is StatementKind.QUERY

    def prepare(self, connection: DriverConnection) -> None:
        """Bind this statement to a live connection.

        Any handle from a previous connection is released first.
        """
        if connection is None:
            raise InvalidArgumentError("connection must not be None")
        self.close()
        self._handle = connection.prepare(self.sql)

    def parameter_order(self, values: Mapping[str, Optional[str]]) -> List[str]:
        """Return the column name bound at each position, in order."""
        if self.param_columns is not None:
            return list(self.param_columns)
        return ordered_columns(values)

    def bind_and_run(
        self, values: Mapping[str, Optional[str]]
    ) -> Union[int, DriverCursor]:
        """Bind values to their positions and execute.

        Args:
            values: Column name to value for every parameter

        Returns:
            Rows affected for update statements, a cursor for queries

        Raises:
            ParameterCountMismatchError: If the number of values differs
                from the number of placeholders
        """
        if values is None:
            raise InvalidArgumentError(f"No parameter values for {self.name}")
        if len(values) != self.num_parameters:
            raise ParameterCountMismatchError(
                f"Wrong number of parameter values supplied for execution of "
                f"prepared statement {self.name}. Expected {self.num_parameters}, "
                f"found {len(values)}",
                expected=self.num_parameters,
                found=len(values),
            )
        if self._handle is None:
            raise InvalidArgumentError(f"Prepared statement {self.name} is not prepared")

        order = self.parameter_order(values)
        missing = [column for column in order if column not in values]
        if missing:
            raise InvalidArgumentError(
                f"Prepared statement {self.name} is missing values for {missing}"
            )

        for position, column in enumerate(order, start=1):
            value = values[column]
            self._handle.bind_at(position, None if value is None else str(value))

        if self.is_query:
            return self._handle.execute_query()
        return self._handle.execute_update()

    def close(self) -> None:
        """Release the driver handle; closing twice is a no-op."""
        handle = self._handle
        if handle is None:
            return
        self._handle = None
        handle.close()

    def __repr__(self) -> str:
        return (
            f"PreparedStatement(name={self.name}, parameters={self.num_parameters}, "
            f"prepared={self.is_prepared})"
        )
