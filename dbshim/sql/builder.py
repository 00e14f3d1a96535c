"""SQL statement text built from table names and unordered column maps.

Both the ad-hoc statements run directly by a connection and the templates of
prepared statements come out of ``SQLBuilder``. A ``ValueMode`` chosen by the
caller decides how map values reach the SQL text:

- ``ENCODE``: each value goes through the value encoder (quoting, escaping)
- ``RAW``: values are already SQL literals and are inserted verbatim
- ``PLACEHOLDER``: every value is replaced by a ``?`` placeholder

Column maps carry no meaningful order, so every clause lists its columns in
sorted key order. Prepared statements built without an explicit parameter
order rely on that same sort when their values are bound.
"""

from enum import Enum
from typing import Iterable, List, Mapping, Optional

from ..errors import (
    DialectFeatureError,
    EmptyColumnsError,
    EmptyProjectionError,
    EmptyQualifierError,
    InvalidArgumentError,
)
from .dialect import Dialect
from .encoder import NULL_MARKER, PLACEHOLDER, encode_value, quote


class ValueMode(Enum):
    """How column-map values are rendered into SQL text."""

    ENCODE = "encode"
    RAW = "raw"
    PLACEHOLDER = "placeholder"


def ordered_columns(columns: Iterable[str]) -> List[str]:
    """Return column names in the canonical (code point) order."""
    return sorted(columns)


class SQLBuilder:
    """Builds SELECT/INSERT/UPDATE/DELETE text for one dialect."""

    def __init__(self, dialect: Dialect = Dialect.GENERIC):
        self.dialect = dialect

    def build_select(
        self,
        table: str,
        select_cols: Iterable[str],
        where_cols: Optional[Mapping[str, str]] = None,
        mode: ValueMode = ValueMode.ENCODE,
    ) -> str:
        """Build a SELECT statement.

        Args:
            table: Table (or other object) name
            select_cols: Names of the columns to return; a column map may
                be passed, its values are ignored
            where_cols: Column/value pairs ANDed together in the WHERE clause
            mode: How WHERE values are rendered

        Returns:
            SQL text

        Raises:
            EmptyProjectionError: If no select columns were given
        """
        self._require_table(table)
        if select_cols is None:
            raise InvalidArgumentError("select columns must not be None")
        projection = ordered_columns(select_cols)
        if not projection:
            raise EmptyProjectionError(f"No columns to select from {table}")
        sql = f"SELECT {','.join(projection)} FROM {table}"
        return sql + self._where_clause(where_cols or {}, mode)

    def build_insert(
        self,
        table: str,
        columns: Mapping[str, str],
        mode: ValueMode = ValueMode.ENCODE,
    ) -> str:
        """Build an INSERT statement.

        Column names and values are collected in the same pass over the
        same ordering, so the Nth name always pairs with the Nth value.

        Raises:
            EmptyColumnsError: If there are no columns to insert
        """
        self._require_table(table)
        self._require_map(columns, "insert columns")
        if not columns:
            raise EmptyColumnsError(f"No columns to insert into {table}")
        names = []
        values = []
        for name in ordered_columns(columns):
            names.append(name)
            values.append(self._render_value(columns[name], mode))
        return f"INSERT INTO {table} ({','.join(names)}) VALUES ({','.join(values)})"

    def build_update(
        self,
        table: str,
        set_cols: Mapping[str, str],
        where_cols: Mapping[str, str],
        mode: ValueMode = ValueMode.ENCODE,
    ) -> str:
        """Build an UPDATE statement.

        Raises:
            EmptyColumnsError: If there are no columns to set
            EmptyQualifierError: If there is no WHERE qualifier
        """
        self._require_table(table)
        self._require_map(set_cols, "update columns")
        self._require_map(where_cols, "update qualifiers")
        if not set_cols:
            raise EmptyColumnsError(f"No columns to update in {table}")
        if not where_cols:
            raise EmptyQualifierError(
                f"Refusing to update {table} without a WHERE qualifier"
            )
        assignments = []
        for name in ordered_columns(set_cols):
            assignments.append(f"{name} = {self._render_value(set_cols[name], mode)}")
        sql = f"UPDATE {table} SET {','.join(assignments)}"
        return sql + self._where_clause(where_cols, mode)

    def build_delete(
        self,
        table: str,
        where_cols: Optional[Mapping[str, str]] = None,
        mode: ValueMode = ValueMode.ENCODE,
    ) -> str:
        """Build a DELETE statement; no qualifiers means every row."""
        self._require_table(table)
        return f"DELETE FROM {table}" + self._where_clause(where_cols or {}, mode)

    def build_lock_for_update(
        self,
        table: str,
        where_cols: Mapping[str, str],
        mode: ValueMode = ValueMode.ENCODE,
    ) -> str:
        """Build a SELECT ... FOR UPDATE locking the qualified rows.

        Raises:
            EmptyQualifierError: If there is no WHERE qualifier
            DialectFeatureError: If the dialect cannot lock rows
        """
        self._require_table(table)
        self._require_map(where_cols, "lock qualifiers")
        if not self.dialect.profile.row_locks:
            raise DialectFeatureError(
                f"Dialect {self.dialect.value} does not support SELECT ... FOR UPDATE"
            )
        if not where_cols:
            raise EmptyQualifierError(
                f"Refusing to lock {table} without a WHERE qualifier"
            )
        sql = f"SELECT * FROM {table}" + self._where_clause(where_cols, mode)
        sql += " FOR UPDATE"
        if self.dialect.profile.lock_nowait:
            sql += " NOWAIT"
        return sql

    def build_date_format(self, date_format: str) -> str:
        """Build the session directive that sets the default date format.

        Raises:
            DialectFeatureError: If the dialect has no such directive
        """
        template = self.dialect.profile.date_format_template
        if template is None:
            raise DialectFeatureError(
                f"Dialect {self.dialect.value} has no session date format directive"
            )
        return template.format(fmt=quote(date_format))

    def _where_clause(self, where_cols: Mapping[str, str], mode: ValueMode) -> str:
        """Render WHERE k1 = v1 AND k2 = v2, or an empty string."""
        predicates = []
        for name in ordered_columns(where_cols):
            value = self._render_value(where_cols[name], mode)
            # "= null" never matches; NULL needs IS
            if mode is not ValueMode.PLACEHOLDER and value == NULL_MARKER:
                predicates.append(f"{name} IS {value}")
            else:
                predicates.append(f"{name} = {value}")
        if not predicates:
            return ""
        return " WHERE " + " AND ".join(predicates)

    def _render_value(self, value: str, mode: ValueMode) -> str:
        if mode is ValueMode.PLACEHOLDER:
            return PLACEHOLDER
        if value is None:
            raise InvalidArgumentError("column values must not be None")
        if mode is ValueMode.ENCODE:
            return encode_value(value)
        return value

    def _require_table(self, table: str) -> None:
        if not table:
            raise InvalidArgumentError("table name must not be empty")

    def _require_map(self, columns: Optional[Mapping[str, str]], label: str) -> None:
        if columns is None:
            raise InvalidArgumentError(f"{label} must not be None")

    def __repr__(self) -> str:
        return f"SQLBuilder(dialect={self.dialect.value})"
