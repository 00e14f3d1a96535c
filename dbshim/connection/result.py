"""Query results as ordered row maps."""

from dataclasses import dataclass, field
from typing import Dict, Iterator, List

import pyarrow as pa

from ..drivers.base import DriverCursor
from ..statements.template import ReturnType


@dataclass
class QueryResult:
    """Rows returned by a query.

    Each row maps column name to the string form of its value. A column is
    left out of a row when its value is NULL.
    """

    rows: List[Dict[str, str]] = field(default_factory=list)
    return_type: ReturnType = ReturnType.COLUMNS
    columns: List[str] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.rows)

    def __iter__(self) -> Iterator[Dict[str, str]]:
        return iter(self.rows)

    def column_values(self, column: str) -> List[str]:
        """Return one column's values, skipping rows where it is NULL."""
        values = []
        for row in self.rows:
            if column in row:
                values.append(row[column])
        return values

    def to_arrow(self) -> pa.Table:
        """Convert to an Arrow table of string columns; NULLs become nulls."""
        data = {}
        for column in self.columns:
            values = []
            for row in self.rows:
                values.append(row.get(column))
            data[column] = pa.array(values, type=pa.string())
        return pa.Table.from_pydict(data)


def read_cursor(cursor: DriverCursor, return_type: ReturnType) -> QueryResult:
    """Drain a driver cursor into a QueryResult, always closing it.

    Args:
        cursor: Open driver cursor
        return_type: Shape tag to attach to the result

    Returns:
        Query result with one row map per fetched row
    """
    try:
        columns = cursor.columns()
        rows: List[Dict[str, str]] = []
        while True:
            record = cursor.next()
            if record is None:
                break
            rows.append(_build_row(columns, record))
        return QueryResult(rows=rows, return_type=return_type, columns=columns)
    finally:
        cursor.close()


def _build_row(columns: List[str], record) -> Dict[str, str]:
    row = {}
    for name, value in zip(columns, record):
        if name is not None and value is not None:
            row[name] = str(value)
    return row
