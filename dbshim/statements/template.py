"""Prepared statement templates."""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Sequence, Tuple

from ..errors import InvalidArgumentError


class ReturnType(Enum):
    """Shape callers expect from a query's result."""

    COLUMNS = "COLUMNS"
    XML = "XML"


class StatementKind(Enum):
    """Whether a statement produces rows or an update count."""

    QUERY = "query"
    UPDATE = "update"


QUERY_KEYWORDS = ("SELECT", "WITH", "VALUES", "SHOW", "DESCRIBE", "EXPLAIN")


def statement_kind(sql: str) -> StatementKind:
    """Classify SQL text by its leading keyword."""
    words = sql.lstrip(" \t\r\n(").split(None, 1)
    if words and words[0].upper() in QUERY_KEYWORDS:
        return StatementKind.QUERY
    return StatementKind.UPDATE


@dataclass(frozen=True)
class PreparedStatementTemplate:
    """Instructions for creating a prepared statement.

    Attributes:
        name: Unique key of the statement on its connection
        sql: Statement text with ``?`` placeholders
        params: Column names describing the placeholders in order; None
            means values are bound in sorted key order
        return_type: Expected shape of query results
    """

    name: str
    sql: str
    params: Optional[Tuple[str, ...]] = None
    return_type: ReturnType = ReturnType.COLUMNS

    def __post_init__(self):
        if not self.name:
            raise InvalidArgumentError("prepared statement name must not be empty")
        if not self.sql:
            raise InvalidArgumentError(f"prepared statement {self.name} has no SQL")
        if self.params is not None and not isinstance(self.params, tuple):
            object.__setattr__(self, "params", tuple(self.params))

    @classmethod
    def create(
        cls,
        name: str,
        sql: str,
        params: Optional[Sequence[str]] = None,
        return_type: Optional[str] = None,
    ) -> "PreparedStatementTemplate":
        """Build a template from plain values, e.g. parsed configuration."""
        kind = ReturnType.COLUMNS
        if return_type is not None:
            kind = ReturnType(return_type.upper())
        if params is not None:
            params = tuple(params)
        return cls(name=name, sql=sql, params=params, return_type=kind)
