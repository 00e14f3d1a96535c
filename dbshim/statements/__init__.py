"""Prepared statements."""

from .prepared import PreparedStatement
from .template import (
    PreparedStatementTemplate,
    ReturnType,
    StatementKind,
    statement_kind,
)

__all__ = [
    "PreparedStatement",
    "PreparedStatementTemplate",
    "ReturnType",
    "StatementKind",
    "statement_kind",
]
