"""SQL dialect tags and the per-dialect behaviour the builder consumes."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, FrozenSet, Optional, Tuple


@dataclass(frozen=True)
class DialectProfile:
    """Dialect-specific SQL behaviour.

    Attributes:
        row_locks: Whether SELECT ... FOR UPDATE is accepted at all
        lock_nowait: Append NOWAIT to row locks so a held lock fails fast
        lock_error_codes: Native error codes meaning "row already locked"
        date_format_template: Session directive setting the date format,
            with a ``{fmt}`` slot for the quoted format literal
    """

    row_locks: bool = True
    lock_nowait: bool = False
    lock_error_codes: FrozenSet[Any] = field(default_factory=frozenset)
    date_format_template: Optional[str] = None


class Dialect(Enum):
    """SQL engine families a connection may be talking to."""

    ORACLE = "oracle"
    MYSQL = "mysql"
    DERBY = "derby"
    SQLSERVER = "sqlserver"
    POSTGRESQL = "postgresql"
    DUCKDB = "duckdb"
    GENERIC = "generic"

    @property
    def profile(self) -> DialectProfile:
        """Return the behaviour profile for this dialect."""
        return _PROFILES.get(self, _GENERIC_PROFILE)

    def is_lock_conflict(self, native_code: Any) -> bool:
        """Check whether a driver error code signals a held row lock."""
        if native_code is None:
            return False
        return native_code in self.profile.lock_error_codes


_GENERIC_PROFILE = DialectProfile()

_PROFILES: Dict[Dialect, DialectProfile] = {
    Dialect.ORACLE: DialectProfile(
        lock_nowait=True,
        lock_error_codes=frozenset({54, "ORA-00054"}),
        date_format_template="ALTER SESSION SET nls_date_format = {fmt}",
    ),
    Dialect.POSTGRESQL: DialectProfile(
        lock_nowait=True,
        lock_error_codes=frozenset({"55P03"}),
    ),
    Dialect.MYSQL: DialectProfile(lock_error_codes=frozenset({3572})),
    Dialect.DUCKDB: DialectProfile(row_locks=False),
}

# Checked in order against a lower-cased driver identifier
_DETECTION_KEYWORDS: Tuple[Tuple[str, Dialect], ...] = (
    ("oracle", Dialect.ORACLE),
    ("mysql", Dialect.MYSQL),
    ("mariadb", Dialect.MYSQL),
    ("derby", Dialect.DERBY),
    ("sqlserver", Dialect.SQLSERVER),
    ("mssql", Dialect.SQLSERVER),
    ("psycopg", Dialect.POSTGRESQL),
    ("postgres", Dialect.POSTGRESQL),
    ("duckdb", Dialect.DUCKDB),
)


def detect_dialect(identifier: str) -> Dialect:
    """Pick a dialect from driver metadata such as a connection's module name.

    Args:
        identifier: Driver identifying text, e.g. ``type(conn).__module__``

    Returns:
        Matching dialect, or ``Dialect.GENERIC`` if nothing matches
    """
    lowered = identifier.lower()
    for keyword, dialect in _DETECTION_KEYWORDS:
        if keyword in lowered:
            return dialect
    return Dialect.GENERIC
