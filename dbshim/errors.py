"""Exception hierarchy for dbshim.

Every error raised by the package inherits from ``DbShimError`` so callers can
catch the base class for any shim failure. Each class carries a short
machine-readable ``code``; driver failures additionally keep the native error
code reported by the database.
"""

from typing import Any, Optional


class DbShimError(Exception):
    """Base exception for all dbshim errors."""

    code = "DBSHIM_ERROR"


class InvalidArgumentError(DbShimError, ValueError):
    """Raised when a required input is missing, empty or unusable."""

    code = "INVALID_ARGUMENT"


class EmptyProjectionError(DbShimError):
    """Raised when a SELECT is requested without any columns to return."""

    code = "EMPTY_PROJECTION"


class EmptyColumnsError(DbShimError):
    """Raised when an INSERT or UPDATE has no columns to write."""

    code = "EMPTY_COLUMNS"


class EmptyQualifierError(DbShimError):
    """Raised when an UPDATE or row lock has no WHERE qualifiers.

    An unqualified UPDATE touches every row of the table, so it is treated
    as a caller error rather than an intent.
    """

    code = "EMPTY_QUALIFIER"


class ParameterCountMismatchError(DbShimError):
    """Raised when parameter names and placeholders disagree in number.

    Args:
        message: Human-readable description.
        expected: Number of placeholders in the statement.
        found: Number of parameter names or values supplied.
    """

    code = "PARAMETER_COUNT_MISMATCH"

    def __init__(self, message: str, expected: int, found: int) -> None:
        super().__init__(message)
        self.expected = expected
        self.found = found


class UnknownStatementError(DbShimError, KeyError):
    """Raised when a prepared statement name is not registered."""

    code = "UNKNOWN_STATEMENT"

    def __init__(self, name: str) -> None:
        super().__init__(f"Prepared statement '{name}' does not exist")
        self.name = name

    def __str__(self) -> str:
        return self.args[0]


class DialectFeatureError(DbShimError):
    """Raised when the connected dialect has no support for a directive."""

    code = "DIALECT_FEATURE"


class ConfigError(DbShimError):
    """Raised when a configuration file is structurally invalid."""

    code = "CONFIG_ERROR"


class DriverError(DbShimError):
    """Wraps a failure reported by the underlying database driver.

    Args:
        message: Human-readable description, including the native message.
        native_code: The driver's own error code (vendor code or SQLSTATE),
            when the driver reports one.
    """

    code = "DRIVER_ERROR"

    def __init__(self, message: str, native_code: Optional[Any] = None) -> None:
        super().__init__(message)
        self.native_code = native_code


class RowLockedError(DbShimError):
    """Raised when a row lock is refused because another session holds it.

    Args:
        message: Human-readable description.
        native_code: The driver error code that signalled the conflict.
    """

    code = "ROW_LOCKED"

    def __init__(self, message: str, native_code: Optional[Any] = None) -> None:
        super().__init__(message)
        self.native_code = native_code
