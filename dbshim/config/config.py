"""Configuration management for dbshim."""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
import yaml
from pathlib import Path

from ..errors import ConfigError
from ..sql.dialect import Dialect
from ..statements.template import PreparedStatementTemplate


@dataclass
class ConnectionConfig:
    """Configuration for the database connection."""

    name: str = "default"
    driver: str = "duckdb"  # "duckdb", "postgresql"
    dialect: Optional[Dialect] = None  # None: detect from the driver
    autocommit: bool = False
    date_format: Optional[str] = None
    params: Dict[str, Any] = field(default_factory=dict)


@dataclass
class LoggingConfig:
    """Configuration for log output."""

    level: str = "INFO"
    structured: bool = False
    log_file: Optional[str] = None


@dataclass
class Config:
    """Main configuration class."""

    connection: ConnectionConfig = field(default_factory=ConnectionConfig)
    commit_threshold: int = 100
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    statements: List[PreparedStatementTemplate] = field(default_factory=list)


def load_config(config_path: str) -> Config:
    """Load configuration from YAML file.

    Args:
        config_path: Path to YAML configuration file

    Returns:
        Parsed configuration

    Raises:
        FileNotFoundError: If the file does not exist
        ConfigError: If the content is not a valid configuration

    Example YAML format:
        connection:
          name: main
          driver: postgresql
          autocommit: false
          date_format: YYYY-MM-DD
          params:
            host: localhost
            port: 5432
            database: mydb
            user: user
            password: pass

        commit_threshold: 500

        logging:
          level: DEBUG
          structured: true

        statements:
          - name: find_user
            sql: "SELECT id, name FROM users WHERE id = ?"
            params: [id]
            return_type: COLUMNS
    """
    path = Path(config_path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(path, "r") as f:
        data = yaml.safe_load(f)

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigError(f"Config file {config_path} must contain a mapping")

    connection = _parse_connection(data.get("connection") or {})
    logging_config = _parse_logging(data.get("logging") or {})
    statements = _parse_statements(data.get("statements") or [])

    threshold = data.get("commit_threshold", 100)
    if not isinstance(threshold, int) or threshold < 1:
        raise ConfigError(f"commit_threshold must be a positive integer, got {threshold!r}")

    return Config(
        connection=connection,
        commit_threshold=threshold,
        logging=logging_config,
        statements=statements,
    )


def _parse_connection(data: Dict[str, Any]) -> ConnectionConfig:
    if not isinstance(data, dict):
        raise ConfigError("connection must be a mapping")
    data = dict(data)
    driver = data.pop("driver", None)
    if not driver:
        raise ConfigError("connection.driver is required")

    dialect = None
    dialect_name = data.pop("dialect", None)
    if dialect_name:
        try:
            dialect = Dialect(str(dialect_name).lower())
        except ValueError as e:
            raise ConfigError(f"Unknown dialect: {dialect_name}") from e

    params = data.pop("params", None) or {}
    if not isinstance(params, dict):
        raise ConfigError("connection.params must be a mapping")

    try:
        return ConnectionConfig(driver=driver, dialect=dialect, params=params, **data)
    except TypeError as e:
        raise ConfigError(f"Invalid connection settings: {e}") from e


def _parse_logging(data: Dict[str, Any]) -> LoggingConfig:
    try:
        return LoggingConfig(**data)
    except TypeError as e:
        raise ConfigError(f"Invalid logging settings: {e}") from e


def _parse_statements(entries: List[Any]) -> List[PreparedStatementTemplate]:
    if not isinstance(entries, list):
        raise ConfigError("statements must be a list")
    templates = []
    for entry in entries:
        if not isinstance(entry, dict):
            raise ConfigError(f"Statement entry must be a mapping: {entry!r}")
        name = entry.get("name")
        sql = entry.get("sql")
        if not name or not sql:
            raise ConfigError(f"Statement entry needs name and sql: {entry!r}")
        try:
            template = PreparedStatementTemplate.create(
                name=name,
                sql=sql,
                params=entry.get("params"),
                return_type=entry.get("return_type"),
            )
        except ValueError as e:
            raise ConfigError(f"Invalid statement {name}: {e}") from e
        templates.append(template)
    return templates
