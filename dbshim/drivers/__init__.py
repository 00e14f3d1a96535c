"""Database drivers."""

from typing import Dict, Type

from ..errors import ConfigError
from .base import Driver, DriverConnection, DriverCursor, DriverPreparedStatement
from .duckdb import DuckDBDriver
from .postgresql import PostgreSQLDriver

DRIVERS: Dict[str, Type[Driver]] = {
    DuckDBDriver.name: DuckDBDriver,
    PostgreSQLDriver.name: PostgreSQLDriver,
}


def create_driver(driver_type: str) -> Driver:
    """Instantiate a driver by its configured name."""
    driver_cls = DRIVERS.get(driver_type)
    if driver_cls is None:
        raise ConfigError(f"Unsupported driver type: {driver_type}")
    return driver_cls()


__all__ = [
    "Driver",
    "DriverConnection",
    "DriverCursor",
    "DriverPreparedStatement",
    "DuckDBDriver",
    "PostgreSQLDriver",
    "DRIVERS",
    "create_driver",
]
