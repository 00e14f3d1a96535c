"""Build connections from configuration."""

import logging

from ..config import Config
from ..drivers import create_driver
from .connection import Connection

logger = logging.getLogger(__name__)


def open_connection(config: Config) -> Connection:
    """Connect as configured and register every configured statement.

    Args:
        config: Loaded configuration

    Returns:
        Open connection with the session date format applied

    Raises:
        ConfigError: If the configured driver is unknown
        DriverError: If connecting or preparing fails
    """
    settings = config.connection
    driver = create_driver(settings.driver)
    connection = Connection(
        driver,
        params=settings.params,
        autocommit=settings.autocommit,
        dialect=settings.dialect,
        name=settings.name,
    )
    connection.connect()
    try:
        if settings.date_format:
            connection.set_date_format(settings.date_format)
        for template in config.statements:
            connection.prepare(template)
    except Exception:
        connection.close()
        raise
    logger.info(
        f"Connection {settings.name} ready with {len(config.statements)} prepared statements"
    )
    return connection
