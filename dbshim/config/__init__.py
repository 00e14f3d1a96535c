"""Configuration management."""

from .config import (
    Config,
    ConnectionConfig,
    LoggingConfig,
    load_config,
)

__all__ = [
    "Config",
    "ConnectionConfig",
    "LoggingConfig",
    "load_config",
]
