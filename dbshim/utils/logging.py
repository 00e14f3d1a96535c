"""Logging setup for applications embedding dbshim."""

import logging
import sys
import json
from typing import Any, Dict, MutableMapping, Optional, Tuple
from datetime import datetime, timezone


class StructuredFormatter(logging.Formatter):
    """Formats each record as one JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON.

        Args:
            record: Log record to format

        Returns:
            JSON-formatted log string
        """
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "function": record.funcName,
            "line": record.lineno,
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        # Context attached by ContextLoggerAdapter, e.g. the connection name
        context = getattr(record, "context", None)
        if context:
            log_data.update(context)

        return json.dumps(log_data, default=str)


class StandardFormatter(logging.Formatter):
    """Human-readable formatter."""

    def __init__(self):
        super().__init__(
            fmt="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )


def setup_logging(
    level: str = "INFO",
    structured: bool = False,
    log_file: Optional[str] = None,
) -> None:
    """Configure the root logger.

    Args:
        level: Logging level (DEBUG shows every generated SQL statement)
        structured: Use JSON lines instead of plain text
        log_file: Also write to this file when given
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    if structured:
        formatter: logging.Formatter = StructuredFormatter()
    else:
        formatter = StandardFormatter()

    handlers = []

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(formatter)
    console_handler.setLevel(log_level)
    handlers.append(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(formatter)
        file_handler.setLevel(log_level)
        handlers.append(file_handler)

    logging.basicConfig(level=log_level, handlers=handlers, force=True)

    # Driver libraries are noisy at DEBUG
    logging.getLogger("psycopg2").setLevel(logging.WARNING)
    logging.getLogger("duckdb").setLevel(logging.WARNING)


class ContextLoggerAdapter(logging.LoggerAdapter):
    """Attaches a fixed context dictionary to every record."""

    def process(
        self, msg: str, kwargs: MutableMapping[str, Any]
    ) -> Tuple[str, MutableMapping[str, Any]]:
        extra = dict(kwargs.get("extra") or {})
        extra["context"] = self.extra
        kwargs["extra"] = extra
        return msg, kwargs


def get_contextual_logger(name: str, context: Dict[str, Any]) -> ContextLoggerAdapter:
    """Get a logger whose records carry the given context.

    Example:
        >>> logger = get_contextual_logger(__name__, {"connection": "main"})
        >>> logger.info("Connected")  # JSON output includes "connection"
    """
    return ContextLoggerAdapter(logging.getLogger(name), context)
