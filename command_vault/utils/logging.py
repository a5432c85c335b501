# command_vault/utils/logging.py
"""Structured logging with JSON format and invocation ID support.

Provides:
- JSON-formatted log output for structured logging
- Invocation ID via ContextVar, to correlate the records of one CLI run
- Centralized logger configuration
"""

import json
import logging
import uuid
from contextvars import ContextVar
from typing import Any

from command_vault.config import Settings, settings

# Correlation ID for the current CLI invocation or TUI session
invocation_id_var: ContextVar[str] = ContextVar("invocation_id", default="")


def set_invocation_id(invocation_id: str) -> None:
    """Set the invocation correlation ID for the current context.

    Args:
        invocation_id: Unique identifier for the invocation.
    """
    invocation_id_var.set(invocation_id)


def get_invocation_id() -> str:
    """Get the invocation correlation ID for the current context.

    Returns:
        Current invocation ID, or empty string if not set.
    """
    return invocation_id_var.get()


class StructuredFormatter(logging.Formatter):
    """JSON formatter for structured logging.

    Outputs log records as JSON with timestamp, level, logger name,
    message, and optional invocation_id for correlation.
    """

    def format(self, record: logging.LogRecord) -> str:
        """Format a log record as JSON.

        Args:
            record: Log record to format.

        Returns:
            JSON-formatted log string.
        """
        log_data: dict[str, Any] = {
            "timestamp": self.formatTime(record),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        invocation_id = get_invocation_id()
        if invocation_id:
            log_data["invocation_id"] = invocation_id

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data)


def get_logger(name: str) -> logging.Logger:
    """Get a logger instance by name.

    Args:
        name: Logger name (typically __name__).

    Returns:
        Logger instance.
    """
    return logging.getLogger(name)


def configure_structured_logging(
    level: int | str = logging.INFO, json_output: bool = True
) -> None:
    """Configure logging for the application.

    Sets up a StreamHandler on the root logger, using StructuredFormatter
    when json_output is True and a plain text format otherwise.

    Args:
        level: Logging level (default: logging.INFO). Names like "DEBUG"
            are accepted.
        json_output: Emit JSON records instead of plain text.
    """
    handler = logging.StreamHandler()
    if json_output:
        handler.setFormatter(StructuredFormatter())
    else:
        handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
        )
    logging.root.addHandler(handler)
    logging.root.setLevel(level.upper() if isinstance(level, str) else level)


def configure_logging(config: Settings | None = None) -> str:
    """Configure logging from settings and start a new invocation.

    Applies COMMAND_VAULT_LOG_LEVEL and COMMAND_VAULT_LOG_JSON, then tags
    every record of this run with a fresh invocation ID.

    Args:
        config: Settings to read. Defaults to the module-level settings.

    Returns:
        The invocation ID that was set.
    """
    config = config or settings
    configure_structured_logging(config.log_level, json_output=config.log_json)

    invocation_id = uuid.uuid4().hex[:8]
    set_invocation_id(invocation_id)
    return invocation_id
