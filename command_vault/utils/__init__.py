"""Utility functions for command-vault."""

from command_vault.utils.logging import (
    configure_logging,
    configure_structured_logging,
    get_invocation_id,
    get_logger,
    set_invocation_id,
)
from command_vault.utils.time_parser import (
    format_timestamp,
    parse_datetime,
    parse_timestamp,
    to_utc,
)

__all__ = [
    "get_logger",
    "set_invocation_id",
    "get_invocation_id",
    "configure_logging",
    "configure_structured_logging",
    "format_timestamp",
    "parse_datetime",
    "parse_timestamp",
    "to_utc",
]
