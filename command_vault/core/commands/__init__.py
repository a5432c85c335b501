"""Command module for recording, searching, and replaying shell commands.

This module provides:
- Command, Parameter: Data models for recorded commands and placeholders
- CommandRepository: SQLite repository for command and tag persistence
- extract_parameters, substitute_parameters: The @name template engine
- CommandExecutor: Prepares stored commands for execution
- Vault operations: record_command, edit_command, forget_command, add_tags,
  remove_tag, find_commands, tag_summary
"""

from command_vault.core.commands.errors import (
    InvalidArgumentError,
    LockContentionError,
    MissingValueError,
    NotFoundError,
    SerializationError,
    StorageError,
    VaultError,
)
from command_vault.core.commands.executor import CommandExecutor, PreparedCommand
from command_vault.core.commands.models import Command, Parameter
from command_vault.core.commands.parser import (
    extract_parameters,
    lines_provider,
    mapping_provider,
    quote_value,
    sequence_provider,
    substitute_parameters,
)
from command_vault.core.commands.repository import (
    CommandRepository,
    normalize_tags,
    open_repository,
)
from command_vault.core.commands.tools import (
    add_tags,
    edit_command,
    find_commands,
    forget_command,
    record_command,
    remove_tag,
    retry_on_lock,
    tag_summary,
)

__all__ = [
    "Command",
    "Parameter",
    "CommandRepository",
    "open_repository",
    "normalize_tags",
    "extract_parameters",
    "substitute_parameters",
    "quote_value",
    "mapping_provider",
    "sequence_provider",
    "lines_provider",
    "CommandExecutor",
    "PreparedCommand",
    "record_command",
    "edit_command",
    "forget_command",
    "add_tags",
    "remove_tag",
    "find_commands",
    "tag_summary",
    "retry_on_lock",
    "VaultError",
    "NotFoundError",
    "InvalidArgumentError",
    "MissingValueError",
    "StorageError",
    "LockContentionError",
    "SerializationError",
]
