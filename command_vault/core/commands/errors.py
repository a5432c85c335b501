# command_vault/core/commands/errors.py
"""Error types raised by the command store and template engine.

All errors derive from VaultError so callers can catch the whole family.
SQLite failures are wrapped in StorageError (or LockContentionError when
another writer holds the database) with the original exception chained.
"""


class VaultError(Exception):
    """Base class for all command-vault errors."""


class NotFoundError(VaultError):
    """The operation targets a command that does not exist.

    Attributes:
        command_id: The id that was looked up.
    """

    def __init__(self, command_id: int) -> None:
        self.command_id = command_id
        super().__init__(f"No command found with id: {command_id}")


class InvalidArgumentError(VaultError, ValueError):
    """The caller passed an argument the operation cannot accept."""


class MissingValueError(InvalidArgumentError):
    """A template parameter has neither a supplied value nor a default.

    Attributes:
        parameter: Name of the parameter that could not be resolved.
    """

    def __init__(self, parameter: str) -> None:
        self.parameter = parameter
        super().__init__(f"No value provided for parameter: {parameter}")


class StorageError(VaultError):
    """The underlying database failed (I/O, lock, or transaction error)."""

    retryable = False


class LockContentionError(StorageError):
    """Another connection holds a conflicting lock on the database."""

    retryable = True


class SerializationError(VaultError):
    """A stored value could not be encoded or decoded."""
