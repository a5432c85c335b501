# command_vault/core/commands/executor.py
"""Command executor for preparing stored commands to run.

This module provides the CommandExecutor class which looks up a stored
command and fills in its parameters. Spawning the resulting shell command
is left to the caller.
"""

from dataclasses import dataclass

from command_vault.core.commands.parser import ValueProvider, substitute_parameters
from command_vault.core.commands.repository import CommandRepository


@dataclass
class PreparedCommand:
    """A fully substituted command ready to hand to a process runner.

    Attributes:
        command_id: Id of the stored command it was built from.
        text: Shell command with every placeholder replaced.
        directory: Directory the command was recorded in.
    """

    command_id: int
    text: str
    directory: str


class CommandExecutor:
    """Executor for preparing stored commands.

    Attributes:
        repository: CommandRepository for command lookup.

    Example:
        >>> from command_vault.core.commands.parser import mapping_provider
        >>> repo = CommandRepository(db_path="data/commands.db")
        >>> executor = CommandExecutor(repository=repo)
        >>> prepared = executor.prepare(1, mapping_provider({"branch": "dev"}))
        >>> if prepared:
        ...     print(prepared.text, "in", prepared.directory)
    """

    def __init__(self, repository: CommandRepository) -> None:
        """Initialize the CommandExecutor.

        Args:
            repository: CommandRepository for command lookup.
        """
        self.repository = repository

    def prepare(
        self, command_id: int, provider: ValueProvider | None = None
    ) -> PreparedCommand | None:
        """Look up a command and substitute its parameters.

        Args:
            command_id: Id of the stored command.
            provider: Source of parameter values; defaults apply when it
                returns None or is omitted.

        Returns:
            PreparedCommand, or None if the command does not exist.

        Raises:
            MissingValueError: If a parameter has no value and no default.
        """
        command = self.repository.get(command_id)

        if command is None:
            return None

        text = substitute_parameters(command.text, command.parameters, provider)
        return PreparedCommand(
            command_id=command_id, text=text, directory=command.directory
        )
