# command_vault/core/commands/tools.py
"""Command vault operations for the CLI and TUI layers.

This module wraps CommandRepository and the template parser into the
operations a front end calls: recording a command, editing it, tagging,
and searching. Operations that are safe to repeat are retried with
exponential backoff when another process holds the database lock.
Recording a new command is never retried, since a second attempt would
store a duplicate row.
"""

import logging
from collections.abc import Callable, Iterable
from datetime import datetime, timezone
from typing import Any, TypeVar

import tenacity

from command_vault.config import settings
from command_vault.core.commands.errors import (
    InvalidArgumentError,
    LockContentionError,
    NotFoundError,
)
from command_vault.core.commands.models import Command
from command_vault.core.commands.parser import extract_parameters
from command_vault.core.commands.repository import CommandRepository, normalize_tags
from command_vault.utils.time_parser import parse_datetime

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Any])


def retry_on_lock(
    attempts: int | None = None, max_wait: float | None = None
) -> Callable[[F], F]:
    """Build a decorator that retries a call while the database is locked.

    Only LockContentionError triggers a retry; any other error propagates
    immediately. After the last attempt the final error is re-raised.

    Args:
        attempts: Total attempts, settings.lock_retry_attempts if omitted.
        max_wait: Upper bound in seconds for the backoff between attempts,
            settings.lock_retry_max_wait if omitted.

    Returns:
        A tenacity retry decorator.
    """
    if attempts is None:
        attempts = settings.lock_retry_attempts
    if max_wait is None:
        max_wait = settings.lock_retry_max_wait

    return tenacity.retry(
        stop=tenacity.stop_after_attempt(attempts),
        wait=tenacity.wait_exponential(multiplier=0.1, max=max_wait),
        retry=tenacity.retry_if_exception_type(LockContentionError),
        before_sleep=tenacity.before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )


def record_command(
    repository: CommandRepository,
    text: str,
    directory: str,
    tags: Iterable[str] | None = None,
    exit_code: int | None = None,
    timestamp: datetime | str | None = None,
) -> Command:
    """Record a new command in the vault.

    Parameters are extracted from the text before storing.

    Args:
        repository: Repository to write to.
        text: The command as typed.
        directory: Working directory the command ran in.
        tags: Optional tag names.
        exit_code: Optional exit status.
        timestamp: When the command ran; a datetime, a date string accepted
            by parse_datetime, or None for the current time.

    Returns:
        The stored Command with its assigned id.

    Raises:
        InvalidArgumentError: If text is blank or timestamp is unparseable.
    """
    if not text.strip():
        raise InvalidArgumentError("Command text must not be empty")

    if isinstance(timestamp, str):
        parsed = parse_datetime(timestamp)
        if parsed is None:
            raise InvalidArgumentError(f"Unrecognized timestamp: {timestamp!r}")
        timestamp = parsed

    cmd = Command(
        id=None,
        text=text,
        timestamp=timestamp or datetime.now(timezone.utc),
        directory=directory,
        exit_code=exit_code,
        tags=normalize_tags(tags or []),
        parameters=extract_parameters(text),
    )
    cmd.id = repository.add(cmd)
    logger.info("Recorded command %d", cmd.id)
    return cmd


def edit_command(
    repository: CommandRepository,
    command_id: int,
    text: str | None = None,
    directory: str | None = None,
    tags: Iterable[str] | None = None,
    exit_code: int | None = None,
) -> Command:
    """Change fields of a stored command.

    Fields left as None keep their stored value. When the text changes its
    parameters are extracted again.

    Args:
        repository: Repository to update.
        command_id: Id of the command to edit.
        text: New command text.
        directory: New working directory.
        tags: Replacement tag list.
        exit_code: New exit status.

    Returns:
        The updated Command.

    Raises:
        NotFoundError: If the command doesn't exist.
    """
    cmd = repository.get(command_id)
    if cmd is None:
        raise NotFoundError(command_id)

    if text is not None and text != cmd.text:
        if not text.strip():
            raise InvalidArgumentError("Command text must not be empty")
        cmd.text = text
        cmd.parameters = extract_parameters(text)
    if directory is not None:
        cmd.directory = directory
    if tags is not None:
        cmd.tags = normalize_tags(tags)
    if exit_code is not None:
        cmd.exit_code = exit_code

    repository.update(cmd)
    return cmd


@retry_on_lock()
def forget_command(repository: CommandRepository, command_id: int) -> None:
    """Delete a command from the vault."""
    repository.delete(command_id)
    logger.info("Deleted command %d", command_id)


@retry_on_lock()
def add_tags(
    repository: CommandRepository, command_id: int, tags: Iterable[str]
) -> None:
    """Attach tags to a command."""
    repository.add_tags_to_command(command_id, list(tags))


@retry_on_lock()
def remove_tag(repository: CommandRepository, command_id: int, tag: str) -> None:
    """Detach a tag from a command."""
    repository.remove_tag_from_command(command_id, tag)


@retry_on_lock()
def find_commands(
    repository: CommandRepository,
    query: str | None = None,
    tag: str | None = None,
    limit: int = 10,
    ascending: bool = False,
) -> list[Command]:
    """Search the vault.

    A tag takes precedence over a text query; with neither, the most
    recent commands are listed.

    Args:
        repository: Repository to query.
        query: Case-insensitive substring to match against command text.
        tag: Exact tag name to match.
        limit: Maximum number of results, 0 for no limit.
        ascending: Oldest first when listing without a filter.

    Returns:
        Matching commands.
    """
    if tag:
        return repository.search_by_tag(tag, limit)
    if query:
        return repository.search_commands(query, limit)
    return repository.list_commands(limit, ascending)


@retry_on_lock()
def tag_summary(repository: CommandRepository) -> list[tuple[str, int]]:
    """Return every tag in use with its usage count."""
    return repository.list_tags()
