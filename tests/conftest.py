# tests/conftest.py
"""Shared pytest fixtures for all test modules.

Provides common fixtures for:
- Temporary database paths and repositories
- Command factories
- Mock environment variables
"""

import os
from collections.abc import Callable, Generator
from datetime import datetime, timedelta, timezone
from unittest.mock import patch

import pytest

from command_vault.core.commands.models import Command
from command_vault.core.commands.repository import CommandRepository

BASE_TIME = datetime(2024, 1, 15, 14, 0, 0, 123456, tzinfo=timezone.utc)


@pytest.fixture
def temp_db(tmp_path) -> str:
    """Path to a not-yet-created SQLite database file."""
    return str(tmp_path / "commands.db")


@pytest.fixture
def repo(temp_db: str) -> CommandRepository:
    """A CommandRepository backed by a fresh temporary database."""
    return CommandRepository(db_path=temp_db, busy_timeout=0.1)


@pytest.fixture
def make_command() -> Callable[..., Command]:
    """Factory for unsaved commands with sensible defaults.

    Each call without an explicit timestamp is one minute later than the
    previous one, so insertion order and time order agree.
    """
    counter = {"n": 0}

    def factory(text: str = "git status", **kwargs) -> Command:
        if "timestamp" not in kwargs:
            kwargs["timestamp"] = BASE_TIME + timedelta(minutes=counter["n"])
            counter["n"] += 1
        kwargs.setdefault("directory", "/home/user/project")
        return Command(id=None, text=text, **kwargs)

    return factory


@pytest.fixture
def mock_env_vars(tmp_path) -> Generator[dict[str, str], None, None]:
    """Provide mock environment variables for testing.

    Yields:
        Dictionary of mock environment variables that were set.
    """
    mock_vars = {
        "COMMAND_VAULT_DB_PATH": str(tmp_path / "env" / "vault.db"),
        "COMMAND_VAULT_BUSY_TIMEOUT": "0.5",
        "COMMAND_VAULT_LOCK_RETRY_ATTEMPTS": "5",
        "COMMAND_VAULT_LOG_LEVEL": "DEBUG",
        "COMMAND_VAULT_LOG_JSON": "false",
    }

    with patch.dict(os.environ, mock_vars):
        yield mock_vars
