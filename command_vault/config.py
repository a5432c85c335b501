# command_vault/config.py
"""Application configuration using pydantic-settings.

Provides a centralized Settings class for all environment variables.
Every variable is prefixed with COMMAND_VAULT_ (e.g. COMMAND_VAULT_DB_PATH).
"""

import os
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def default_db_path() -> str:
    """Return the default database location in the user's data directory.

    Uses $XDG_DATA_HOME when set, otherwise ~/.local/share.
    """
    data_home = os.environ.get("XDG_DATA_HOME") or str(
        Path.home() / ".local" / "share"
    )
    return str(Path(data_home) / "command-vault" / "commands.db")


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    All settings are loaded from .env file and environment variables.
    Environment variables take precedence over .env file values.
    """

    # Storage
    db_path: str = Field(default_factory=default_db_path)
    busy_timeout: float = 5.0  # Seconds to wait on a locked database

    # Caller-side retry on lock contention
    lock_retry_attempts: int = 3
    lock_retry_max_wait: float = 2.0

    # Logging
    log_level: str = "INFO"
    log_json: bool = True

    model_config = SettingsConfigDict(
        env_prefix="COMMAND_VAULT_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",  # Ignore unknown env vars
        case_sensitive=False,  # Allow case-insensitive env var names
    )


# Singleton instance - import this in your code
settings = Settings()
