"""command-vault: a personal shell command history with tags and parameters."""

__version__ = "0.3.0"
