"""Core functionality for command-vault."""
