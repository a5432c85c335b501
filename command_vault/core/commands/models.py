# command_vault/core/commands/models.py
"""Command and Parameter data models.

A Command is one recorded shell invocation together with its metadata.
Parameters are the named placeholders parsed out of the command text.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from command_vault.core.commands.errors import SerializationError
from command_vault.utils.time_parser import to_utc


@dataclass
class Parameter:
    """A named placeholder inside a command template.

    Attributes:
        name: Identifier matching [A-Za-z][A-Za-z0-9_]*.
        description: Optional human-readable hint.
        default_value: Value used when no override is supplied.

    Example:
        >>> Parameter(name="branch", description="Git branch name", default_value="main")
        Parameter(name='branch', description='Git branch name', default_value='main')
    """

    name: str
    description: str | None = None
    default_value: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-serializable dictionary."""
        return {
            "name": self.name,
            "description": self.description,
            "default_value": self.default_value,
        }

    @classmethod
    def from_dict(cls, data: Any) -> "Parameter":
        """Create from a dictionary produced by to_dict.

        Args:
            data: Decoded JSON object.

        Returns:
            Parameter instance.

        Raises:
            SerializationError: If data is not a valid parameter object.
        """
        if not isinstance(data, dict) or not isinstance(data.get("name"), str):
            raise SerializationError(f"Invalid parameter payload: {data!r}")

        description = data.get("description")
        default_value = data.get("default_value")
        for value in (description, default_value):
            if value is not None and not isinstance(value, str):
                raise SerializationError(f"Invalid parameter payload: {data!r}")

        return cls(
            name=data["name"],
            description=description,
            default_value=default_value,
        )


@dataclass
class Command:
    """A recorded command with its metadata.

    The timestamp is always held as an aware UTC datetime; naive values are
    taken to be UTC and aware values are converted on construction.

    Attributes:
        id: Identifier assigned by the store, None before insertion.
        text: The literal command string as typed.
        timestamp: When the command was recorded.
        directory: Working directory the command was recorded in.
        exit_code: Exit status, if the caller supplied one.
        tags: Tag names attached to the command.
        parameters: Placeholders parsed from text, in first-occurrence order.

    Example:
        >>> from datetime import datetime, timezone
        >>> cmd = Command(
        ...     id=None,
        ...     text="git push origin @branch=main",
        ...     timestamp=datetime.now(timezone.utc),
        ...     directory="/project",
        ...     tags=["git"],
        ...     parameters=[Parameter(name="branch", default_value="main")],
        ... )
    """

    id: int | None
    text: str
    timestamp: datetime
    directory: str
    exit_code: int | None = None
    tags: list[str] = field(default_factory=list)
    parameters: list[Parameter] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.timestamp = to_utc(self.timestamp)
