"""Pure function-based parameter template engine for command strings."""

import re
from collections.abc import Callable, Mapping, Sequence

from command_vault.core.commands.errors import MissingValueError
from command_vault.core.commands.models import Parameter

# @name, optionally followed by :description and/or =default.
# An @ glued to a preceding word character (user@host) is not a placeholder.
PLACEHOLDER_PATTERN = re.compile(
    r"(?<!\w)@(?P<name>[A-Za-z][A-Za-z0-9_]*)"
    r"(?::(?P<description>[^\s=@]+))?"
    r"(?:=(?P<default>[^\s@]+))?"
)

ValueProvider = Callable[[Parameter], str | None]


def extract_parameters(text: str) -> list[Parameter]:
    """Extract parameter placeholders from a command template.

    Scans the text left to right. When a name appears more than once, the
    first occurrence supplies the description and default; later ones are
    only substitution targets. Anything that does not match the placeholder
    grammar is ignored.

    Args:
        text: The command template.

    Returns:
        Parameters in first-occurrence order (possibly empty).

    Examples:
        >>> extract_parameters("docker run -p @port=8080 -v @volume @image")
        [Parameter(name='port', description=None, default_value='8080'),
         Parameter(name='volume', description=None, default_value=None),
         Parameter(name='image', description=None, default_value=None)]

        >>> extract_parameters("git checkout @branch:target=main")
        [Parameter(name='branch', description='target', default_value='main')]

        >>> extract_parameters("echo @1name @!bad mail@example.com")
        []
    """
    parameters: list[Parameter] = []
    seen: set[str] = set()

    for match in PLACEHOLDER_PATTERN.finditer(text):
        name = match.group("name")
        if name in seen:
            continue
        seen.add(name)
        parameters.append(
            Parameter(
                name=name,
                description=match.group("description"),
                default_value=match.group("default"),
            )
        )

    return parameters


def quote_value(value: str) -> str:
    """Shell-quote a substitution value if it contains whitespace.

    Args:
        value: Raw value.

    Returns:
        The value wrapped in single quotes (embedded quotes written as
        '\\'') when it contains whitespace, otherwise the value unchanged.

    Examples:
        >>> quote_value("hello world")
        "'hello world'"

        >>> quote_value("it's here")
        "'it'\\\\''s here'"

        >>> quote_value("8080")
        '8080'
    """
    if not any(ch.isspace() for ch in value):
        return value
    return "'" + value.replace("'", "'\\''") + "'"


def substitute_parameters(
    text: str,
    parameters: Sequence[Parameter],
    provider: ValueProvider | None = None,
) -> str:
    """Fill parameter placeholders in a command template.

    Every parameter is resolved before anything is replaced, so a missing
    value leaves no partially substituted result behind. A provider
    returning None means no value was supplied and the parameter's default
    is used instead.

    Args:
        text: The command template.
        parameters: Parameters to resolve, usually from extract_parameters.
        provider: Callable returning the value for a parameter, or None.

    Returns:
        The command with every occurrence of each parameter's placeholder
        (including its :description and =default suffix) replaced.

    Raises:
        MissingValueError: If a parameter has no supplied value and no default.
    """
    resolved: dict[str, str] = {}

    for parameter in parameters:
        if parameter.name in resolved:
            continue
        value = provider(parameter) if provider is not None else None
        if value is None:
            value = parameter.default_value
        if value is None:
            raise MissingValueError(parameter.name)
        resolved[parameter.name] = quote_value(value)

    def _replace(match: re.Match[str]) -> str:
        return resolved.get(match.group("name"), match.group(0))

    return PLACEHOLDER_PATTERN.sub(_replace, text)


def mapping_provider(values: Mapping[str, str]) -> ValueProvider:
    """Build a provider that looks values up by parameter name."""

    def provide(parameter: Parameter) -> str | None:
        return values.get(parameter.name)

    return provide


def sequence_provider(values: Sequence[str]) -> ValueProvider:
    """Build a provider that hands out values positionally.

    The n-th distinct parameter asked for receives values[n]. Empty strings
    and positions past the end count as "no value", so defaults apply.
    """
    positions: dict[str, int] = {}

    def provide(parameter: Parameter) -> str | None:
        index = positions.setdefault(parameter.name, len(positions))
        if index < len(values) and values[index] != "":
            return values[index]
        return None

    return provide


def lines_provider(text: str) -> ValueProvider:
    """Build a positional provider from newline-separated batch input."""
    return sequence_provider(text.splitlines())
