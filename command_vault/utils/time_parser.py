# command_vault/utils/time_parser.py
"""Timestamp helpers.

Commands are stored with UTC timestamps in a fixed ISO-8601 layout that
always carries microseconds and a +00:00 offset, so the lexical order of the
stored strings matches chronological order. User-supplied dates are parsed
leniently by parse_datetime.
"""

from datetime import datetime, timezone

UTC = timezone.utc

# Date-only formats, interpreted as midnight UTC
DATE_FORMATS = [
    "%Y-%m-%d",
    "%Y/%m/%d",
    "%d-%m-%Y",
    "%d/%m/%Y",
]

DATETIME_FORMATS = [
    "%Y-%m-%d %H:%M",
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%d %H:%M:%S UTC",
    "%d/%m/%Y %H:%M",
    "%d/%m/%Y %H:%M:%S",
]


def to_utc(dt: datetime) -> datetime:
    """Return dt as an aware UTC datetime.

    Naive datetimes are assumed to already be in UTC.

    Args:
        dt: Datetime to normalize.

    Returns:
        Equivalent datetime with tzinfo=UTC.
    """
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


def format_timestamp(dt: datetime) -> str:
    """Serialize a datetime for storage.

    Args:
        dt: Datetime to serialize (naive values are treated as UTC).

    Returns:
        String like "2024-01-15T14:00:00.000000+00:00".
    """
    return to_utc(dt).isoformat(timespec="microseconds")


def parse_timestamp(value: str) -> datetime:
    """Parse a stored timestamp back into an aware UTC datetime.

    Args:
        value: String produced by format_timestamp (any ISO-8601 string
            with an offset is accepted).

    Returns:
        Aware UTC datetime.

    Raises:
        ValueError: If value is not a valid ISO-8601 timestamp.
    """
    return to_utc(datetime.fromisoformat(value))


def parse_datetime(value: str) -> datetime | None:
    """Parse a user-supplied date or datetime string.

    Tries ISO-8601 / RFC 3339 first, then a list of common date and
    datetime layouts. Values without an offset are interpreted as UTC.

    Args:
        value: The text to parse.

    Returns:
        Aware UTC datetime, or None if no format matches.

    Examples:
        >>> parse_datetime("2024-01-15")
        datetime.datetime(2024, 1, 15, 0, 0, tzinfo=datetime.timezone.utc)

        >>> parse_datetime("15/01/2024 14:30")
        datetime.datetime(2024, 1, 15, 14, 30, tzinfo=datetime.timezone.utc)

        >>> parse_datetime("next tuesday")
        None
    """
    value = value.strip()
    if not value:
        return None

    try:
        return to_utc(datetime.fromisoformat(value.replace("Z", "+00:00")))
    except ValueError:
        pass

    for fmt in DATE_FORMATS + DATETIME_FORMATS:
        try:
            return datetime.strptime(value, fmt).replace(tzinfo=UTC)
        except ValueError:
            continue

    return None
