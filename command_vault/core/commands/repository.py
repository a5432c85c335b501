# command_vault/core/commands/repository.py
"""SQLite repository for Command persistence.

This module provides CRUD, search, and tag maintenance for recorded
commands using direct sqlite3. Each public method opens its own connection,
so every caller (and every thread) works on a connection it owns.

Tables:
- commands: one row per command; tags and parameters are also kept as JSON
  columns so a command can be read back from a single row.
- tags: one row per tag name currently referenced by a command.
- command_tags: the command/tag join table, cascading on both sides.
"""

import json
import logging
import os
import sqlite3
from collections.abc import Iterable, Iterator
from contextlib import contextmanager

from command_vault.config import Settings, settings
from command_vault.core.commands.errors import (
    InvalidArgumentError,
    LockContentionError,
    NotFoundError,
    SerializationError,
    StorageError,
)
from command_vault.core.commands.models import Command, Parameter
from command_vault.utils.time_parser import format_timestamp, parse_timestamp

logger = logging.getLogger(__name__)

COMMAND_COLUMNS = (
    "c.id, c.text, c.timestamp, c.directory, c.exit_code, c.tags, c.parameters"
)


def normalize_tags(tags: Iterable[str]) -> list[str]:
    """Strip tag names, drop empty ones, and remove duplicates.

    Case is preserved and the first occurrence keeps its position.

    Args:
        tags: Raw tag names.

    Returns:
        Normalized tag names.
    """
    normalized: list[str] = []
    for tag in tags:
        name = tag.strip()
        if name and name not in normalized:
            normalized.append(name)
    return normalized


def _storage_error(exc: sqlite3.Error) -> StorageError:
    """Map a sqlite3 exception onto the vault error taxonomy."""
    message = str(exc).lower()
    if isinstance(exc, sqlite3.OperationalError) and (
        "locked" in message or "busy" in message
    ):
        return LockContentionError(f"Database is locked: {exc}")
    return StorageError(f"Database operation failed: {exc}")


def _limit_clause_value(limit: int) -> int:
    """Translate a public limit (0 = unbounded) into a SQLite LIMIT value."""
    if limit < 0:
        raise InvalidArgumentError(f"limit must be >= 0, got {limit}")
    return -1 if limit == 0 else limit


def _escape_like(query: str) -> str:
    return query.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class CommandRepository:
    """Repository for storing and retrieving commands from SQLite.

    Multi-statement writes run inside a single BEGIN IMMEDIATE transaction
    and are rolled back on any failure, so readers never observe a command
    without its tag links or parameters. Lock contention is reported as
    LockContentionError; the repository itself never retries.

    Attributes:
        db_path: Path to the SQLite database file.
        busy_timeout: Seconds to wait for a lock before giving up.

    Example:
        >>> from datetime import datetime, timezone
        >>> repo = CommandRepository(db_path="data/commands.db")
        >>> cmd = Command(
        ...     id=None, text="git status", timestamp=datetime.now(timezone.utc),
        ...     directory="/project", tags=["git"],
        ... )
        >>> command_id = repo.add(cmd)
        >>> repo.get(command_id).tags
        ['git']
    """

    def __init__(
        self, db_path: str = "data/commands.db", busy_timeout: float = 5.0
    ) -> None:
        """Initialize the CommandRepository.

        Creates the database directory and schema if they don't exist.
        Enables WAL mode for better concurrent access.

        Args:
            db_path: Path to the SQLite database file.
            busy_timeout: Seconds a connection waits on a locked database.
        """
        self.db_path = db_path
        self.busy_timeout = busy_timeout

        # Create directory if it doesn't exist
        db_dir = os.path.dirname(db_path)
        if db_dir:
            os.makedirs(db_dir, exist_ok=True)

        self._init_db()

    def _connect(self) -> sqlite3.Connection:
        """Open a connection in autocommit mode with foreign keys enforced."""
        try:
            conn = sqlite3.connect(
                self.db_path, timeout=self.busy_timeout, isolation_level=None
            )
        except sqlite3.Error as exc:
            raise _storage_error(exc) from exc
        try:
            conn.execute("PRAGMA foreign_keys = ON")
        except sqlite3.Error as exc:
            conn.close()
            raise _storage_error(exc) from exc
        return conn

    @contextmanager
    def _read(self) -> Iterator[sqlite3.Connection]:
        """Yield a connection for read-only queries."""
        conn = self._connect()
        try:
            yield conn
        except sqlite3.Error as exc:
            raise _storage_error(exc) from exc
        finally:
            conn.close()

    @contextmanager
    def _transaction(self) -> Iterator[sqlite3.Connection]:
        """Yield a connection inside a write transaction.

        The transaction commits when the block exits normally and rolls
        back on any exception, which is then re-raised.
        """
        conn = self._connect()
        try:
            conn.execute("BEGIN IMMEDIATE")
            try:
                yield conn
            except BaseException:
                if conn.in_transaction:
                    conn.execute("ROLLBACK")
                raise
            conn.execute("COMMIT")
        except sqlite3.Error as exc:
            error = _storage_error(exc)
            if error.retryable:
                logger.warning("Database %s is locked: %s", self.db_path, exc)
            raise error from exc
        finally:
            conn.close()

    def _init_db(self) -> None:
        """Initialize the database schema.

        Creates the commands, tags, and command_tags tables and their
        indexes if they don't exist, and enables WAL mode.
        """
        conn = self._connect()
        try:
            conn.execute("PRAGMA journal_mode=WAL")

            conn.execute("""
                CREATE TABLE IF NOT EXISTS commands (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    text TEXT NOT NULL,
                    timestamp TEXT NOT NULL,
                    directory TEXT NOT NULL,
                    exit_code INTEGER,
                    tags TEXT NOT NULL DEFAULT '[]',
                    parameters TEXT NOT NULL DEFAULT '[]'
                )
            """)
            conn.execute("""
                CREATE TABLE IF NOT EXISTS tags (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    name TEXT NOT NULL UNIQUE
                )
            """)
            conn.execute("""
                CREATE TABLE IF NOT EXISTS command_tags (
                    command_id INTEGER NOT NULL,
                    tag_id INTEGER NOT NULL,
                    PRIMARY KEY (command_id, tag_id),
                    FOREIGN KEY (command_id) REFERENCES commands(id) ON DELETE CASCADE,
                    FOREIGN KEY (tag_id) REFERENCES tags(id) ON DELETE CASCADE
                )
            """)

            conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_commands_text ON commands(text)"
            )
            conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_commands_timestamp "
                "ON commands(timestamp)"
            )
            conn.execute("CREATE INDEX IF NOT EXISTS idx_tags_name ON tags(name)")
        except sqlite3.Error as exc:
            raise _storage_error(exc) from exc
        finally:
            conn.close()

    @staticmethod
    def _encode_parameters(parameters: list[Parameter]) -> str:
        try:
            return json.dumps([p.to_dict() for p in parameters])
        except (TypeError, ValueError) as exc:
            raise SerializationError(f"Cannot encode parameters: {exc}") from exc

    @staticmethod
    def _decode_tags(raw: str) -> list[str]:
        try:
            tags = json.loads(raw)
        except (TypeError, ValueError) as exc:
            raise SerializationError(f"Cannot decode tags: {exc}") from exc
        if not isinstance(tags, list) or not all(isinstance(t, str) for t in tags):
            raise SerializationError(f"Invalid tags payload: {raw!r}")
        return tags

    @staticmethod
    def _decode_parameters(raw: str) -> list[Parameter]:
        try:
            data = json.loads(raw)
        except (TypeError, ValueError) as exc:
            raise SerializationError(f"Cannot decode parameters: {exc}") from exc
        if not isinstance(data, list):
            raise SerializationError(f"Invalid parameters payload: {raw!r}")
        return [Parameter.from_dict(item) for item in data]

    def _row_to_command(self, row: tuple) -> Command:
        """Convert a database row to a Command object.

        Args:
            row: Tuple containing (id, text, timestamp, directory,
                 exit_code, tags, parameters).

        Returns:
            Command instance populated from the row data.

        Raises:
            SerializationError: If a stored column cannot be decoded.
        """
        try:
            timestamp = parse_timestamp(row[2])
        except (TypeError, ValueError) as exc:
            raise SerializationError(f"Invalid timestamp: {row[2]!r}") from exc

        return Command(
            id=row[0],
            text=row[1],
            timestamp=timestamp,
            directory=row[3],
            exit_code=row[4],
            tags=self._decode_tags(row[5]),
            parameters=self._decode_parameters(row[6]),
        )

    def _query_commands(self, sql: str, params: tuple) -> list[Command]:
        with self._read() as conn:
            rows = conn.execute(sql, params).fetchall()
        return [self._row_to_command(row) for row in rows]

    @staticmethod
    def _link_tags(conn: sqlite3.Connection, command_id: int, tags: list[str]) -> None:
        """Create missing tags and link them to the command."""
        for tag in tags:
            conn.execute("INSERT OR IGNORE INTO tags (name) VALUES (?)", (tag,))
            tag_id = conn.execute(
                "SELECT id FROM tags WHERE name = ?", (tag,)
            ).fetchone()[0]
            conn.execute(
                "INSERT OR IGNORE INTO command_tags (command_id, tag_id) VALUES (?, ?)",
                (command_id, tag_id),
            )

    @staticmethod
    def _purge_orphan_tags(conn: sqlite3.Connection) -> None:
        conn.execute(
            "DELETE FROM tags WHERE id NOT IN (SELECT tag_id FROM command_tags)"
        )

    def _current_tags(self, conn: sqlite3.Connection, command_id: int) -> list[str]:
        """Read a command's tag column, raising NotFoundError if it's missing."""
        row = conn.execute(
            "SELECT tags FROM commands WHERE id = ?", (command_id,)
        ).fetchone()
        if row is None:
            raise NotFoundError(command_id)
        return self._decode_tags(row[0])

    def add(self, cmd: Command) -> int:
        """Insert a new command together with its parameters and tags.

        Args:
            cmd: Command to store. Its id must be None.

        Returns:
            The id assigned by the database.

        Raises:
            InvalidArgumentError: If cmd already has an id.
            SerializationError: If the parameters cannot be encoded.
            StorageError: If the write fails; nothing is committed.
        """
        if cmd.id is not None:
            raise InvalidArgumentError(
                f"Command already has id {cmd.id}; use update() instead"
            )

        tags = normalize_tags(cmd.tags)
        parameters = self._encode_parameters(cmd.parameters)

        with self._transaction() as conn:
            cursor = conn.execute(
                """
                INSERT INTO commands (
                    text, timestamp, directory, exit_code, tags, parameters
                ) VALUES (?, ?, ?, ?, ?, ?)
                """,
                (
                    cmd.text,
                    format_timestamp(cmd.timestamp),
                    cmd.directory,
                    cmd.exit_code,
                    json.dumps(tags),
                    parameters,
                ),
            )
            command_id = cursor.lastrowid
            self._link_tags(conn, command_id, tags)

        logger.debug("Added command %d with %d tag(s)", command_id, len(tags))
        return command_id

    def get(self, command_id: int) -> Command | None:
        """Retrieve a command by its id.

        Args:
            command_id: Command id to look up.

        Returns:
            Command if found, None otherwise.
        """
        with self._read() as conn:
            row = conn.execute(
                f"SELECT {COMMAND_COLUMNS} FROM commands c WHERE c.id = ?",
                (command_id,),
            ).fetchone()
        if row is None:
            return None
        return self._row_to_command(row)

    def update(self, cmd: Command) -> None:
        """Replace a stored command's fields, parameters, and tags as a unit.

        Args:
            cmd: Command with updated fields. Must have an id.

        Raises:
            InvalidArgumentError: If cmd.id is None. No state is touched.
            NotFoundError: If no command with that id exists.
            StorageError: If the write fails; nothing is committed.
        """
        if cmd.id is None:
            raise InvalidArgumentError("Cannot update command without id")

        tags = normalize_tags(cmd.tags)
        parameters = self._encode_parameters(cmd.parameters)

        with self._transaction() as conn:
            cursor = conn.execute(
                """
                UPDATE commands SET
                    text = ?,
                    timestamp = ?,
                    directory = ?,
                    exit_code = ?,
                    tags = ?,
                    parameters = ?
                WHERE id = ?
                """,
                (
                    cmd.text,
                    format_timestamp(cmd.timestamp),
                    cmd.directory,
                    cmd.exit_code,
                    json.dumps(tags),
                    parameters,
                    cmd.id,
                ),
            )
            if cursor.rowcount == 0:
                raise NotFoundError(cmd.id)

            conn.execute("DELETE FROM command_tags WHERE command_id = ?", (cmd.id,))
            self._link_tags(conn, cmd.id, tags)
            self._purge_orphan_tags(conn)

        logger.debug("Updated command %d", cmd.id)

    def delete(self, command_id: int) -> None:
        """Delete a command, its tag links, and any tag left unreferenced.

        Args:
            command_id: Id of the command to delete.

        Raises:
            NotFoundError: If the command doesn't exist. Nothing is deleted.
        """
        with self._transaction() as conn:
            conn.execute(
                "DELETE FROM command_tags WHERE command_id = ?", (command_id,)
            )
            cursor = conn.execute("DELETE FROM commands WHERE id = ?", (command_id,))
            if cursor.rowcount == 0:
                raise NotFoundError(command_id)
            self._purge_orphan_tags(conn)

        logger.debug("Deleted command %d", command_id)

    def add_tags_to_command(self, command_id: int, tags: Iterable[str]) -> None:
        """Attach tags to an existing command.

        Tags already attached are skipped, so calling this twice with the
        same arguments has the same effect as calling it once.

        Args:
            command_id: Id of the command to tag.
            tags: Tag names to attach.

        Raises:
            NotFoundError: If the command doesn't exist. Nothing is written.
        """
        new_tags = normalize_tags(tags)

        with self._transaction() as conn:
            current = self._current_tags(conn, command_id)
            merged = current + [tag for tag in new_tags if tag not in current]
            self._link_tags(conn, command_id, new_tags)
            conn.execute(
                "UPDATE commands SET tags = ? WHERE id = ?",
                (json.dumps(merged), command_id),
            )

    def remove_tag_from_command(self, command_id: int, tag_name: str) -> None:
        """Detach a tag from a command.

        Removing a tag that isn't attached, or removing from a command
        that doesn't exist, is a no-op. If this was the last command using
        the tag, the tag itself is deleted.

        Args:
            command_id: Id of the command.
            tag_name: Name of the tag to detach.
        """
        tag_name = tag_name.strip()

        with self._transaction() as conn:
            row = conn.execute(
                "SELECT tags FROM commands WHERE id = ?", (command_id,)
            ).fetchone()
            if row is None:
                return
            current = self._decode_tags(row[0])
            conn.execute(
                """
                DELETE FROM command_tags
                WHERE command_id = ?
                AND tag_id IN (SELECT id FROM tags WHERE name = ?)
                """,
                (command_id, tag_name),
            )
            if tag_name in current:
                current.remove(tag_name)
                conn.execute(
                    "UPDATE commands SET tags = ? WHERE id = ?",
                    (json.dumps(current), command_id),
                )
            self._purge_orphan_tags(conn)

    def list_commands(self, limit: int = 0, ascending: bool = False) -> list[Command]:
        """List commands ordered by timestamp, ties broken by insertion order.

        Args:
            limit: Maximum number of commands to return, 0 for no limit.
            ascending: Oldest first if True, newest first otherwise.

        Returns:
            List of commands, empty list if none exist.
        """
        order = "ASC" if ascending else "DESC"
        return self._query_commands(
            f"""
            SELECT {COMMAND_COLUMNS} FROM commands c
            ORDER BY c.timestamp {order}, c.id {order}
            LIMIT ?
            """,
            (_limit_clause_value(limit),),
        )

    def search_commands(self, query: str, limit: int = 10) -> list[Command]:
        """Find commands whose text contains query, ignoring case.

        Args:
            query: Substring to look for. LIKE wildcards are matched literally.
            limit: Maximum number of results, 0 for no limit.

        Returns:
            Matching commands, most recent first.
        """
        return self._query_commands(
            f"""
            SELECT {COMMAND_COLUMNS} FROM commands c
            WHERE c.text LIKE ? ESCAPE '\\'
            ORDER BY c.timestamp DESC, c.id DESC
            LIMIT ?
            """,
            (f"%{_escape_like(query)}%", _limit_clause_value(limit)),
        )

    def search_by_tag(self, tag_name: str, limit: int = 10) -> list[Command]:
        """Find commands carrying exactly the given tag (case-sensitive).

        Args:
            tag_name: Tag to match.
            limit: Maximum number of results, 0 for no limit.

        Returns:
            Matching commands, most recent first.
        """
        return self._query_commands(
            f"""
            SELECT {COMMAND_COLUMNS} FROM commands c
            JOIN command_tags ct ON ct.command_id = c.id
            JOIN tags t ON t.id = ct.tag_id
            WHERE t.name = ?
            ORDER BY c.timestamp DESC, c.id DESC
            LIMIT ?
            """,
            (tag_name.strip(), _limit_clause_value(limit)),
        )

    def list_tags(self) -> list[tuple[str, int]]:
        """List every tag in use with the number of commands referencing it.

        Returns:
            (name, count) pairs ordered by count descending, then name.
        """
        with self._read() as conn:
            rows = conn.execute("""
                SELECT t.name, COUNT(ct.command_id) AS usage_count
                FROM tags t
                JOIN command_tags ct ON ct.tag_id = t.id
                GROUP BY t.id, t.name
                ORDER BY usage_count DESC, t.name ASC
            """).fetchall()
        return [(name, count) for name, count in rows]


def open_repository(config: Settings | None = None) -> CommandRepository:
    """Create a CommandRepository from application settings.

    A new repository is returned on every call; callers that need
    concurrent access should open one per worker.

    Args:
        config: Settings to use, the module-level settings if omitted.

    Returns:
        CommandRepository for the configured database path.
    """
    config = config or settings
    return CommandRepository(db_path=config.db_path, busy_timeout=config.busy_timeout)
