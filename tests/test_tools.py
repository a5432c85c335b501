"""Tests for the vault operations in tools.py."""

import sqlite3
from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest

from command_vault.core.commands.errors import (
    InvalidArgumentError,
    LockContentionError,
    NotFoundError,
    StorageError,
)
from command_vault.core.commands.models import Parameter
from command_vault.core.commands.tools import (
    add_tags,
    edit_command,
    find_commands,
    forget_command,
    record_command,
    remove_tag,
    retry_on_lock,
    tag_summary,
)


class TestRecordCommand:
    """Test suite for record_command."""

    def test_record_extracts_parameters(self, repo) -> None:
        """Test parameters are parsed from the text before storing."""
        cmd = record_command(
            repo,
            "docker run -p @port=8080 -v @volume @image",
            "/home/user",
            tags=["docker"],
            exit_code=0,
        )

        stored = repo.get(cmd.id)
        assert stored == cmd
        assert [p.name for p in stored.parameters] == ["port", "volume", "image"]
        assert stored.exit_code == 0

    def test_record_uses_current_utc_time(self, repo) -> None:
        """Test the timestamp defaults to now in UTC."""
        before = datetime.now(timezone.utc)
        cmd = record_command(repo, "ls", "/")
        after = datetime.now(timezone.utc)

        assert before <= cmd.timestamp <= after
        assert cmd.timestamp.tzinfo == timezone.utc

    def test_record_parses_timestamp_string(self, repo) -> None:
        """Test string timestamps are parsed leniently."""
        cmd = record_command(repo, "ls", "/", timestamp="2024-01-15 09:30")

        assert cmd.timestamp == datetime(2024, 1, 15, 9, 30, tzinfo=timezone.utc)

    def test_record_rejects_bad_timestamp(self, repo) -> None:
        """Test unparseable timestamps raise InvalidArgumentError."""
        with pytest.raises(InvalidArgumentError):
            record_command(repo, "ls", "/", timestamp="someday")

        assert repo.list_commands() == []

    def test_record_rejects_blank_text(self, repo) -> None:
        """Test blank command text is refused."""
        with pytest.raises(InvalidArgumentError):
            record_command(repo, "   ", "/")

    def test_record_normalizes_tags(self, repo) -> None:
        """Test the returned command carries the normalized tags."""
        cmd = record_command(repo, "ls", "/", tags=["a", " a", "b"])

        assert cmd.tags == ["a", "b"]
        assert repo.get(cmd.id).tags == ["a", "b"]


class TestEditCommand:
    """Test suite for edit_command."""

    def test_edit_text_reextracts_parameters(self, repo) -> None:
        """Test changing the text refreshes its parameters."""
        cmd = record_command(repo, "echo @a", "/")

        edited = edit_command(repo, cmd.id, text="echo @b=1 @c")

        assert edited.parameters == [
            Parameter(name="b", default_value="1"),
            Parameter(name="c"),
        ]
        assert repo.get(cmd.id) == edited

    def test_edit_keeps_unspecified_fields(self, repo) -> None:
        """Test fields left as None keep their stored values."""
        cmd = record_command(repo, "make", "/src", tags=["build"], exit_code=2)

        edited = edit_command(repo, cmd.id, directory="/src/app")

        assert edited.text == "make"
        assert edited.tags == ["build"]
        assert edited.exit_code == 2
        assert edited.directory == "/src/app"

    def test_edit_replaces_tags(self, repo) -> None:
        """Test a new tag list replaces the old one."""
        cmd = record_command(repo, "make", "/", tags=["old"])

        edit_command(repo, cmd.id, tags=["new"])

        assert tag_summary(repo) == [("new", 1)]

    def test_edit_unknown_command(self, repo) -> None:
        """Test editing an unknown id raises NotFoundError."""
        with pytest.raises(NotFoundError):
            edit_command(repo, 12, text="ls")


class TestTagAndSearchOperations:
    """Test suite for tag, search, and delete operations."""

    def test_add_and_remove_tags(self, repo) -> None:
        """Test the git/vcs scenario through the tool functions."""
        cmd = record_command(repo, "git push", "/repo", tags=["git", "vcs"])

        remove_tag(repo, cmd.id, "vcs")
        add_tags(repo, cmd.id, ["remote"])

        assert [c.id for c in find_commands(repo, tag="git")] == [cmd.id]
        assert find_commands(repo, tag="vcs") == []
        assert tag_summary(repo) == [("git", 1), ("remote", 1)]

    def test_find_by_query(self, repo) -> None:
        """Test text queries use substring search."""
        record_command(repo, "npm test", "/")
        record_command(repo, "pytest -x", "/")

        assert [c.text for c in find_commands(repo, query="TEST")] == [
            "pytest -x",
            "npm test",
        ]

    def test_find_lists_without_filters(self, repo) -> None:
        """Test listing when neither query nor tag is given."""
        record_command(repo, "first", "/", timestamp="2024-01-01")
        record_command(repo, "second", "/", timestamp="2024-01-02")

        assert [c.text for c in find_commands(repo, limit=0, ascending=True)] == [
            "first",
            "second",
        ]

    def test_remove_tag_unknown_command(self, repo) -> None:
        """Test removing a tag from an unknown id is a no-op."""
        record_command(repo, "git push", "/repo", tags=["git"])

        remove_tag(repo, 404, "git")

        assert tag_summary(repo) == [("git", 1)]

    def test_forget_command(self, repo) -> None:
        """Test deleting through the tool function."""
        cmd = record_command(repo, "rm -rf build", "/", tags=["cleanup"])

        forget_command(repo, cmd.id)

        assert repo.get(cmd.id) is None
        assert tag_summary(repo) == []

    def test_forget_unknown_command(self, repo) -> None:
        """Test NotFoundError is not retried and propagates."""
        with pytest.raises(NotFoundError):
            forget_command(repo, 99)


class TestRetryOnLock:
    """Test suite for retry_on_lock."""

    def test_retries_until_success(self) -> None:
        """Test lock contention is retried and the result returned."""
        mock = MagicMock(
            side_effect=[LockContentionError("locked"), LockContentionError("locked"), "ok"]
        )

        @retry_on_lock(attempts=3, max_wait=0)
        def operation() -> str:
            return mock()

        assert operation() == "ok"
        assert mock.call_count == 3

    def test_reraises_after_last_attempt(self) -> None:
        """Test the final LockContentionError is re-raised."""
        mock = MagicMock(side_effect=LockContentionError("locked"))

        @retry_on_lock(attempts=2, max_wait=0)
        def operation() -> None:
            mock()

        with pytest.raises(LockContentionError):
            operation()
        assert mock.call_count == 2

    def test_other_errors_not_retried(self) -> None:
        """Test non-contention errors propagate on the first attempt."""
        mock = MagicMock(side_effect=StorageError("disk full"))

        @retry_on_lock(attempts=5, max_wait=0)
        def operation() -> None:
            mock()

        with pytest.raises(StorageError):
            operation()
        assert mock.call_count == 1

    def test_retries_real_contention(self, repo, temp_db) -> None:
        """Test a held lock exhausts the retries, then the call succeeds once released."""
        cmd = record_command(repo, "ls", "/", tags=["fs"])
        blocker = sqlite3.connect(temp_db, isolation_level=None)
        blocker.execute("BEGIN IMMEDIATE")
        try:
            with pytest.raises(LockContentionError):
                retry_on_lock(attempts=2, max_wait=0)(repo.add_tags_to_command)(
                    cmd.id, ["extra"]
                )
        finally:
            blocker.execute("ROLLBACK")
            blocker.close()

        add_tags(repo, cmd.id, ["extra"])
        assert repo.get(cmd.id).tags == ["fs", "extra"]
