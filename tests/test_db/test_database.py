"""Tests for database connection, schema, transactions and commit events."""

import sqlite3
from pathlib import Path

import pytest

from salestrack.core.exceptions import (
    ConstraintViolationError,
    DatabaseError,
    NotInitializedError,
)
from salestrack.db.database import SCHEMA_VERSION, Database

EXPECTED_TABLES = {
    "users",
    "clients",
    "prospects",
    "sales",
    "phone_numbers",
    "call_logs",
    "follow_ups",
    "id_sequence",
    "schema_version",
}


class TestDatabaseInit:
    """Test database initialization."""

    def test_initialize_creates_tables(self, memory_db: Database):
        """initialize() creates all tables."""
        rows = memory_db.execute("SELECT name FROM sqlite_master WHERE type = 'table'").fetchall()
        assert EXPECTED_TABLES <= {row["name"] for row in rows}

    def test_initialize_is_idempotent(self, temp_db: Database):
        """Calling initialize() again is safe."""
        temp_db.initialize()
        temp_db.initialize()
        assert temp_db.is_initialized

    def test_reopening_file_keeps_data(self, tmp_path: Path):
        """Schema creation on an existing file does not wipe it."""
        path = str(tmp_path / "sales.db")
        with Database(path) as db:
            with db.transaction():
                db.execute(
                    "INSERT INTO users (id, username, password_hash, name) VALUES (?, ?, ?, ?)",
                    (db.next_id(), "amina", "x", "Amina"),
                )
        with Database(path) as db:
            row = db.execute("SELECT COUNT(*) AS n FROM users").fetchone()
            assert row["n"] == 1

    def test_schema_version_recorded(self, memory_db: Database):
        """Schema version row exists."""
        row = memory_db.execute("SELECT MAX(version) AS v FROM schema_version").fetchone()
        assert row["v"] == SCHEMA_VERSION

    def test_schema_version_follows_constant(self, monkeypatch):
        """The recorded version comes from SCHEMA_VERSION."""
        monkeypatch.setattr("salestrack.db.database.SCHEMA_VERSION", 7)
        with Database(":memory:") as db:
            rows = db.execute("SELECT version FROM schema_version").fetchall()
        assert [row["version"] for row in rows] == [7]

    def test_foreign_keys_enabled(self, memory_db: Database):
        """Foreign keys are enforced."""
        row = memory_db.execute("PRAGMA foreign_keys").fetchone()
        assert row[0] == 1

    def test_use_before_initialize_raises(self):
        """Any statement before initialize() is NotInitializedError."""
        db = Database(":memory:")
        with pytest.raises(NotInitializedError):
            db.execute("SELECT 1")
        with pytest.raises(NotInitializedError):
            with db.transaction():
                pass

    def test_unopenable_path_raises(self, tmp_path: Path):
        """A path that cannot be opened fails initialization."""
        blocker = tmp_path / "file"
        blocker.write_text("not a directory")
        db = Database(str(blocker / "sales.db"))
        with pytest.raises(DatabaseError):
            db.initialize()

    def test_close_then_use_raises(self):
        """Closed databases reject statements."""
        db = Database(":memory:")
        db.initialize()
        db.close()
        with pytest.raises(NotInitializedError):
            db.execute("SELECT 1")


class TestExecute:
    """Test error translation."""

    def test_integrity_error_translated(self, memory_db: Database):
        """Constraint failures become ConstraintViolationError."""
        with pytest.raises(ConstraintViolationError) as exc_info:
            memory_db.execute(
                "INSERT INTO call_logs (id, phone_number_id, date, feedback) VALUES (1, 999, 'x', 'Bogus')"
            )
        assert isinstance(exc_info.value.__cause__, sqlite3.IntegrityError)

    def test_syntax_error_translated(self, memory_db: Database):
        """Other sqlite3 failures become DatabaseError."""
        with pytest.raises(DatabaseError):
            memory_db.execute("SELEKT 1")


class TestTransactions:
    """Test transaction boundaries."""

    def _count_users(self, db: Database) -> int:
        return db.execute("SELECT COUNT(*) AS n FROM users").fetchone()["n"]

    def _insert_user(self, db: Database, username: str) -> None:
        db.execute(
            "INSERT INTO users (id, username, password_hash, name) VALUES (?, ?, 'h', 'n')",
            (db.next_id(), username),
        )

    def test_commit_persists(self, memory_db: Database):
        """A clean block commits."""
        with memory_db.transaction():
            self._insert_user(memory_db, "amina")
        assert self._count_users(memory_db) == 1
        assert memory_db.in_transaction is False

    def test_exception_rolls_back(self, memory_db: Database):
        """An exception undoes everything in the block."""
        with pytest.raises(RuntimeError):
            with memory_db.transaction():
                self._insert_user(memory_db, "amina")
                raise RuntimeError("boom")
        assert self._count_users(memory_db) == 0

    def test_nested_failure_rolls_back_outer(self, memory_db: Database):
        """Nested blocks join the outer transaction."""
        with pytest.raises(RuntimeError):
            with memory_db.transaction():
                self._insert_user(memory_db, "amina")
                with memory_db.transaction():
                    assert memory_db.in_transaction
                    self._insert_user(memory_db, "brian")
                raise RuntimeError("boom")
        assert self._count_users(memory_db) == 0

    def test_caught_statement_error_keeps_transaction(self, memory_db: Database):
        """A failed statement can be handled without losing earlier work."""
        with memory_db.transaction():
            self._insert_user(memory_db, "amina")
            with pytest.raises(ConstraintViolationError):
                self._insert_user(memory_db, "amina")
        assert self._count_users(memory_db) == 1


class TestIdSequence:
    """Test the database-wide identifier sequence."""

    def test_ids_increase(self, memory_db: Database):
        """Each allocation is larger than the last."""
        with memory_db.transaction():
            first = memory_db.next_id()
            second = memory_db.next_id()
        assert second == first + 1

    def test_rolled_back_ids_are_released(self, memory_db: Database):
        """An aborted transaction does not consume ids."""
        with memory_db.transaction():
            before = memory_db.next_id()
        with pytest.raises(RuntimeError):
            with memory_db.transaction():
                memory_db.next_id()
                raise RuntimeError("boom")
        with memory_db.transaction():
            after = memory_db.next_id()
        assert after == before + 1


class TestCommitEvents:
    """Test post-commit listeners."""

    def test_listener_fires_after_commit(self, memory_db: Database):
        """Listeners run once per key, after the outermost commit."""
        seen = []
        memory_db.subscribe("follow_ups", seen.append)
        with memory_db.transaction():
            memory_db.mark_changed("follow_ups", 1)
            memory_db.mark_changed("follow_ups", 1)
            with memory_db.transaction():
                memory_db.mark_changed("follow_ups", 2)
            assert seen == []
        assert seen == [1, 2]

    def test_listener_skipped_on_rollback(self, memory_db: Database):
        """Rolled-back changes are never announced."""
        seen = []
        memory_db.subscribe("follow_ups", seen.append)
        with pytest.raises(RuntimeError):
            with memory_db.transaction():
                memory_db.mark_changed("follow_ups", 1)
                raise RuntimeError("boom")
        with memory_db.transaction():
            pass
        assert seen == []

    def test_mark_outside_transaction_emits_immediately(self, memory_db: Database):
        """Without an open transaction there is nothing to wait for."""
        seen = []
        memory_db.subscribe("follow_ups", seen.append)
        memory_db.mark_changed("follow_ups", 5)
        assert seen == [5]

    def test_failing_listener_does_not_raise(self, memory_db: Database):
        """Listener errors are logged, not propagated."""
        seen = []

        def broken(key):
            raise RuntimeError("listener down")

        memory_db.subscribe("follow_ups", broken)
        memory_db.subscribe("follow_ups", seen.append)
        with memory_db.transaction():
            memory_db.mark_changed("follow_ups", 1)
        assert seen == [1]

    def test_unsubscribe(self, memory_db: Database):
        """Unsubscribed listeners stop receiving events."""
        seen = []
        memory_db.subscribe("follow_ups", seen.append)
        memory_db.unsubscribe("follow_ups", seen.append)
        memory_db.mark_changed("follow_ups", 1)
        assert seen == []
