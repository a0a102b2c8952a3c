"""SQLite database connection, schema and transactions for SalesTrack.

Provides:
    - One owned connection, opened at startup and held until close()
    - Idempotent schema creation ("create if not exists", no migrations)
    - Explicit transactions; nested use joins the outermost one
    - A database-wide identifier sequence (ids never collide or repeat)
    - Commit events so observers run only after data is durable

Usage:
    from salestrack.db.database import Database

    with Database("sales.db") as db:
        with db.transaction():
            db.execute("UPDATE prospects SET status = ? WHERE id = ?", ("Contacted", 7))
"""

import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Callable, Hashable, Optional, Sequence

from salestrack.core.config import get_config
from salestrack.core.exceptions import (
    ConstraintViolationError,
    DatabaseError,
    NotInitializedError,
)
from salestrack.core.logging import get_logger

logger = get_logger(__name__)


SCHEMA_VERSION = 1

SCHEMA_DDL = """
-- Users
CREATE TABLE IF NOT EXISTS users (
    id INTEGER PRIMARY KEY,
    username TEXT NOT NULL UNIQUE,
    password_hash TEXT NOT NULL,
    name TEXT NOT NULL
);

-- Clients
CREATE TABLE IF NOT EXISTS clients (
    id INTEGER PRIMARY KEY,
    user_id INTEGER NOT NULL,
    name TEXT NOT NULL,
    phone TEXT NOT NULL DEFAULT '',
    email TEXT NOT NULL DEFAULT '',
    company TEXT NOT NULL DEFAULT '',
    industry TEXT NOT NULL DEFAULT '',
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    FOREIGN KEY (user_id) REFERENCES users(id)
);

CREATE INDEX IF NOT EXISTS idx_clients_user ON clients(user_id, name);

-- Prospects
CREATE TABLE IF NOT EXISTS prospects (
    id INTEGER PRIMARY KEY,
    user_id INTEGER NOT NULL,
    name TEXT NOT NULL,
    phone TEXT NOT NULL DEFAULT '',
    email TEXT NOT NULL DEFAULT '',
    company TEXT NOT NULL DEFAULT '',
    status TEXT NOT NULL DEFAULT 'New'
        CHECK (status IN ('New', 'Contacted', 'Qualified', 'Won')),
    follow_up_date TEXT,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    FOREIGN KEY (user_id) REFERENCES users(id)
);

CREATE INDEX IF NOT EXISTS idx_prospects_user ON prospects(user_id, follow_up_date);
CREATE INDEX IF NOT EXISTS idx_prospects_status ON prospects(status);

-- Sales (amount is a decimal string)
CREATE TABLE IF NOT EXISTS sales (
    id INTEGER PRIMARY KEY,
    client_id INTEGER NOT NULL,
    date TEXT NOT NULL,
    amount TEXT NOT NULL,
    product_or_service TEXT NOT NULL,
    FOREIGN KEY (client_id) REFERENCES clients(id)
);

CREATE INDEX IF NOT EXISTS idx_sales_client ON sales(client_id);
CREATE INDEX IF NOT EXISTS idx_sales_date ON sales(date);

-- Phone Numbers
CREATE TABLE IF NOT EXISTS phone_numbers (
    id INTEGER PRIMARY KEY,
    user_id INTEGER NOT NULL,
    number TEXT NOT NULL,
    last_called_date TEXT,
    is_prospect INTEGER NOT NULL DEFAULT 0,
    prospect_id INTEGER,
    FOREIGN KEY (user_id) REFERENCES users(id),
    FOREIGN KEY (prospect_id) REFERENCES prospects(id) ON DELETE SET NULL,
    UNIQUE (user_id, number)
);

CREATE INDEX IF NOT EXISTS idx_phone_numbers_called ON phone_numbers(user_id, last_called_date);

-- Call Logs
CREATE TABLE IF NOT EXISTS call_logs (
    id INTEGER PRIMARY KEY,
    phone_number_id INTEGER NOT NULL,
    date TEXT NOT NULL,
    feedback TEXT NOT NULL
        CHECK (feedback IN ('Successful', 'Busy', 'Not Answered', 'DNC', 'Connected-Lead')),
    duration INTEGER NOT NULL DEFAULT 0 CHECK (duration >= 0),
    short_notes TEXT NOT NULL DEFAULT '',
    next_follow_up_date TEXT,
    FOREIGN KEY (phone_number_id) REFERENCES phone_numbers(id)
);

CREATE INDEX IF NOT EXISTS idx_call_logs_phone ON call_logs(phone_number_id);
CREATE INDEX IF NOT EXISTS idx_call_logs_date ON call_logs(date);

-- Follow-ups (entity_id is resolved by entity_type, not a foreign key)
CREATE TABLE IF NOT EXISTS follow_ups (
    id INTEGER PRIMARY KEY,
    entity_id INTEGER NOT NULL,
    entity_type TEXT NOT NULL
        CHECK (entity_type IN ('client', 'prospect', 'phoneNumber')),
    date TEXT NOT NULL,
    notes TEXT NOT NULL DEFAULT '',
    is_completed INTEGER NOT NULL DEFAULT 0,
    created_at TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_follow_ups_entity ON follow_ups(entity_type, entity_id);
CREATE INDEX IF NOT EXISTS idx_follow_ups_date ON follow_ups(date);

-- Identifier sequence shared by every entity table
CREATE TABLE IF NOT EXISTS id_sequence (
    name TEXT PRIMARY KEY,
    value INTEGER NOT NULL
);

INSERT OR IGNORE INTO id_sequence (name, value) VALUES ('global', 0);

-- Schema Version
CREATE TABLE IF NOT EXISTS schema_version (
    version INTEGER PRIMARY KEY,
    applied_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);

"""


CommitListener = Callable[[Hashable], None]


class Database:
    """SQLite database manager.

    The connection runs in autocommit mode; every write goes through
    transaction(), which issues BEGIN IMMEDIATE / COMMIT / ROLLBACK itself.

    Attributes:
        db_path: Path to database file
    """

    def __init__(self, db_path: Optional[str] = None):
        """Initialize database.

        Args:
            db_path: Path to database file. Use ":memory:" for in-memory.
                    Defaults to config path.
        """
        if db_path is None:
            config = get_config()
            self.db_path = str(config.db_path)
        else:
            self.db_path = str(db_path)

        self._conn: Optional[sqlite3.Connection] = None
        self._initialized = False
        self._tx_depth = 0
        self._pending: dict[str, list[Hashable]] = {}
        self._listeners: dict[str, list[CommitListener]] = {}

    def __enter__(self) -> "Database":
        self.initialize()
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def _get_connection(self) -> sqlite3.Connection:
        """Get or create database connection."""
        if self._conn is None:
            try:
                if self.db_path != ":memory:":
                    Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)

                # check_same_thread is off so a single TaskManager worker can own the work
                self._conn = sqlite3.connect(
                    self.db_path, isolation_level=None, check_same_thread=False
                )
                self._conn.row_factory = sqlite3.Row
                self._conn.execute("PRAGMA foreign_keys = ON")

                if self.db_path != ":memory:":
                    self._conn.execute("PRAGMA journal_mode = WAL")

            except (sqlite3.Error, OSError) as e:
                self._conn = None
                raise DatabaseError(f"Cannot connect to database: {e}") from e

        return self._conn

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    @property
    def in_transaction(self) -> bool:
        return self._tx_depth > 0

    def connection(self) -> sqlite3.Connection:
        """Return the live connection.

        Raises:
            NotInitializedError: If initialize() has not completed
        """
        if not self._initialized:
            raise NotInitializedError(
                "Database not initialized; call initialize() before using repositories"
            )
        return self._get_connection()

    def close(self) -> None:
        """Close database connection."""
        if self._conn is not None:
            self._conn.close()
            self._conn = None
        self._initialized = False
        self._tx_depth = 0
        self._pending.clear()

    def initialize(self) -> None:
        """Create schema if not exists.

        Safe to call repeatedly; only the first call touches the file.

        Raises:
            DatabaseError: If the database cannot be opened or created
        """
        if self._initialized:
            return

        conn = self._get_connection()
        try:
            conn.executescript(SCHEMA_DDL)
            conn.execute(
                "INSERT OR IGNORE INTO schema_version (version) VALUES (?)",
                (SCHEMA_VERSION,),
            )
        except sqlite3.Error as e:
            raise DatabaseError(f"Cannot initialize database: {e}") from e

        self._initialized = True
        logger.info("Database initialized", extra={"context": {"path": self.db_path}})

    # =========================================================================
    # STATEMENTS AND TRANSACTIONS
    # =========================================================================

    def execute(self, sql: str, params: Sequence[Any] = ()) -> sqlite3.Cursor:
        """Run one statement, translating sqlite3 errors.

        Raises:
            NotInitializedError: Before initialize()
            ConstraintViolationError: Unique / foreign key / check failure
            DatabaseError: Any other storage failure
        """
        conn = self.connection()
        try:
            return conn.execute(sql, params)
        except sqlite3.IntegrityError as e:
            raise ConstraintViolationError(f"Constraint violated: {e}") from e
        except sqlite3.Error as e:
            raise DatabaseError(f"Query failed: {e}") from e

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        """Run a block atomically.

        The outermost block begins and commits; any exception rolls the
        whole unit back and propagates. Nested blocks join the outer one.
        Commit listeners fire only after a successful outermost commit.
        """
        conn = self.connection()

        if self._tx_depth > 0:
            self._tx_depth += 1
            try:
                yield conn
            finally:
                self._tx_depth -= 1
            return

        try:
            conn.execute("BEGIN IMMEDIATE")
        except sqlite3.Error as e:
            raise DatabaseError(f"Cannot begin transaction: {e}") from e

        self._tx_depth = 1
        try:
            yield conn
            conn.execute("COMMIT")
        except sqlite3.Error as e:
            self._rollback(conn)
            raise DatabaseError(f"Transaction failed: {e}") from e
        except BaseException:
            self._rollback(conn)
            raise
        finally:
            self._tx_depth = 0

        pending, self._pending = self._pending, {}
        self._emit(pending)

    def _rollback(self, conn: sqlite3.Connection) -> None:
        self._pending = {}
        try:
            conn.execute("ROLLBACK")
        except sqlite3.Error as e:
            logger.warning(f"Rollback failed: {e}")
        else:
            logger.debug("Transaction rolled back")

    def next_id(self) -> int:
        """Allocate the next database-wide identifier.

        Must be called inside transaction() so the id is released on rollback.
        """
        self.execute("UPDATE id_sequence SET value = value + 1 WHERE name = 'global'")
        row = self.execute("SELECT value FROM id_sequence WHERE name = 'global'").fetchone()
        return int(row["value"])

    # =========================================================================
    # COMMIT EVENTS
    # =========================================================================

    def subscribe(self, topic: str, listener: CommitListener) -> None:
        """Call listener(key) after each commit that marked topic/key."""
        self._listeners.setdefault(topic, []).append(listener)

    def unsubscribe(self, topic: str, listener: CommitListener) -> None:
        listeners = self._listeners.get(topic, [])
        if listener in listeners:
            listeners.remove(listener)

    def mark_changed(self, topic: str, key: Hashable) -> None:
        """Record that the current transaction changed topic for key."""
        if self._tx_depth == 0:
            self._emit({topic: [key]})
            return
        keys = self._pending.setdefault(topic, [])
        if key not in keys:
            keys.append(key)

    def _emit(self, pending: dict[str, list[Hashable]]) -> None:
        for topic, keys in pending.items():
            for key in keys:
                for listener in list(self._listeners.get(topic, [])):
                    try:
                        listener(key)
                    except Exception as e:
                        logger.warning(
                            f"Commit listener failed: {e}",
                            exc_info=True,
                            extra={"context": {"topic": topic, "key": key}},
                        )
