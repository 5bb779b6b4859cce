"""
SQLite connection management.

Two entry points:

``get_connection()`` — a context manager that:
  - Enables foreign key enforcement (OFF by default in SQLite).
  - Enables WAL journal mode for concurrent reads while a dossier is written.
  - Sets a busy timeout to handle lock contention gracefully.
  - Uses ``sqlite3.Row`` factory so rows behave like dicts.
  - Commits on clean exit, rolls back on exception.

``Database`` — the process-wide resource injected into ``DossierUpdater``.
It is constructed once (usually via ``Database.from_config()``), opened
(schema + migrations applied), handed to collaborators, and closed at
shutdown. ``transaction()`` opens an IMMEDIATE write transaction so the
read-check-write sequence of a dossier update holds the write lock.

Usage::

    from exit_intel.db.connection import Database

    with Database.from_config(config.database) as db:
        with db.transaction() as conn:
            conn.execute("INSERT INTO ...")
"""

from __future__ import annotations

import logging
import sqlite3
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import TYPE_CHECKING, Generator, Optional

if TYPE_CHECKING:
    from exit_intel.config import DatabaseConfig

logger = logging.getLogger(__name__)

MEMORY_PATH = ":memory:"


def _connect(
    db_path: str,
    wal_mode: bool,
    busy_timeout_ms: int,
    check_same_thread: bool = True,
) -> sqlite3.Connection:
    if db_path != MEMORY_PATH:
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)

    conn = sqlite3.connect(
        db_path,
        timeout=busy_timeout_ms / 1000,
        check_same_thread=check_same_thread,
    )
    conn.row_factory = sqlite3.Row

    # These pragmas must be set before any DML/DDL
    conn.execute("PRAGMA foreign_keys = ON;")
    conn.execute(f"PRAGMA busy_timeout = {busy_timeout_ms};")
    if wal_mode and db_path != MEMORY_PATH:
        conn.execute("PRAGMA journal_mode = WAL;")
    return conn


@contextmanager
def get_connection(
    db_path: str,
    wal_mode: bool = True,
    busy_timeout_ms: int = 5000,
) -> Generator[sqlite3.Connection, None, None]:
    """Context manager yielding a configured SQLite connection.

    The connection is committed on clean exit and rolled back on exception.
    The database file (and any parent directories) are created if they do
    not already exist.

    Args:
        db_path: Path to the SQLite database file. Use ``":memory:"`` for
            in-memory databases (useful in tests).
        wal_mode: If ``True``, enable WAL journal mode for better concurrency.
        busy_timeout_ms: Milliseconds to wait when the database is locked
            before raising ``OperationalError``.

    Yields:
        An open, configured ``sqlite3.Connection``.

    Raises:
        sqlite3.OperationalError: If the database cannot be opened or is locked.
    """
    conn = _connect(db_path, wal_mode, busy_timeout_ms)
    try:
        yield conn
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


class Database:
    """Explicit, process-wide database resource.

    File databases get a fresh connection per unit of work (SQLite
    connections are cheap and must not cross threads). An in-memory database
    only exists while its connection is open, so it is served from one shared
    connection serialized by a lock.

    Attributes:
        db_path: SQLite file path or ``":memory:"``.
        wal_mode: Enable WAL journaling on file databases.
        busy_timeout_ms: Lock wait before ``OperationalError``.
    """

    def __init__(
        self,
        db_path: str,
        wal_mode: bool = True,
        busy_timeout_ms: int = 5000,
    ) -> None:
        self.db_path = db_path
        self.wal_mode = wal_mode
        self.busy_timeout_ms = busy_timeout_ms
        self._shared: Optional[sqlite3.Connection] = None
        self._lock = threading.RLock()
        self._is_open = False

    @classmethod
    def from_config(cls, config: "DatabaseConfig") -> "Database":
        """Build an (unopened) ``Database`` from the ``[database]`` config section."""
        return cls(
            db_path=config.db_path,
            wal_mode=config.wal_mode,
            busy_timeout_ms=config.busy_timeout_ms,
        )

    @property
    def is_open(self) -> bool:
        return self._is_open

    def open(self) -> "Database":
        """Open the resource and bring the schema up to date.

        Idempotent. Returns ``self`` so construction and opening can chain.
        """
        from exit_intel.db.migrations import run_migrations
        from exit_intel.db.schema import apply_schema

        with self._lock:
            if self._is_open:
                return self
            if self.db_path == MEMORY_PATH:
                self._shared = _connect(
                    self.db_path, self.wal_mode, self.busy_timeout_ms,
                    check_same_thread=False,
                )
            self._is_open = True

        with self.read() as conn:
            apply_schema(conn)
            run_migrations(conn)

        logger.info("Database open: %s", self.db_path)
        return self

    def close(self) -> None:
        """Release the resource. Safe to call more than once."""
        with self._lock:
            if self._shared is not None:
                self._shared.close()
                self._shared = None
            if self._is_open:
                logger.info("Database closed: %s", self.db_path)
            self._is_open = False

    def __enter__(self) -> "Database":
        return self.open()

    def __exit__(self, *exc_info) -> None:
        self.close()

    @contextmanager
    def read(self) -> Generator[sqlite3.Connection, None, None]:
        """Yield a connection for reads (and schema maintenance).

        Commits on clean exit like ``get_connection()``.
        """
        self._require_open()
        if self._shared is not None:
            with self._lock:
                try:
                    yield self._shared
                    self._shared.commit()
                except Exception:
                    self._shared.rollback()
                    raise
            return

        with get_connection(self.db_path, self.wal_mode, self.busy_timeout_ms) as conn:
            yield conn

    @contextmanager
    def transaction(self) -> Generator[sqlite3.Connection, None, None]:
        """Yield a connection inside a ``BEGIN IMMEDIATE`` write transaction.

        The write lock is taken up front, so no other writer can interleave
        between this transaction's reads and writes. Commits on clean exit,
        rolls back on any exception.
        """
        with self.read() as conn:
            conn.execute("BEGIN IMMEDIATE;")
            yield conn

    def _require_open(self) -> None:
        if not self._is_open:
            raise RuntimeError(
                f"Database {self.db_path!r} is not open; call open() first."
            )
