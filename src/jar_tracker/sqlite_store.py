"""SQLite persistence for Jar Tracker.

A ``SQLiteStore`` owns exactly one connection (a pool of size one). All
operations take the store's lock, so writes are serialized. ``run()`` wraps
an operation in a transaction and, if the handle turns out to have been
invalidated, reopens it and retries the operation once.
"""

import logging
import sqlite3
import threading
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any, TypeVar

from .errors import StorageUnavailableError
from .schema import initialize_schema

logger = logging.getLogger(__name__)

T = TypeVar("T")

_HANDLE_LOST_MARKERS = (
    "closed database",
    "database is closed",
    "already released",
)


def is_handle_lost(exc: BaseException) -> bool:
    """Return True if the error means the connection handle is no longer usable."""
    if not isinstance(exc, (sqlite3.ProgrammingError, sqlite3.InterfaceError)):
        return False
    message = str(exc).lower()
    return any(marker in message for marker in _HANDLE_LOST_MARKERS)


class SQLiteStore:
    """Manages the SQLite database handle for jar data."""

    def __init__(self, db_path: Path | None = None, timeout: float = 5.0):
        """Initialize SQLite store.

        Args:
            db_path: Path to the SQLite database file. Defaults to ./data/jartracker.db
            timeout: Seconds to wait for a database lock held by another process
        """
        if db_path is None:
            db_path = Path.cwd() / "data" / "jartracker.db"
        self.db_path = Path(db_path)
        self.timeout = timeout
        self._conn: sqlite3.Connection | None = None
        self._lock = threading.RLock()
        self._depth = 0
        self._ensure_directories()
        self._init_database()

    def _ensure_directories(self) -> None:
        """Create necessary directories if they don't exist."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

    def _connect(self) -> sqlite3.Connection:
        """Open a new configured connection."""
        conn = sqlite3.connect(
            self.db_path,
            timeout=self.timeout,
            isolation_level=None,
            check_same_thread=False,
        )
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        conn.execute("PRAGMA journal_mode = WAL")
        return conn

    def _init_database(self) -> None:
        """Create or upgrade the schema."""
        previous = self.run(initialize_schema)
        logger.debug("Opened %s (schema version before open: %d)", self.db_path, previous)

    # --- Handle lifecycle ---

    @property
    def is_open(self) -> bool:
        """Whether a connection handle is currently held."""
        return self._conn is not None

    def open(self) -> sqlite3.Connection:
        """Return the live connection, opening it if needed."""
        with self._lock:
            if self._conn is None:
                self._conn = self._connect()
                logger.debug("Database handle opened: %s", self.db_path)
            return self._conn

    def close(self) -> None:
        """Close the connection handle if one is held."""
        with self._lock:
            conn, self._conn = self._conn, None
            self._depth = 0
            if conn is not None:
                conn.close()
                logger.debug("Database handle closed: %s", self.db_path)

    def reopen(self) -> sqlite3.Connection:
        """Discard the current handle and open a fresh one."""
        with self._lock:
            self.close()
            return self.open()

    # --- Transactions ---

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        """Run a block inside one transaction on the shared handle.

        Nested use joins the outer transaction; only the outermost block
        commits or rolls back.
        """
        with self._lock:
            conn = self.open()
            if self._depth:
                self._depth += 1
                try:
                    yield conn
                finally:
                    self._depth -= 1
                return

            conn.execute("BEGIN IMMEDIATE")
            self._depth = 1
            try:
                yield conn
            except BaseException:
                self._depth = 0
                self._rollback(conn)
                raise
            self._depth = 0
            try:
                conn.execute("COMMIT")
            except BaseException:
                self._rollback(conn)
                raise

    def _rollback(self, conn: sqlite3.Connection) -> None:
        try:
            if conn.in_transaction:
                conn.execute("ROLLBACK")
                logger.debug("Transaction rolled back")
        except sqlite3.ProgrammingError as exc:
            # A closed handle has nothing left to roll back.
            logger.debug("Rollback skipped: %s", exc)

    def run(self, operation: Callable[[sqlite3.Connection], T]) -> T:
        """Run ``operation`` in a transaction, retrying once on a lost handle.

        Raises:
            StorageUnavailableError: If the handle is lost again after reopening
        """
        with self._lock:
            if self._depth:
                with self.transaction() as conn:
                    return operation(conn)

            try:
                with self.transaction() as conn:
                    return operation(conn)
            except (sqlite3.ProgrammingError, sqlite3.InterfaceError) as exc:
                if not is_handle_lost(exc):
                    raise
                logger.warning("Database handle lost (%s); reopening and retrying", exc)

            try:
                self.reopen()
            except sqlite3.Error as exc:
                raise StorageUnavailableError(
                    f"Database {self.db_path} could not be reopened: {exc}"
                ) from exc

            try:
                with self.transaction() as conn:
                    return operation(conn)
            except (sqlite3.ProgrammingError, sqlite3.InterfaceError) as exc:
                if not is_handle_lost(exc):
                    raise
                raise StorageUnavailableError(
                    f"Database {self.db_path} is unavailable after reopening: {exc}"
                ) from exc

    # --- Query helpers ---

    def query(self, sql: str, params: tuple[Any, ...] = ()) -> list[sqlite3.Row]:
        """Fetch all rows for a read query."""
        return self.run(lambda conn: conn.execute(sql, params).fetchall())

    def query_one(self, sql: str, params: tuple[Any, ...] = ()) -> sqlite3.Row | None:
        """Fetch the first row for a read query."""
        return self.run(lambda conn: conn.execute(sql, params).fetchone())
