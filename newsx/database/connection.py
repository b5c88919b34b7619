"""
NewsX Database Connection Management
====================================

SQLite access shared by the repositories. API handlers read concurrently
while the crawl pipeline writes one batch per transaction, so:

- connections are opened on demand and up to ``pool_size`` idle ones are
  kept for reuse; extra connections needed under a burst are closed when
  released instead of blocking the caller
- write transactions are serialized in-process before ``BEGIN IMMEDIATE``
  so concurrent writers queue on a lock rather than on SQLITE_BUSY
"""

import logging
import sqlite3
import threading
from contextlib import contextmanager
from pathlib import Path
from queue import Empty, LifoQueue
from typing import TYPE_CHECKING, Dict, Iterator, Optional

if TYPE_CHECKING:
    from ..config.settings import DatabaseSettings

logger = logging.getLogger(__name__)

TABLES = ("categories", "posts")


class DatabaseConnection:
    """Pooled SQLite connections with serialized write transactions."""

    def __init__(self, db_path: str = "data/newsx.db", pool_size: int = 5, busy_timeout: float = 30.0):
        self.db_path = Path(db_path)
        self.pool_size = pool_size
        self.busy_timeout = busy_timeout
        self._idle: LifoQueue = LifoQueue()
        self._write_lock = threading.Lock()
        self._open = 0
        self._count_lock = threading.Lock()
        self._closed = False

        self.db_path.parent.mkdir(parents=True, exist_ok=True)

    @classmethod
    def from_settings(cls, settings: "DatabaseSettings") -> "DatabaseConnection":
        return cls(settings.path, pool_size=settings.pool_size, busy_timeout=settings.busy_timeout)

    @property
    def open_connections(self) -> int:
        return self._open

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path, timeout=self.busy_timeout, check_same_thread=False)
        conn.row_factory = sqlite3.Row
        # WAL lets API reads proceed while a batch is being written
        conn.executescript(
            "PRAGMA journal_mode = WAL;"
            "PRAGMA synchronous = NORMAL;"
            "PRAGMA foreign_keys = ON;"
        )
        with self._count_lock:
            self._open += 1
        logger.debug(f"Opened SQLite connection to {self.db_path} ({self._open} open)")
        return conn

    def _close(self, conn: sqlite3.Connection) -> None:
        conn.close()
        with self._count_lock:
            self._open -= 1

    @contextmanager
    def get_connection(self) -> Iterator[sqlite3.Connection]:
        """Borrow a connection; uncommitted work is rolled back on sqlite errors."""
        try:
            conn = self._idle.get_nowait()
        except Empty:
            conn = self._connect()

        try:
            yield conn
        except sqlite3.Error:
            conn.rollback()
            raise
        finally:
            if not self._closed and self._idle.qsize() < self.pool_size:
                self._idle.put(conn)
            else:
                self._close(conn)

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        """Write transaction: commit on success, roll back on any exception."""
        with self._write_lock, self.get_connection() as conn:
            conn.execute("BEGIN IMMEDIATE")
            try:
                yield conn
            except Exception as e:
                conn.rollback()
                logger.warning(f"Rolled back write transaction: {e}")
                raise
            conn.commit()

    def execute_one(self, query: str, params: tuple = ()) -> Optional[sqlite3.Row]:
        with self.get_connection() as conn:
            return conn.execute(query, params).fetchone()

    def execute_update(self, query: str, params: tuple = ()) -> int:
        """Run one write statement in its own transaction, returning the rowcount."""
        with self.transaction() as conn:
            return conn.execute(query, params).rowcount

    def table_counts(self) -> Dict[str, int]:
        """Row count per table; tables missing from the file count as 0."""
        counts = {}
        with self.get_connection() as conn:
            for table in TABLES:
                try:
                    counts[table] = conn.execute(f"SELECT COUNT(*) FROM {table}").fetchone()[0]
                except sqlite3.OperationalError:
                    counts[table] = 0
        return counts

    def file_size_mb(self) -> float:
        return self.db_path.stat().st_size / (1024 * 1024) if self.db_path.exists() else 0.0

    def close_all_connections(self) -> None:
        """Close idle connections. Borrowed ones close when they come back."""
        self._closed = True
        closed = 0
        while True:
            try:
                conn = self._idle.get_nowait()
            except Empty:
                break
            self._close(conn)
            closed += 1
        logger.debug(f"Closed {closed} idle SQLite connections")


_db_manager: Optional[DatabaseConnection] = None


def get_db_manager(settings: "DatabaseSettings") -> DatabaseConnection:
    """Process-wide DatabaseConnection, built from the first settings seen."""
    global _db_manager

    if _db_manager is None:
        _db_manager = DatabaseConnection.from_settings(settings)

    return _db_manager
