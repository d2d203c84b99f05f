"""Connection pool the lookups borrow their store handle from."""

import queue
import sqlite3
import threading
from collections.abc import Generator
from contextlib import AbstractContextManager, contextmanager
from pathlib import Path
from typing import Any, Protocol

from metadata_crawler.observability.logging import get_store_logger
from metadata_crawler.store.constants import (
    DEFAULT_BUSY_TIMEOUT_SECONDS,
    DEFAULT_POOL_SIZE,
    DEFAULT_POOL_TIMEOUT_SECONDS,
)
from metadata_crawler.store.errors import (
    PoolClosedError,
    PoolExhaustedError,
    classify_store_error,
)


class Cursor(Protocol):
    """The part of a DB-API cursor the lookups use."""

    def fetchone(self) -> Any:
        """Return the next row or None."""
        ...


class Connection(Protocol):
    """The part of a DB-API connection the lookups use."""

    def execute(self, sql: str, parameters: Any = ..., /) -> Cursor:
        """Execute a statement."""
        ...


class ConnectionPool(Protocol):
    """Source of borrowed connections.

    ``connection()`` must hand the connection back on every exit path,
    including when the body raises.
    """

    def connection(self) -> AbstractContextManager[Connection]:
        """Borrow a connection for the duration of a ``with`` block."""
        ...


class SQLiteConnectionPool:
    """Bounded pool of SQLite connections.

    Connections are opened lazily up to ``size`` and shared across threads;
    a caller waits up to ``timeout_seconds`` for one to be returned.
    """

    def __init__(
        self,
        db_path: Path | str,
        size: int = DEFAULT_POOL_SIZE,
        timeout_seconds: float = DEFAULT_POOL_TIMEOUT_SECONDS,
        busy_timeout_seconds: float = DEFAULT_BUSY_TIMEOUT_SECONDS,
    ) -> None:
        """Initialize the pool.

        Args:
            db_path: Path to the SQLite database file.
            size: Maximum number of open connections.
            timeout_seconds: How long to wait for a free connection.
            busy_timeout_seconds: How long one statement waits on a locked
                database before SQLite reports it busy. Keep it within the
                retry budget so a single attempt cannot outlast it.

        Raises:
            ValueError: If size is not positive.
        """
        if size < 1:
            msg = f"Pool size must be positive, got {size}"
            raise ValueError(msg)

        self._db_path = Path(db_path) if isinstance(db_path, str) else db_path
        self._size = size
        self._timeout_seconds = timeout_seconds
        self._busy_timeout_seconds = busy_timeout_seconds
        self._idle: queue.LifoQueue[sqlite3.Connection] = queue.LifoQueue(maxsize=size)
        self._opened = 0
        self._all: list[sqlite3.Connection] = []
        self._lock = threading.Lock()
        self._closed = False
        self._log = get_store_logger("pool", db_path=str(self._db_path))
        self._log.info("connection_pool_created", size=size)

    @property
    def size(self) -> int:
        """Get the maximum number of connections."""
        return self._size

    @property
    def busy_timeout_seconds(self) -> float:
        """Get the SQLite busy timeout applied to each connection."""
        return self._busy_timeout_seconds

    @property
    def opened(self) -> int:
        """Get the number of connections opened so far."""
        return self._opened

    @property
    def available(self) -> int:
        """Get the number of idle connections."""
        return self._idle.qsize()

    def _open(self) -> sqlite3.Connection:
        """Open a new connection with row factory and WAL mode."""
        conn = sqlite3.connect(
            str(self._db_path),
            timeout=self._busy_timeout_seconds,
            check_same_thread=False,
        )
        try:
            conn.row_factory = sqlite3.Row
            conn.execute("PRAGMA journal_mode=WAL")
        except sqlite3.Error:
            conn.close()
            raise
        self._log.debug("connection_opened", opened=self._opened)
        return conn

    def _acquire(self) -> sqlite3.Connection:
        """Take an idle connection, opening one if under the limit."""
        if self._closed:
            raise PoolClosedError

        try:
            return self._idle.get_nowait()
        except queue.Empty:
            pass

        with self._lock:
            if self._opened < self._size:
                self._opened += 1
                try:
                    conn = self._open()
                except sqlite3.Error as e:
                    self._opened -= 1
                    raise classify_store_error(e) from e
                self._all.append(conn)
                return conn

        try:
            return self._idle.get(timeout=self._timeout_seconds)
        except queue.Empty as e:
            self._log.warning(
                "connection_pool_exhausted", timeout_seconds=self._timeout_seconds
            )
            raise PoolExhaustedError(self._timeout_seconds) from e

    def _release(self, conn: sqlite3.Connection) -> None:
        """Return a connection to the idle queue."""
        if self._closed:
            conn.close()
            return
        self._idle.put_nowait(conn)

    @contextmanager
    def connection(self) -> Generator[sqlite3.Connection]:
        """Borrow a connection, returning it when the block exits.

        Yields:
            A pooled SQLite connection.

        Raises:
            PoolExhaustedError: If no connection became free in time.
            PoolClosedError: If the pool has been closed.
        """
        conn = self._acquire()
        try:
            yield conn
        finally:
            self._release(conn)

    def close(self) -> None:
        """Close every connection the pool opened."""
        with self._lock:
            self._closed = True
            for conn in self._all:
                conn.close()
            self._all.clear()
            while not self._idle.empty():
                self._idle.get_nowait()
        self._log.info("connection_pool_closed")

    def __enter__(self) -> "SQLiteConnectionPool":
        """Context manager entry."""
        return self

    def __exit__(
        self,
        exc_type: type | None,
        exc_val: BaseException | None,
        exc_tb: object,
    ) -> None:
        """Context manager exit."""
        self.close()
