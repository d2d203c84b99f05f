"""Unit tests for the SQLite connection pool."""

import sqlite3
import tempfile
from collections.abc import Generator
from pathlib import Path
from typing import Any

import pytest

from metadata_crawler.store.constants import DEFAULT_MAX_RETRY_SECONDS
from metadata_crawler.store.errors import (
    PoolClosedError,
    PoolExhaustedError,
    TransientStoreError,
)
from metadata_crawler.store.pool import SQLiteConnectionPool


class LockedConnection:
    """Connection stand-in whose setup statements fail as if locked."""

    def __init__(self) -> None:
        self.row_factory: Any = None
        self.closed = False

    def execute(self, sql: str, *args: Any) -> None:
        raise sqlite3.OperationalError("database is locked")

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def temp_db_path() -> Generator[Path]:
    """Create a temporary database path."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir) / "pool.sqlite"


@pytest.fixture
def pool(temp_db_path: Path) -> Generator[SQLiteConnectionPool]:
    """Create a small pool."""
    pool = SQLiteConnectionPool(temp_db_path, size=2, timeout_seconds=0.05)
    yield pool
    pool.close()


class TestPoolConstruction:
    """Tests for pool setup."""

    def test_invalid_size(self, temp_db_path: Path) -> None:
        """Test a non-positive size is rejected."""
        with pytest.raises(ValueError, match="positive"):
            SQLiteConnectionPool(temp_db_path, size=0)

    def test_opens_lazily(self, pool: SQLiteConnectionPool) -> None:
        """Test no connection is opened until one is borrowed."""
        assert pool.size == 2
        assert pool.opened == 0
        assert pool.available == 0

    def test_accepts_string_path(self, temp_db_path: Path) -> None:
        """Test the database path may be given as a string."""
        with SQLiteConnectionPool(str(temp_db_path)) as pool:
            with pool.connection() as conn:
                assert conn.execute("SELECT 1").fetchone()[0] == 1


class TestBorrowing:
    """Tests for borrowing and returning connections."""

    def test_connection_returned_after_use(self, pool: SQLiteConnectionPool) -> None:
        """Test a borrowed connection goes back to the pool."""
        with pool.connection() as conn:
            assert isinstance(conn, sqlite3.Connection)
            assert pool.available == 0

        assert pool.opened == 1
        assert pool.available == 1

    def test_connection_reused(self, pool: SQLiteConnectionPool) -> None:
        """Test an idle connection is reused rather than a new one opened."""
        with pool.connection() as first:
            pass
        with pool.connection() as second:
            pass

        assert first is second
        assert pool.opened == 1

    def test_connection_returned_on_error(self, pool: SQLiteConnectionPool) -> None:
        """Test the connection is returned when the body raises."""
        with pytest.raises(RuntimeError), pool.connection():
            raise RuntimeError("boom")

        assert pool.available == 1

    def test_rows_support_named_access(self, pool: SQLiteConnectionPool) -> None:
        """Test connections use the sqlite3.Row factory."""
        with pool.connection() as conn:
            row = conn.execute("SELECT 1 AS answer").fetchone()

        assert row["answer"] == 1

    def test_wal_mode_enabled(self, pool: SQLiteConnectionPool) -> None:
        """Test WAL journaling is enabled."""
        with pool.connection() as conn:
            mode = conn.execute("PRAGMA journal_mode").fetchone()[0]

        assert mode.lower() == "wal"

    def test_exhausted_pool_times_out(self, pool: SQLiteConnectionPool) -> None:
        """Test borrowing beyond the size limit raises after the timeout."""
        with pool.connection(), pool.connection():
            assert pool.opened == 2
            with pytest.raises(PoolExhaustedError), pool.connection():
                pass

    def test_closed_pool_rejects_borrowing(self, pool: SQLiteConnectionPool) -> None:
        """Test a closed pool raises PoolClosedError."""
        pool.close()

        with pytest.raises(PoolClosedError), pool.connection():
            pass

    def test_close_closes_connections(self, pool: SQLiteConnectionPool) -> None:
        """Test closing the pool closes its connections."""
        with pool.connection() as conn:
            pass
        pool.close()

        with pytest.raises(sqlite3.ProgrammingError):
            conn.execute("SELECT 1")


class TestOpeningConnections:
    """Tests for how the pool opens SQLite connections."""

    def test_failed_setup_closes_connection(
        self, temp_db_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Test a connection whose WAL setup fails is closed and not counted."""
        opened: list[LockedConnection] = []

        def locked_connect(*args: Any, **kwargs: Any) -> LockedConnection:
            conn = LockedConnection()
            opened.append(conn)
            return conn

        monkeypatch.setattr(sqlite3, "connect", locked_connect)
        pool = SQLiteConnectionPool(temp_db_path, size=1)

        with pytest.raises(TransientStoreError), pool.connection():
            pass

        assert len(opened) == 1
        assert opened[0].closed
        assert pool.opened == 0
        pool.close()

    def test_busy_timeout_separate_from_wait_timeout(
        self, temp_db_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Test SQLite gets the busy timeout, not the pool wait timeout."""
        seen: dict[str, Any] = {}
        real_connect = sqlite3.connect

        def recording_connect(*args: Any, **kwargs: Any) -> sqlite3.Connection:
            seen.update(kwargs)
            return real_connect(*args, **kwargs)

        monkeypatch.setattr(sqlite3, "connect", recording_connect)
        with SQLiteConnectionPool(
            temp_db_path, timeout_seconds=30.0, busy_timeout_seconds=0.5
        ) as pool:
            with pool.connection():
                pass

        assert seen["timeout"] == 0.5

    def test_default_busy_timeout_within_retry_budget(
        self, pool: SQLiteConnectionPool
    ) -> None:
        """Test one locked statement cannot outlast the default retry budget."""
        assert pool.busy_timeout_seconds < DEFAULT_MAX_RETRY_SECONDS
