"""Domain exceptions for the parsed asset URI store.

This module defines a hierarchy of exceptions for the store layer and the
boundary that classifies raw driver errors into retryable and terminal
failures before any backoff is applied.
"""

import re
import sqlite3


# SQLite primary result codes that indicate a condition which may clear up
# on its own (contention, I/O hiccups, file briefly unavailable).
_TRANSIENT_SQLITE_CODES = frozenset(
    {
        sqlite3.SQLITE_BUSY,
        sqlite3.SQLITE_LOCKED,
        sqlite3.SQLITE_IOERR,
        sqlite3.SQLITE_CANTOPEN,
        sqlite3.SQLITE_PROTOCOL,
        sqlite3.SQLITE_INTERRUPT,
    }
)

_QUERY_DEFINITION_PATTERN = re.compile(
    r"no such (table|column|function)|syntax error|has no column named",
    re.IGNORECASE,
)

_TRANSIENT_MESSAGE_PATTERN = re.compile(
    r"database is locked|database table is locked|disk i/o error|"
    r"unable to open database|interrupted|busy",
    re.IGNORECASE,
)


class StoreError(Exception):
    """Base exception for all store errors.

    Attributes:
        retryable: Whether the failed operation may succeed if attempted again.
    """

    retryable: bool = False

    def __init__(self, message: str, cause: BaseException | None = None) -> None:
        """Initialize the store error.

        Args:
            message: Human-readable error message.
            cause: The underlying driver error, if any.
        """
        self.cause = cause
        super().__init__(message)


class TransientStoreError(StoreError):
    """Raised for failures expected to clear up (connectivity, locks, I/O)."""

    retryable = True


class PermanentStoreError(StoreError):
    """Raised for failures that retrying cannot fix."""


class QueryDefinitionError(PermanentStoreError):
    """Raised when a query references a missing table or column or is malformed."""


class RecordDecodeError(PermanentStoreError):
    """Raised when a stored row cannot be converted into a record."""

    def __init__(self, asset_uri: str | None, message: str) -> None:
        """Initialize the decode error.

        Args:
            asset_uri: The asset URI of the offending row, if readable.
            message: Description of the decoding failure.
        """
        self.asset_uri = asset_uri
        super().__init__(f"Cannot decode row {asset_uri!r}: {message}")


class PoolExhaustedError(TransientStoreError):
    """Raised when no pooled connection becomes available in time."""

    def __init__(self, timeout_seconds: float) -> None:
        """Initialize the pool exhaustion error.

        Args:
            timeout_seconds: How long the caller waited for a connection.
        """
        self.timeout_seconds = timeout_seconds
        super().__init__(
            f"No connection available after {timeout_seconds:.1f}s"
        )


class PoolClosedError(PermanentStoreError):
    """Raised when borrowing from a pool that has been closed."""

    def __init__(self) -> None:
        """Initialize the pool closed error."""
        super().__init__("Connection pool is closed")


def classify_store_error(exc: BaseException) -> StoreError:
    """Map a raw error to the store error taxonomy.

    Store errors pass through unchanged. ``sqlite3`` errors are classified by
    their primary result code when the driver provides one, falling back to
    the message text.

    Args:
        exc: The error raised by a query.

    Returns:
        A ``TransientStoreError`` or ``PermanentStoreError`` wrapping ``exc``.
    """
    if isinstance(exc, StoreError):
        return exc

    message = str(exc) or type(exc).__name__

    if not isinstance(exc, sqlite3.Error):
        return PermanentStoreError(message, cause=exc)

    if _QUERY_DEFINITION_PATTERN.search(message):
        return QueryDefinitionError(message, cause=exc)

    error_code = getattr(exc, "sqlite_errorcode", None)
    if error_code is not None and (error_code & 0xFF) in _TRANSIENT_SQLITE_CODES:
        return TransientStoreError(message, cause=exc)

    # Everything except OperationalError is a programming or data error.
    if isinstance(exc, sqlite3.OperationalError):
        if error_code is None or _TRANSIENT_MESSAGE_PATTERN.search(message):
            return TransientStoreError(message, cause=exc)
        return PermanentStoreError(message, cause=exc)

    return PermanentStoreError(message, cause=exc)
