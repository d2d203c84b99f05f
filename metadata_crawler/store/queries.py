"""Read operations on ``parsed_asset_uris``.

Three lookups are supported: by primary key, and two dedup lookups that find
a *different* asset sharing the same raw image or animation URI whose derived
CDN artifact already exists. Each operation builds one query and hands it to
the ``ResilientQueryExecutor``.

``find_*`` methods return the three-way ``LookupResult``; ``get_*`` methods
collapse it to ``ParsedAssetURIRecord | None`` so that "no such row" and
"store unavailable" look the same to callers.
"""

from typing import Any

from pydantic import ValidationError

from metadata_crawler.observability.logging import get_store_logger
from metadata_crawler.store.constants import COLUMNS, TABLE_NAME
from metadata_crawler.store.errors import (
    PermanentStoreError,
    RecordDecodeError,
    StoreError,
)
from metadata_crawler.store.models import LookupResult, ParsedAssetURIRecord
from metadata_crawler.store.pool import Connection, ConnectionPool
from metadata_crawler.store.retry import ResilientQueryExecutor


_SELECT = f"SELECT {', '.join(COLUMNS)} FROM {TABLE_NAME}"  # noqa: S608

# Ties between several reusable rows resolve to the oldest one.
_DEDUP_ORDER = "ORDER BY inserted_at ASC, asset_uri ASC LIMIT 1"

GET_BY_ASSET_URI_SQL = f"{_SELECT} WHERE asset_uri = ? LIMIT 1"

GET_BY_RAW_IMAGE_URI_SQL = f"""
{_SELECT}
WHERE raw_image_uri = ?
  AND asset_uri != ?
  AND cdn_image_uri IS NOT NULL
{_DEDUP_ORDER}
"""

GET_BY_RAW_ANIMATION_URI_SQL = f"""
{_SELECT}
WHERE raw_animation_uri = ?
  AND asset_uri != ?
  AND cdn_animation_uri IS NOT NULL
{_DEDUP_ORDER}
"""


def row_to_record(row: Any) -> ParsedAssetURIRecord:
    """Convert a database row to a record.

    Args:
        row: A row whose values follow ``COLUMNS`` order (tuple or sqlite3.Row).

    Returns:
        The decoded record.

    Raises:
        RecordDecodeError: If the row does not fit the record shape.
    """
    try:
        values = dict(zip(COLUMNS, tuple(row), strict=True))
    except ValueError as e:
        raise RecordDecodeError(None, str(e)) from e

    values["do_not_parse"] = bool(values["do_not_parse"])
    try:
        return ParsedAssetURIRecord.model_validate(values)
    except ValidationError as e:
        raise RecordDecodeError(values["asset_uri"], str(e)) from e


class ParsedAssetURIQueries:
    """Resilient lookups over the ``parsed_asset_uris`` table.

    Strictly read-only. Each call borrows one connection from the pool for
    its whole duration, retries included.
    """

    def __init__(
        self,
        pool: ConnectionPool,
        executor: ResilientQueryExecutor | None = None,
    ) -> None:
        """Initialize the accessor.

        Args:
            pool: Pool to borrow connections from.
            executor: Executor applying the retry policy (default settings
                if not provided).
        """
        self._pool = pool
        self._executor = executor if executor is not None else ResilientQueryExecutor()
        self._log = get_store_logger("queries")

    def find_by_asset_uri(self, asset_uri: str) -> LookupResult:
        """Look up the record for an asset by primary key.

        Args:
            asset_uri: The asset URI.

        Returns:
            Three-way lookup result.
        """
        return self._lookup(
            "get_by_asset_uri",
            GET_BY_ASSET_URI_SQL,
            (asset_uri,),
            asset_uri=asset_uri,
        )

    def find_by_raw_image_uri(self, asset_uri: str, raw_image_uri: str) -> LookupResult:
        """Find another asset's reusable CDN image for the same raw image URI.

        Args:
            asset_uri: The asset doing the lookup; its own row is never returned.
            raw_image_uri: The raw image URI to match.

        Returns:
            Three-way lookup result.
        """
        return self._lookup(
            "get_by_raw_image_uri",
            GET_BY_RAW_IMAGE_URI_SQL,
            (raw_image_uri, asset_uri),
            asset_uri=asset_uri,
            raw_uri=raw_image_uri,
        )

    def find_by_raw_animation_uri(
        self, asset_uri: str, raw_animation_uri: str
    ) -> LookupResult:
        """Find another asset's reusable CDN animation for the same raw animation URI.

        Args:
            asset_uri: The asset doing the lookup; its own row is never returned.
            raw_animation_uri: The raw animation URI to match.

        Returns:
            Three-way lookup result.
        """
        return self._lookup(
            "get_by_raw_animation_uri",
            GET_BY_RAW_ANIMATION_URI_SQL,
            (raw_animation_uri, asset_uri),
            asset_uri=asset_uri,
            raw_uri=raw_animation_uri,
        )

    def get_by_asset_uri(self, asset_uri: str) -> ParsedAssetURIRecord | None:
        """Get the record for an asset, or None if absent or unavailable."""
        return self.find_by_asset_uri(asset_uri).record

    def get_by_raw_image_uri(
        self, asset_uri: str, raw_image_uri: str
    ) -> ParsedAssetURIRecord | None:
        """Get a reusable record by raw image URI, or None."""
        return self.find_by_raw_image_uri(asset_uri, raw_image_uri).record

    def get_by_raw_animation_uri(
        self, asset_uri: str, raw_animation_uri: str
    ) -> ParsedAssetURIRecord | None:
        """Get a reusable record by raw animation URI, or None."""
        return self.find_by_raw_animation_uri(asset_uri, raw_animation_uri).record

    def _lookup(
        self,
        operation: str,
        sql: str,
        params: tuple[str, ...],
        *,
        asset_uri: str,
        raw_uri: str | None = None,
    ) -> LookupResult:
        """Borrow a connection and run one query through the executor."""
        start = self._executor.clock()
        try:
            with self._pool.connection() as conn:
                return self._executor.execute(
                    operation,
                    lambda: self._fetch_one(conn, sql, params),
                    asset_uri=asset_uri,
                    raw_uri=raw_uri,
                )
        except StoreError as e:
            # Only reachable when borrowing the connection fails.
            self._log.warning("connection_unavailable", op=operation, error=str(e))
            return self._executor.fail(
                operation,
                e,
                attempts=0,
                elapsed_ms=(self._executor.clock() - start) * 1000.0,
                asset_uri=asset_uri,
                raw_uri=raw_uri,
                reason="connection_unavailable",
            )

    @staticmethod
    def _fetch_one(
        conn: Connection, sql: str, params: tuple[str, ...]
    ) -> ParsedAssetURIRecord | None:
        """Execute a single-row read.

        Raises:
            PermanentStoreError: If the driver rejects the parameters, such as
                text holding lone surrogates that cannot be encoded.
        """
        try:
            row = conn.execute(sql, params).fetchone()
        except (ValueError, OverflowError) as e:
            msg = f"Cannot bind lookup parameters: {e}"
            raise PermanentStoreError(msg, cause=e) from e
        if row is None:
            return None
        return row_to_record(row)
