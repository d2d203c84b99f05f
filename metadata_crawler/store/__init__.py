"""Resilient read-only lookups over parsed asset URI processing state.

This module provides:
- The ``ParsedAssetURIRecord`` row model and its zero value
- A retrying executor that turns store failures into empty results
- Primary-key and dedup-by-raw-URI lookups
"""

from metadata_crawler.store.errors import (
    PermanentStoreError,
    PoolClosedError,
    PoolExhaustedError,
    QueryDefinitionError,
    RecordDecodeError,
    StoreError,
    TransientStoreError,
    classify_store_error,
)
from metadata_crawler.store.metrics import (
    LookupMetrics,
    MetricsRecorder,
    NullMetricsRecorder,
)
from metadata_crawler.store.models import (
    LookupOutcome,
    LookupResult,
    ParsedAssetURIRecord,
)
from metadata_crawler.store.pool import ConnectionPool, SQLiteConnectionPool
from metadata_crawler.store.queries import ParsedAssetURIQueries, row_to_record
from metadata_crawler.store.retry import ResilientQueryExecutor, RetryPolicy
from metadata_crawler.store.schema import ensure_schema
from metadata_crawler.store.signals import (
    CollectingFailureSink,
    FailureSink,
    LoggingFailureSink,
    LookupFailureEvent,
)


__all__ = [
    # Errors
    "PermanentStoreError",
    "PoolClosedError",
    "PoolExhaustedError",
    "QueryDefinitionError",
    "RecordDecodeError",
    "StoreError",
    "TransientStoreError",
    "classify_store_error",
    # Metrics
    "LookupMetrics",
    "MetricsRecorder",
    "NullMetricsRecorder",
    # Models
    "LookupOutcome",
    "LookupResult",
    "ParsedAssetURIRecord",
    # Pool
    "ConnectionPool",
    "SQLiteConnectionPool",
    # Queries
    "ParsedAssetURIQueries",
    "row_to_record",
    # Retry
    "ResilientQueryExecutor",
    "RetryPolicy",
    # Schema
    "ensure_schema",
    # Signals
    "CollectingFailureSink",
    "FailureSink",
    "LoggingFailureSink",
    "LookupFailureEvent",
]
