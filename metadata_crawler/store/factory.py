"""Factory wiring settings into a ready-to-use lookup accessor."""

from metadata_crawler.observability.logging import get_store_logger
from metadata_crawler.settings import LookupSettings, get_settings
from metadata_crawler.store.metrics import MetricsRecorder
from metadata_crawler.store.pool import ConnectionPool, SQLiteConnectionPool
from metadata_crawler.store.queries import ParsedAssetURIQueries
from metadata_crawler.store.retry import ResilientQueryExecutor
from metadata_crawler.store.signals import FailureSink


def create_queries(
    settings: LookupSettings | None = None,
    *,
    pool: ConnectionPool | None = None,
    failure_sink: FailureSink | None = None,
    metrics: MetricsRecorder | None = None,
) -> ParsedAssetURIQueries:
    """Create a lookup accessor from settings.

    Args:
        settings: Lookup settings (read from the environment if omitted).
        pool: Existing pool to borrow from; a SQLite pool on
            ``settings.database_path`` is created if omitted.
        failure_sink: Receiver of failure events (logging by default).
        metrics: Metrics recorder (shared LookupMetrics by default).

    Returns:
        A ParsedAssetURIQueries bound to the pool and retry policy.
    """
    settings = settings if settings is not None else get_settings()

    if pool is None:
        pool = SQLiteConnectionPool(
            settings.database_path,
            size=settings.pool_size,
            timeout_seconds=settings.pool_timeout_seconds,
            busy_timeout_seconds=settings.effective_busy_timeout_seconds(),
        )

    policy = settings.retry_policy()
    executor = ResilientQueryExecutor(
        policy,
        failure_sink=failure_sink,
        metrics=metrics,
    )

    get_store_logger("factory").info(
        "lookup_queries_created",
        max_retry_seconds=policy.max_elapsed_seconds,
        initial_interval_ms=policy.initial_interval_ms,
    )
    return ParsedAssetURIQueries(pool, executor)
