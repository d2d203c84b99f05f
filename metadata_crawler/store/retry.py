"""Resilient execution of single-row reads.

Every lookup in the store runs through ``ResilientQueryExecutor``: the query
is attempted, transient failures are retried with exponential backoff and
jitter inside a bounded elapsed-time budget, and any terminal failure is
turned into an UNAVAILABLE result plus one failure event. Nothing raised by
the store escapes to the caller.
"""

import random
import sqlite3
import time
from collections.abc import Callable
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field

from metadata_crawler.observability.logging import get_store_logger
from metadata_crawler.store.constants import (
    DEFAULT_BACKOFF_MULTIPLIER,
    DEFAULT_INITIAL_INTERVAL_MS,
    DEFAULT_JITTER_FACTOR,
    DEFAULT_MAX_INTERVAL_MS,
    DEFAULT_MAX_RETRY_SECONDS,
)
from metadata_crawler.store.errors import StoreError, classify_store_error
from metadata_crawler.store.metrics import LookupMetrics, MetricsRecorder
from metadata_crawler.store.models import (
    LookupOutcome,
    LookupResult,
    ParsedAssetURIRecord,
)
from metadata_crawler.store.signals import (
    FailureReason,
    FailureSink,
    LoggingFailureSink,
    LookupFailureEvent,
)


# Exponent cap so that delay growth never overflows a float.
_MAX_EXPONENT = 64

Query = Callable[[], ParsedAssetURIRecord | None]


class RetryPolicy(BaseModel):
    """Configuration for lookup retry behavior.

    Uses exponential backoff:
    delay = initial_interval_ms * (multiplier ^ retry), capped at
    max_interval_ms, plus up to jitter_factor of extra random delay.
    A retry is only scheduled while elapsed time plus the next delay stays
    within max_elapsed_seconds.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    initial_interval_ms: Annotated[
        int, Field(ge=1, le=60000)
    ] = DEFAULT_INITIAL_INTERVAL_MS
    max_interval_ms: Annotated[int, Field(ge=1, le=300000)] = DEFAULT_MAX_INTERVAL_MS
    multiplier: Annotated[float, Field(ge=1.0, le=10.0)] = DEFAULT_BACKOFF_MULTIPLIER
    jitter_factor: Annotated[float, Field(ge=0.0, le=1.0)] = DEFAULT_JITTER_FACTOR
    max_elapsed_seconds: Annotated[
        float, Field(ge=0.0, le=3600.0)
    ] = DEFAULT_MAX_RETRY_SECONDS

    @property
    def max_elapsed_ms(self) -> float:
        """Get the retry budget in milliseconds."""
        return self.max_elapsed_seconds * 1000.0

    def get_delay_ms(self, retry: int) -> int:
        """Calculate the delay before a retry.

        Args:
            retry: Number of retries already made (0-indexed).

        Returns:
            Delay in milliseconds.
        """
        exponent = min(retry, _MAX_EXPONENT)
        delay = self.initial_interval_ms * (self.multiplier**exponent)
        delay = min(delay, self.max_interval_ms)

        jitter = delay * self.jitter_factor * random.random()  # noqa: S311
        return int(delay + jitter)

    def should_retry(
        self, error: StoreError, elapsed_ms: float, next_delay_ms: int
    ) -> bool:
        """Determine if a failed query should be attempted again.

        Args:
            error: The classified error from the last attempt.
            elapsed_ms: Time spent since the first attempt started.
            next_delay_ms: Delay that would precede the next attempt.

        Returns:
            True if the error is retryable and the budget allows another try.
        """
        if not error.retryable:
            return False
        return elapsed_ms + next_delay_ms <= self.max_elapsed_ms


class ResilientQueryExecutor:
    """Runs read queries under a retry policy and never raises store errors.

    The executor holds no per-call state and may be shared between threads.
    """

    def __init__(
        self,
        policy: RetryPolicy | None = None,
        *,
        failure_sink: FailureSink | None = None,
        metrics: MetricsRecorder | None = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        """Initialize the executor.

        Args:
            policy: Retry policy (defaults to ``RetryPolicy()``).
            failure_sink: Receiver of failure events (defaults to logging).
            metrics: Metrics recorder (defaults to the shared LookupMetrics).
            clock: Monotonic clock returning seconds.
            sleep: Function used to wait between attempts, in seconds.
        """
        self._policy = policy if policy is not None else RetryPolicy()
        self._failure_sink = (
            failure_sink if failure_sink is not None else LoggingFailureSink()
        )
        self._metrics = metrics if metrics is not None else LookupMetrics.get_instance()
        self._clock = clock
        self._sleep = sleep
        self._log = get_store_logger("executor")

    @property
    def policy(self) -> RetryPolicy:
        """Get the retry policy."""
        return self._policy

    @property
    def clock(self) -> Callable[[], float]:
        """Get the monotonic clock used to time lookups."""
        return self._clock

    def execute(
        self,
        operation: str,
        query: Query,
        *,
        asset_uri: str,
        raw_uri: str | None = None,
    ) -> LookupResult:
        """Run a query until it answers, fails permanently, or the budget runs out.

        Args:
            operation: Name of the lookup, used in logs, metrics and events.
            query: Zero-argument callable performing one read.
            asset_uri: Asset URI the lookup is made for.
            raw_uri: Raw image/animation URI for dedup lookups.

        Returns:
            FOUND with the record, CONFIRMED_ABSENT when no row matched, or
            UNAVAILABLE when the store could not answer.
        """
        log = self._log.bind(op=operation, asset_uri=asset_uri, raw_uri=raw_uri)
        start = self._clock()
        attempt = 0

        while True:
            attempt += 1
            self._metrics.record_attempt(operation)

            try:
                record = query()
            except (StoreError, sqlite3.Error) as exc:
                error = classify_store_error(exc)
                elapsed_ms = (self._clock() - start) * 1000.0
                delay_ms = self._policy.get_delay_ms(attempt - 1)

                if self._policy.should_retry(error, elapsed_ms, delay_ms):
                    self._metrics.record_retry(operation)
                    log.debug(
                        "lookup_retry",
                        attempt=attempt,
                        delay_ms=delay_ms,
                        elapsed_ms=round(elapsed_ms, 2),
                        error=str(error),
                    )
                    self._sleep(delay_ms / 1000.0)
                    continue

                return self.fail(
                    operation,
                    error,
                    attempts=attempt,
                    elapsed_ms=elapsed_ms,
                    asset_uri=asset_uri,
                    raw_uri=raw_uri,
                )

            elapsed_ms = (self._clock() - start) * 1000.0
            outcome = (
                LookupOutcome.FOUND
                if record is not None
                else LookupOutcome.CONFIRMED_ABSENT
            )
            self._metrics.record_outcome(operation, outcome, elapsed_ms)
            log.debug(
                "lookup_complete",
                outcome=outcome.value,
                attempts=attempt,
                elapsed_ms=round(elapsed_ms, 2),
            )
            return LookupResult(outcome=outcome, record=record, attempts=attempt)

    def fail(
        self,
        operation: str,
        error: BaseException,
        *,
        attempts: int,
        elapsed_ms: float,
        asset_uri: str,
        raw_uri: str | None = None,
        reason: FailureReason | None = None,
    ) -> LookupResult:
        """Signal a terminal failure and build the UNAVAILABLE result.

        Also used by callers for failures that happen before the first
        attempt, such as being unable to borrow a connection.

        Args:
            operation: Name of the lookup.
            error: The final error, classified if not already a StoreError.
            attempts: Number of query attempts made.
            elapsed_ms: Time spent before giving up.
            asset_uri: Asset URI the lookup was made for.
            raw_uri: Raw image/animation URI for dedup lookups.
            reason: Reason reported in the event (derived from the error if
                not provided).

        Returns:
            An UNAVAILABLE result.
        """
        store_error = classify_store_error(error)
        error_type = type(store_error.cause or store_error).__name__
        if reason is None:
            reason = "exhausted" if store_error.retryable else "non_retryable"
        event = LookupFailureEvent(
            operation=operation,
            asset_uri=asset_uri,
            raw_uri=raw_uri,
            error=str(store_error),
            error_type=error_type,
            reason=reason,
            attempts=attempts,
            elapsed_ms=max(elapsed_ms, 0.0),
        )
        self._metrics.record_failure(error_type)
        self._metrics.record_outcome(operation, LookupOutcome.UNAVAILABLE, elapsed_ms)
        self._failure_sink.emit(event)

        return LookupResult(
            outcome=LookupOutcome.UNAVAILABLE,
            record=None,
            attempts=attempts,
            error=str(store_error),
        )
