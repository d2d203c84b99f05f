"""Metrics collection for store lookups."""

from dataclasses import dataclass, field
from threading import Lock
from typing import ClassVar, Protocol

from metadata_crawler.store.models import LookupOutcome


class MetricsRecorder(Protocol):
    """Protocol for lookup metrics recording.

    Enables dependency injection of metrics into the executor. Implementations
    should be thread-safe if shared between workers.
    """

    def record_attempt(self, operation: str) -> None:
        """Record a single query attempt."""
        ...

    def record_retry(self, operation: str) -> None:
        """Record a retry scheduled after a transient failure."""
        ...

    def record_outcome(
        self, operation: str, outcome: LookupOutcome, duration_ms: float
    ) -> None:
        """Record the final outcome of a lookup."""
        ...

    def record_failure(self, error_type: str) -> None:
        """Record a terminal failure by error type."""
        ...


@dataclass
class NullMetricsRecorder:
    """No-op metrics recorder for testing."""

    def record_attempt(self, operation: str) -> None:  # noqa: ARG002
        """No-op."""

    def record_retry(self, operation: str) -> None:  # noqa: ARG002
        """No-op."""

    def record_outcome(
        self,
        operation: str,  # noqa: ARG002
        outcome: LookupOutcome,  # noqa: ARG002
        duration_ms: float,  # noqa: ARG002
    ) -> None:
        """No-op."""

    def record_failure(self, error_type: str) -> None:  # noqa: ARG002
        """No-op."""


@dataclass
class LookupMetrics:
    """Thread-safe metrics for store lookups.

    Shared by every executor that is not given its own recorder, so all
    updates happen under an instance lock.

    Attributes:
        lookups_total: Completed lookups per operation.
        attempts_total: Query attempts including retries.
        retries_total: Retries scheduled after transient failures.
        found_total: Lookups that returned a row.
        absent_total: Lookups where the store confirmed no row matched.
        unavailable_total: Lookups that gave up without an answer.
        failures_total: Terminal failures per error type.
        duration_ms_total: Cumulative lookup duration in milliseconds.
    """

    _lock: Lock = field(default_factory=Lock, repr=False, compare=False)

    lookups_total: dict[str, int] = field(default_factory=dict)
    attempts_total: int = 0
    retries_total: int = 0
    found_total: int = 0
    absent_total: int = 0
    unavailable_total: int = 0
    failures_total: dict[str, int] = field(default_factory=dict)
    duration_ms_total: float = 0.0

    _instance: ClassVar["LookupMetrics | None"] = None
    _instance_lock: ClassVar[Lock] = Lock()

    @classmethod
    def get_instance(cls) -> "LookupMetrics":
        """Get singleton metrics instance (thread-safe)."""
        if cls._instance is None:
            with cls._instance_lock:
                # Double-checked locking
                if cls._instance is None:
                    cls._instance = cls()
        return cls._instance

    @classmethod
    def reset(cls) -> None:
        """Reset metrics (primarily for testing)."""
        with cls._instance_lock:
            cls._instance = None

    def record_attempt(self, operation: str) -> None:  # noqa: ARG002
        """Record a single query attempt."""
        with self._lock:
            self.attempts_total += 1

    def record_retry(self, operation: str) -> None:  # noqa: ARG002
        """Record a scheduled retry."""
        with self._lock:
            self.retries_total += 1

    def record_outcome(
        self, operation: str, outcome: LookupOutcome, duration_ms: float
    ) -> None:
        """Record the final outcome of a lookup.

        Args:
            operation: Name of the lookup operation.
            outcome: How the lookup ended.
            duration_ms: Total time spent, including backoff sleeps.
        """
        with self._lock:
            self.lookups_total[operation] = self.lookups_total.get(operation, 0) + 1
            self.duration_ms_total += duration_ms
            if outcome == LookupOutcome.FOUND:
                self.found_total += 1
            elif outcome == LookupOutcome.CONFIRMED_ABSENT:
                self.absent_total += 1
            else:
                self.unavailable_total += 1

    def record_failure(self, error_type: str) -> None:
        """Record a terminal failure.

        Args:
            error_type: Class name of the final error.
        """
        with self._lock:
            self.failures_total[error_type] = (
                self.failures_total.get(error_type, 0) + 1
            )

    def to_dict(self) -> dict[str, int | float | dict[str, int]]:
        """Convert metrics to dictionary.

        Returns:
            Dictionary of metric name to value.
        """
        with self._lock:
            return {
                "lookups_total": dict(self.lookups_total),
                "attempts_total": self.attempts_total,
                "retries_total": self.retries_total,
                "found_total": self.found_total,
                "absent_total": self.absent_total,
                "unavailable_total": self.unavailable_total,
                "failures_total": dict(self.failures_total),
                "duration_ms_total": self.duration_ms_total,
            }

    @property
    def avg_duration_ms(self) -> float:
        """Calculate average lookup duration.

        Returns:
            Average duration in milliseconds.
        """
        with self._lock:
            count = sum(self.lookups_total.values())
            if count == 0:
                return 0.0
            return self.duration_ms_total / count
