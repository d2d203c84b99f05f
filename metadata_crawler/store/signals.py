"""Out-of-band failure signal for lookups that could not be answered."""

import threading
from typing import Annotated, Literal, Protocol

from pydantic import BaseModel, ConfigDict, Field

from metadata_crawler.observability.logging import get_store_logger


# Why the executor gave up on a lookup.
FailureReason = Literal["exhausted", "non_retryable", "connection_unavailable"]


class LookupFailureEvent(BaseModel):
    """Structured description of a lookup that ended UNAVAILABLE."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    operation: Annotated[str, Field(min_length=1, description="Lookup name")]
    asset_uri: str = Field(description="Asset URI the lookup was made for")
    raw_uri: str | None = Field(
        default=None, description="Raw image/animation URI for dedup lookups"
    )
    error: str = Field(description="Message of the last error")
    error_type: str = Field(description="Class name of the last error")
    reason: FailureReason = Field(description="Why the executor gave up")
    attempts: Annotated[int, Field(ge=0)]
    elapsed_ms: Annotated[float, Field(ge=0.0)]


class FailureSink(Protocol):
    """Receiver of failure events emitted by the executor."""

    def emit(self, event: LookupFailureEvent) -> None:
        """Publish a failure event."""
        ...


class LoggingFailureSink:
    """Failure sink that writes events to the structured log."""

    def __init__(self) -> None:
        self._log = get_store_logger("signals")

    def emit(self, event: LookupFailureEvent) -> None:
        """Log the failure at error level."""
        self._log.error("lookup_failed", **event.model_dump())


class CollectingFailureSink:
    """Failure sink that keeps events in memory."""

    def __init__(self) -> None:
        self._events: list[LookupFailureEvent] = []
        self._lock = threading.Lock()

    def emit(self, event: LookupFailureEvent) -> None:
        """Store the event."""
        with self._lock:
            self._events.append(event)

    @property
    def events(self) -> list[LookupFailureEvent]:
        """Get a copy of the collected events."""
        with self._lock:
            return list(self._events)

    def clear(self) -> None:
        """Drop all collected events."""
        with self._lock:
            self._events.clear()
