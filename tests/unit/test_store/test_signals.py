"""Unit tests for failure signals."""

import pytest
from pydantic import ValidationError
from structlog.testing import capture_logs

from metadata_crawler.store.signals import (
    CollectingFailureSink,
    LoggingFailureSink,
    LookupFailureEvent,
)


def make_event(**overrides: object) -> LookupFailureEvent:
    """Build a failure event."""
    fields: dict[str, object] = {
        "operation": "get_by_raw_animation_uri",
        "asset_uri": "asset-a",
        "raw_uri": "ipfs://animation",
        "error": "database is locked",
        "error_type": "OperationalError",
        "reason": "exhausted",
        "attempts": 5,
        "elapsed_ms": 14000.0,
    }
    fields.update(overrides)
    return LookupFailureEvent.model_validate(fields)


class TestLookupFailureEvent:
    """Tests for the failure event model."""

    def test_fields(self) -> None:
        """Test event fields are preserved."""
        event = make_event()

        assert event.operation == "get_by_raw_animation_uri"
        assert event.raw_uri == "ipfs://animation"
        assert event.attempts == 5

    def test_raw_uri_optional(self) -> None:
        """Test raw_uri may be omitted for primary-key lookups."""
        assert make_event(raw_uri=None).raw_uri is None

    def test_invalid_reason_rejected(self) -> None:
        """Test only known reasons are accepted."""
        with pytest.raises(ValidationError):
            make_event(reason="gave_up")

    def test_empty_operation_rejected(self) -> None:
        """Test the operation name is required."""
        with pytest.raises(ValidationError):
            make_event(operation="")


class TestCollectingFailureSink:
    """Tests for the in-memory sink."""

    def test_collects_and_clears(self) -> None:
        """Test events are kept in order and can be cleared."""
        sink = CollectingFailureSink()
        first = make_event(asset_uri="a")
        second = make_event(asset_uri="b")

        sink.emit(first)
        sink.emit(second)
        assert sink.events == [first, second]

        sink.clear()
        assert sink.events == []

    def test_events_returns_copy(self) -> None:
        """Test callers cannot mutate the stored events."""
        sink = CollectingFailureSink()
        sink.emit(make_event())

        sink.events.clear()

        assert len(sink.events) == 1


class TestLoggingFailureSink:
    """Tests for the structured log sink."""

    def test_logs_event_fields(self) -> None:
        """Test the event is logged at error level with its fields."""
        with capture_logs() as logs:
            LoggingFailureSink().emit(make_event())

        assert len(logs) == 1
        entry = logs[0]
        assert entry["event"] == "lookup_failed"
        assert entry["log_level"] == "error"
        assert entry["asset_uri"] == "asset-a"
        assert entry["raw_uri"] == "ipfs://animation"
        assert entry["reason"] == "exhausted"
