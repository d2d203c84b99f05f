"""Unit tests for lookup retry policy decisions."""

import pytest
from pydantic import ValidationError

from metadata_crawler.store.errors import (
    PermanentStoreError,
    QueryDefinitionError,
    TransientStoreError,
)
from metadata_crawler.store.retry import RetryPolicy


class TestRetryPolicy:
    """Tests for RetryPolicy model."""

    def test_default_values(self) -> None:
        """Test default retry policy values."""
        policy = RetryPolicy()

        assert policy.initial_interval_ms == 500
        assert policy.max_interval_ms == 10000
        assert policy.multiplier == 2.0
        assert policy.jitter_factor == 0.5
        assert policy.max_elapsed_seconds == 15.0
        assert policy.max_elapsed_ms == 15000.0

    def test_custom_values(self) -> None:
        """Test custom retry policy values."""
        policy = RetryPolicy(
            initial_interval_ms=50,
            max_interval_ms=2000,
            multiplier=1.5,
            jitter_factor=0.0,
            max_elapsed_seconds=0.5,
        )

        assert policy.initial_interval_ms == 50
        assert policy.max_elapsed_ms == 500.0

    def test_zero_initial_interval_rejected(self) -> None:
        """Test a zero base interval is rejected so retries always back off."""
        with pytest.raises(ValidationError):
            RetryPolicy(initial_interval_ms=0)

    def test_negative_budget_rejected(self) -> None:
        """Test the elapsed budget cannot be negative."""
        with pytest.raises(ValidationError):
            RetryPolicy(max_elapsed_seconds=-1.0)

    def test_immutable(self) -> None:
        """Test that the policy is frozen."""
        policy = RetryPolicy()
        with pytest.raises(ValidationError):
            policy.max_elapsed_seconds = 1.0  # type: ignore[misc]


class TestGetDelayMs:
    """Tests for retry delay calculation."""

    def test_delay_doubles(self) -> None:
        """Test that delays double on each retry."""
        policy = RetryPolicy(initial_interval_ms=500, jitter_factor=0.0)

        assert policy.get_delay_ms(0) == 500
        assert policy.get_delay_ms(1) == 1000
        assert policy.get_delay_ms(2) == 2000
        assert policy.get_delay_ms(3) == 4000

    def test_max_interval_cap(self) -> None:
        """Test that a single delay is capped at max_interval_ms."""
        policy = RetryPolicy(
            initial_interval_ms=500,
            max_interval_ms=3000,
            jitter_factor=0.0,
        )

        assert policy.get_delay_ms(2) == 2000
        assert policy.get_delay_ms(3) == 3000
        assert policy.get_delay_ms(10) == 3000

    def test_large_retry_count_does_not_overflow(self) -> None:
        """Test very high retry counts stay capped."""
        policy = RetryPolicy(max_interval_ms=3000, jitter_factor=0.0)
        assert policy.get_delay_ms(100_000) == 3000

    def test_jitter_adds_variation(self) -> None:
        """Test that jitter stays within its bound."""
        policy = RetryPolicy(initial_interval_ms=1000, jitter_factor=0.5)

        for _ in range(20):
            delay = policy.get_delay_ms(0)
            assert 1000 <= delay <= 1500


class TestShouldRetry:
    """Tests for retry decision logic."""

    @pytest.fixture
    def policy(self) -> RetryPolicy:
        """Create a policy with a one second budget."""
        return RetryPolicy(max_elapsed_seconds=1.0)

    def test_retry_transient_within_budget(self, policy: RetryPolicy) -> None:
        """Test transient errors are retried while the budget allows."""
        error = TransientStoreError("database is locked")

        assert policy.should_retry(error, elapsed_ms=0.0, next_delay_ms=500) is True
        assert policy.should_retry(error, elapsed_ms=500.0, next_delay_ms=500) is True

    def test_no_retry_past_budget(self, policy: RetryPolicy) -> None:
        """Test retries stop once the next delay would exceed the budget."""
        error = TransientStoreError("database is locked")

        assert policy.should_retry(error, elapsed_ms=600.0, next_delay_ms=500) is False
        assert policy.should_retry(error, elapsed_ms=2000.0, next_delay_ms=1) is False

    def test_no_retry_on_permanent(self, policy: RetryPolicy) -> None:
        """Test permanent errors are never retried."""
        assert (
            policy.should_retry(PermanentStoreError("x"), 0.0, next_delay_ms=1)
            is False
        )
        assert (
            policy.should_retry(QueryDefinitionError("x"), 0.0, next_delay_ms=1)
            is False
        )

    def test_zero_budget_never_retries(self) -> None:
        """Test a zero budget allows exactly one attempt."""
        policy = RetryPolicy(max_elapsed_seconds=0.0)
        error = TransientStoreError("database is locked")

        assert policy.should_retry(error, elapsed_ms=0.0, next_delay_ms=1) is False
