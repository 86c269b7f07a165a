"""
Property-based tests for the Retry Manager module.

Uses Hypothesis to verify exponential backoff, the retry budget and which
transport failures count as transient.
"""

import asyncio

import httpx
from hypothesis import given, settings
from hypothesis import strategies as st

from expiry_notifier.config import RetryConfig
from expiry_notifier.retry_manager import RetryManager, RetryResult


# Strategies for generating test data

@st.composite
def retry_config_strategy(draw) -> RetryConfig:
    """Generate valid RetryConfig objects."""
    return RetryConfig(
        max_retries=draw(st.integers(min_value=0, max_value=5)),
        base_delay_seconds=draw(st.floats(min_value=0.0001, max_value=0.001)),
        max_delay_seconds=draw(st.floats(min_value=0.001, max_value=0.005)),
    )


def http_status_error(status_code: int) -> httpx.HTTPStatusError:
    request = httpx.Request("POST", "https://hooks.example.com/x")
    response = httpx.Response(status_code, request=request)
    return httpx.HTTPStatusError(f"HTTP {status_code}", request=request, response=response)


class TestExponentialBackoffProperty:
    """Delays grow exponentially and are capped."""

    @given(
        config=retry_config_strategy(),
        num_attempts=st.integers(min_value=1, max_value=6),
    )
    @settings(max_examples=100)
    def test_exponential_backoff_delay_calculation(
        self,
        config: RetryConfig,
        num_attempts: int,
    ) -> None:
        retry_manager = RetryManager(config)

        delays = [retry_manager._calculate_delay(attempt) for attempt in range(num_attempts)]

        for attempt, delay in enumerate(delays):
            expected = min(config.base_delay_seconds * (2 ** attempt), config.max_delay_seconds)
            assert abs(delay - expected) < 1e-9
        for i in range(1, len(delays)):
            assert delays[i] >= delays[i - 1]

    @given(config=retry_config_strategy())
    @settings(max_examples=100)
    def test_delay_capped_at_max(self, config: RetryConfig) -> None:
        retry_manager = RetryManager(config)

        for attempt in range(10):
            assert retry_manager._calculate_delay(attempt) <= config.max_delay_seconds


class TestTransientErrorClassification:
    """Only idempotent transport failures are retried."""

    @given(status_code=st.sampled_from([429, 500, 502, 503, 504]))
    @settings(max_examples=20)
    def test_retryable_statuses(self, status_code: int) -> None:
        retry_manager = RetryManager(RetryConfig())

        assert retry_manager.is_retryable_status(status_code)
        assert retry_manager.is_retryable_error(http_status_error(status_code))

    @given(status_code=st.sampled_from([400, 401, 403, 404, 422]))
    @settings(max_examples=20)
    def test_client_errors_are_not_retried(self, status_code: int) -> None:
        retry_manager = RetryManager(RetryConfig())

        assert not retry_manager.is_retryable_error(http_status_error(status_code))

    def test_transport_failures_are_retried(self) -> None:
        retry_manager = RetryManager(RetryConfig())

        assert retry_manager.is_retryable_error(httpx.ReadTimeout("slow"))
        assert retry_manager.is_retryable_error(httpx.ConnectError("refused"))
        assert not retry_manager.is_retryable_error(ValueError("bad json"))


class TestMaxRetriesExhaustedProperty:
    """The retry budget is 1 initial attempt plus max_retries."""

    @given(config=retry_config_strategy())
    @settings(max_examples=100, deadline=None)
    def test_max_retries_exhausted_returns_failure(self, config: RetryConfig) -> None:
        retry_manager = RetryManager(config)
        call_count = 0

        async def always_failing_operation():
            nonlocal call_count
            call_count += 1
            raise httpx.ConnectTimeout("Simulated timeout")

        result = asyncio.run(retry_manager.execute_with_retry(always_failing_operation))

        assert result.attempts == config.max_retries + 1
        assert call_count == config.max_retries + 1
        assert not result.success
        assert result.result is None
        assert isinstance(result.last_error, httpx.ConnectTimeout)

    @given(config=retry_config_strategy())
    @settings(max_examples=50, deadline=None)
    def test_non_retryable_error_stops_immediately(self, config: RetryConfig) -> None:
        retry_manager = RetryManager(config)

        async def rejected():
            raise http_status_error(400)

        result = asyncio.run(retry_manager.execute_with_retry(rejected))

        assert result.attempts == 1
        assert not result.success

    @given(
        config=retry_config_strategy(),
        failures=st.integers(min_value=0, max_value=5),
    )
    @settings(max_examples=100, deadline=None)
    def test_retry_succeeds_after_transient_errors(self, config: RetryConfig, failures: int) -> None:
        retry_manager = RetryManager(config)
        call_count = 0

        async def flaky_operation():
            nonlocal call_count
            call_count += 1
            if call_count <= failures:
                raise http_status_error(503)
            return "delivered"

        result: RetryResult = asyncio.run(retry_manager.execute_with_retry(flaky_operation))

        if failures <= config.max_retries:
            assert result.success
            assert result.result == "delivered"
            assert result.attempts == failures + 1
        else:
            assert not result.success
            assert result.attempts == config.max_retries + 1
