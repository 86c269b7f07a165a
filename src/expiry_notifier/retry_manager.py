"""
Retry Manager for channel deliveries.

Provides retry logic with exponential backoff for transient transport
failures. Retries are local to a single adapter call; the dispatcher never
sees them.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Awaitable, Callable, Generic, Optional, TypeVar

import httpx

from .config import RetryConfig

T = TypeVar("T")


@dataclass
class RetryResult(Generic[T]):
    """Result of a retry operation."""

    success: bool
    result: Optional[T]
    attempts: int
    last_error: Optional[Exception]


class RetryManager:
    """
    Manages retry logic with exponential backoff.

    Only idempotent failures are retried: retryable HTTP status codes
    (5xx, 429), connection errors and timeouts.
    """

    def __init__(self, config: RetryConfig) -> None:
        """
        Initialize the retry manager.

        Args:
            config: Retry configuration with max_retries, delays and status codes
        """
        self._config = config

    @property
    def config(self) -> RetryConfig:
        return self._config

    def _calculate_delay(self, attempt: int) -> float:
        """
        Calculate wait time with exponential backoff.

        Args:
            attempt: The current attempt number (0-indexed)

        Returns:
            The delay in seconds before the next retry
        """
        delay = self._config.base_delay_seconds * (2 ** attempt)
        return min(delay, self._config.max_delay_seconds)

    def is_retryable_status(self, status_code: int) -> bool:
        return status_code in self._config.retryable_status_codes

    def is_retryable_error(self, error: Exception) -> bool:
        """
        Check if an exception is a transient transport failure.

        Args:
            error: Exception raised by the operation

        Returns:
            True if the operation should be retried
        """
        if isinstance(error, httpx.HTTPStatusError):
            return self.is_retryable_status(error.response.status_code)
        return isinstance(error, (httpx.TimeoutException, httpx.TransportError))

    async def execute_with_retry(
        self,
        operation: Callable[[], Awaitable[T]],
        is_retryable: Optional[Callable[[Exception], bool]] = None,
    ) -> RetryResult[T]:
        """
        Execute an operation with retry logic and exponential backoff.

        Args:
            operation: The async operation to execute
            is_retryable: Optional predicate deciding whether an exception
                          is retryable. Defaults to is_retryable_error.

        Returns:
            RetryResult containing success status, result, attempts, and last error
        """
        predicate = is_retryable or self.is_retryable_error
        last_error: Optional[Exception] = None
        attempts = 0

        # Total attempts = 1 initial + max_retries
        max_attempts = self._config.max_retries + 1

        while attempts < max_attempts:
            try:
                result = await operation()
                return RetryResult(
                    success=True,
                    result=result,
                    attempts=attempts + 1,
                    last_error=None,
                )
            except Exception as e:
                last_error = e
                attempts += 1

                if not predicate(e) or attempts >= max_attempts:
                    break

                await asyncio.sleep(self._calculate_delay(attempts - 1))

        return RetryResult(
            success=False,
            result=None,
            attempts=attempts,
            last_error=last_error,
        )
