"""Bounded retry for connect timeouts.

A retriever configured with ``num_retries = N`` makes at most ``N + 1``
attempts. Only failures the caller classifies as retryable (a timeout while
establishing the connection) lead to another attempt; anything else
propagates immediately.

Example usage:
    handler = RetryHandler(RetryConfig(max_retries=2))
    downloaded = await handler.execute(
        lambda: transport.download(url, path, timeout=30.0),
        is_retryable=lambda e: isinstance(e, HTTPClientError) and e.retryable,
        operation_name="download",
    )
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, TypeVar

from release_retrieval.retrieval.protocol import RetriesExceeded

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class RetryConfig:
    """Configuration for retry behavior.

    Attributes:
        max_retries: Attempts allowed after the first one (default: 1)
        base_delay: Delay in seconds before the first retry (default: 0.0)
        max_delay: Maximum delay between retries in seconds (default: 60.0)
        exponential_base: Base for exponential backoff calculation (default: 2.0)
    """

    max_retries: int = 1
    base_delay: float = 0.0
    max_delay: float = 60.0
    exponential_base: float = 2.0

    def __post_init__(self) -> None:
        """Validate configuration values."""
        if self.max_retries < 0:
            raise ValueError("max_retries must be non-negative")
        if self.base_delay < 0:
            raise ValueError("base_delay must be non-negative")
        if self.max_delay < self.base_delay:
            raise ValueError("max_delay must be >= base_delay")
        if self.exponential_base < 1:
            raise ValueError("exponential_base must be >= 1")


def exhausted_message(num_retries: int) -> str:
    return (
        f"Connection timed out. Number of retries ({num_retries}) exceeded. "
        "No further attempts will be made."
    )


class RetryHandler:
    """Runs an async operation, retrying it on retryable failures.

    The delay between retries follows:
        delay = min(base_delay * (exponential_base ** attempt), max_delay)
    A zero ``base_delay`` retries immediately.
    """

    def __init__(
        self,
        config: RetryConfig | None = None,
        *,
        logger: logging.Logger | None = None,
    ) -> None:
        self.config = config or RetryConfig()
        self._logger = logger or logging.getLogger(__name__)

    def calculate_delay(self, attempt: int) -> float:
        """Delay in seconds before the retry that follows ``attempt`` (0-indexed)."""
        delay = self.config.base_delay * (self.config.exponential_base**attempt)
        return min(delay, self.config.max_delay)

    async def execute(
        self,
        operation: Callable[[], Awaitable[T]],
        *,
        is_retryable: Callable[[BaseException], bool],
        operation_name: str = "operation",
        destination: str | None = None,
    ) -> T:
        """Execute ``operation`` with at most ``max_retries`` extra attempts.

        Args:
            operation: Async callable to execute
            is_retryable: Classifies a failure as worth another attempt
            operation_name: Name for logging purposes
            destination: Local path for error context

        Returns:
            The result of the first successful attempt

        Raises:
            RetriesExceeded: If every attempt failed with a retryable error
            Exception: Any non-retryable exception from the operation
        """
        max_retries = self.config.max_retries
        last_error: Exception | None = None

        for attempt in range(max_retries + 1):
            try:
                result = await operation()
                if attempt > 0:
                    self._logger.info(
                        "%s succeeded after %d attempts", operation_name, attempt + 1
                    )
                return result
            except Exception as e:
                if not is_retryable(e):
                    raise
                last_error = e
                remaining = max_retries - attempt
                if remaining <= 0:
                    break
                self._logger.warning(
                    "%s failed due to connect timeout, but will retry %d more time(s).",
                    operation_name,
                    remaining,
                )
                delay = self.calculate_delay(attempt)
                if delay > 0:
                    await asyncio.sleep(delay)

        message = exhausted_message(max_retries)
        self._logger.error(message)
        raise RetriesExceeded(
            message,
            attempts=max_retries + 1,
            num_retries=max_retries,
            destination=destination,
            cause=last_error,
        ) from last_error
