"""Tests for the RetryHandler."""

from __future__ import annotations

from unittest.mock import AsyncMock, patch

import pytest

from release_retrieval.retrieval.protocol import RetriesExceeded
from release_retrieval.retrieval.retry_handler import (
    RetryConfig,
    RetryHandler,
    exhausted_message,
)
from release_retrieval.utils.http_client import (
    ConnectionError,
    ConnectTimeoutError,
    HTTPClientError,
)


def _is_retryable(error: BaseException) -> bool:
    return isinstance(error, HTTPClientError) and error.retryable


class TestRetryConfig:
    """Tests for RetryConfig dataclass."""

    def test_default_values(self) -> None:
        """Defaults retry once, immediately."""
        config = RetryConfig()

        assert config.max_retries == 1
        assert config.base_delay == 0.0
        assert config.max_delay == 60.0

    def test_negative_retries_rejected(self) -> None:
        """max_retries must be non-negative."""
        with pytest.raises(ValueError, match="max_retries must be non-negative"):
            RetryConfig(max_retries=-1)

    def test_negative_delay_rejected(self) -> None:
        """base_delay must be non-negative."""
        with pytest.raises(ValueError, match="base_delay must be non-negative"):
            RetryConfig(base_delay=-0.5)

    def test_max_delay_below_base_rejected(self) -> None:
        """max_delay cannot be smaller than base_delay."""
        with pytest.raises(ValueError, match="max_delay must be >= base_delay"):
            RetryConfig(base_delay=10.0, max_delay=1.0)


class TestCalculateDelay:
    """Tests for RetryHandler.calculate_delay()."""

    def test_zero_base_delay(self) -> None:
        """A zero base delay never waits."""
        handler = RetryHandler(RetryConfig(max_retries=3))

        assert handler.calculate_delay(0) == 0.0
        assert handler.calculate_delay(5) == 0.0

    def test_exponential_growth_is_capped(self) -> None:
        """Delays grow exponentially up to max_delay."""
        handler = RetryHandler(RetryConfig(base_delay=1.0, max_delay=5.0))

        assert handler.calculate_delay(0) == 1.0
        assert handler.calculate_delay(1) == 2.0
        assert handler.calculate_delay(2) == 4.0
        assert handler.calculate_delay(3) == 5.0


@pytest.mark.asyncio
class TestRetryHandlerExecute:
    """Tests for RetryHandler.execute()."""

    async def test_success_first_attempt(self) -> None:
        """A successful operation is called once."""
        operation = AsyncMock(return_value="done")
        handler = RetryHandler(RetryConfig(max_retries=3))

        result = await handler.execute(operation, is_retryable=_is_retryable)

        assert result == "done"
        assert operation.call_count == 1

    async def test_success_after_connect_timeouts(self) -> None:
        """Connect timeouts are retried until the operation succeeds."""
        operation = AsyncMock(
            side_effect=[ConnectTimeoutError("t1"), ConnectTimeoutError("t2"), "done"]
        )
        handler = RetryHandler(RetryConfig(max_retries=2))

        result = await handler.execute(operation, is_retryable=_is_retryable)

        assert result == "done"
        assert operation.call_count == 3

    @pytest.mark.parametrize("num_retries", [0, 1, 3])
    async def test_exhaustion_after_n_plus_one_attempts(self, num_retries: int) -> None:
        """N retries means exactly N + 1 attempts before RetriesExceeded."""
        cause = ConnectTimeoutError("Connection to host timed out")
        operation = AsyncMock(side_effect=cause)
        handler = RetryHandler(RetryConfig(max_retries=num_retries))

        with pytest.raises(RetriesExceeded) as exc_info:
            await handler.execute(
                operation, is_retryable=_is_retryable, destination="/tmp/x"
            )

        assert operation.call_count == num_retries + 1
        assert exc_info.value.attempts == num_retries + 1
        assert exc_info.value.num_retries == num_retries
        assert f"Number of retries ({num_retries}) exceeded" in str(exc_info.value)
        assert exc_info.value.cause is cause
        assert exc_info.value.__cause__ is cause
        assert exc_info.value.destination == "/tmp/x"

    async def test_non_retryable_error_propagates_immediately(self) -> None:
        """Connection refused is not retried."""
        operation = AsyncMock(side_effect=ConnectionError("refused"))
        handler = RetryHandler(RetryConfig(max_retries=5))

        with pytest.raises(ConnectionError):
            await handler.execute(operation, is_retryable=_is_retryable)

        assert operation.call_count == 1

    async def test_no_sleep_with_zero_delay(self) -> None:
        """Retries are re-issued immediately when base_delay is zero."""
        operation = AsyncMock(side_effect=[ConnectTimeoutError("t"), "done"])
        handler = RetryHandler(RetryConfig(max_retries=1))

        with patch("asyncio.sleep", new_callable=AsyncMock) as mock_sleep:
            await handler.execute(operation, is_retryable=_is_retryable)

        mock_sleep.assert_not_called()

    async def test_sleeps_with_configured_delay(self) -> None:
        """A configured delay is slept between attempts."""
        operation = AsyncMock(side_effect=[ConnectTimeoutError("t"), "done"])
        handler = RetryHandler(RetryConfig(max_retries=1, base_delay=0.5))

        with patch("asyncio.sleep", new_callable=AsyncMock) as mock_sleep:
            await handler.execute(operation, is_retryable=_is_retryable)

        mock_sleep.assert_awaited_once_with(0.5)

    async def test_retry_logging(self, caplog: pytest.LogCaptureFixture) -> None:
        """Each retry logs how many attempts remain."""
        operation = AsyncMock(side_effect=ConnectTimeoutError("t"))
        handler = RetryHandler(RetryConfig(max_retries=2))

        with caplog.at_level("WARNING"), pytest.raises(RetriesExceeded):
            await handler.execute(
                operation, is_retryable=_is_retryable, operation_name="Download"
            )

        assert "will retry 2 more time(s)" in caplog.text
        assert "will retry 1 more time(s)" in caplog.text
        assert exhausted_message(2) in caplog.text
