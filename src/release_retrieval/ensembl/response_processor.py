"""Ensembl REST response processing.

The Ensembl REST service enforces a request quota. Every response reports the
requests left in the current window (``X-RateLimit-Remaining``), and a
client over its quota is told how long to back off (``Retry-After``).

``EnsemblServiceResponseProcessor`` turns one response into one decision: the
body (if it is worth keeping), whether the request may be retried, and how
long to wait first. It never sleeps and never raises for a non-2xx status;
running the retry loop is up to the caller (see ``EnsemblClient``).

The remaining quota is shared by every processor in the process, so any
processor created later sees the most recent value.

Example usage:
    processor = EnsemblServiceResponseProcessor()
    while True:
        decision = processor.process_response(await client.get(url))
        if not decision.ok_to_retry:
            break
        await asyncio.sleep(decision.wait_time.total_seconds())
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from email.utils import parsedate_to_datetime
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from release_retrieval.utils.http_client import HTTPResponse

MAX_TIMES_TO_WAIT = 5
DEFAULT_TIMEOUT_RETRIES = 3
INITIAL_REQUESTS_REMAINING = 10

RETRY_AFTER_HEADER = "Retry-After"
RATE_LIMIT_REMAINING_HEADER = "X-RateLimit-Remaining"


class RequestsRemaining:
    """Thread-safe cell holding the last reported remaining request quota."""

    def __init__(self, initial: int = INITIAL_REQUESTS_REMAINING) -> None:
        self._value = initial
        self._lock = threading.Lock()

    def get(self) -> int:
        with self._lock:
            return self._value

    def set(self, value: int) -> None:
        with self._lock:
            self._value = value

    def __repr__(self) -> str:
        return f"RequestsRemaining({self.get()})"


# Process-wide quota shared by every processor.
requests_remaining = RequestsRemaining()


def get_num_requests_remaining() -> int:
    """Remaining Ensembl request quota, as last reported by the service."""
    return requests_remaining.get()


@dataclass(frozen=True, slots=True)
class EnsemblServiceResult:
    """Decision for one Ensembl response.

    Attributes:
        status: HTTP status code
        result: Body worth keeping, empty if none
        ok_to_retry: Whether the caller may issue the request again
        wait_time: How long to wait before retrying
    """

    status: int
    result: str = ""
    ok_to_retry: bool = False
    wait_time: timedelta = timedelta(0)


class EnsemblServiceResponseProcessor:
    """Per-response decision function with backoff state.

    ``wait_multiplier`` starts at 1 and grows each time a Retry-After wait is
    honoured; it is never reset. ``timeout_retries_remaining`` counts down on
    504 responses and starts over once exhausted.
    """

    def __init__(
        self,
        logger: logging.Logger | None = None,
        *,
        quota: RequestsRemaining | None = None,
    ) -> None:
        self._logger = logger or logging.getLogger(__name__)
        self._quota = quota or requests_remaining
        self._wait_multiplier = 1
        self._timeout_retries_remaining = DEFAULT_TIMEOUT_RETRIES

    @property
    def wait_multiplier(self) -> int:
        return self._wait_multiplier

    @property
    def timeout_retries_remaining(self) -> int:
        return self._timeout_retries_remaining

    @property
    def num_requests_remaining(self) -> int:
        return self._quota.get()

    def process_response(self, response: HTTPResponse) -> EnsemblServiceResult:
        """Decide what to do about ``response``.

        The shared remaining quota is refreshed afterwards, whichever branch
        was taken.
        """
        if response.header(RETRY_AFTER_HEADER) is not None:
            result = self._process_retry_after(response)
        else:
            result = self._process_status(response)
        self._process_rate_limit_remaining(response)
        return result

    def _process_retry_after(self, response: HTTPResponse) -> EnsemblServiceResult:
        self._logger.debug(
            "Response message: %s ; Headers: %s", response.reason, response.headers
        )
        wait_time = self._wait_time(response)
        ok_to_retry = self._times_waited_threshold_not_met()
        if ok_to_retry:
            self._wait_multiplier += 1
        return EnsemblServiceResult(
            status=response.status, ok_to_retry=ok_to_retry, wait_time=wait_time
        )

    def _process_status(self, response: HTTPResponse) -> EnsemblServiceResult:
        status = response.status

        if status == 504:
            self._logger.error(
                "Request timed out! %d retries remaining", self._timeout_retries_remaining
            )
            self._timeout_retries_remaining -= 1
            if self._timeout_retries_remaining > 0:
                return EnsemblServiceResult(status=status, ok_to_retry=True)
            self._logger.error("No more retries remaining.")
            self._timeout_retries_remaining = DEFAULT_TIMEOUT_RETRIES
            return EnsemblServiceResult(status=status)

        if status == 200:
            return EnsemblServiceResult(status=status, result=_body(response))

        if status == 404:
            self._logger.error(
                "Response code 404 ('Not found') received: %s", response.reason
            )
        elif status == 500:
            self._logger.error("Error 500 detected! Message: %s", response.reason)
        elif status == 400:
            # 400 bodies are diagnostics only
            self._logger.debug(
                "Response code was 400 ('Bad request'). Message from server: %s",
                _body(response),
            )
        else:
            self._logger.info("Unexpected response: %s", response.reason)
            return EnsemblServiceResult(status=status, result=_body(response))
        return EnsemblServiceResult(status=status)

    def _process_rate_limit_remaining(self, response: HTTPResponse) -> None:
        raw = response.header(RATE_LIMIT_REMAINING_HEADER)
        if raw is None:
            self._logger.warning(
                "No X-RateLimit-Remaining was returned. This is odd. Response message: %s ; "
                "Headers returned are: %s\nLast known value for remaining was %d",
                response.reason,
                response.headers,
                self._quota.get(),
            )
            return

        try:
            remaining = int(raw.strip())
        except ValueError:
            self._logger.warning(
                "Could not parse X-RateLimit-Remaining value %r; keeping %d",
                raw,
                self._quota.get(),
            )
            return

        self._quota.set(remaining)
        if remaining % 1000 == 0:
            self._logger.debug("%d requests remaining", remaining)

    def _wait_time(self, response: HTTPResponse) -> timedelta:
        wait = _parse_retry_after(response.header(RETRY_AFTER_HEADER) or "")
        if wait is None:
            self._logger.warning(
                "Could not parse Retry-After value %r; not waiting",
                response.header(RETRY_AFTER_HEADER),
            )
            wait = timedelta(0)
        self._logger.warning(
            "The server told us to wait, so we will wait for %s * %d before trying again.",
            wait,
            self._wait_multiplier,
        )
        return wait * self._wait_multiplier

    def _times_waited_threshold_not_met(self) -> bool:
        if self._wait_multiplier >= MAX_TIMES_TO_WAIT:
            self._logger.error(
                "Already waited %d times and still told to wait. This will be the LAST attempt.",
                self._wait_multiplier,
            )
            return False
        return True


def _body(response: HTTPResponse) -> str:
    return response.content.decode("utf-8", errors="replace")


def _parse_retry_after(value: str) -> timedelta | None:
    """Parse a Retry-After value given in seconds or as an HTTP date."""
    value = value.strip()
    try:
        return timedelta(seconds=int(value))
    except ValueError:
        pass
    try:
        when = parsedate_to_datetime(value)
    except (TypeError, ValueError):
        return None
    if when.tzinfo is None:
        when = when.replace(tzinfo=UTC)
    return max(when - datetime.now(UTC), timedelta(0))
