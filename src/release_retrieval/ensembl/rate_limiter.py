"""Request pacing for the Ensembl REST service.

Ensembl allows roughly 15 requests per second per client. Pacing requests
with a token bucket keeps a client under that limit, so that Retry-After
back-offs stay the exception.

Example usage:
    limiter = RateLimiter(requests_per_second=15.0)

    async with limiter.acquire():
        response = await client.get(url)
"""

from __future__ import annotations

import asyncio
import time
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Callable

ENSEMBL_REQUESTS_PER_SECOND = 15.0


@dataclass
class TokenBucket:
    """Tokens accrue at ``refill_rate`` per second up to ``capacity``.

    Each request spends one token. The bucket starts full.

    Attributes:
        capacity: Largest number of tokens held, i.e. the burst size
        refill_rate: Tokens accrued per second
        clock: Monotonic time source in seconds
    """

    capacity: float
    refill_rate: float
    clock: Callable[[], float] = time.monotonic
    tokens: float = field(init=False)
    updated_at: float = field(init=False)

    def __post_init__(self) -> None:
        self.fill()

    def fill(self) -> None:
        self.tokens = self.capacity
        self.updated_at = self.clock()

    def _accrue(self) -> None:
        now = self.clock()
        self.tokens = min(
            self.capacity, self.tokens + (now - self.updated_at) * self.refill_rate
        )
        self.updated_at = now

    def take(self) -> float:
        """Spend one token if there is one.

        Returns:
            0.0 if a token was spent, otherwise the seconds until one accrues
        """
        self._accrue()
        if self.tokens >= 1.0:
            self.tokens -= 1.0
            return 0.0
        return (1.0 - self.tokens) / self.refill_rate

    @property
    def available(self) -> float:
        self._accrue()
        return self.tokens


class RateLimiter:
    """Paces every request a client sends through one token bucket.

    take() never suspends, so concurrent waiters on one event loop cannot
    interleave inside it and no lock is needed.

    Args:
        requests_per_second: Sustained request rate
        burst_size: Requests allowed back to back (defaults to requests_per_second)
        clock: Monotonic time source, for tests
    """

    def __init__(
        self,
        requests_per_second: float = ENSEMBL_REQUESTS_PER_SECOND,
        burst_size: float | None = None,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if requests_per_second <= 0:
            raise ValueError("requests_per_second must be positive")

        self.requests_per_second = requests_per_second
        self.burst_size = requests_per_second if burst_size is None else burst_size
        self._bucket = TokenBucket(self.burst_size, requests_per_second, clock)

    async def wait(self) -> float:
        """Sleep until the next request may be sent.

        Returns:
            Seconds slept
        """
        slept = 0.0
        while (delay := self._bucket.take()) > 0.0:
            await asyncio.sleep(delay)
            slept += delay
        return slept

    @asynccontextmanager
    async def acquire(self) -> AsyncIterator[None]:
        await self.wait()
        yield

    @property
    def available_tokens(self) -> float:
        return self._bucket.available

    def reset(self) -> None:
        """Refill the bucket to its burst size."""
        self._bucket.fill()
