"""Bounded retry with exponential backoff for flaky external calls.

The fetcher makes up to ``max_attempts`` tries.  Before attempt *n*
(n >= 2) it sleeps ``base_delay * multiplier ** (n - 2)`` seconds, so the
defaults wait 200 ms and then 400 ms.  The wait is an ``asyncio.sleep``:
cancelling the surrounding task aborts it immediately and the
``CancelledError`` propagates instead of the last attempt's error.

When every attempt fails the fetcher raises ``ExternalFetchFailed`` with
a user-safe ``fallback`` text and the last error chained as its cause.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import TypeVar

from clippy.config import FETCH_BACKOFF_BASE_SECONDS, FETCH_MAX_ATTEMPTS
from clippy.errors import ExternalFetchFailed

logger = logging.getLogger(__name__)

T = TypeVar("T")

BACKOFF_MULTIPLIER = 2.0
DEFAULT_FALLBACK = "The external service is unavailable at the moment. Please try again later."


class RetryingFetcher:
    """Retry a zero-argument coroutine function with exponential backoff."""

    def __init__(
        self,
        *,
        max_attempts: int = FETCH_MAX_ATTEMPTS,
        base_delay: float = FETCH_BACKOFF_BASE_SECONDS,
        multiplier: float = BACKOFF_MULTIPLIER,
        fallback: str = DEFAULT_FALLBACK,
        retry_on: tuple[type[Exception], ...] = (Exception,),
        name: str = "external call",
    ):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self.multiplier = multiplier
        self.fallback = fallback
        self.retry_on = retry_on
        self.name = name

    def delay_before(self, attempt: int) -> float:
        """Seconds to wait before *attempt* (1-based).  Zero for the first."""
        if attempt <= 1:
            return 0.0
        return self.base_delay * self.multiplier ** (attempt - 2)

    async def fetch(self, operation: Callable[[], Awaitable[T]]) -> T:
        last_error: Exception | None = None
        for attempt in range(1, self.max_attempts + 1):
            delay = self.delay_before(attempt)
            if delay:
                await asyncio.sleep(delay)

            try:
                return await operation()
            except self.retry_on as exc:
                last_error = exc
                logger.warning(
                    "%s attempt %d/%d failed (%s: %s)",
                    self.name, attempt, self.max_attempts, type(exc).__name__, exc,
                )

        raise ExternalFetchFailed(
            self.fallback, last_error, self.max_attempts,
        ) from last_error
