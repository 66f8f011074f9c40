"""
Request scheduler shared by every RPC / HTTP collaborator.

Meters concurrency (semaphore), requests per second (minimum spacing between
call starts) and a hard total-credit ceiling that fails fast once exhausted.
Excess calls wait in the semaphore / spacing lock in arrival order.
"""

from __future__ import annotations

import asyncio
import time
from typing import Any, Awaitable, Callable, TypeVar

from mintwatch.core.exceptions import RateLimitExceeded
from mintwatch.mintwatch_logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

DEFAULT_REQUESTS_PER_SECOND = 15.0
DEFAULT_MAX_CONCURRENT = 5
DEFAULT_MAX_TOTAL_CREDITS = 10_000_000


class RequestScheduler:
    """
    Token-bucket style scheduler: min interval between call starts, bounded
    in-flight calls, and a total credit budget for the process lifetime.

    Credits are reserved before the call starts (so the ceiling fails fast)
    and are not refunded when the call itself fails.
    """

    def __init__(
        self,
        requests_per_second: float = DEFAULT_REQUESTS_PER_SECOND,
        max_concurrent: int = DEFAULT_MAX_CONCURRENT,
        max_total_credits: int = DEFAULT_MAX_TOTAL_CREDITS,
    ) -> None:
        if max_concurrent < 1:
            raise ValueError("max_concurrent must be at least 1")
        if max_total_credits < 1:
            raise ValueError("max_total_credits must be at least 1")
        self._interval = 1.0 / requests_per_second if requests_per_second > 0 else 0.0
        self._max_concurrent = max_concurrent
        self._max_credits = max_total_credits
        self._credits_used = 0
        self._request_count = 0
        self._in_flight = 0
        self._last_start = 0.0
        self._semaphore = asyncio.Semaphore(max_concurrent)
        self._spacing_lock = asyncio.Lock()
        self._credit_lock = asyncio.Lock()

    @property
    def credits_used(self) -> int:
        return self._credits_used

    @property
    def in_flight(self) -> int:
        return self._in_flight

    async def _reserve(self, credits: int) -> None:
        async with self._credit_lock:
            if self._credits_used + credits > self._max_credits:
                logger.warning(
                    "scheduler_credit_limit_exceeded",
                    credits_used=self._credits_used,
                    required=credits,
                    max_credits=self._max_credits,
                )
                raise RateLimitExceeded(self._credits_used, credits, self._max_credits)
            self._credits_used += credits
            self._request_count += 1

    async def _pace(self) -> None:
        async with self._spacing_lock:
            elapsed = time.monotonic() - self._last_start
            if elapsed < self._interval:
                await asyncio.sleep(self._interval - elapsed)
            self._last_start = time.monotonic()

    async def execute(
        self,
        request: Callable[[], Awaitable[T]],
        credits: int = 1,
    ) -> T:
        """
        Run request() under the scheduler's ceilings.

        Raises RateLimitExceeded without calling request() when the credit
        budget would be exceeded. Exceptions from request() propagate.
        """
        if credits < 0:
            raise ValueError("credits must be non-negative")
        await self._reserve(credits)
        async with self._semaphore:
            await self._pace()
            self._in_flight += 1
            try:
                return await request()
            finally:
                self._in_flight -= 1

    def usage_stats(self) -> dict[str, Any]:
        return {
            "credits_used": self._credits_used,
            "max_credits": self._max_credits,
            "remaining_credits": self._max_credits - self._credits_used,
            "usage_percentage": round(self._credits_used / self._max_credits * 100, 2),
            "request_count": self._request_count,
            "in_flight": self._in_flight,
            "max_concurrent": self._max_concurrent,
        }

    def reset_credits(self) -> None:
        self._credits_used = 0
        logger.info("scheduler_credits_reset")
