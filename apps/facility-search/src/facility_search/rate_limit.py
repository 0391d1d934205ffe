from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable, Callable


class IntervalRateLimiter:
    """Single shared slot: consecutive ``acquire`` returns are at least ``min_interval_ms`` apart."""

    def __init__(
        self,
        min_interval_ms: int = 1000,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._min_interval_seconds = min_interval_ms / 1000
        self._clock = clock
        self._sleep = sleep
        self._lock = asyncio.Lock()
        self._last_call_seconds: float | None = None

    async def acquire(self) -> None:
        async with self._lock:
            if self._last_call_seconds is not None:
                elapsed = self._clock() - self._last_call_seconds
                if elapsed < self._min_interval_seconds:
                    await self._sleep(self._min_interval_seconds - elapsed)
            self._last_call_seconds = self._clock()
