import asyncio

import pytest

from facility_search.rate_limit import IntervalRateLimiter


class FakeClock:
    def __init__(self, now: float = 100.0) -> None:
        self.now = now
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(round(seconds, 6))
        self.now += seconds
        await asyncio.sleep(0)


@pytest.mark.asyncio
async def test_first_acquire_does_not_wait() -> None:
    clock = FakeClock()
    limiter = IntervalRateLimiter(min_interval_ms=1000, clock=clock, sleep=clock.sleep)

    await limiter.acquire()

    assert clock.sleeps == []


@pytest.mark.asyncio
async def test_acquire_waits_for_remaining_interval() -> None:
    clock = FakeClock()
    limiter = IntervalRateLimiter(min_interval_ms=1000, clock=clock, sleep=clock.sleep)

    await limiter.acquire()
    clock.now += 0.25
    await limiter.acquire()

    assert clock.sleeps == [0.75]


@pytest.mark.asyncio
async def test_acquire_after_interval_elapsed_does_not_wait() -> None:
    clock = FakeClock()
    limiter = IntervalRateLimiter(min_interval_ms=1000, clock=clock, sleep=clock.sleep)

    await limiter.acquire()
    clock.now += 5
    await limiter.acquire()

    assert clock.sleeps == []


@pytest.mark.asyncio
async def test_concurrent_callers_serialize_on_single_slot() -> None:
    clock = FakeClock()
    limiter = IntervalRateLimiter(min_interval_ms=1000, clock=clock, sleep=clock.sleep)
    returned_at: list[float] = []

    async def call() -> None:
        await limiter.acquire()
        returned_at.append(clock.now)

    await asyncio.gather(call(), call(), call())

    assert clock.sleeps == [1.0, 1.0]
    assert returned_at == [100.0, 101.0, 102.0]
