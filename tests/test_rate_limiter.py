"""
Tests for the leaky-bucket RateLimiter.
"""

import asyncio

import pytest

from utils import rate_limiter as rate_limiter_module
from utils.rate_limiter import RateLimiter

_real_sleep = asyncio.sleep


class FakeClock:
    """Monotonic clock that only moves when something sleeps."""

    def __init__(self):
        self.now = 0.0

    def monotonic(self):
        return self.now

    async def sleep(self, delay):
        self.now += max(0.0, delay)
        await _real_sleep(0)


@pytest.fixture
def clock(monkeypatch):
    clock = FakeClock()
    monkeypatch.setattr(rate_limiter_module.time, "monotonic", clock.monotonic)
    monkeypatch.setattr(rate_limiter_module.asyncio, "sleep", clock.sleep)
    return clock


def test_per_second_starts_full(clock):
    limiter = RateLimiter.per_second(5)
    assert limiter.max_tokens == 5
    assert limiter.refill_interval == 1.0
    assert limiter.refill_amount == 5
    assert limiter.tokens == 5


def test_invalid_parameters():
    with pytest.raises(ValueError):
        RateLimiter(max_tokens=0, refill_interval=1.0)


def test_refill_is_capped(clock):
    limiter = RateLimiter(max_tokens=3, refill_interval=1.0, tokens=0)
    clock.now = 100.0
    assert limiter.tokens == 3


@pytest.mark.asyncio
async def test_tokens_available_immediately(clock):
    limiter = RateLimiter.per_second(5)
    for _ in range(5):
        await limiter.acquire_one()
    assert clock.now == 0.0
    assert limiter.tokens == 0


@pytest.mark.asyncio
async def test_eleven_acquires_at_five_per_second(clock):
    limiter = RateLimiter.per_second(5)
    finished = []

    for _ in range(11):
        await limiter.acquire_one()
        finished.append(clock.now)

    # Five from the full bucket, five after the first refill, then wait again
    assert finished[4] == 0.0
    assert finished[5] == pytest.approx(1.0)
    assert finished[9] == pytest.approx(1.0)
    assert finished[10] >= 2.0


@pytest.mark.asyncio
async def test_waiters_are_served_fifo(clock):
    limiter = RateLimiter(max_tokens=1, refill_interval=0.5, tokens=0)
    order = []

    async def waiter(name):
        await limiter.acquire_one()
        order.append(name)

    tasks = [asyncio.create_task(waiter(i)) for i in range(4)]
    await asyncio.gather(*tasks)

    assert order == [0, 1, 2, 3]


@pytest.mark.asyncio
async def test_cancelled_waiter_does_not_consume_token():
    limiter = RateLimiter(max_tokens=1, refill_interval=0.05, tokens=0)

    task = asyncio.create_task(limiter.acquire_one())
    await asyncio.sleep(0.01)
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task

    await asyncio.sleep(0.06)
    assert limiter.tokens == 1

    # The token is still there for the next caller
    await asyncio.wait_for(limiter.acquire_one(), timeout=0.01)
    assert limiter._tokens == 0


@pytest.mark.asyncio
async def test_real_time_pacing():
    limiter = RateLimiter(max_tokens=2, refill_interval=0.05)
    loop = asyncio.get_running_loop()

    start = loop.time()
    for _ in range(4):
        await limiter.acquire_one()
    elapsed = loop.time() - start

    assert elapsed >= 0.08


@pytest.mark.asyncio
async def test_eleventh_map_download_waits_two_seconds(clock):
    from infrastructure.http_client import HttpClient

    class OkSession:
        def request(self, method, url, data=None, headers=None):
            return OkResponse()

    class OkResponse:
        status = 200

        async def read(self):
            return b"osu file format v14"

        async def __aenter__(self):
            return self

        async def __aexit__(self, exc_type, exc, tb):
            return False

    client = HttpClient(session=OkSession())
    finished = []

    for _ in range(11):
        await client.get_map_file(1)
        finished.append(clock.now)

    assert finished[9] < 2.0
    assert finished[10] >= 2.0
