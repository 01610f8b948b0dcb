"""Tests for the token bucket limiter."""

import asyncio
import time

import pytest

from logbridge.runtime.resilience import TokenBucket


def test_starts_full() -> None:
    bucket = TokenBucket(rate=10, burst=5)
    assert bucket.tokens == pytest.approx(5.0, abs=0.1)


def test_burst_then_empty() -> None:
    bucket = TokenBucket(rate=0.001, burst=3)
    assert [bucket.try_acquire() for _ in range(4)] == [True, True, True, False]


def test_refills_over_time() -> None:
    bucket = TokenBucket(rate=100, burst=1)
    assert bucket.try_acquire()
    assert not bucket.try_acquire()
    time.sleep(0.03)
    assert bucket.try_acquire()


def test_never_exceeds_burst() -> None:
    bucket = TokenBucket(rate=1000, burst=2)
    time.sleep(0.01)
    assert bucket.tokens <= 2.0


@pytest.mark.parametrize("rate,burst", [(0, 1), (-1, 1), (1, 0)])
def test_rejects_non_positive(rate: float, burst: int) -> None:
    with pytest.raises(ValueError):
        TokenBucket(rate=rate, burst=burst)


class TestWait:
    @pytest.mark.asyncio
    async def test_wait_returns_immediately_with_tokens(self) -> None:
        bucket = TokenBucket(rate=1, burst=2)
        start = time.perf_counter()
        await bucket.wait()
        await bucket.wait()
        assert time.perf_counter() - start < 0.1

    @pytest.mark.asyncio
    async def test_wait_blocks_until_refill(self) -> None:
        bucket = TokenBucket(rate=20, burst=1)
        await bucket.wait()
        start = time.perf_counter()
        await bucket.wait()
        assert time.perf_counter() - start >= 0.04

    @pytest.mark.asyncio
    async def test_wait_is_cancellable(self) -> None:
        bucket = TokenBucket(rate=0.1, burst=1)
        await bucket.wait()
        start = time.perf_counter()
        with pytest.raises(TimeoutError):
            async with asyncio.timeout(0.05):
                await bucket.wait()
        assert time.perf_counter() - start < 1.0
        assert bucket.tokens < 1.0
