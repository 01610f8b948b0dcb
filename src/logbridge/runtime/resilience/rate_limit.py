"""Token bucket admission control for outgoing requests."""

from __future__ import annotations

import asyncio
import threading
import time
from dataclasses import dataclass, field


@dataclass
class TokenBucket:
    """Token bucket limiter shared by all requests of one client.

    Starts full, refills continuously at `rate` tokens/second up to `burst`.
    Gives a throughput ceiling, not fairness: concurrent waiters race for
    refilled tokens.

    Args:
        rate: Sustained requests per second
        burst: Bucket capacity

    Example:
        >>> bucket = TokenBucket(rate=100, burst=20)
        >>> await bucket.wait()  # cancellable
    """

    rate: float
    burst: int
    _tokens: float = field(init=False, repr=False)
    _updated: float = field(init=False, repr=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False)

    def __post_init__(self) -> None:
        if self.rate <= 0 or self.burst <= 0:
            raise ValueError(f"rate and burst must be positive (rate={self.rate}, burst={self.burst})")
        self._tokens = float(self.burst)
        self._updated = time.monotonic()

    def _refill(self, now: float) -> None:
        self._tokens = min(float(self.burst), self._tokens + (now - self._updated) * self.rate)
        self._updated = now

    @property
    def tokens(self) -> float:
        """Tokens currently available."""
        with self._lock:
            self._refill(time.monotonic())
            return self._tokens

    def try_acquire(self) -> bool:
        return self._reserve() == 0.0

    def _reserve(self) -> float:
        """Take a token and return 0.0, or return the seconds until one is due."""
        with self._lock:
            self._refill(time.monotonic())
            if self._tokens >= 1.0:
                self._tokens -= 1.0
                return 0.0
            return (1.0 - self._tokens) / self.rate

    async def wait(self) -> None:
        """Block until a token is taken. Cancellation aborts the wait without consuming one."""
        while (delay := self._reserve()) > 0:
            await asyncio.sleep(delay)
