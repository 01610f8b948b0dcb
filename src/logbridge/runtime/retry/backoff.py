"""Wait-time calculation between retry attempts.

Two sources of delay:
- Server-directed: a 429 response carrying a usable Retry-After header
- Exponential: wait_min * 2^(attempt-1), capped at wait_max

Both get jitter in [0, delay/4) drawn from the OS CSPRNG so concurrent
clients that failed together do not retry together.
"""

from __future__ import annotations

import re
import secrets
from dataclasses import dataclass
from datetime import UTC, datetime
from email.utils import parsedate_to_datetime
from typing import Protocol, runtime_checkable

MAX_RETRY_AFTER = 3600.0
_MAX_SHIFT = 30
_NS = 1_000_000_000
_DELTA_SECONDS = re.compile(r"[+-]?[0-9]+")


@runtime_checkable
class ResponseLike(Protocol):
    """What the backoff calculator needs from a previous response."""

    @property
    def status_code(self) -> int: ...

    @property
    def text(self) -> str: ...

    def header(self, name: str, default: str | None = None) -> str | None: ...


def jitter(base: float) -> float:
    """Uniform random value in [0, base/4), in seconds."""
    bound = int(base * _NS) // 4
    return secrets.randbelow(bound) / _NS if bound > 0 else 0.0


def exponential_base(attempt: int, wait_min: float, wait_max: float) -> float:
    """Un-jittered exponential delay for a 1-indexed retry attempt."""
    shift = min(max(attempt - 1, 0), _MAX_SHIFT)
    return min(wait_min * (1 << shift), wait_max)


def exponential_wait(attempt: int, wait_min: float, wait_max: float) -> float:
    base = exponential_base(attempt, wait_min, wait_max)
    return base + jitter(base)


def parse_retry_after(value: str | None, *, now: datetime | None = None) -> float:
    """Parse a Retry-After header into seconds.

    Accepts delta-seconds or any HTTP-date form (IMF-fixdate, RFC 850, asctime).
    Returns 0.0 for absent, non-positive or unparseable values; clamps to one hour.
    """
    if not value or not (value := value.strip()):
        return 0.0
    if _DELTA_SECONDS.fullmatch(value):
        seconds = float(int(value))
    else:
        try:
            when = parsedate_to_datetime(value)
        except (TypeError, ValueError):
            return 0.0
        if when.tzinfo is None:
            when = when.replace(tzinfo=UTC)
        seconds = (when - (now or datetime.now(UTC))).total_seconds()
    if seconds <= 0:
        return 0.0
    return min(seconds, MAX_RETRY_AFTER)


def compute_wait(
    attempt: int,
    wait_min: float,
    wait_max: float,
    last_response: ResponseLike | None = None,
) -> float:
    """Delay before retry `attempt` (1 = first retry).

    A 429 with a valid Retry-After wins: delay + jitter, capped at wait_max.
    Otherwise exponential backoff plus jitter.
    """
    if last_response is not None and last_response.status_code == 429:
        if (delay := parse_retry_after(last_response.header("Retry-After"))) > 0:
            return min(delay + jitter(delay), wait_max)
    return exponential_wait(attempt, wait_min, wait_max)


@dataclass(frozen=True, slots=True)
class ExponentialBackoff:
    """Bound backoff calculator.

    Example:
        >>> b = ExponentialBackoff(wait_min=1.0, wait_max=30.0)
        >>> 4.0 <= b.delay(3) < 5.0
        True
    """

    wait_min: float = 1.0
    wait_max: float = 30.0

    def delay(self, attempt: int, last_response: ResponseLike | None = None) -> float:
        return compute_wait(attempt, self.wait_min, self.wait_max, last_response)
