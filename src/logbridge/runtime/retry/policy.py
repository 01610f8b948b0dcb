"""Retry orchestration for HTTP attempts.

Drives repeated attempts until one yields a terminal response, a permanent
error occurs, the caller cancels, or the attempt budget is spent.

    Idle -> Attempting -> Success
                       -> Retrying -> Attempting ...
                       -> Exhausted

Cancellation (asyncio.CancelledError, including the one raised inside an
expiring asyncio.timeout block) is never caught here: it propagates out of
the sleep or the in-flight attempt immediately.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import TYPE_CHECKING, Annotated, Callable, Self, TypeVar

from pydantic import BaseModel, ConfigDict, Field, model_validator

from logbridge.foundation.errors import RetryExhaustedError, StatusError
from logbridge.runtime.observability import get_logger

from .backoff import ResponseLike, compute_wait
from .classify import is_retryable_error, is_retryable_status

if TYPE_CHECKING:
    from collections.abc import Awaitable

    from logbridge.foundation.config import ClientSettings

R = TypeVar("R", bound=ResponseLike)

log = get_logger("logbridge.retry")


class RetryPolicy(BaseModel):
    """Retry budget and backoff bounds.

    Attributes:
        max_retries: Retries after the initial attempt (0 = single attempt)
        wait_min: Base backoff in seconds
        wait_max: Backoff cap in seconds
        on_retry: Optional observer called as on_retry(attempt, wait, reason)
    """

    model_config = ConfigDict(
        frozen=True,
        validate_default=True,
        extra="forbid",
        json_schema_extra={
            "title": "Retry Policy",
            "examples": [{"max_retries": 3, "wait_min": 1.0, "wait_max": 30.0}],
        },
    )

    max_retries: Annotated[int, Field(ge=0)] = 3
    wait_min: Annotated[float, Field(gt=0)] = 1.0
    wait_max: Annotated[float, Field(gt=0)] = 30.0
    on_retry: Callable[[int, float, str], None] | None = Field(default=None, exclude=True, repr=False)

    @model_validator(mode="after")
    def _check_bounds(self) -> Self:
        if self.wait_min > self.wait_max:
            raise ValueError(f"wait_min ({self.wait_min}) must not exceed wait_max ({self.wait_max})")
        return self

    @classmethod
    def from_settings(cls, settings: ClientSettings, **kw: object) -> Self:
        return cls(
            max_retries=settings.max_retries,
            wait_min=settings.retry_wait_min,
            wait_max=settings.retry_wait_max,
            **kw,
        )

    @property
    def max_attempts(self) -> int:
        return self.max_retries + 1

    def compute_wait(self, attempt: int, last_response: ResponseLike | None = None) -> float:
        return compute_wait(attempt, self.wait_min, self.wait_max, last_response)


NO_RETRY = RetryPolicy(max_retries=0)


@dataclass(slots=True)
class RetryState:
    """Per-call retry bookkeeping; lives for one execute_with_retry call."""

    attempt: int = 0
    last_response: ResponseLike | None = None
    last_error: BaseException | None = None

    @property
    def reason(self) -> str:
        if self.last_response is not None:
            return f"HTTP {self.last_response.status_code}"
        return type(self.last_error).__name__ if self.last_error else "unknown"


async def execute_with_retry(
    operation: Callable[[], Awaitable[R]],
    policy: RetryPolicy,
    name: str = "request",
) -> R:
    """Run `operation` under `policy`.

    Returns the first response whose status is not retryable (4xx included).
    Raises the error of a permanent failure unchanged, or RetryExhaustedError
    once max_retries + 1 attempts have failed transiently.
    """
    state = RetryState()
    for attempt in range(policy.max_attempts):
        state.attempt = attempt
        if attempt > 0:
            wait = policy.compute_wait(attempt, state.last_response)
            log.info("retrying", name=name, attempt=attempt, max_retries=policy.max_retries,
                     wait_s=round(wait, 3), reason=state.reason)
            if policy.on_retry:
                policy.on_retry(attempt, wait, state.reason)
            await asyncio.sleep(wait)

        try:
            response = await operation()
        except Exception as exc:
            if not is_retryable_error(exc):
                log.debug("permanent failure", name=name, attempt=attempt, error=str(exc))
                raise
            state.last_error, state.last_response = exc, None
            continue

        if not is_retryable_status(response.status_code):
            return response
        state.last_response = response
        state.last_error = StatusError(response)

    attempts = state.attempt + 1
    log.warning("retries exhausted", name=name, attempts=attempts, reason=state.reason)
    raise RetryExhaustedError(attempts, state.last_error, state.last_response)  # type: ignore[arg-type]
