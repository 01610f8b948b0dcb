"""Retry: backoff calculation, failure classification, and orchestration."""

from .backoff import (
    MAX_RETRY_AFTER,
    ExponentialBackoff,
    ResponseLike,
    compute_wait,
    exponential_base,
    exponential_wait,
    jitter,
    parse_retry_after,
)
from .classify import RETRYABLE_STATUS_CODES, is_retryable_error, is_retryable_status
from .policy import NO_RETRY, RetryPolicy, RetryState, execute_with_retry

__all__ = [
    # Backoff
    "ExponentialBackoff",
    "ResponseLike",
    "compute_wait",
    "exponential_base",
    "exponential_wait",
    "jitter",
    "parse_retry_after",
    "MAX_RETRY_AFTER",
    # Classification
    "is_retryable_error",
    "is_retryable_status",
    "RETRYABLE_STATUS_CODES",
    # Orchestration
    "RetryPolicy",
    "RetryState",
    "NO_RETRY",
    "execute_with_retry",
]
