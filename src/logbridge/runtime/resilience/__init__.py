"""Resilience primitives: client-side rate limiting."""

from .rate_limit import TokenBucket

__all__ = ["TokenBucket"]
