"""Transient vs. permanent failure classification.

Structured inspection first (exception types, errno, DNS codes), walking the
__cause__/__context__ chain so wrapped errors classify like their root.
A message-substring match is the last resort. Anything unrecognized is
permanent.
"""

from __future__ import annotations

import asyncio
import errno
import socket

import httpx

from logbridge.foundation.errors import LogsApiException

RETRYABLE_STATUS_CODES: frozenset[int] = frozenset({429, 500, 502, 503, 504})

_RETRYABLE_ERRNOS: frozenset[int] = frozenset({
    errno.ECONNREFUSED,
    errno.ECONNRESET,
    errno.ENETUNREACH,
    errno.EHOSTUNREACH,
    errno.ETIMEDOUT,
})

_TRANSIENT_PATTERNS: tuple[str, ...] = (
    "connection reset",
    "connection refused",
    "no such host",
    "network is unreachable",
    "network unreachable",
    "i/o timeout",
    "tls handshake timeout",
    "unexpected end of stream",
    "unexpected eof",
    "eof occurred in violation of protocol",
    "server disconnected",
)

_MAX_CHAIN = 16


def is_retryable_status(status_code: int) -> bool:
    return status_code in RETRYABLE_STATUS_CODES


def is_retryable_error(exc: BaseException | None) -> bool:
    """Decide whether a failed attempt may be retried."""
    if exc is None:
        return False
    chain = list(_walk_chain(exc))
    for err in chain:
        if (verdict := _classify(err)) is not None:
            return verdict
    return any(_matches_pattern(err) for err in chain)


def _walk_chain(exc: BaseException):
    seen: set[int] = set()
    cur: BaseException | None = exc
    while cur is not None and id(cur) not in seen and len(seen) < _MAX_CHAIN:
        seen.add(id(cur))
        yield cur
        cur = cur.__cause__ or cur.__context__


def _classify(err: BaseException) -> bool | None:
    """True/False when the type decides it, None to keep looking."""
    match err:
        case asyncio.CancelledError():
            return False
        case LogsApiException() if err.retryable is not None:
            return err.retryable
        case LogsApiException():
            return None
        case httpx.TimeoutException() | httpx.NetworkError() | httpx.RemoteProtocolError():
            return True
        case httpx.HTTPError():
            return None
        case socket.gaierror():
            return True if err.errno == socket.EAI_AGAIN else None
        # Bare TimeoutError carries deadline semantics (asyncio.timeout); transport timeouts arrive as httpx types.
        case TimeoutError() if err.errno is None:
            return False
        case OSError() if err.errno in _RETRYABLE_ERRNOS:
            return True
        case _:
            return None


def _matches_pattern(err: BaseException) -> bool:
    msg = str(err).lower()
    return bool(msg) and any(p in msg for p in _TRANSIENT_PATTERNS)
