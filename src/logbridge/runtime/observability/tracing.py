"""Trace identity propagation for outgoing requests.

A TraceInfo lives in a context variable for the duration of a logical call,
so every log line and every outgoing request inside it shares one trace ID.
IDs come from the OS CSPRNG.

Example:
    >>> with trace_scope(TraceInfo.new()) as info:
    ...     headers = info.headers()
    >>> sorted(headers)
    ['X-Request-ID', 'X-Span-ID', 'X-Trace-ID']
"""

from __future__ import annotations

import secrets
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar

from pydantic import BaseModel, ConfigDict

TRACE_ID_HEADER = "X-Trace-ID"
SPAN_ID_HEADER = "X-Span-ID"
PARENT_SPAN_ID_HEADER = "X-Parent-Span-ID"
REQUEST_ID_HEADER = "X-Request-ID"

_current: ContextVar[TraceInfo | None] = ContextVar("trace_info", default=None)


def generate_trace_id() -> str:
    """128-bit random hex ID."""
    return secrets.token_hex(16)


def generate_span_id() -> str:
    """64-bit random hex ID."""
    return secrets.token_hex(8)


class TraceInfo(BaseModel):
    """Trace and span identifiers for one unit of work."""

    model_config = ConfigDict(frozen=True)

    trace_id: str
    span_id: str
    parent_span_id: str | None = None

    @classmethod
    def new(cls) -> TraceInfo:
        return cls(trace_id=generate_trace_id(), span_id=generate_span_id())

    def child(self) -> TraceInfo:
        """New span under the same trace, parented to this one."""
        return TraceInfo(trace_id=self.trace_id, span_id=generate_span_id(), parent_span_id=self.span_id)

    def headers(self) -> dict[str, str]:
        h = {
            TRACE_ID_HEADER: self.trace_id,
            SPAN_ID_HEADER: self.span_id,
            REQUEST_ID_HEADER: self.trace_id,
        }
        if self.parent_span_id:
            h[PARENT_SPAN_ID_HEADER] = self.parent_span_id
        return h


def current_trace() -> TraceInfo | None:
    return _current.get()


def ensure_trace() -> TraceInfo:
    """Return the active trace, or a fresh one when none is set (not installed)."""
    return _current.get() or TraceInfo.new()


@contextmanager
def trace_scope(info: TraceInfo | None = None) -> Iterator[TraceInfo]:
    """Make `info` (or a new trace) the active trace within the block."""
    info = info or TraceInfo.new()
    token = _current.set(info)
    try:
        yield info
    finally:
        _current.reset(token)
