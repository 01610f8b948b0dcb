"""Observability: structured logging and trace propagation."""

from .logging import (
    BoundLogger,
    CapturingRenderer,
    ConsoleRenderer,
    JsonRenderer,
    LogEntry,
    LogRenderer,
    NoOpRenderer,
    configure_logging,
    get_logger,
    log_context,
    set_renderer,
)
from .tracing import (
    PARENT_SPAN_ID_HEADER,
    REQUEST_ID_HEADER,
    SPAN_ID_HEADER,
    TRACE_ID_HEADER,
    TraceInfo,
    current_trace,
    ensure_trace,
    generate_span_id,
    generate_trace_id,
    trace_scope,
)

__all__ = [
    # Logging
    "BoundLogger",
    "LogEntry",
    "LogRenderer",
    "ConsoleRenderer",
    "JsonRenderer",
    "NoOpRenderer",
    "CapturingRenderer",
    "configure_logging",
    "set_renderer",
    "get_logger",
    "log_context",
    # Tracing
    "TraceInfo",
    "current_trace",
    "ensure_trace",
    "trace_scope",
    "generate_trace_id",
    "generate_span_id",
    "TRACE_ID_HEADER",
    "SPAN_ID_HEADER",
    "PARENT_SPAN_ID_HEADER",
    "REQUEST_ID_HEADER",
]
