"""Error taxonomy for the request engine and cache layer."""

from .errors import (
    ApiError,
    AttemptTimeoutError,
    AuthenticationError,
    ConfigurationError,
    ErrorCategory,
    ErrorCode,
    LogsApiException,
    RequestBuildError,
    RetryExhaustedError,
    StatusError,
    TransportError,
)

__all__ = [
    "ErrorCategory",
    "ErrorCode",
    "ApiError",
    "LogsApiException",
    "ConfigurationError",
    "RequestBuildError",
    "AuthenticationError",
    "TransportError",
    "AttemptTimeoutError",
    "StatusError",
    "RetryExhaustedError",
]
