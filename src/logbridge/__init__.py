"""logbridge - resilient, per-user cached gateway to a cloud logging service's REST API.

Example:
    >>> from logbridge import LogsClient, Request, get_settings
    >>> settings = get_settings()
    >>> async with LogsClient(settings.client, version=__version__) as client:
    ...     resp = await client.do(Request(path="/v1/alerts"))
"""

__version__ = "0.1.0"

from .client import (
    ApiKeyAuth,
    Authenticator,
    BearerTokenAuth,
    LogsClient,
    NoAuth,
    Request,
    Response,
)
from .foundation.config import Settings, get_settings
from .foundation.errors import (
    ApiError,
    AuthenticationError,
    LogsApiException,
    RetryExhaustedError,
    TransportError,
)
from .io.cache import CacheConfig, CacheManager, get_manager
from .runtime.observability import configure_logging, get_logger

__all__ = [
    "__version__",
    "LogsClient",
    "Request",
    "Response",
    "Authenticator",
    "NoAuth",
    "BearerTokenAuth",
    "ApiKeyAuth",
    "Settings",
    "get_settings",
    "ApiError",
    "LogsApiException",
    "AuthenticationError",
    "TransportError",
    "RetryExhaustedError",
    "CacheManager",
    "CacheConfig",
    "get_manager",
    "configure_logging",
    "get_logger",
]
