"""Resilient request engine for the logs service API."""

from .auth import ApiKeyAuth, Authenticator, BearerTokenAuth, NoAuth
from .client import (
    IDEMPOTENCY_KEY_HEADER,
    PROTOCOL_VERSION,
    PROTOCOL_VERSION_HEADER,
    USER_AGENT_PRODUCT,
    LogsClient,
)
from .models import InstanceInfo, RateLimitInfo, Request, Response

__all__ = [
    "LogsClient",
    "Request",
    "Response",
    "RateLimitInfo",
    "InstanceInfo",
    "Authenticator",
    "NoAuth",
    "BearerTokenAuth",
    "ApiKeyAuth",
    "PROTOCOL_VERSION",
    "PROTOCOL_VERSION_HEADER",
    "IDEMPOTENCY_KEY_HEADER",
    "USER_AGENT_PRODUCT",
]
