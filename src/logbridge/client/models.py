"""Request/response value types for the logs API client.

Response is decoupled from httpx: the body is fully read before it is built,
so callers never hold a live connection.
"""

from __future__ import annotations

from typing import Annotated, Literal

import orjson
from pydantic import BaseModel, ConfigDict, Field, PositiveFloat, computed_field

from logbridge.foundation.errors import ApiError, LogsApiException

HttpMethod = Literal["GET", "POST", "PUT", "DELETE", "PATCH", "HEAD", "OPTIONS"]
IDEMPOTENT_KEY_METHODS: frozenset[str] = frozenset({"POST", "PUT"})


class Request(BaseModel):
    """One logical API call.

    Attributes:
        method: HTTP method
        path: Path appended to the service URL (e.g. "/v1/alerts")
        query: Query parameters
        body: JSON-serializable payload; None sends no body
        headers: Extra headers, applied last so they override defaults
        request_id: Sets X-Request-ID, and Idempotency-Key for POST/PUT
        use_ingress: Target the ingestion host instead of the API host
        accept_sse: Ask for text/event-stream instead of JSON
        timeout: Per-attempt deadline in seconds; when it fires the call fails without retry
    """

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        str_strip_whitespace=True,
    )

    method: HttpMethod = "GET"
    path: Annotated[str, Field(default="", description="Path relative to the service URL")]
    query: dict[str, str] = Field(default_factory=dict)
    body: object | None = Field(default=None, repr=False)
    headers: dict[str, str] = Field(default_factory=dict, repr=False)
    request_id: str | None = None
    use_ingress: bool = False
    accept_sse: bool = False
    timeout: PositiveFloat | None = None

    @computed_field
    @property
    def wants_idempotency_key(self) -> bool:
        return bool(self.request_id) and self.method in IDEMPOTENT_KEY_METHODS


class Response(BaseModel):
    """Fully-read HTTP response."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    status_code: Annotated[int, Field(ge=100, le=999)]
    body: bytes = Field(default=b"", repr=False)
    headers: dict[str, str] = Field(default_factory=dict, repr=False)

    @computed_field
    @property
    def is_success(self) -> bool:
        return 200 <= self.status_code < 300

    @property
    def text(self) -> str:
        return self.body.decode("utf-8", errors="replace")

    def json(self) -> object:
        """Decode the body as JSON (orjson)."""
        return orjson.loads(self.body)

    def header(self, name: str, default: str | None = None) -> str | None:
        """Case-insensitive header lookup."""
        key = name.lower()
        return next((v for k, v in self.headers.items() if k.lower() == key), default)

    def raise_for_status(self) -> Response:
        """Raise LogsApiException for non-2xx, otherwise return self."""
        if not self.is_success:
            raise LogsApiException(ApiError.from_status(self.status_code, self.text))
        return self


class RateLimitInfo(BaseModel):
    """Snapshot of the client-side limiter."""

    model_config = ConfigDict(frozen=True)

    limit: float
    burst: int
    available: float = 0.0
    enabled: bool


class InstanceInfo(BaseModel):
    """Which service instance this client talks to."""

    model_config = ConfigDict(frozen=True)

    service_url: str
    region: str = ""
    instance_id: str = ""
    instance_name: str = ""
