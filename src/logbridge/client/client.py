"""Resilient HTTP client for the logs service REST API.

One LogsClient owns one pooled httpx.AsyncClient shared by all concurrent
calls. `do()` runs the retry orchestrator over single attempts, each of which:

1. waits for a rate-limit token
2. applies the per-request timeout override, if any
3. builds the URL (API or ingress host) and JSON body
4. sets default, tracing and idempotency headers
5. authenticates, then applies caller headers last
6. sends and fully reads the response

Example:
    >>> settings = ClientSettings(service_url="https://x.api.us-south.logs.cloud.ibm.com")
    >>> async with LogsClient(settings, BearerTokenAuth(token="...")) as client:
    ...     resp = await client.do(Request(method="GET", path="/v1/alerts"))
    ...     resp.raise_for_status().json()
"""

from __future__ import annotations

import asyncio
import time
from typing import TYPE_CHECKING

import httpx
import orjson
from pydantic import BaseModel

from logbridge.foundation.errors import (
    AttemptTimeoutError,
    AuthenticationError,
    RequestBuildError,
    TransportError,
)
from logbridge.runtime.observability import REQUEST_ID_HEADER, ensure_trace, get_logger
from logbridge.runtime.resilience import TokenBucket
from logbridge.runtime.retry import RetryPolicy, execute_with_retry

from .auth import Authenticator, NoAuth
from .models import InstanceInfo, RateLimitInfo, Request, Response

if TYPE_CHECKING:
    from types import TracebackType

    from logbridge.foundation.config import ClientSettings

PROTOCOL_VERSION = "2025-06-18"
PROTOCOL_VERSION_HEADER = "MCP-Protocol-Version"
IDEMPOTENCY_KEY_HEADER = "Idempotency-Key"
USER_AGENT_PRODUCT = "logbridge"

log = get_logger("logbridge.client")


def _json_default(obj: object) -> object:
    if isinstance(obj, BaseModel):
        return obj.model_dump(mode="json")
    if isinstance(obj, (set, frozenset)):
        return list(obj)
    raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")


class LogsClient:
    """Async client with retries, backoff, rate limiting and tracing headers.

    Args:
        settings: Connection, retry and limiter configuration
        authenticator: Credential strategy (defaults to NoAuth)
        version: Reported in the User-Agent header
        transport: Custom httpx transport (tests use httpx.MockTransport)
        rate_limiter: Shared limiter; built from settings when omitted and enabled
        policy: Retry policy; built from settings when omitted
    """

    __slots__ = ("_settings", "_auth", "_version", "_transport", "_limiter", "_policy", "_client")

    def __init__(
        self,
        settings: ClientSettings,
        authenticator: Authenticator | None = None,
        *,
        version: str = "dev",
        transport: httpx.AsyncBaseTransport | None = None,
        rate_limiter: TokenBucket | None = None,
        policy: RetryPolicy | None = None,
    ) -> None:
        self._settings = settings
        self._auth: Authenticator = authenticator or NoAuth()
        self._version = version or "dev"
        self._transport = transport
        if rate_limiter is None and settings.enable_rate_limit:
            rate_limiter = TokenBucket(rate=settings.rate_limit, burst=settings.rate_limit_burst)
        self._limiter = rate_limiter
        self._policy = policy or RetryPolicy.from_settings(settings)
        self._client: httpx.AsyncClient | None = None
        if not settings.tls_verify:
            log.warning("TLS certificate verification is DISABLED; use only for testing",
                        service_url=settings.service_url)

    @property
    def settings(self) -> ClientSettings:
        return self._settings

    @property
    def policy(self) -> RetryPolicy:
        return self._policy

    @property
    def user_agent(self) -> str:
        return f"{USER_AGENT_PRODUCT}/{self._version}"

    def _get_client(self) -> httpx.AsyncClient:
        """Lazily build the pooled client."""
        if self._client is None:
            s = self._settings
            self._client = httpx.AsyncClient(
                timeout=s.timeout,
                verify=s.tls_verify,
                limits=httpx.Limits(
                    max_keepalive_connections=s.max_idle_conns,
                    keepalive_expiry=s.idle_conn_timeout,
                ),
                transport=self._transport,
            )
        return self._client

    async def aclose(self) -> None:
        """Release pooled connections. The client can be reused; a new pool is built on demand."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> LogsClient:
        return self

    async def __aexit__(self, exc_type: type[BaseException] | None, exc_val: BaseException | None,
                        exc_tb: TracebackType | None) -> None:
        await self.aclose()

    # ─────────────────────────────────────────────────────────────────────────
    # Public API
    # ─────────────────────────────────────────────────────────────────────────

    async def do(self, request: Request) -> Response:
        """Execute `request` with retries.

        Returns the first non-retryable response, whatever its status. Raises
        RetryExhaustedError, a permanent LogsApiException, or the caller's
        asyncio.CancelledError / TimeoutError unchanged.
        """
        return await execute_with_retry(
            lambda: self._attempt(request),
            self._policy,
            name=f"{request.method} {request.path}",
        )

    def rate_limit_info(self) -> RateLimitInfo:
        return RateLimitInfo(
            limit=self._settings.rate_limit,
            burst=self._settings.rate_limit_burst,
            available=self._limiter.tokens if self._limiter is not None else 0.0,
            enabled=self._limiter is not None,
        )

    def instance_info(self) -> InstanceInfo:
        s = self._settings
        return InstanceInfo(service_url=s.service_url, region=s.region,
                            instance_id=s.instance_id, instance_name=s.instance_name)

    # ─────────────────────────────────────────────────────────────────────────
    # Single attempt
    # ─────────────────────────────────────────────────────────────────────────

    async def _attempt(self, request: Request) -> Response:
        if self._limiter is not None:
            await self._limiter.wait()
        if request.timeout is None:
            return await self._send(request)
        try:
            async with asyncio.timeout(request.timeout):
                return await self._send(request)
        except TimeoutError as exc:
            raise AttemptTimeoutError.from_exc(exc, f"request timed out after {request.timeout}s") from exc

    def _url(self, request: Request) -> str:
        base = self._settings.ingress_url if request.use_ingress else self._settings.service_url
        if not base:
            raise RequestBuildError("service URL is not configured")
        return f"{base}{request.path}"

    def _headers(self, request: Request) -> dict[str, str]:
        headers = {
            "Content-Type": "application/json",
            "Accept": "text/event-stream" if request.accept_sse else "application/json",
            "User-Agent": self.user_agent,
            PROTOCOL_VERSION_HEADER: PROTOCOL_VERSION,
        }
        if self._settings.enable_tracing:
            headers.update(ensure_trace().headers())
        if request.request_id:
            headers[REQUEST_ID_HEADER] = request.request_id
            if request.wants_idempotency_key:
                headers[IDEMPOTENCY_KEY_HEADER] = request.request_id
        return headers

    def _build(self, request: Request) -> httpx.Request:
        url = self._url(request)
        try:
            content = None if request.body is None else orjson.dumps(request.body, default=_json_default)
        except TypeError as exc:
            raise RequestBuildError.from_exc(exc, "failed to marshal request body") from exc
        try:
            return self._get_client().build_request(
                request.method, url,
                params=request.query or None,
                content=content,
                headers=self._headers(request),
            )
        except (httpx.InvalidURL, TypeError, ValueError) as exc:
            raise RequestBuildError.from_exc(exc, "failed to create request") from exc

    async def _send(self, request: Request) -> Response:
        http_req = self._build(request)

        try:
            await self._auth.authenticate(http_req)
        except Exception as exc:
            log.warning("authentication failed", method=request.method,
                        host=http_req.url.host, error=type(exc).__name__)
            raise AuthenticationError.from_exc(exc, "authentication failed") from exc

        if request.headers:
            http_req.headers.update(request.headers)

        log.debug("executing http request", method=request.method, host=http_req.url.host, path=request.path)
        start = time.perf_counter()
        try:
            resp = await self._get_client().send(http_req)
        except (httpx.HTTPError, OSError) as exc:
            log.error("http request failed", method=request.method, host=http_req.url.host, path=request.path,
                      duration_ms=round((time.perf_counter() - start) * 1000, 2), error=str(exc))
            raise TransportError.from_exc(exc, "request failed") from exc

        log.debug("http request completed", method=request.method, path=request.path,
                  status=resp.status_code, duration_ms=round((time.perf_counter() - start) * 1000, 2),
                  response_size=len(resp.content))
        return Response(status_code=resp.status_code, body=resp.content, headers=dict(resp.headers))
