"""Shared fixtures: quiet logging, test settings and a MockTransport-backed client factory."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field

import httpx
import pytest

from logbridge.client import Authenticator, LogsClient
from logbridge.foundation.config import ClientSettings, clear_settings_cache
from logbridge.io.cache import reset_manager
from logbridge.runtime.observability import CapturingRenderer, set_renderer

SERVICE_URL = "https://inst-1.api.us-south.logs.cloud.ibm.com"


@pytest.fixture(autouse=True)
def captured_logs() -> object:
    """Route log output into memory for every test."""
    renderer = CapturingRenderer()
    set_renderer(renderer, level="DEBUG")
    yield renderer
    set_renderer(None, level="INFO")


@pytest.fixture(autouse=True)
def clean_globals() -> object:
    clear_settings_cache()
    reset_manager()
    yield
    clear_settings_cache()
    reset_manager()


def make_settings(**overrides: object) -> ClientSettings:
    """Fast-retry settings for tests (small waits, limiter off)."""
    values: dict[str, object] = {
        "service_url": SERVICE_URL,
        "api_key": "test-api-key-123456",
        "max_retries": 3,
        "retry_wait_min": 0.01,
        "retry_wait_max": 0.05,
        "enable_rate_limit": False,
        "timeout": 5.0,
    }
    values.update(overrides)
    return ClientSettings(**values)


@dataclass
class Recorder:
    """Scripted MockTransport handler that keeps every request it saw.

    `script` items are served in order (the last one repeats): an
    httpx.Response, an exception instance to raise, or a callable taking the
    request.
    """

    script: list[object]
    requests: list[httpx.Request] = field(default_factory=list)

    async def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        step = self.script[min(len(self.requests), len(self.script)) - 1]
        if isinstance(step, BaseException):
            raise step
        if callable(step):
            step = step(request)
            if hasattr(step, "__await__"):
                step = await step
        # Fresh copy per call; a served Response is bound to its request.
        return httpx.Response(step.status_code, headers=step.headers, content=step.content)  # type: ignore[union-attr]

    @property
    def calls(self) -> int:
        return len(self.requests)


ClientFactory = Callable[..., tuple[LogsClient, Recorder]]


@pytest.fixture
def make_client() -> ClientFactory:
    """Build a LogsClient over a Recorder. Use as `async with client:` to close the pool."""

    def factory(
        *script: object,
        authenticator: Authenticator | None = None,
        version: str = "1.2.3",
        **settings_overrides: object,
    ) -> tuple[LogsClient, Recorder]:
        recorder = Recorder(list(script) or [httpx.Response(200, json={"ok": True})])
        client = LogsClient(
            make_settings(**settings_overrides),
            authenticator,
            version=version,
            transport=httpx.MockTransport(recorder),
        )
        return client, recorder

    return factory
