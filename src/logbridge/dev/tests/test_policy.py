"""Tests for the retry orchestrator driven directly (no HTTP)."""

import asyncio

import httpx
import pytest
from pydantic import ValidationError

from logbridge.client import Response
from logbridge.foundation.errors import AuthenticationError, RetryExhaustedError, StatusError
from logbridge.runtime.retry import NO_RETRY, RetryPolicy, execute_with_retry

FAST = RetryPolicy(max_retries=2, wait_min=0.001, wait_max=0.005)


def scripted(*results: object):
    """Operation returning/raising the given results in order, counting calls."""
    calls: list[int] = []

    async def operation() -> Response:
        item = results[min(len(calls), len(results) - 1)]
        calls.append(1)
        if isinstance(item, BaseException):
            raise item
        return item  # type: ignore[return-value]

    return operation, calls


class TestPolicy:
    def test_from_settings(self) -> None:
        from conftest import make_settings
        policy = RetryPolicy.from_settings(make_settings(max_retries=5))
        assert (policy.max_retries, policy.max_attempts) == (5, 6)
        assert (policy.wait_min, policy.wait_max) == (0.01, 0.05)

    def test_bounds_checked(self) -> None:
        with pytest.raises(ValidationError):
            RetryPolicy(wait_min=2.0, wait_max=1.0)

    def test_no_retry(self) -> None:
        assert NO_RETRY.max_attempts == 1


class TestExecuteWithRetry:
    @pytest.mark.asyncio
    async def test_success_first_try(self) -> None:
        op, calls = scripted(Response(status_code=200))
        assert (await execute_with_retry(op, FAST)).status_code == 200
        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_client_error_returned(self) -> None:
        op, calls = scripted(Response(status_code=404))
        assert (await execute_with_retry(op, FAST)).status_code == 404
        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_recovers_after_transient(self) -> None:
        op, calls = scripted(httpx.ConnectError("refused"), Response(status_code=503), Response(status_code=200))
        assert (await execute_with_retry(op, FAST)).status_code == 200
        assert len(calls) == 3

    @pytest.mark.asyncio
    async def test_exhaustion_wraps_last_status(self) -> None:
        op, calls = scripted(Response(status_code=502, body=b"bad gateway"))
        with pytest.raises(RetryExhaustedError) as info:
            await execute_with_retry(op, FAST, name="GET /v1/alerts")
        assert len(calls) == 3
        assert info.value.attempts == 3
        assert isinstance(info.value.last_error, StatusError)
        assert info.value.last_response is not None and info.value.last_response.status_code == 502

    @pytest.mark.asyncio
    async def test_permanent_error_raised_unchanged(self) -> None:
        err = AuthenticationError("no token")
        op, calls = scripted(err)
        with pytest.raises(AuthenticationError) as info:
            await execute_with_retry(op, FAST)
        assert info.value is err
        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_on_retry_observer(self, captured_logs) -> None:
        seen: list[tuple[int, str]] = []
        policy = FAST.model_copy(update={"on_retry": lambda attempt, wait, reason: seen.append((attempt, reason))})
        op, _ = scripted(Response(status_code=429), httpx.ReadTimeout("slow"), Response(status_code=204))
        await execute_with_retry(op, policy)
        assert seen == [(1, "HTTP 429"), (2, "ReadTimeout")]
        assert captured_logs.events().count("retrying") == 2

    @pytest.mark.asyncio
    async def test_cancel_during_backoff(self) -> None:
        slow = RetryPolicy(max_retries=3, wait_min=5.0, wait_max=5.0)
        op, calls = scripted(Response(status_code=500))
        task = asyncio.create_task(execute_with_retry(op, slow))
        await asyncio.sleep(0.05)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_deadline_propagates_as_timeout(self) -> None:
        slow = RetryPolicy(max_retries=3, wait_min=5.0, wait_max=5.0)
        op, calls = scripted(Response(status_code=503))
        with pytest.raises(TimeoutError):
            async with asyncio.timeout(0.05):
                await execute_with_retry(op, slow)
        assert len(calls) == 1
