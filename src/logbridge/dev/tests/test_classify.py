"""Tests for transient-failure classification."""

import asyncio
import errno
import socket

import httpx
import pytest

from logbridge.foundation.errors import (
    AttemptTimeoutError,
    AuthenticationError,
    ConfigurationError,
    RequestBuildError,
    TransportError,
)
from logbridge.runtime.retry import RETRYABLE_STATUS_CODES, is_retryable_error, is_retryable_status


@pytest.mark.parametrize("exc", [
    httpx.ConnectError("connect failed"),
    httpx.ReadTimeout("read timed out"),
    httpx.ConnectTimeout("connect timed out"),
    httpx.ReadError("read failed"),
    httpx.RemoteProtocolError("Server disconnected without sending a response."),
    ConnectionRefusedError(errno.ECONNREFUSED, "Connection refused"),
    ConnectionResetError(errno.ECONNRESET, "Connection reset by peer"),
    OSError(errno.ENETUNREACH, "Network is unreachable"),
    OSError(errno.EHOSTUNREACH, "No route to host"),
    OSError(errno.ETIMEDOUT, "Operation timed out"),
    socket.gaierror(socket.EAI_AGAIN, "Temporary failure in name resolution"),
    RuntimeError("dial tcp: lookup api: no such host"),
    RuntimeError("read tcp: i/o timeout"),
    RuntimeError("net/http: TLS handshake timeout"),
    RuntimeError("unexpected EOF"),
])
def test_transient_errors_retry(exc: BaseException) -> None:
    assert is_retryable_error(exc) is True


@pytest.mark.parametrize("exc", [
    asyncio.CancelledError(),
    TimeoutError(),
    ValueError("malformed"),
    PermissionError(errno.EACCES, "Permission denied"),
    socket.gaierror(socket.EAI_NONAME, "Name or service not known"),
    httpx.UnsupportedProtocol("Request URL has an unsupported protocol 'ftp://'."),
    AuthenticationError("authentication failed: token expired"),
    RequestBuildError("failed to marshal request body"),
    ConfigurationError("LOGS_API_KEY is required"),
    AttemptTimeoutError("request timed out after 1.0s"),
    None,
])
def test_permanent_errors_do_not_retry(exc: BaseException | None) -> None:
    assert is_retryable_error(exc) is False


def test_wrapped_transport_error_uses_cause() -> None:
    assert is_retryable_error(TransportError.from_exc(httpx.ConnectError("refused"), "request failed"))
    assert not is_retryable_error(TransportError.from_exc(ValueError("boom"), "request failed"))


def test_auth_error_wins_over_transient_cause() -> None:
    err = AuthenticationError.from_exc(httpx.ConnectError("iam unreachable"), "authentication failed")
    assert is_retryable_error(err) is False


def test_implicit_context_chain() -> None:
    try:
        try:
            raise ConnectionResetError(errno.ECONNRESET, "reset")
        except ConnectionResetError:
            raise RuntimeError("send failed")  # noqa: B904
    except RuntimeError as exc:
        assert is_retryable_error(exc)


def test_cyclic_chain_terminates() -> None:
    a, b = RuntimeError("a"), RuntimeError("b")
    a.__cause__, b.__cause__ = b, a
    assert is_retryable_error(a) is False


@pytest.mark.parametrize("status", [429, 500, 502, 503, 504])
def test_retryable_statuses(status: int) -> None:
    assert is_retryable_status(status)


@pytest.mark.parametrize("status", [200, 201, 204, 301, 400, 401, 403, 404, 409, 422, 501, 505])
def test_terminal_statuses(status: int) -> None:
    assert not is_retryable_status(status)


def test_status_set_is_exact() -> None:
    assert RETRYABLE_STATUS_CODES == {429, 500, 502, 503, 504}
