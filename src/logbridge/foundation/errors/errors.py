"""Standardized error handling for the logs API gateway.

Provides error codes, a structured error model for end-user rendering, and the
exception hierarchy raised by the request engine. Each exception class declares
whether it is retryable so the retry classifier never has to guess.
"""

from __future__ import annotations

from enum import StrEnum
from typing import TYPE_CHECKING, Annotated, ClassVar, Self

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator

if TYPE_CHECKING:
    from logbridge.client.models import Response


class ErrorCategory(StrEnum):
    """Which side of the wire caused the failure."""
    CLIENT_ERROR = "CLIENT_ERROR"
    SERVER_ERROR = "SERVER_ERROR"
    EXTERNAL_ERROR = "EXTERNAL_ERROR"


class ErrorCode(StrEnum):
    """Machine-readable error codes used for classification and rendering."""
    INVALID_INPUT = "INVALID_INPUT"
    UNAUTHORIZED = "UNAUTHORIZED"
    FORBIDDEN = "FORBIDDEN"
    RESOURCE_NOT_FOUND = "RESOURCE_NOT_FOUND"
    CONFLICT = "CONFLICT"
    RATE_LIMIT_EXCEEDED = "RATE_LIMIT_EXCEEDED"
    INTERNAL_ERROR = "INTERNAL_ERROR"
    SERVICE_UNAVAILABLE = "SERVICE_UNAVAILABLE"
    TIMEOUT = "TIMEOUT"
    API_ERROR = "API_ERROR"
    AUTH_FAILED = "AUTH_FAILED"
    NETWORK_ERROR = "NETWORK_ERROR"
    RETRIES_EXHAUSTED = "RETRIES_EXHAUSTED"
    CONFIGURATION_ERROR = "CONFIGURATION_ERROR"


_SERVICE_NAME = "IBM Cloud Logs"


class ApiError(BaseModel):
    """Structured error with category, code, and a recovery suggestion.

    Attributes:
        code: Machine-readable error code
        category: Client, server or external failure
        message: Human-readable error message
        details: Optional structured context (status code, service, ...)
        suggestion: Optional recovery hint shown to the end user
        status_code: HTTP status when the error came from a response
    """

    model_config = ConfigDict(
        frozen=True,
        str_strip_whitespace=True,
        validate_default=True,
        json_schema_extra={
            "title": "API Error",
            "examples": [{
                "code": "RATE_LIMIT_EXCEEDED",
                "category": "CLIENT_ERROR",
                "message": "Rate limit exceeded",
                "suggestion": "Wait a moment and try again",
            }],
        },
    )

    code: ErrorCode = ErrorCode.INTERNAL_ERROR
    category: ErrorCategory = ErrorCategory.SERVER_ERROR
    message: Annotated[str, Field(min_length=1)]
    details: dict[str, object] | None = None
    suggestion: str | None = None
    status_code: Annotated[int, Field(ge=100, le=599)] | None = None

    @field_validator("message", mode="before")
    @classmethod
    def _ensure_message(cls, v: str | Exception) -> str:
        """Accept Exception objects and empty bodies."""
        if isinstance(v, Exception):
            v = str(v) or type(v).__name__
        return v or "(empty response body)"

    @computed_field
    @property
    def is_client_error(self) -> bool:
        return self.category == ErrorCategory.CLIENT_ERROR

    @classmethod
    def create(
        cls,
        code: ErrorCode,
        category: ErrorCategory,
        message: str,
        *,
        suggestion: str | None = None,
        details: dict[str, object] | None = None,
        status_code: int | None = None,
    ) -> Self:
        return cls(
            code=code, category=category, message=message,
            suggestion=suggestion, details=details, status_code=status_code,
        )

    @classmethod
    def from_status(cls, status_code: int, body: str = "") -> Self:
        """Map an HTTP status and response body to a structured error."""
        match status_code:
            case 400:
                return cls.create(ErrorCode.INVALID_INPUT, ErrorCategory.CLIENT_ERROR, body,
                                  suggestion="Check the input parameters and try again", status_code=400)
            case 401:
                return cls.create(ErrorCode.UNAUTHORIZED, ErrorCategory.CLIENT_ERROR,
                                  "Authentication required or credentials invalid",
                                  suggestion="Check your API key and try again", status_code=401)
            case 403:
                return cls.create(ErrorCode.FORBIDDEN, ErrorCategory.CLIENT_ERROR, "Access forbidden",
                                  suggestion="Check your permissions for this resource", status_code=403)
            case 404:
                return cls.create(ErrorCode.RESOURCE_NOT_FOUND, ErrorCategory.CLIENT_ERROR,
                                  "Resource not found", status_code=404)
            case 409:
                return cls.create(ErrorCode.CONFLICT, ErrorCategory.CLIENT_ERROR, "Resource conflict",
                                  suggestion="Resource may already exist or be in use", status_code=409)
            case 429:
                return cls.create(ErrorCode.RATE_LIMIT_EXCEEDED, ErrorCategory.CLIENT_ERROR,
                                  "Rate limit exceeded", suggestion="Wait a moment and try again", status_code=429)
            case s if 500 <= s < 600:
                return cls.create(
                    ErrorCode.API_ERROR, ErrorCategory.EXTERNAL_ERROR,
                    f"{_SERVICE_NAME} API error (HTTP {s}): {body}",
                    suggestion=f"Check {_SERVICE_NAME} service status",
                    details={"service": _SERVICE_NAME, "status_code": s},
                    status_code=s,
                )
            case _:
                return cls.create(ErrorCode.INTERNAL_ERROR, ErrorCategory.SERVER_ERROR,
                                  f"Unexpected HTTP status {status_code}: {body}")

    def render(self) -> str:
        """Format error for end-user (LLM) consumption."""
        parts = [f"[{self.code}] {self.category}: {self.message}"]
        if self.suggestion:
            parts.append(f"\nSuggestion: {self.suggestion}")
        return "".join(parts)

    __str__ = render


# ─────────────────────────────────────────────────────────────────────────────
# Exceptions
# ─────────────────────────────────────────────────────────────────────────────


class LogsApiException(Exception):
    """Exception wrapping an ApiError for raising.

    Subclasses pin the error code and declare retryability:
    True/False is authoritative, None defers to the exception's cause.
    """

    code: ClassVar[ErrorCode] = ErrorCode.INTERNAL_ERROR
    category: ClassVar[ErrorCategory] = ErrorCategory.SERVER_ERROR
    retryable: ClassVar[bool | None] = False

    def __init__(self, error: ApiError | str) -> None:
        if isinstance(error, str):
            error = ApiError.create(self.code, self.category, error)
        self.error = error
        super().__init__(error.message)

    @classmethod
    def from_exc(cls, exc: BaseException, context: str = "") -> Self:
        """Wrap a lower-level exception, keeping it as __cause__."""
        msg = str(exc) or type(exc).__name__
        err = cls(f"{context}: {msg}" if context else msg)
        err.__cause__ = exc
        return err


class ConfigurationError(LogsApiException):
    code = ErrorCode.CONFIGURATION_ERROR
    category = ErrorCategory.CLIENT_ERROR


class RequestBuildError(LogsApiException):
    """The outgoing request could not be constructed (e.g. unserializable body)."""
    code = ErrorCode.INVALID_INPUT
    category = ErrorCategory.CLIENT_ERROR


class AuthenticationError(LogsApiException):
    """The authenticator failed to attach credentials. Never retried."""
    code = ErrorCode.AUTH_FAILED
    category = ErrorCategory.EXTERNAL_ERROR


class TransportError(LogsApiException):
    """Network-level failure; the retry classifier inspects the cause."""
    code = ErrorCode.NETWORK_ERROR
    category = ErrorCategory.EXTERNAL_ERROR
    retryable = None


class AttemptTimeoutError(TransportError):
    """The per-request timeout override elapsed. A caller deadline, so never retried."""
    code = ErrorCode.TIMEOUT
    category = ErrorCategory.SERVER_ERROR
    retryable = False


class StatusError(LogsApiException):
    """Synthesized from a retryable HTTP response (429/5xx)."""

    code = ErrorCode.API_ERROR
    category = ErrorCategory.EXTERNAL_ERROR
    retryable = True

    def __init__(self, response: Response) -> None:
        self.response = response
        base = ApiError.from_status(response.status_code, response.text)
        super().__init__(base.model_copy(update={"message": f"HTTP {response.status_code}: {response.text}"}))


class RetryExhaustedError(LogsApiException):
    """The attempt budget was spent; wraps the last error and response seen."""

    code = ErrorCode.RETRIES_EXHAUSTED
    category = ErrorCategory.EXTERNAL_ERROR

    def __init__(
        self,
        attempts: int,
        last_error: BaseException | None,
        last_response: Response | None = None,
    ) -> None:
        self.attempts = attempts
        self.last_error = last_error
        self.last_response = last_response
        super().__init__(ApiError.create(
            self.code, self.category,
            f"max retries exceeded after {attempts} attempts: {last_error}",
            suggestion="Try again later or contact support if the issue persists",
            status_code=last_response.status_code if last_response is not None else None,
        ))
        self.__cause__ = last_error
