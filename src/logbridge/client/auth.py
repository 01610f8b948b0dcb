"""Authentication strategies applied to each outgoing request.

The client treats credentials as an opaque capability: anything with an
`async authenticate(request)` that mutates an httpx.Request qualifies.
Token acquisition (IAM exchange, refresh) belongs to the implementation.

Secrets are SecretStr and masked when the strategy is dumped to JSON.
"""

from __future__ import annotations

from typing import Annotated, Literal, Protocol, runtime_checkable

import httpx
from pydantic import BaseModel, ConfigDict, Field, SecretStr, field_serializer

from logbridge.foundation.config import mask_secret


@runtime_checkable
class Authenticator(Protocol):
    """Attaches credentials to an outgoing request. Raising aborts the call without retry."""

    async def authenticate(self, request: httpx.Request) -> None: ...


class NoAuth(BaseModel):
    """No authentication."""

    model_config = ConfigDict(frozen=True, extra="forbid")
    auth_type: Literal["none"] = "none"

    async def authenticate(self, request: httpx.Request) -> None:
        return None


class BearerTokenAuth(BaseModel):
    """Static bearer token (IAM access token, JWT)."""

    model_config = ConfigDict(frozen=True, extra="forbid")
    auth_type: Literal["bearer"] = "bearer"
    token: SecretStr = Field(..., description="Bearer token value")

    async def authenticate(self, request: httpx.Request) -> None:
        request.headers["Authorization"] = f"Bearer {self.token.get_secret_value()}"

    @field_serializer("token", when_used="json")
    def _mask_token(self, v: SecretStr) -> str:
        return mask_secret(v.get_secret_value())


class ApiKeyAuth(BaseModel):
    """API key sent in a header."""

    model_config = ConfigDict(frozen=True, extra="forbid", str_strip_whitespace=True)
    auth_type: Literal["api_key"] = "api_key"
    key: SecretStr = Field(..., description="API key value")
    header_name: Annotated[str, Field(
        default="X-API-Key",
        pattern=r"^[A-Za-z][A-Za-z0-9-]*$",
        description="HTTP header name for the key",
    )]

    async def authenticate(self, request: httpx.Request) -> None:
        request.headers[self.header_name] = self.key.get_secret_value()

    @field_serializer("key", when_used="json")
    def _mask_key(self, v: SecretStr) -> str:
        return mask_secret(v.get_secret_value())
