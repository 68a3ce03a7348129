"""Data models for rest-builder.

All models use Pydantic v2. The builder itself is mutable; everything handed
to a transport or a logger is one of the models below.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

# A header, query or form parameter. Either side may be None; such pairs are
# dropped at execution time (see rest_builder.url.is_valid_pair).
Pair = tuple[str | None, str | None]


# =============================================================================
# Transport Models
# =============================================================================


class BodyFormat(str, Enum):
    """Wire format of the request body."""

    JSON = "Json"
    XML = "Xml"

    @property
    def content_type(self) -> str:
        if self is BodyFormat.XML:
            return "application/xml"
        return "application/json"


class OutgoingRequest(BaseModel):
    """Snapshot of a builder taken at execute time.

    Pair lists hold only valid pairs, in the order they were configured.
    `body` is already serialized in `body_format`.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    method: str = Field(description="HTTP method (GET, POST, etc.)")
    url: str = Field(description="Absolute target URL")
    proxy: str | None = Field(default=None, description="Forward proxy address")
    headers: tuple[tuple[str, str], ...] = Field(default=())
    query: tuple[tuple[str, str], ...] = Field(default=())
    form: tuple[tuple[str, str], ...] = Field(default=())
    body: str | None = Field(default=None, description="Serialized request body")
    body_format: BodyFormat = Field(default=BodyFormat.JSON)


class TransportResponse(BaseModel):
    """What a transport got back.

    Connection failures are not raised: status_code is 0, content is None and
    error carries the exception detail.
    """

    model_config = ConfigDict(extra="forbid")

    status_code: int = Field(default=0, description="HTTP status code, 0 if none")
    content_type: str | None = None
    content_encoding: str | None = None
    headers: list[tuple[str, str]] = Field(default_factory=list)
    content: str | None = None
    error: str | None = Field(default=None, description="Transport exception detail")


# =============================================================================
# Log Record Models
# =============================================================================


class RequestSummary(BaseModel):
    """Request half of a log record. Serialized with capitalized keys."""

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    method: str = Field(alias="Method")
    format: BodyFormat = Field(alias="Format")
    proxy: str | None = Field(default=None, alias="Proxy")
    headers: str = Field(default="null", alias="Headers")
    query: str = Field(default="null", alias="Query")
    form: str = Field(default="null", alias="Form")
    body: str = Field(default="", alias="Body")


class ResponseSummary(BaseModel):
    """Response half of a log record. Serialized with capitalized keys."""

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    status: int | None = Field(default=None, alias="Status")
    content_type: str | None = Field(default=None, alias="ContentType")
    content_encoding: str | None = Field(default=None, alias="ContentEncoding")
    error: str | None = Field(default=None, alias="Error")
    headers: str = Field(default="null", alias="Headers")
    content: str | None = Field(default=None, alias="Content")


# =============================================================================
# Configuration Models
# =============================================================================


class ClientConfig(BaseModel):
    """Client configuration file structure."""

    model_config = ConfigDict(extra="forbid")

    base_url: str | None = Field(default=None, description="Base URL joined with every path")
    proxy: str | None = Field(default=None, description="Forward proxy address")
    timeout: float = Field(default=30.0, gt=0, description="Request timeout in seconds")
    verify_ssl: bool = Field(default=True, description="Verify server TLS certificates")
