"""RequestBuilder - Fluent construction and execution of one HTTP request.

A builder accumulates configuration through chained `with_*` calls, then a
terminal `execute` (or `get`/`post` and their typed `*_as` variants) snapshots
it into an OutgoingRequest, sends it, reports the exchange to the optional
logger and classifies the response.

Usage:
    item = await (
        RequestBuilder("https://api.test")
        .with_url("v2/items")
        .with_headers(("X-Key", "abc"))
        .with_query(("q", "shoe"))
        .with_logger(audit_log, correlation_id=42)
        .get_as(Item)
    )

A builder is not safe for concurrent use: one builder, one in-flight request.
State is never reset, so a second execute on the same builder sends whatever
the first one did plus any later configuration.
"""

from __future__ import annotations

import logging
import xml.etree.ElementTree as ET
from collections.abc import Awaitable, Callable, Iterable
from http import HTTPStatus
from typing import Any, TypeVar

from pydantic import ValidationError

from rest_builder.models import (
    BodyFormat,
    ClientConfig,
    OutgoingRequest,
    Pair,
    RequestSummary,
    ResponseSummary,
    TransportResponse,
)
from rest_builder.serialization import (
    deserialize_json,
    deserialize_xml,
    serialize_json,
    serialize_xml,
)
from rest_builder.transport import HttpxTransport, Transport
from rest_builder.url import InvalidUrlError, combine_url, is_valid_pair

logger = logging.getLogger(__name__)

T = TypeVar("T")

# (correlation_id, url, request_summary_json, response_summary_json)
LogCallback = Callable[[int, str, str, str], Awaitable[None]]

_DEFAULT_HEADERS: tuple[Pair, ...] = (
    ("Accept", "application/json"),
    ("Accept-Charset", "utf-8"),
)


class RequestBuilderError(Exception):
    """Base class for execution errors."""


class RequestFailedError(RequestBuilderError):
    """Raised when the response status is anything but 200.

    Transport failures end up here too, with status_code 0 and content None.
    """

    def __init__(self, status_code: int, content: str | None, error: str | None) -> None:
        self.status_code = status_code
        self.content = content
        self.error = error
        super().__init__(
            f"ERROR: {status_code} | CONTENT: {content if content is not None else ''} "
            f"| MESSAGE: {error or ''}"
        )


class DeserializationError(RequestBuilderError):
    """Raised when a response body does not map to the requested type."""


def _valid_pairs(pairs: Iterable[Pair] | None) -> tuple[tuple[str, str], ...]:
    if pairs is None:
        return ()
    return tuple((name, value) for name, value in pairs if is_valid_pair((name, value)))


def _join_pairs(pairs: Iterable[tuple[Any, Any]] | None) -> str:
    """Render pairs as "name:value,name:value", or "null" when unset."""
    if pairs is None:
        return "null"
    return ",".join(
        f"{'' if name is None else name}:{'' if value is None else value}"
        for name, value in pairs
    )


class RequestBuilder:
    """Chainable builder for a single outbound HTTP request."""

    def __init__(
        self,
        base_url: str | None = None,
        transport: Transport | None = None,
    ) -> None:
        """Initialize the builder.

        Args:
            base_url: Joined in front of every path given to `with_url`.
                Fixed for the life of the builder.
            transport: Dispatches requests. Defaults to HttpxTransport().
        """
        self._base_url = base_url
        self._transport: Transport = transport or HttpxTransport()
        self._url: str | None = None
        self._proxy: str | None = None
        self._headers: list[Pair] | None = None
        self._query_params: list[Pair] | None = None
        self._form_params: list[Pair] | None = None
        self._json_body: Any = None
        self._xml_body: Any = None
        self._log_callback: LogCallback | None = None
        self._correlation_id: int = 0

    @classmethod
    def with_base_url(
        cls,
        base_url: str | None,
        transport: Transport | None = None,
    ) -> RequestBuilder:
        return cls(base_url, transport)

    @classmethod
    def from_config(
        cls,
        config: ClientConfig,
        transport: Transport | None = None,
    ) -> RequestBuilder:
        """Create a builder from a ClientConfig.

        Without an explicit transport, the default HttpxTransport uses the
        configured timeout and TLS verification.
        """
        if transport is None:
            transport = HttpxTransport(timeout=config.timeout, verify_ssl=config.verify_ssl)
        builder = cls(config.base_url, transport)
        if config.proxy:
            builder.with_proxy(config.proxy)
        return builder

    @property
    def base_url(self) -> str | None:
        return self._base_url

    @property
    def url(self) -> str | None:
        return self._url

    # -------------------------------------------------------------------------
    # Configuration
    # -------------------------------------------------------------------------

    def with_url(self, path: str | None) -> RequestBuilder:
        """Resolve path against the base URL.

        Raises:
            InvalidUrlError: If the result is not an absolute URI.
        """
        self._url = combine_url(self._base_url, path)
        return self

    def with_proxy(self, address: str | None) -> RequestBuilder:
        self._proxy = address
        return self

    def with_logger(self, callback: LogCallback | None, correlation_id: int) -> RequestBuilder:
        self._log_callback = callback
        self._correlation_id = correlation_id
        return self

    def with_headers(self, *pairs: Pair) -> RequestBuilder:
        """Replace all headers. Accept and Accept-Charset always come first."""
        self._headers = [*_DEFAULT_HEADERS, *pairs]
        return self

    def with_query(self, *pairs: Pair) -> RequestBuilder:
        self._query_params = list(pairs)
        return self

    def with_json_body(self, value: Any) -> RequestBuilder:
        self._json_body = value
        return self

    def with_xml_body(self, value: Any) -> RequestBuilder:
        """Set an XML body. Takes precedence over any JSON body."""
        self._xml_body = value
        return self

    def _with_form_params(self, *pairs: Pair) -> RequestBuilder:
        self._form_params = list(pairs)
        return self

    # -------------------------------------------------------------------------
    # Execution
    # -------------------------------------------------------------------------

    def build_request(self, method: str) -> OutgoingRequest:
        """Snapshot the current configuration for sending.

        Invalid pairs are dropped here. The JSON body is serialized first and
        then replaced by the XML body when one is set.

        Raises:
            InvalidUrlError: If no URL has been configured.
            SerializationError: If a body cannot be serialized.
        """
        if self._url is None:
            raise InvalidUrlError("No URL configured; call with_url() first")

        body_format = BodyFormat.JSON
        body: str | None = None
        if self._json_body is not None:
            body = serialize_json(self._json_body)
        if self._xml_body is not None:
            body_format = BodyFormat.XML
            body = serialize_xml(self._xml_body)

        return OutgoingRequest(
            method=method.upper(),
            url=self._url,
            proxy=self._proxy if self._proxy and self._proxy.strip() else None,
            headers=_valid_pairs(self._headers),
            query=_valid_pairs(self._query_params),
            form=_valid_pairs(self._form_params),
            body=body,
            body_format=body_format,
        )

    async def execute(self, method: str) -> str:
        """Send the request and return the raw response body.

        The logger, if any, is awaited before the status is checked, so a
        failed request is still logged.

        Raises:
            InvalidUrlError: If no URL has been configured.
            SerializationError: If a body cannot be serialized.
            RequestFailedError: If the status is not exactly 200.
        """
        request = self.build_request(method)
        response = await self._transport.send(request)

        await self._log(request, response)

        if response.status_code != HTTPStatus.OK:
            logger.warning(
                "%s %s returned %s", request.method, request.url, response.status_code
            )
            raise RequestFailedError(response.status_code, response.content, response.error)

        logger.debug("%s %s succeeded", request.method, request.url)
        return response.content or ""

    async def get(self) -> str:
        return await self.execute("GET")

    async def get_as(self, target_type: type[T]) -> T:
        return self.map_json(await self.execute("GET"), target_type)

    async def post(self) -> str:
        return await self.execute("POST")

    async def post_as(self, target_type: type[T]) -> T:
        return self.map_json(await self.execute("POST"), target_type)

    @staticmethod
    def map_json(raw: str, target_type: type[T]) -> T:
        """Deserialize a JSON body into target_type.

        Raises:
            DeserializationError: If raw does not validate as target_type.
        """
        try:
            return deserialize_json(raw, target_type)
        except ValidationError as e:
            raise DeserializationError(
                f"Response body does not match {getattr(target_type, '__name__', target_type)}: {e}"
            ) from e

    @staticmethod
    def map_xml(raw: str, target_type: type[T], force_list: set[str] | None = None) -> T:
        """Deserialize an XML body into target_type.

        target_type receives the document as a dict keyed by its root tag.

        Raises:
            DeserializationError: If raw is not well-formed XML or does not
                validate as target_type.
        """
        try:
            return deserialize_xml(raw, target_type, force_list)
        except (ET.ParseError, ValidationError) as e:
            raise DeserializationError(
                f"Response body does not match {getattr(target_type, '__name__', target_type)}: {e}"
            ) from e

    # -------------------------------------------------------------------------
    # Logging
    # -------------------------------------------------------------------------

    def _summarize_request(self, request: OutgoingRequest) -> RequestSummary:
        # Pair lists are logged as configured, including dropped pairs
        return RequestSummary(
            method=request.method,
            format=request.body_format,
            proxy=self._proxy,
            headers=_join_pairs(self._headers),
            query=_join_pairs(self._query_params),
            form=_join_pairs(self._form_params),
            body=request.body or "",
        )

    @staticmethod
    def _summarize_response(response: TransportResponse | None) -> ResponseSummary:
        if response is None:
            return ResponseSummary()
        return ResponseSummary(
            status=response.status_code,
            content_type=response.content_type,
            content_encoding=response.content_encoding,
            error=response.error,
            headers=_join_pairs(response.headers),
            content=response.content,
        )

    async def _log(self, request: OutgoingRequest, response: TransportResponse | None) -> None:
        if self._log_callback is None:
            return
        await self._log_callback(
            self._correlation_id,
            request.url,
            self._summarize_request(request).model_dump_json(by_alias=True),
            self._summarize_response(response).model_dump_json(by_alias=True),
        )
