"""Transport - Sends an OutgoingRequest and captures the response.

The builder only talks to the `Transport` protocol. `HttpxTransport` is the
default implementation; tests and callers can pass any object with a
matching `send` coroutine.

Transport failures (connection refused, timeouts, bad proxy) are returned as
a TransportResponse with status_code 0 and `error` set. Classifying that as
a failure is the builder's job, after it has logged the exchange.
"""

from __future__ import annotations

import logging
from typing import Any, Protocol
from urllib.parse import urlencode

import httpx

from rest_builder.models import OutgoingRequest, TransportResponse

logger = logging.getLogger(__name__)

# Methods whose form parameters travel in the request body. For everything
# else they are appended to the query string.
_BODY_METHODS = frozenset({"POST", "PUT", "PATCH"})

_FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"


class Transport(Protocol):
    """Anything that can dispatch an OutgoingRequest."""

    async def send(self, request: OutgoingRequest) -> TransportResponse:
        ...


def _sanitize_header_value(value: str) -> str:
    """Replace non-ASCII characters with '?'.

    HTTP header values must be ASCII per RFC 7230; httpx raises on anything
    else, which would otherwise surface as an opaque encoding error.
    """
    return value.encode("ascii", errors="replace").decode("ascii")


class HttpxTransport:
    """Sends requests with httpx.AsyncClient.

    One client is opened per `send` call and closed before it returns.

    Usage:
        transport = HttpxTransport(timeout=10.0)
        response = await transport.send(request)
    """

    def __init__(
        self,
        timeout: float = 30.0,
        verify_ssl: bool = True,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the transport.

        Args:
            timeout: Request timeout in seconds.
            verify_ssl: Whether to verify server TLS certificates.
            transport: Optional httpx transport to send through instead of
                the network (e.g. httpx.MockTransport). Ignored for
                requests that go through a proxy.
        """
        self._timeout = timeout
        self._verify_ssl = verify_ssl
        self._transport = transport

    def _build_client_kwargs(self, proxy: str | None) -> dict[str, Any]:
        kwargs: dict[str, Any] = {
            "timeout": self._timeout,
            "verify": self._verify_ssl,
        }
        if proxy:
            kwargs["proxy"] = proxy
        if self._transport is not None:
            kwargs["transport"] = self._transport
        return kwargs

    def _build_request_kwargs(self, request: OutgoingRequest) -> dict[str, Any]:
        headers = [(name, _sanitize_header_value(value)) for name, value in request.headers]
        params = list(request.query)
        content: bytes | None = None
        has_content_type = any(name.lower() == "content-type" for name, _ in headers)

        if request.body is not None:
            content = request.body.encode("utf-8")
            if not has_content_type:
                headers.append(("Content-Type", request.body_format.content_type))

        if request.form:
            if content is None and request.method in _BODY_METHODS:
                content = urlencode(list(request.form)).encode("ascii")
                if not has_content_type:
                    headers.append(("Content-Type", _FORM_CONTENT_TYPE))
            else:
                params.extend(request.form)

        return {
            "method": request.method,
            "url": request.url,
            "params": params or None,
            "headers": headers or None,
            "content": content,
        }

    async def send(self, request: OutgoingRequest) -> TransportResponse:
        """Send the request and capture the response.

        Returns:
            TransportResponse. Never raises for network-level failures.
        """
        kwargs = self._build_request_kwargs(request)
        logger.debug("Sending %s %s", request.method, request.url)

        try:
            async with httpx.AsyncClient(**self._build_client_kwargs(request.proxy)) as client:
                http_response = await client.request(**kwargs)
        except (httpx.RequestError, httpx.InvalidURL, UnicodeEncodeError) as e:
            logger.warning("%s %s failed: %s", request.method, request.url, e)
            return TransportResponse(error=f"{type(e).__name__}: {e}")

        return self._convert_response(http_response)

    @staticmethod
    def _convert_response(response: httpx.Response) -> TransportResponse:
        return TransportResponse(
            status_code=response.status_code,
            content_type=response.headers.get("content-type"),
            content_encoding=response.headers.get("content-encoding"),
            headers=list(response.headers.multi_items()),
            content=response.text,
        )
