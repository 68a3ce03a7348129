"""Tests for HttpxTransport.

Requests are served by httpx.MockTransport, so nothing touches the network.
Proxy and client options are checked by patching httpx.AsyncClient.
"""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from rest_builder.models import BodyFormat, OutgoingRequest
from rest_builder.transport import HttpxTransport, _sanitize_header_value


def _request(**overrides) -> OutgoingRequest:
    fields = {"method": "GET", "url": "http://h/items"}
    fields.update(overrides)
    return OutgoingRequest(**fields)


class _Capture:
    """MockTransport handler that records the request and replies."""

    def __init__(self, response: httpx.Response | None = None) -> None:
        self.response = response or httpx.Response(200, text="ok")
        self.seen: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.seen.append(request)
        return self.response

    @property
    def last(self) -> httpx.Request:
        return self.seen[-1]


def _transport(capture: _Capture) -> HttpxTransport:
    return HttpxTransport(transport=httpx.MockTransport(capture))


class TestSanitizeHeaderValue:
    def test_ascii_unchanged(self) -> None:
        assert _sanitize_header_value("abc-123") == "abc-123"

    def test_non_ascii_replaced(self) -> None:
        assert _sanitize_header_value("héllo") == "h?llo"


class TestHttpxTransportRequest:
    """What goes on the wire."""

    @pytest.mark.asyncio
    async def test_headers_in_order_with_duplicates(self) -> None:
        capture = _Capture()
        await _transport(capture).send(
            _request(headers=(("Accept", "application/json"), ("X-A", "1"), ("X-A", "2")))
        )
        assert capture.last.headers["accept"] == "application/json"
        assert capture.last.headers.get_list("x-a") == ["1", "2"]

    @pytest.mark.asyncio
    async def test_query_params_in_order(self) -> None:
        capture = _Capture()
        await _transport(capture).send(_request(query=(("q", "shoe"), ("size", "42"), ("q", "boot"))))
        assert capture.last.url.query == b"q=shoe&size=42&q=boot"

    @pytest.mark.asyncio
    async def test_json_body_content_type(self) -> None:
        capture = _Capture()
        await _transport(capture).send(_request(method="POST", body='{"a":1}'))
        assert capture.last.content == b'{"a":1}'
        assert capture.last.headers["content-type"] == "application/json"

    @pytest.mark.asyncio
    async def test_xml_body_content_type(self) -> None:
        capture = _Capture()
        await _transport(capture).send(
            _request(method="POST", body="<A>1</A>", body_format=BodyFormat.XML)
        )
        assert capture.last.content == b"<A>1</A>"
        assert capture.last.headers["content-type"] == "application/xml"

    @pytest.mark.asyncio
    async def test_explicit_content_type_kept(self) -> None:
        capture = _Capture()
        await _transport(capture).send(
            _request(method="POST", body="{}", headers=(("Content-Type", "application/vnd.x+json"),))
        )
        assert capture.last.headers.get_list("content-type") == ["application/vnd.x+json"]

    @pytest.mark.asyncio
    async def test_form_params_in_post_body(self) -> None:
        capture = _Capture()
        await _transport(capture).send(_request(method="POST", form=(("user", "a b"), ("pw", "x&y"))))
        assert capture.last.content == b"user=a+b&pw=x%26y"
        assert capture.last.headers["content-type"] == "application/x-www-form-urlencoded"
        assert capture.last.url.query == b""

    @pytest.mark.asyncio
    async def test_form_params_in_query_for_get(self) -> None:
        capture = _Capture()
        await _transport(capture).send(_request(query=(("q", "1"),), form=(("f", "2"),)))
        assert capture.last.url.query == b"q=1&f=2"
        assert capture.last.content == b""

    @pytest.mark.asyncio
    async def test_form_params_in_query_for_delete(self) -> None:
        capture = _Capture()
        await _transport(capture).send(_request(method="DELETE", form=(("id", "7"),)))
        assert capture.last.url.query == b"id=7"
        assert capture.last.content == b""

    @pytest.mark.asyncio
    async def test_form_params_in_query_when_body_present(self) -> None:
        capture = _Capture()
        await _transport(capture).send(_request(method="POST", body="{}", form=(("f", "2"),)))
        assert capture.last.url.query == b"f=2"
        assert capture.last.content == b"{}"


class TestHttpxTransportResponse:
    """What comes back."""

    @pytest.mark.asyncio
    async def test_response_captured(self) -> None:
        capture = _Capture(
            httpx.Response(
                201,
                content=b'{"id":1}',
                headers=[("Content-Type", "application/json"), ("X-Trace", "t1")],
            )
        )
        response = await _transport(capture).send(_request())
        assert response.status_code == 201
        assert response.content == '{"id":1}'
        assert response.content_type == "application/json"
        assert response.content_encoding is None
        assert ("x-trace", "t1") in response.headers
        assert response.error is None

    @pytest.mark.asyncio
    async def test_connection_error_captured(self) -> None:
        def refuse(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        response = await HttpxTransport(transport=httpx.MockTransport(refuse)).send(_request())
        assert response.status_code == 0
        assert response.content is None
        assert response.error == "ConnectError: connection refused"

    @pytest.mark.asyncio
    async def test_timeout_captured(self) -> None:
        def slow(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("timed out", request=request)

        response = await HttpxTransport(transport=httpx.MockTransport(slow)).send(_request())
        assert response.status_code == 0
        assert response.error.startswith("ReadTimeout")

    @pytest.mark.asyncio
    async def test_invalid_url_captured(self) -> None:
        capture = _Capture()
        response = await _transport(capture).send(_request(url="http://h:abc/x"))
        assert response.status_code == 0
        assert response.error.startswith("InvalidURL")
        assert capture.seen == []


class TestHttpxTransportClientOptions:
    """Options passed to httpx.AsyncClient."""

    @pytest.mark.asyncio
    async def test_proxy_timeout_and_verify(self) -> None:
        mock_client = MagicMock()
        mock_client.request = AsyncMock(return_value=httpx.Response(200, text="ok"))

        with patch("rest_builder.transport.httpx.AsyncClient") as client_cls:
            client_cls.return_value.__aenter__ = AsyncMock(return_value=mock_client)
            client_cls.return_value.__aexit__ = AsyncMock(return_value=None)

            transport = HttpxTransport(timeout=5.0, verify_ssl=False)
            await transport.send(_request(proxy="http://proxy:3128"))

        kwargs = client_cls.call_args.kwargs
        assert kwargs["proxy"] == "http://proxy:3128"
        assert kwargs["timeout"] == 5.0
        assert kwargs["verify"] is False
        assert mock_client.request.call_args.kwargs["url"] == "http://h/items"

    @pytest.mark.asyncio
    async def test_no_proxy_option_without_proxy(self) -> None:
        mock_client = MagicMock()
        mock_client.request = AsyncMock(return_value=httpx.Response(200, text="ok"))

        with patch("rest_builder.transport.httpx.AsyncClient") as client_cls:
            client_cls.return_value.__aenter__ = AsyncMock(return_value=mock_client)
            client_cls.return_value.__aexit__ = AsyncMock(return_value=None)

            await HttpxTransport().send(_request())

        assert "proxy" not in client_cls.call_args.kwargs
