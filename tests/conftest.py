"""Pytest configuration and fixtures for rest-builder tests.

This file provides:
- RecordingTransport: in-memory Transport that records what it was sent
- RecordingLogger: async log callback that records every call
- make_transport_response: TransportResponse with sensible defaults
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any

import pytest

from rest_builder.models import OutgoingRequest, TransportResponse


def make_transport_response(
    status_code: int = 200,
    content: str | None = "",
    content_type: str | None = "application/json",
    headers: list[tuple[str, str]] | None = None,
    error: str | None = None,
) -> TransportResponse:
    """Create a TransportResponse for testing.

    Prefer this over constructing TransportResponse directly - it documents
    which fields tests usually vary.
    """
    return TransportResponse(
        status_code=status_code,
        content_type=content_type,
        headers=headers or [],
        content=content,
        error=error,
    )


class RecordingTransport:
    """Transport that returns a fixed response and keeps every request.

    Usage:
        transport = RecordingTransport(make_transport_response(content='{"id": 1}'))
        await RequestBuilder("http://h", transport).with_url("x").get()
        assert transport.requests[0].url == "http://h/x"
    """

    def __init__(self, response: TransportResponse | None = None) -> None:
        self.response = response or make_transport_response()
        self.requests: list[OutgoingRequest] = []

    @property
    def last_request(self) -> OutgoingRequest:
        return self.requests[-1]

    async def send(self, request: OutgoingRequest) -> TransportResponse:
        self.requests.append(request)
        return self.response


@dataclass
class LogCall:
    correlation_id: int
    url: str
    request_json: str
    response_json: str

    @property
    def request(self) -> dict[str, Any]:
        return json.loads(self.request_json)

    @property
    def response(self) -> dict[str, Any]:
        return json.loads(self.response_json)


@dataclass
class RecordingLogger:
    """Async log callback that records its arguments."""

    calls: list[LogCall] = field(default_factory=list)

    async def __call__(
        self, correlation_id: int, url: str, request_json: str, response_json: str
    ) -> None:
        self.calls.append(LogCall(correlation_id, url, request_json, response_json))


@pytest.fixture
def transport() -> RecordingTransport:
    return RecordingTransport()


@pytest.fixture
def recording_logger() -> RecordingLogger:
    return RecordingLogger()
