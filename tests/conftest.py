"""
Pytest configuration and fixtures.
"""

import json
from collections.abc import Callable

import httpx
import pytest

from switchboard.hooks import HookRegistry


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep SWITCHBOARD_* variables from the host out of tests."""
    import os

    for key in list(os.environ):
        if key.startswith("SWITCHBOARD_"):
            monkeypatch.delenv(key)


@pytest.fixture
def registry() -> HookRegistry:
    return HookRegistry()


class RecordingTransport:
    """httpx transport that records requests and answers with a handler."""

    def __init__(self, handler: Callable):
        self.handler = handler
        self.requests: list[httpx.Request] = []
        self.transport = httpx.MockTransport(self._handle)

    async def _handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        response = self.handler(request)
        if hasattr(response, "__await__"):
            response = await response
        return response

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=self.transport)

    def bodies(self) -> list[dict]:
        return [json.loads(request.content) for request in self.requests]


@pytest.fixture
def recording_transport() -> Callable[[Callable], RecordingTransport]:
    return RecordingTransport
