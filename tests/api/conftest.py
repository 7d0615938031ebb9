"""Fixtures for the fetcher, handler and HTTP route tests."""

import json
from typing import Callable, Dict, List

import httpx
import pytest

from services.fetcher import HttpFetcher


class Upstream:
    """Scripted upstream answering by URL path, recording every request."""

    def __init__(self):
        self.routes: Dict[str, Callable[[httpx.Request], httpx.Response]] = {}
        self.requests: List[httpx.Request] = []

    def json(self, path: str, payload, status_code: int = 200) -> None:
        self.routes[path] = lambda request: httpx.Response(status_code, json=payload)

    def text(self, path: str, body: str, status_code: int = 200) -> None:
        self.routes[path] = lambda request: httpx.Response(status_code, text=body)

    def raises(self, path: str, error: Exception) -> None:
        def respond(request):
            raise error
        self.routes[path] = respond

    def calls(self, path: str) -> int:
        return sum(1 for request in self.requests if request.url.path == path)

    def body(self, index: int = -1):
        return json.loads(self.requests[index].content)

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        respond = self.routes.get(request.url.path)
        if respond is None:
            return httpx.Response(404, text="not found")
        return respond(request)


@pytest.fixture
def upstream():
    return Upstream()


@pytest.fixture
async def fetcher(memory_only_cache, settings, upstream):
    """Fetcher wired to the scripted upstream through the memory-only cache."""
    fetcher = HttpFetcher(memory_only_cache, settings, transport=httpx.MockTransport(upstream))
    await fetcher.startup()
    yield fetcher
    await fetcher.shutdown()
