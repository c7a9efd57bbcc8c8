"""Shared fixtures: an in-process fake of both Medogram backends."""

import inspect
import json
from typing import Any, Callable, Optional

import httpx
import pytest

from medogram import AsyncMedogram, ClientConfig, MemoryTokenStore

PRIMARY = "api.medogram.ir"
LOCAL = "127.0.0.1"


class FakeBackend:
    """httpx.MockTransport handler routing on (host, method, path)."""

    def __init__(self) -> None:
        self._routes: dict[tuple[str, str, str], Callable[[httpx.Request], Any]] = {}
        self.requests: list[httpx.Request] = []

    def route(
        self,
        host: str,
        method: str,
        path: str,
        status: int = 200,
        json: Any = None,
        handler: Optional[Callable[[httpx.Request], Any]] = None,
    ) -> None:
        self._routes[(host, method, path)] = handler or (lambda request: httpx.Response(status, json=json))

    def calls(self, method: str, path: str) -> list[httpx.Request]:
        return [r for r in self.requests if r.method == method and r.url.path == path]

    async def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        handler = self._routes.get((request.url.host, request.method, request.url.path))
        if handler is None:
            return httpx.Response(404, json={"detail": "Not found."})
        result = handler(request)
        if inspect.isawaitable(result):
            result = await result
        return result


def body(request: httpx.Request) -> Any:
    return json.loads(request.content)


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def store() -> MemoryTokenStore:
    return MemoryTokenStore()


@pytest.fixture
def make_client(backend, store):
    def _make(**kwargs: Any) -> AsyncMedogram:
        kwargs.setdefault("token_store", store)
        return AsyncMedogram(config=ClientConfig(), transport=httpx.MockTransport(backend), **kwargs)
    return _make
