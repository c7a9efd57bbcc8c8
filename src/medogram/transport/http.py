"""
REST HTTP client for Medogram — two origins, bearer credentials, uniform failures.

Origins:
- primary: auth, profile, visits, payments
- local:   chat, custom chatbot, predictions
"""

import asyncio
import logging
from enum import Enum
from typing import Any, Callable, Optional, Union

import httpx

from medogram.config import DEFAULT_BASE_URL, DEFAULT_LOCAL_URL, REQUEST_TIMEOUT_S
from medogram.errors import HttpError, NetworkError, TimeoutError

logger = logging.getLogger(__name__)

TokenProvider = Callable[[], Optional[str]]
UnauthorizedHandler = Callable[[], None]


class Origin(str, Enum):
    PRIMARY = "primary"
    LOCAL = "local"


class HttpClient:
    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        local_url: str = DEFAULT_LOCAL_URL,
        token_provider: Optional[TokenProvider] = None,
        timeout: float = REQUEST_TIMEOUT_S,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._timeout = timeout
        self._token_provider = token_provider
        self._unauthorized_handler: Optional[UnauthorizedHandler] = None
        self._clients = {
            Origin.PRIMARY: self._make_client(base_url, transport),
            Origin.LOCAL: self._make_client(local_url, transport),
        }

    def _make_client(self, base_url: str, transport: Optional[httpx.AsyncBaseTransport]) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            headers={"User-Agent": "medogram-sdk/0.1.0", "Accept": "application/json"},
            timeout=self._timeout,
            transport=transport,
        )

    def set_token_provider(self, provider: Optional[TokenProvider]) -> None:
        self._token_provider = provider

    def on_unauthorized(self, handler: Optional[UnauthorizedHandler]) -> None:
        """Set the single handler invoked on every 401 response (replaces any previous one)."""
        self._unauthorized_handler = handler

    def _auth_headers(self, token: Optional[str]) -> dict[str, str]:
        headers: dict[str, str] = {"Content-Type": "application/json"}
        if token is None and self._token_provider is not None:
            token = self._token_provider()
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return headers

    @staticmethod
    def _parse(resp: httpx.Response) -> Any:
        if not resp.content:
            return None
        try:
            return resp.json()
        except ValueError:
            return resp.text

    async def send(
        self,
        origin: Union[Origin, str],
        method: str,
        path: str,
        body: Optional[Any] = None,
        token: Optional[str] = None,
    ) -> Any:
        """Issue one request. `token` overrides the provider's credential for this call only."""
        client = self._clients[Origin(origin)]
        headers = self._auth_headers(token)
        logger.debug("%s %s %s", method, Origin(origin).value, path)
        try:
            resp = await asyncio.wait_for(
                client.request(method, path, json=body, headers=headers),
                timeout=self._timeout,
            )
        except (asyncio.TimeoutError, httpx.TimeoutException):
            raise TimeoutError(f"{method} {path} timed out after {self._timeout}s")
        except httpx.TransportError as e:
            raise NetworkError(f"{method} {path} failed: {e}") from e

        if resp.status_code == 401:
            logger.warning("%s %s returned 401, signalling unauthorized", method, path)
            if self._unauthorized_handler is not None:
                self._unauthorized_handler()
        if not resp.is_success:
            raise HttpError(resp.status_code, self._parse(resp), f"HTTP {resp.status_code}: {resp.text[:200]}")
        return self._parse(resp)

    async def get(self, path: str, *, origin: Union[Origin, str] = Origin.PRIMARY, token: Optional[str] = None) -> Any:
        return await self.send(origin, "GET", path, token=token)

    async def post(
        self, path: str, body: Optional[Any] = None, *,
        origin: Union[Origin, str] = Origin.PRIMARY, token: Optional[str] = None,
    ) -> Any:
        return await self.send(origin, "POST", path, body, token=token)

    async def put(
        self, path: str, body: Optional[Any] = None, *,
        origin: Union[Origin, str] = Origin.PRIMARY, token: Optional[str] = None,
    ) -> Any:
        return await self.send(origin, "PUT", path, body, token=token)

    async def delete(self, path: str, *, origin: Union[Origin, str] = Origin.PRIMARY, token: Optional[str] = None) -> Any:
        return await self.send(origin, "DELETE", path, token=token)

    async def close(self) -> None:
        for client in self._clients.values():
            await client.aclose()
