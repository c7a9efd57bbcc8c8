"""
AsyncMedogram / Medogram — main SDK clients.

AsyncMedogram is the composition root: it builds the HTTP client, the session
manager, and the auxiliary APIs, and wires the token provider and the
unauthorized callback between them.
"""

import asyncio
from typing import Any, Callable, Optional

import httpx

from medogram.auth import SessionManager
from medogram.chat import ConversationEngine
from medogram.config import ClientConfig, REQUEST_TIMEOUT_S
from medogram.models.chat import ChatMode, Message
from medogram.models.session import Session, UserProfile
from medogram.payments import PaymentsAPI
from medogram.predictions import PredictionsAPI
from medogram.storage import MemoryTokenStore, TokenStore
from medogram.transport.http import HttpClient
from medogram.visits import VisitsAPI


class AsyncMedogram:
    """Async Medogram client (primary)."""

    def __init__(
        self,
        config: Optional[ClientConfig] = None,
        token_store: Optional[TokenStore] = None,
        on_login_required: Optional[Callable[[], None]] = None,
        timeout: float = REQUEST_TIMEOUT_S,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.config = config or ClientConfig.from_env()
        self.http = HttpClient(
            base_url=self.config.base_url,
            local_url=self.config.local_url,
            timeout=timeout,
            transport=transport,
        )
        self.auth = SessionManager(self.http, token_store or MemoryTokenStore(), on_login_required)
        self.http.set_token_provider(lambda: self.auth.token)
        self.http.on_unauthorized(self.auth.handle_unauthorized)

        self.visits = VisitsAPI(self.http)
        self.payments = PaymentsAPI(self.http)
        self.predictions = PredictionsAPI(self.http)

    @property
    def session(self) -> Session:
        return self.auth.session

    @property
    def is_authenticated(self) -> bool:
        return self.auth.is_authenticated

    async def initialize(self) -> Session:
        """Restore a persisted login, if any."""
        return await self.auth.initialize()

    def conversation(self, mode: ChatMode = ChatMode.STANDARD) -> ConversationEngine:
        """Start a new, empty conversation bound to this client's session."""
        return ConversationEngine(self.http, self.auth, mode=mode)

    async def close(self) -> None:
        await self.http.close()

    async def __aenter__(self) -> "AsyncMedogram":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()


class Medogram:
    """Sync wrapper around AsyncMedogram. Runs the event loop internally."""

    def __init__(self, **kwargs: Any):
        self._async = AsyncMedogram(**kwargs)
        self._loop = asyncio.new_event_loop()

    def _run(self, coro: Any) -> Any:
        return self._loop.run_until_complete(coro)

    @property
    def auth(self) -> SessionManager:
        return self._async.auth

    @property
    def session(self) -> Session:
        return self._async.session

    @property
    def is_authenticated(self) -> bool:
        return self._async.is_authenticated

    def initialize(self) -> Session:
        return self._run(self._async.initialize())

    def register(self, phone_number: str) -> Any:
        return self._run(self._async.auth.register(phone_number))

    def verify(self, phone_number: str, code: str) -> Session:
        return self._run(self._async.auth.verify(phone_number, code))

    def update_profile(self, data: dict[str, Any]) -> UserProfile:
        return self._run(self._async.auth.update_profile(data))

    def logout(self) -> None:
        self._async.auth.logout()

    def conversation(self, mode: ChatMode = ChatMode.STANDARD) -> ConversationEngine:
        return self._async.conversation(mode)

    def send(self, conversation: ConversationEngine, text: str) -> Message:
        """Send on `conversation` and block until the reply (or error message) is appended."""
        return self._run(conversation.send(text))

    def close(self) -> None:
        self._run(self._async.close())
        self._loop.close()
