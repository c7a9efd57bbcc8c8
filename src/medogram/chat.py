"""
Conversation engine — ordered chat transcript over the local inference backend.

Every send is a two-phase append:
- Phase 1: the user's message is appended before the request goes out
- Phase 2: the agent reply (or an error message) is appended when it resolves

At most one send is in flight per engine, so replies can never arrive out of
order and no request correlation is needed.
"""

import itertools
import logging
from datetime import datetime, timezone
from typing import Any, Callable, Optional, Protocol

from medogram.errors import AuthError, ConversationError, MedogramError, ValidationError
from medogram.models.chat import ChatMode, Message, Sender
from medogram.transport.http import HttpClient, Origin

logger = logging.getLogger(__name__)

CHAT_MESSAGE_PATH = "/api/chat/message/"
CUSTOM_MESSAGE_PATH = "/api/customchatbot/message/"
CUSTOM_SETTINGS_PATH = "/api/customchatbot/settings/"
CHAT_HISTORY_PATH = "/api/chat/history/"

NO_RESPONSE_TEXT = "Sorry, no response was received."
SEND_FAILED_TEXT = "Sorry, something went wrong. Please try again."
SETTINGS_FAILED_TEXT = "Failed to save chat settings"

TranscriptListener = Callable[[tuple[Message, ...]], None]


class Credentials(Protocol):
    """What the engine reads from the session: nothing else."""

    @property
    def token(self) -> Optional[str]: ...

    @property
    def is_authenticated(self) -> bool: ...


def _reply_text(data: Any) -> str:
    if isinstance(data, dict):
        for key in ("bot_response", "response"):
            text = data.get(key)
            if isinstance(text, str) and text:
                return text
    return NO_RESPONSE_TEXT


class ConversationEngine:
    def __init__(self, http: HttpClient, credentials: Credentials, mode: ChatMode = ChatMode.STANDARD):
        self._http = http
        self._credentials = credentials
        self._mode = mode
        self._messages: list[Message] = []
        self._ids = itertools.count(1)
        self._pending = False
        self._settings: dict[str, Any] = {}
        self._last_error: Optional[str] = None
        self._listeners: list[TranscriptListener] = []

    @property
    def messages(self) -> tuple[Message, ...]:
        return tuple(self._messages)

    @property
    def mode(self) -> ChatMode:
        return self._mode

    @property
    def pending(self) -> bool:
        return self._pending

    @property
    def settings(self) -> dict[str, Any]:
        return dict(self._settings)

    @property
    def last_error(self) -> Optional[str]:
        return self._last_error

    def subscribe(self, listener: TranscriptListener) -> Callable[[], None]:
        """Call `listener` with the full transcript after every change. Returns an unsubscribe function."""
        self._listeners.append(listener)

        def remove() -> None:
            try:
                self._listeners.remove(listener)
            except ValueError:
                pass
        return remove

    def _notify(self) -> None:
        snapshot = self.messages
        for listener in list(self._listeners):
            listener(snapshot)

    def _append(self, text: str, sender: Sender, is_error: bool = False) -> Message:
        message = Message(
            id=next(self._ids),
            text=text,
            sender=sender,
            timestamp=datetime.now(timezone.utc),
            is_error=is_error,
        )
        self._messages.append(message)
        self._notify()
        return message

    def _ensure_idle(self, action: str) -> None:
        if self._pending:
            raise ConversationError(f"Cannot {action} while a message is in flight", code="send_in_progress")

    async def send(self, text: str) -> Message:
        """Send `text` and return the resolution message (agent reply or error message).

        Rejected before touching the transcript when the text is blank, another
        send is in flight, or the session is not authenticated.
        """
        if not text or not text.strip():
            raise ValidationError("Message text must not be empty")
        self._ensure_idle("send")
        if not self._credentials.is_authenticated:
            raise AuthError("Sending a message requires an authenticated session")

        # Captured now; a token refreshed mid-flight does not affect this request.
        token = self._credentials.token
        mode = self._mode
        settings = dict(self._settings)

        self._append(text, Sender.USER)
        self._pending = True
        try:
            if mode is ChatMode.EXTENDED:
                data = await self._http.post(
                    CUSTOM_MESSAGE_PATH, {"message": text, **settings}, origin=Origin.LOCAL, token=token,
                )
            else:
                data = await self._http.post(CHAT_MESSAGE_PATH, {"message": text}, origin=Origin.LOCAL, token=token)
        except MedogramError as e:
            logger.error("Chat send failed (%s mode): %s", mode.value, e)
            reply = self._append(SEND_FAILED_TEXT, Sender.AGENT, is_error=True)
        else:
            reply = self._append(_reply_text(data), Sender.AGENT)
        finally:
            self._pending = False
        return reply

    def set_mode(self, mode: ChatMode) -> None:
        self._ensure_idle("switch modes")
        self._mode = ChatMode(mode)

    def clear(self) -> None:
        """Drop every message. Rejected while a send is in flight."""
        self._ensure_idle("clear the conversation")
        if self._messages:
            self._messages = []
            self._notify()

    async def save_settings(self, settings: dict[str, Any]) -> bool:
        """Persist extended-mode settings on the server and use them for later sends.

        Returns False and records `last_error` when the server rejects them.
        """
        if not self._credentials.is_authenticated:
            raise AuthError("Saving chat settings requires an authenticated session")
        snapshot = dict(settings)
        try:
            await self._http.post(
                CUSTOM_SETTINGS_PATH, snapshot, origin=Origin.LOCAL, token=self._credentials.token,
            )
        except MedogramError as e:
            logger.error("Saving chat settings failed: %s", e)
            self._last_error = SETTINGS_FAILED_TEXT
            return False
        self._settings = snapshot
        self._last_error = None
        return True

    def clear_error(self) -> None:
        self._last_error = None

    async def history(self) -> Any:
        """Fetch the server-side chat history. The local transcript is not touched."""
        if not self._credentials.is_authenticated:
            raise AuthError("Fetching chat history requires an authenticated session")
        return await self._http.get(CHAT_HISTORY_PATH, origin=Origin.LOCAL, token=self._credentials.token)
