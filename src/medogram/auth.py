"""
Session manager — phone number + one-time code login, credential persistence,
and teardown on unauthorized responses.

Flow:
  1. register(phone)      -> code sent, verification pending
  2. verify(phone, code)  -> token persisted, session authenticated
"""

import logging
from contextlib import contextmanager
from typing import Any, Callable, Iterator, Optional

from pydantic import ValidationError as ModelValidationError

from medogram import state
from medogram.errors import AuthError, MedogramError, SessionError, server_message
from medogram.models.session import PendingVerification, Session, SessionStatus, UserProfile
from medogram.storage import TokenStore
from medogram.transport.http import HttpClient

logger = logging.getLogger(__name__)

REGISTER_PATH = "/api/register/"
VERIFY_PATH = "/api/verify/"
PROFILE_PATH = "/api/profile/"

REGISTER_FAILED = "Failed to send the verification code"
VERIFY_FAILED = "The verification code is invalid"
PROFILE_UPDATE_FAILED = "Failed to update the profile"

SessionListener = Callable[[Session], None]


def _parse_profile(data: dict[str, Any]) -> UserProfile:
    try:
        return UserProfile.model_validate(data)
    except ModelValidationError as e:
        raise AuthError(
            f"Malformed profile in server response: {e.error_count()} invalid field(s)",
            code="malformed_response",
        ) from e


class SessionManager:
    def __init__(
        self,
        http: HttpClient,
        store: TokenStore,
        on_login_required: Optional[Callable[[], None]] = None,
    ):
        self._http = http
        self._store = store
        self._on_login_required = on_login_required
        self._session = Session()
        self._busy = False
        self._listeners: list[SessionListener] = []

    # -- read accessors -------------------------------------------------

    @property
    def session(self) -> Session:
        return self._session

    @property
    def status(self) -> SessionStatus:
        return self._session.status

    @property
    def token(self) -> Optional[str]:
        return self._session.token

    @property
    def user(self) -> Optional[UserProfile]:
        return self._session.user

    @property
    def last_error(self) -> Optional[str]:
        return self._session.last_error

    @property
    def pending_verification(self) -> Optional[PendingVerification]:
        return self._session.pending_verification

    @property
    def is_authenticated(self) -> bool:
        return self._session.is_authenticated

    @property
    def busy(self) -> bool:
        return self._busy

    def subscribe(self, listener: SessionListener) -> Callable[[], None]:
        """Call `listener` with every new session snapshot. Returns an unsubscribe function."""
        self._listeners.append(listener)

        def remove() -> None:
            try:
                self._listeners.remove(listener)
            except ValueError:
                pass
        return remove

    def set_login_required_handler(self, handler: Optional[Callable[[], None]]) -> None:
        self._on_login_required = handler

    # -- internals ------------------------------------------------------

    def _apply(self, session: Session) -> None:
        if session == self._session:
            return
        self._session = session
        for listener in list(self._listeners):
            listener(session)

    @contextmanager
    def _exclusive(self, operation: str) -> Iterator[None]:
        if self._busy:
            raise SessionError(f"Cannot {operation}: another authentication operation is in progress", code="busy")
        self._busy = True
        try:
            yield
        finally:
            self._busy = False

    def _fail(self, error: MedogramError, fallback: str) -> None:
        message = server_message(error, fallback)
        logger.info("Authentication operation failed: %s", error)
        if self._session.status is SessionStatus.AUTHENTICATING:
            self._apply(state.failed(self._session, message))
        else:
            # Authenticated, or already torn down by a 401.
            self._apply(state.error_recorded(self._session, message))

    # -- operations -----------------------------------------------------

    async def initialize(self) -> Session:
        """Restore the session from the persisted credential, if there is one."""
        token = self._store.get()
        if not token:
            return self._session
        if self._session.is_authenticated and self._session.token == token:
            return self._session
        with self._exclusive("initialize"):
            self._apply(state.restoring(self._session, token))
            try:
                profile = await self._http.get(PROFILE_PATH)
                user = _parse_profile(profile if isinstance(profile, dict) else {})
            except MedogramError as e:
                logger.info("Stored credential rejected, clearing it: %s", e)
                self._store.clear()
                self._apply(state.reset(self._session))
                return self._session
            self._apply(state.authenticated(self._session, token, user))
        logger.info("Session restored for %s", user.phone_number)
        return self._session

    async def register(self, phone_number: str) -> Any:
        """Request a one-time code for `phone_number` (already validated by the caller)."""
        with self._exclusive("register"):
            self._apply(state.begin(self._session))
            try:
                result = await self._http.post(REGISTER_PATH, {"phone_number": phone_number})
            except MedogramError as e:
                self._fail(e, REGISTER_FAILED)
                raise
            self._apply(state.code_sent(self._session, phone_number))
        logger.info("Verification code requested for %s", phone_number)
        return result

    async def verify(self, phone_number: str, code: str) -> Session:
        """Exchange the one-time code for an access token."""
        with self._exclusive("verify"):
            self._apply(state.begin(self._session))
            try:
                result = await self._http.post(VERIFY_PATH, {"phone_number": phone_number, "code": code})
                token = result.get("access") if isinstance(result, dict) else None
                if not isinstance(token, str) or not token:
                    raise AuthError("Verification response did not include an access token")
                user = _parse_profile(result.get("user") or {"phone_number": phone_number})
            except MedogramError as e:
                self._fail(e, VERIFY_FAILED)
                raise
            self._apply(state.authenticated(self._session, token, user))
            self._store.set(token)
        logger.info("Logged in as %s", user.phone_number)
        return self._session

    async def update_profile(self, data: dict[str, Any]) -> UserProfile:
        if not self.is_authenticated:
            raise AuthError("Updating the profile requires an authenticated session")
        with self._exclusive("update the profile"):
            try:
                result = await self._http.put(PROFILE_PATH, data)
                current = self._session.user.model_dump() if self._session.user else {}
                merged = _parse_profile({**current, **(result if isinstance(result, dict) else {})})
            except MedogramError as e:
                self._fail(e, PROFILE_UPDATE_FAILED)
                raise
            self._apply(state.profile_updated(self._session, merged))
        return merged

    def cancel_verification(self) -> None:
        self._apply(state.verification_cancelled(self._session))

    def clear_error(self) -> None:
        self._apply(state.error_cleared(self._session))

    def logout(self) -> None:
        self._store.clear()
        self._apply(state.reset(self._session))
        logger.info("Logged out")

    def handle_unauthorized(self) -> None:
        """Unauthorized signal from the HTTP layer: tear down and ask for a fresh login."""
        logger.warning("Credential rejected by the server, logging out")
        self.logout()
        if self._on_login_required is not None:
            self._on_login_required()
