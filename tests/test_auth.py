"""Session manager: register/verify flow, persistence, teardown, state machine."""

import asyncio

import httpx
import pytest
from pydantic import ValidationError as ModelValidationError

from conftest import PRIMARY, body
from medogram import state
from medogram.auth import PROFILE_UPDATE_FAILED, REGISTER_FAILED, VERIFY_FAILED
from medogram.errors import AuthError, HttpError, SessionError
from medogram.models.session import Session, SessionStatus, UserProfile
from medogram.storage import MemoryTokenStore

PHONE = "09123456789"
USER = {"phone_number": PHONE}


def route_login(backend, token="tok1", user=None):
    backend.route(PRIMARY, "POST", "/api/register/", json={"message": "code sent"})
    backend.route(PRIMARY, "POST", "/api/verify/", json={"access": token, "user": user or USER})


class TestRegisterVerify:
    @pytest.mark.asyncio
    async def test_register_then_verify(self, backend, store, make_client):
        route_login(backend)
        async with make_client() as client:
            await client.auth.register(PHONE)
            assert client.auth.status is SessionStatus.UNAUTHENTICATED
            assert client.auth.pending_verification.phone_number == PHONE
            assert client.auth.token is None

            session = await client.auth.verify(PHONE, "123456")
            assert session.status is SessionStatus.AUTHENTICATED
            assert session.token == "tok1"
            assert session.user.phone_number == PHONE
            assert session.pending_verification is None
            assert store.get() == "tok1"

        assert body(backend.calls("POST", "/api/register/")[0]) == {"phone_number": PHONE}
        assert body(backend.calls("POST", "/api/verify/")[0]) == {"phone_number": PHONE, "code": "123456"}

    @pytest.mark.asyncio
    async def test_register_failure_uses_server_message(self, backend, make_client):
        backend.route(PRIMARY, "POST", "/api/register/", status=400, json={"message": "Phone number is blocked"})
        async with make_client() as client:
            with pytest.raises(HttpError):
                await client.auth.register(PHONE)
            assert client.auth.status is SessionStatus.FAILED
            assert client.auth.last_error == "Phone number is blocked"
            assert client.auth.pending_verification is None

    @pytest.mark.asyncio
    async def test_register_failure_generic_message(self, backend, make_client):
        backend.route(PRIMARY, "POST", "/api/register/", status=500)
        async with make_client() as client:
            with pytest.raises(HttpError):
                await client.auth.register(PHONE)
            assert client.auth.last_error == REGISTER_FAILED

    @pytest.mark.asyncio
    async def test_failed_verify_keeps_pending_for_retry(self, backend, store, make_client):
        route_login(backend)
        async with make_client() as client:
            await client.auth.register(PHONE)
            backend.route(PRIMARY, "POST", "/api/verify/", status=400, json={"message": "Invalid code"})
            with pytest.raises(HttpError):
                await client.auth.verify(PHONE, "000000")
            assert client.auth.status is SessionStatus.FAILED
            assert client.auth.last_error == "Invalid code"
            assert client.auth.pending_verification.phone_number == PHONE
            assert store.get() is None

            backend.route(PRIMARY, "POST", "/api/verify/", json={"access": "tok1", "user": USER})
            await client.auth.verify(PHONE, "123456")
            assert client.auth.is_authenticated
            assert client.auth.last_error is None
        assert len(backend.calls("POST", "/api/register/")) == 1

    @pytest.mark.asyncio
    async def test_verify_without_access_token_fails(self, backend, store, make_client):
        backend.route(PRIMARY, "POST", "/api/verify/", json={"user": USER})
        async with make_client() as client:
            with pytest.raises(AuthError):
                await client.auth.verify(PHONE, "123456")
            assert client.auth.status is SessionStatus.FAILED
            assert store.get() is None

    @pytest.mark.asyncio
    @pytest.mark.parametrize("payload", [
        {"access": "tok1", "user": {"phone_number": 9123456789}},
        {"access": 12345, "user": USER},
        ["tok1"],
    ])
    async def test_malformed_verify_response_fails(self, backend, store, make_client, payload):
        backend.route(PRIMARY, "POST", "/api/verify/", json=payload)
        async with make_client() as client:
            with pytest.raises(AuthError):
                await client.auth.verify(PHONE, "123456")
            assert client.auth.status is SessionStatus.FAILED
            assert client.auth.token is None
            assert client.auth.last_error == VERIFY_FAILED
            assert not client.auth.busy
        assert store.get() is None

    @pytest.mark.asyncio
    async def test_cancel_verification(self, backend, make_client):
        route_login(backend)
        async with make_client() as client:
            await client.auth.register(PHONE)
            client.auth.cancel_verification()
            assert client.auth.pending_verification is None
            assert client.auth.status is SessionStatus.UNAUTHENTICATED

    @pytest.mark.asyncio
    async def test_register_while_authenticated_is_invalid(self, backend, make_client):
        route_login(backend)
        async with make_client() as client:
            await client.auth.verify(PHONE, "123456")
            with pytest.raises(SessionError) as exc:
                await client.auth.register(PHONE)
            assert exc.value.code == "invalid_transition"
            assert not client.auth.busy
            assert client.auth.is_authenticated
        assert backend.calls("POST", "/api/register/") == []


class TestInitialize:
    @pytest.mark.asyncio
    async def test_reload_restores_same_user(self, backend, store, make_client):
        route_login(backend, user={"phone_number": PHONE, "name": "Sara"})
        backend.route(PRIMARY, "GET", "/api/profile/", json={"phone_number": PHONE, "name": "Sara"})
        async with make_client() as first:
            await first.auth.verify(PHONE, "123456")
            original_user = first.auth.user

        async with make_client() as reloaded:
            session = await reloaded.initialize()
            assert session.status is SessionStatus.AUTHENTICATED
            assert session.token == "tok1"
            assert session.user == original_user

        assert backend.calls("GET", "/api/profile/")[0].headers["Authorization"] == "Bearer tok1"

    @pytest.mark.asyncio
    async def test_no_persisted_credential_is_noop(self, backend, make_client):
        async with make_client() as client:
            session = await client.initialize()
            assert session.status is SessionStatus.UNAUTHENTICATED
        assert backend.requests == []

    @pytest.mark.asyncio
    async def test_expired_credential_is_cleared(self, backend, make_client):
        backend.route(PRIMARY, "GET", "/api/profile/", status=401, json={"detail": "Token expired"})
        store = MemoryTokenStore("stale")
        prompts = []
        async with make_client(token_store=store, on_login_required=lambda: prompts.append(1)) as client:
            session = await client.initialize()
            assert session.status is SessionStatus.UNAUTHENTICATED
            assert session.token is None
            assert session.user is None
        assert store.get() is None
        assert prompts == [1]

    @pytest.mark.asyncio
    async def test_unreachable_backend_clears_credential(self, backend, make_client):
        def refuse(request):
            raise httpx.ConnectError("connection refused", request=request)

        backend.route(PRIMARY, "GET", "/api/profile/", handler=refuse)
        store = MemoryTokenStore("tok1")
        async with make_client(token_store=store) as client:
            session = await client.initialize()
            assert session.status is SessionStatus.UNAUTHENTICATED
        assert store.get() is None

    @pytest.mark.asyncio
    async def test_malformed_profile_clears_credential(self, backend, make_client):
        backend.route(PRIMARY, "GET", "/api/profile/", json={"phone_number": 9123456789})
        store = MemoryTokenStore("tok1")
        async with make_client(token_store=store) as client:
            session = await client.initialize()
            assert session.status is SessionStatus.UNAUTHENTICATED
            assert session.token is None
            assert not client.auth.busy
        assert store.get() is None

    @pytest.mark.asyncio
    async def test_initialize_again_when_restored_is_noop(self, backend, make_client):
        backend.route(PRIMARY, "GET", "/api/profile/", json=USER)
        store = MemoryTokenStore("tok1")
        async with make_client(token_store=store) as client:
            first = await client.initialize()
            second = await client.initialize()
            assert second is first
            assert second.status is SessionStatus.AUTHENTICATED
        assert len(backend.calls("GET", "/api/profile/")) == 1
        assert store.get() == "tok1"


class TestProfile:
    @pytest.mark.asyncio
    async def test_update_merges_returned_profile(self, backend, make_client):
        route_login(backend)
        backend.route(PRIMARY, "PUT", "/api/profile/", json={"name": "Sara"})
        async with make_client() as client:
            await client.auth.verify(PHONE, "123456")
            user = await client.auth.update_profile({"name": "Sara"})
            assert user.name == "Sara"
            assert user.phone_number == PHONE
            assert client.auth.user == user
        assert body(backend.calls("PUT", "/api/profile/")[0]) == {"name": "Sara"}

    @pytest.mark.asyncio
    async def test_failed_update_keeps_user_and_login(self, backend, make_client):
        route_login(backend)
        backend.route(PRIMARY, "PUT", "/api/profile/", status=500)
        async with make_client() as client:
            await client.auth.verify(PHONE, "123456")
            before = client.auth.user
            with pytest.raises(HttpError):
                await client.auth.update_profile({"name": "Sara"})
            assert client.auth.user == before
            assert client.auth.status is SessionStatus.AUTHENTICATED
            assert client.auth.token == "tok1"
            assert client.auth.last_error == PROFILE_UPDATE_FAILED

    @pytest.mark.asyncio
    async def test_malformed_update_response_keeps_user(self, backend, make_client):
        route_login(backend)
        backend.route(PRIMARY, "PUT", "/api/profile/", json={"name": ["Sara"]})
        async with make_client() as client:
            await client.auth.verify(PHONE, "123456")
            before = client.auth.user
            with pytest.raises(AuthError):
                await client.auth.update_profile({"name": "Sara"})
            assert client.auth.user == before
            assert client.auth.status is SessionStatus.AUTHENTICATED
            assert client.auth.last_error == PROFILE_UPDATE_FAILED
            assert not client.auth.busy

    @pytest.mark.asyncio
    async def test_update_requires_login(self, backend, make_client):
        async with make_client() as client:
            with pytest.raises(AuthError):
                await client.auth.update_profile({"name": "Sara"})
        assert backend.requests == []

    @pytest.mark.asyncio
    async def test_unauthorized_update_tears_down_session(self, backend, store, make_client):
        route_login(backend)
        backend.route(PRIMARY, "PUT", "/api/profile/", status=401, json={"detail": "Token expired"})
        prompts = []
        async with make_client(on_login_required=lambda: prompts.append(1)) as client:
            await client.auth.verify(PHONE, "123456")
            with pytest.raises(HttpError):
                await client.auth.update_profile({"name": "Sara"})
            assert client.auth.status is SessionStatus.UNAUTHENTICATED
            assert client.auth.token is None
            assert client.auth.last_error == "Token expired"
        assert store.get() is None
        assert prompts == [1]


class TestLogout:
    @pytest.mark.asyncio
    async def test_logout_is_idempotent(self, backend, store, make_client):
        route_login(backend)
        async with make_client() as client:
            await client.auth.verify(PHONE, "123456")
            client.auth.logout()
            assert client.auth.session == Session()
            client.auth.logout()
            assert client.auth.session == Session()
        assert store.get() is None

    @pytest.mark.asyncio
    async def test_clear_error_keeps_status(self, backend, make_client):
        backend.route(PRIMARY, "POST", "/api/register/", status=500)
        async with make_client() as client:
            with pytest.raises(HttpError):
                await client.auth.register(PHONE)
            client.auth.clear_error()
            assert client.auth.last_error is None
            assert client.auth.status is SessionStatus.FAILED


class TestConcurrency:
    @pytest.mark.asyncio
    async def test_second_auth_operation_rejected_while_busy(self, backend, make_client):
        gate = asyncio.Event()

        async def slow_register(request):
            await gate.wait()
            return httpx.Response(200, json={})

        backend.route(PRIMARY, "POST", "/api/register/", handler=slow_register)
        async with make_client() as client:
            first = asyncio.create_task(client.auth.register(PHONE))
            await asyncio.sleep(0)
            assert client.auth.busy
            assert client.auth.status is SessionStatus.AUTHENTICATING
            with pytest.raises(SessionError) as exc:
                await client.auth.verify(PHONE, "123456")
            assert exc.value.code == "busy"
            gate.set()
            await first
            assert not client.auth.busy
        assert backend.calls("POST", "/api/verify/") == []


class TestObservers:
    @pytest.mark.asyncio
    async def test_subscribers_see_each_transition(self, backend, make_client):
        route_login(backend)
        seen = []
        async with make_client() as client:
            unsubscribe = client.auth.subscribe(lambda s: seen.append(s.status))
            await client.auth.register(PHONE)
            await client.auth.verify(PHONE, "123456")
            unsubscribe()
            client.auth.logout()
        assert seen == [
            SessionStatus.AUTHENTICATING,
            SessionStatus.UNAUTHENTICATED,
            SessionStatus.AUTHENTICATING,
            SessionStatus.AUTHENTICATED,
        ]


class TestStateMachine:
    def test_invalid_transition_is_typed(self):
        with pytest.raises(SessionError) as exc:
            state.code_sent(Session(), PHONE)
        assert exc.value.code == "invalid_transition"
        assert exc.value.details == {"transition": "record a sent code", "status": "unauthenticated"}

    def test_profile_update_requires_authenticated(self):
        with pytest.raises(SessionError):
            state.profile_updated(Session(), UserProfile(phone_number=PHONE))

    def test_reset_from_any_state(self):
        authed = state.authenticated(state.begin(Session()), "tok1", UserProfile(phone_number=PHONE))
        assert state.reset(authed) == Session()

    def test_transitions_do_not_mutate_input(self):
        start = Session()
        state.begin(start)
        assert start.status is SessionStatus.UNAUTHENTICATED

    def test_authenticated_requires_credentials(self):
        with pytest.raises(ModelValidationError):
            Session(status=SessionStatus.AUTHENTICATED, token="tok1")

    def test_unauthenticated_cannot_hold_token(self):
        with pytest.raises(ModelValidationError):
            Session(status=SessionStatus.UNAUTHENTICATED, token="tok1")

    def test_failure_records_message(self):
        failed = state.failed(state.begin(Session()), "boom")
        assert failed.status is SessionStatus.FAILED
        assert failed.last_error == "boom"
