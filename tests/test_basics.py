"""Basic unit tests for the medogram package."""

from medogram import (
    AsyncMedogram,
    Medogram,
    MedogramError,
    ValidationError,
    AuthError,
    TimeoutError,
    NetworkError,
    HttpError,
    SessionError,
    ConversationError,
    ChatMode,
    SessionStatus,
    __version__,
)
from medogram.errors import server_message


def test_version():
    assert __version__ == "0.1.0"


def test_public_exports():
    assert Medogram is not None
    assert AsyncMedogram is not None


def test_error_hierarchy():
    for cls in (ValidationError, AuthError, TimeoutError, NetworkError, HttpError, SessionError, ConversationError):
        assert issubclass(cls, MedogramError)


def test_error_attributes():
    err = MedogramError(code="test_code", message="something broke")
    assert err.code == "test_code"
    assert str(err) == "something broke"
    assert err.details is None

    err_with_details = SessionError("bad transition", details={"status": "failed"})
    assert err_with_details.code == "session_error"
    assert err_with_details.details == {"status": "failed"}

    http_err = HttpError(400, {"message": "Invalid code"})
    assert http_err.status == 400
    assert http_err.details == {"status": 400, "payload": {"message": "Invalid code"}}


def test_server_message():
    assert server_message(HttpError(400, {"message": "Invalid code"}), "fallback") == "Invalid code"
    assert server_message(HttpError(401, {"detail": "Token expired"}), "fallback") == "Token expired"
    assert server_message(HttpError(500, "<html>"), "fallback") == "fallback"
    assert server_message(NetworkError("down"), "fallback") == "fallback"


def test_enum_values():
    assert ChatMode.STANDARD == "standard"
    assert ChatMode.EXTENDED == "extended"
    assert SessionStatus.AUTHENTICATED == "authenticated"
