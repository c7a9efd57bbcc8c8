"""
Medogram error types.

Every failure surfaced by the SDK is a MedogramError carrying a short machine
code, a human-readable message, and optional details.
"""

from typing import Any, Optional


class MedogramError(Exception):
    def __init__(self, code: str, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.code = code
        self.details = details


class ValidationError(MedogramError):
    """Caller-supplied input rejected before any network call."""

    def __init__(self, message: str, code: str = "validation_error"):
        super().__init__(code, message)


class AuthError(MedogramError):
    def __init__(self, message: str, code: str = "auth_error"):
        super().__init__(code, message)


class TimeoutError(MedogramError):
    def __init__(self, message: str):
        super().__init__("timeout", message)


class NetworkError(MedogramError):
    """Transport-level failure, no response received."""

    def __init__(self, message: str):
        super().__init__("network_error", message)


class HttpError(MedogramError):
    """Non-2xx response. `payload` is the parsed error body, if any."""

    def __init__(self, status: int, payload: Any = None, message: Optional[str] = None):
        super().__init__("http_error", message or f"HTTP {status}", {"status": status, "payload": payload})
        self.status = status
        self.payload = payload


class SessionError(MedogramError):
    def __init__(self, message: str, code: str = "session_error", details: Optional[dict[str, Any]] = None):
        super().__init__(code, message, details)


class ConversationError(MedogramError):
    def __init__(self, message: str, code: str = "conversation_error"):
        super().__init__(code, message)


def server_message(error: Exception, fallback: str) -> str:
    """Pick the message the backend sent with a failed request, else `fallback`."""
    if isinstance(error, HttpError) and isinstance(error.payload, dict):
        for key in ("message", "detail"):
            value = error.payload.get(key)
            if isinstance(value, str) and value:
                return value
    return fallback
