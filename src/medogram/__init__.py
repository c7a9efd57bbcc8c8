"""
medogram — Medogram SDK for Python.

Phone-number login, session persistence, and medical chat against the
Medogram backends.
"""

from medogram.client import Medogram, AsyncMedogram
from medogram.auth import SessionManager
from medogram.chat import ConversationEngine
from medogram.config import ClientConfig
from medogram.errors import (
    MedogramError,
    ValidationError,
    AuthError,
    TimeoutError,
    NetworkError,
    HttpError,
    SessionError,
    ConversationError,
)
from medogram.models.chat import ChatMode, Message, Sender
from medogram.models.session import Session, SessionStatus, UserProfile
from medogram.storage import FileTokenStore, MemoryTokenStore
from medogram.transport.http import Origin

__version__ = "0.1.0"
__all__ = [
    "Medogram",
    "AsyncMedogram",
    "SessionManager",
    "ConversationEngine",
    "ClientConfig",
    "MedogramError",
    "ValidationError",
    "AuthError",
    "TimeoutError",
    "NetworkError",
    "HttpError",
    "SessionError",
    "ConversationError",
    "ChatMode",
    "Message",
    "Sender",
    "Session",
    "SessionStatus",
    "UserProfile",
    "FileTokenStore",
    "MemoryTokenStore",
    "Origin",
]
