"""
Session models — authentication state owned by the SessionManager.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, model_validator


class SessionStatus(str, Enum):
    UNAUTHENTICATED = "unauthenticated"
    AUTHENTICATING = "authenticating"
    AUTHENTICATED = "authenticated"
    FAILED = "failed"


class UserProfile(BaseModel):
    phone_number: Optional[str] = None
    name: Optional[str] = None

    model_config = {"extra": "allow"}


class PendingVerification(BaseModel):
    """Phone number waiting for its one-time code."""
    phone_number: str

    model_config = {"frozen": True}


class Session(BaseModel):
    status: SessionStatus = SessionStatus.UNAUTHENTICATED
    token: Optional[str] = None
    user: Optional[UserProfile] = None
    last_error: Optional[str] = None
    pending_verification: Optional[PendingVerification] = None

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def _check_credentials(self) -> "Session":
        has_credentials = self.token is not None and self.user is not None
        if self.status is SessionStatus.AUTHENTICATED and not has_credentials:
            raise ValueError("authenticated session requires both token and user")
        if has_credentials and self.status is not SessionStatus.AUTHENTICATED:
            raise ValueError(f"{self.status.value} session cannot hold both token and user")
        if self.status is SessionStatus.UNAUTHENTICATED and (self.token is not None or self.user is not None):
            raise ValueError("unauthenticated session cannot hold a token or user")
        return self

    @property
    def is_authenticated(self) -> bool:
        return self.status is SessionStatus.AUTHENTICATED
