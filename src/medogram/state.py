"""
Session state machine.

Closed set of transitions. Each one takes the current Session and returns the
next one, or raises SessionError(code="invalid_transition") when the current
status does not allow it. Sessions are immutable; nothing here mutates its input.

    UNAUTHENTICATED --begin--> AUTHENTICATING --code_sent--> UNAUTHENTICATED (+pending)
    UNAUTHENTICATED --restoring--> AUTHENTICATING --authenticated--> AUTHENTICATED
    AUTHENTICATING --failed--> FAILED --begin--> AUTHENTICATING
    AUTHENTICATED --profile_updated--> AUTHENTICATED
    * --reset--> UNAUTHENTICATED
"""

from typing import Any

from medogram.errors import SessionError
from medogram.models.session import PendingVerification, Session, SessionStatus, UserProfile

_IDLE = (SessionStatus.UNAUTHENTICATED, SessionStatus.FAILED)


def _require(session: Session, transition: str, *allowed: SessionStatus) -> None:
    if session.status not in allowed:
        raise SessionError(
            f"Cannot {transition} while {session.status.value}",
            code="invalid_transition",
            details={"transition": transition, "status": session.status.value},
        )


def _evolve(session: Session, **changes: Any) -> Session:
    # Rebuilt through validation so the credential invariants are re-checked.
    return Session.model_validate({**session.model_dump(), **changes})


def begin(session: Session) -> Session:
    """Start a register/verify round-trip."""
    _require(session, "begin authentication", *_IDLE)
    return _evolve(session, status=SessionStatus.AUTHENTICATING, last_error=None)


def restoring(session: Session, token: str) -> Session:
    """Start validating a persisted credential."""
    _require(session, "restore a credential", *_IDLE)
    return _evolve(session, status=SessionStatus.AUTHENTICATING, token=token, user=None, last_error=None)


def code_sent(session: Session, phone_number: str) -> Session:
    _require(session, "record a sent code", SessionStatus.AUTHENTICATING)
    return _evolve(
        session,
        status=SessionStatus.UNAUTHENTICATED,
        token=None,
        user=None,
        pending_verification=PendingVerification(phone_number=phone_number),
    )


def authenticated(session: Session, token: str, user: UserProfile) -> Session:
    _require(session, "authenticate", SessionStatus.AUTHENTICATING)
    return _evolve(
        session,
        status=SessionStatus.AUTHENTICATED,
        token=token,
        user=user,
        last_error=None,
        pending_verification=None,
    )


def failed(session: Session, message: str) -> Session:
    """Pending verification survives so the code can be retried."""
    _require(session, "fail authentication", SessionStatus.AUTHENTICATING)
    return _evolve(session, status=SessionStatus.FAILED, token=None, user=None, last_error=message)


def profile_updated(session: Session, user: UserProfile) -> Session:
    _require(session, "update the profile", SessionStatus.AUTHENTICATED)
    return _evolve(session, user=user, last_error=None)


def error_recorded(session: Session, message: str) -> Session:
    return _evolve(session, last_error=message)


def error_cleared(session: Session) -> Session:
    return _evolve(session, last_error=None)


def verification_cancelled(session: Session) -> Session:
    _require(session, "cancel verification", *_IDLE)
    return _evolve(session, status=SessionStatus.UNAUTHENTICATED, pending_verification=None)


def reset(session: Session) -> Session:
    return Session()
