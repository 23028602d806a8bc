# Overview: Bearer session tokens.

"""
Session tokens are 32 random bytes handed to the client as hex; only the
SHA-256 digest is stored. Sessions expire after SESSION_ABSOLUTE_TIMEOUT
and are revoked after SESSION_IDLE_TIMEOUT without activity.
"""

import secrets
import hashlib
from dataclasses import dataclass
from datetime import timedelta

from ..extensions import db
from ..models import SessionToken, User
from shopdesk.time_utils import utcnow


SESSION_ABSOLUTE_TIMEOUT = timedelta(hours=24)
SESSION_IDLE_TIMEOUT = timedelta(hours=2)


@dataclass
class SessionContext:
    """Resolved identity for one request; routes read it from flask.g."""
    user: User
    session: SessionToken

    @property
    def role(self) -> str:
        return self.user.role


def generate_token() -> str:
    return secrets.token_hex(32)


def hash_token(token: str) -> str:
    return hashlib.sha256(token.encode('utf-8')).hexdigest()


def create_session(
    user_id: int,
    user_agent: str | None = None,
    ip_address: str | None = None
) -> tuple[SessionToken, str]:
    """
    Create a session for the user.

    Returns (session_record, plaintext_token). Raises ValueError for
    unknown or inactive users.
    """
    user = db.session.get(User, user_id)
    if not user or not user.is_active:
        raise ValueError("User not found or inactive")

    plaintext_token = generate_token()
    now = utcnow()

    session = SessionToken(
        user_id=user_id,
        token_hash=hash_token(plaintext_token),
        created_at=now,
        last_used_at=now,
        expires_at=now + SESSION_ABSOLUTE_TIMEOUT,
        user_agent=(user_agent or "")[:255] or None,
        ip_address=ip_address,
        is_revoked=False,
    )

    db.session.add(session)
    db.session.commit()

    return session, plaintext_token


def validate_session(token: str) -> SessionContext | None:
    """
    Return the SessionContext for a live token, or None if the token is
    unknown, revoked, expired, idle too long, or belongs to a deactivated user.
    """
    now = utcnow()

    session = db.session.query(SessionToken).filter_by(
        token_hash=hash_token(token),
        is_revoked=False
    ).first()

    if not session:
        return None

    if session.expires_at < now:
        return None

    if now - session.last_used_at > SESSION_IDLE_TIMEOUT:
        _revoke(session, now)
        db.session.commit()
        return None

    user = session.user
    if not user or not user.is_active:
        _revoke(session, now)
        db.session.commit()
        return None

    session.last_used_at = now
    db.session.commit()

    return SessionContext(user=user, session=session)


def _revoke(session: SessionToken, now) -> None:
    session.is_revoked = True
    session.revoked_at = now


def revoke_session(token: str) -> bool:
    """Revoke one token. Returns False if it was not found or already revoked."""
    session = db.session.query(SessionToken).filter_by(
        token_hash=hash_token(token),
        is_revoked=False
    ).first()

    if not session:
        return False

    _revoke(session, utcnow())
    db.session.commit()
    return True


def revoke_all_user_sessions(user_id: int) -> int:
    """Revoke every live session of a user (role change, deactivation)."""
    now = utcnow()
    sessions = db.session.query(SessionToken).filter_by(
        user_id=user_id,
        is_revoked=False
    ).all()

    for session in sessions:
        _revoke(session, now)

    db.session.commit()
    return len(sessions)
