# Overview: Bearer-token sessions: issue, check, revoke and purge.

"""
Sessions

The client holds a random 64-char hex token; the database keeps only its
SHA-256 digest. A session ends when it passes expires_at (SESSION_TTL_HOURS
after login), when it is revoked, or when its owner is deactivated.
"""

import hashlib
import secrets
from datetime import timedelta

from flask import current_app

from ..extensions import db
from ..models import SessionToken, User
from bizsight.time_utils import utcnow


DEFAULT_SESSION_TTL_HOURS = 168


def generate_token() -> str:
    return secrets.token_hex(32)


def hash_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def _lifetime() -> timedelta:
    return timedelta(hours=int(current_app.config.get("SESSION_TTL_HOURS", DEFAULT_SESSION_TTL_HOURS)))


def _live_session(token: str) -> SessionToken | None:
    return (
        db.session.query(SessionToken)
        .filter(SessionToken.token_hash == hash_token(token), SessionToken.is_revoked.is_(False))
        .one_or_none()
    )


def _mark_revoked(session: SessionToken, reason: str, when) -> None:
    session.is_revoked = True
    session.revoked_at = when
    session.revoked_reason = reason


def create_session(user_id: int, user_agent: str | None = None, ip_address: str | None = None) -> tuple[SessionToken, str]:
    """
    Open a session for user_id.

    The returned token is the only copy of the plaintext; hand it to the client.
    """
    if db.session.get(User, user_id) is None:
        raise ValueError("User not found")

    token = generate_token()
    issued = utcnow()
    session = SessionToken(
        user_id=user_id,
        token_hash=hash_token(token),
        created_at=issued,
        last_used_at=issued,
        expires_at=issued + _lifetime(),
        user_agent=user_agent,
        ip_address=ip_address,
        is_revoked=False,
    )
    db.session.add(session)
    db.session.commit()
    return session, token


def validate_session(token: str) -> User | None:
    """Resolve a bearer token to its active user, or None."""
    session = _live_session(token)
    if session is None:
        return None

    now = utcnow()
    if session.expires_at < now:
        return None

    owner = session.user
    if owner is None or not owner.is_active:
        _mark_revoked(session, "User account deactivated", now)
        db.session.commit()
        return None

    session.last_used_at = now
    db.session.commit()
    return owner


def revoke_session(token: str, reason: str = "User logout") -> bool:
    session = _live_session(token)
    if session is None:
        return False
    _mark_revoked(session, reason, utcnow())
    db.session.commit()
    return True


def revoke_all_user_sessions(user_id: int, reason: str = "Revoke all sessions", keep_token: str | None = None) -> int:
    """End every open session of user_id except the one holding keep_token."""
    query = db.session.query(SessionToken).filter(
        SessionToken.user_id == user_id,
        SessionToken.is_revoked.is_(False),
    )
    if keep_token:
        query = query.filter(SessionToken.token_hash != hash_token(keep_token))

    now = utcnow()
    sessions = query.all()
    for session in sessions:
        _mark_revoked(session, reason, now)
    db.session.commit()
    return len(sessions)


def cleanup_expired_sessions(*, retention_days: int = 30) -> int:
    """Purge dead sessions (expired or revoked) created before the retention window."""
    now = utcnow()
    dead = db.or_(SessionToken.expires_at < now, SessionToken.is_revoked.is_(True))
    deleted = (
        db.session.query(SessionToken)
        .filter(dead, SessionToken.created_at < now - timedelta(days=retention_days))
        .delete(synchronize_session=False)
    )
    db.session.commit()
    return deleted
