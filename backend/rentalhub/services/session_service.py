# Overview: Service-layer operations for session; encapsulates business logic and database work.

"""
Session Management Service

WHY: Every request must resolve to exactly one authenticated identity, and
a stolen cookie must be useless from another client.

STATES: absent -> active -> (expired | compromised) -> absent
- create_session: absent -> active. Any token the client already held is
  revoked first so a pre-planted identifier can never be adopted.
- check_session: active stays active while the client keeps using it. An
  idle gap longer than the timeout expires it; a different client IP or
  user agent marks it compromised. Both are revoked on the spot: there is
  no resurrection.
- destroy_session: any state -> absent (logout).

The check is a read. Sliding the activity window is the explicit
SessionCheck.touch() so callers and tests can keep the two apart;
resolve_session() and is_authenticated() do both.

SECURITY FEATURES:
- Cryptographically secure random tokens (32 bytes)
- Tokens hashed with SHA-256 before storage
- Sliding inactivity timeout (default 1800 seconds)
- Client fingerprint (IP + user agent) binding, fail-closed
"""

from __future__ import annotations

import hashlib
import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta

from flask import current_app

from ..extensions import db
from ..models import SessionToken, User
from ..permissions import Role
from .authorization_service import Identity
from .concurrency import run_with_retry
from rentalhub.time_utils import utcnow, to_utc_z


logger = logging.getLogger(__name__)

DEFAULT_SESSION_TIMEOUT_SECONDS = 1800

STATE_ABSENT = "absent"
STATE_ACTIVE = "active"
STATE_EXPIRED = "expired"
STATE_COMPROMISED = "compromised"


@dataclass
class SessionContext:
    """Identity and client binding captured when the session was created."""
    user_id: int
    username: str
    email: str
    role: str
    vendor_id: int | None
    ip_address: str
    user_agent: str
    created_at: datetime
    last_activity_at: datetime

    def has_role(self, role: str) -> bool:
        return self.role == role

    @property
    def is_customer(self) -> bool:
        return self.role == Role.CUSTOMER

    @property
    def is_vendor(self) -> bool:
        return self.role == Role.VENDOR

    @property
    def is_administrator(self) -> bool:
        return self.role == Role.ADMINISTRATOR

    def to_identity(self) -> Identity:
        return Identity(
            user_id=self.user_id,
            role=self.role,
            username=self.username,
            vendor_id=self.vendor_id,
        )

    def to_dict(self) -> dict:
        return {
            "user_id": self.user_id,
            "username": self.username,
            "email": self.email,
            "role": self.role,
            "vendor_id": self.vendor_id,
            "last_activity_at": to_utc_z(self.last_activity_at),
        }


@dataclass
class SessionCheck:
    """
    Outcome of check_session.

    The identity reads return None/False unless the state is active.
    """
    state: str
    context: SessionContext | None = None
    session: SessionToken | None = None

    @property
    def authenticated(self) -> bool:
        return self.state == STATE_ACTIVE and self.context is not None

    @property
    def user_id(self) -> int | None:
        return self.context.user_id if self.authenticated else None

    @property
    def username(self) -> str | None:
        return self.context.username if self.authenticated else None

    @property
    def email(self) -> str | None:
        return self.context.email if self.authenticated else None

    @property
    def role(self) -> str | None:
        return self.context.role if self.authenticated else None

    def has_role(self, role: str) -> bool:
        return self.authenticated and self.context.has_role(role)

    def identity(self) -> Identity | None:
        return self.context.to_identity() if self.authenticated else None

    def touch(self) -> None:
        """Slide the inactivity window to now. No-op unless active."""
        if not self.authenticated:
            return
        now = utcnow()

        def _slide():
            self.session.last_activity_at = now
            db.session.commit()

        run_with_retry(_slide)
        self.context.last_activity_at = now


def session_timeout() -> timedelta:
    seconds = current_app.config.get("SESSION_TIMEOUT_SECONDS", DEFAULT_SESSION_TIMEOUT_SECONDS)
    return timedelta(seconds=seconds)


def generate_token() -> str:
    """64-character hex string (32 bytes of entropy). Sent to the client, never stored."""
    return secrets.token_hex(32)


def hash_token(token: str) -> str:
    """
    Hash token for database storage using SHA-256.

    Tokens are already high-entropy, so a fast hash is sufficient.
    """
    return hashlib.sha256(token.encode('utf-8')).hexdigest()


def get_live_session(token: str | None) -> SessionToken | None:
    """Unrevoked session record for token, without any timeout or client checks."""
    if not token:
        return None
    return db.session.query(SessionToken).filter_by(
        token_hash=hash_token(token),
        is_revoked=False
    ).first()


def _revoke(session: SessionToken, reason: str) -> None:
    session.is_revoked = True
    session.revoked_at = utcnow()
    session.revoked_reason = reason


def create_session(
    user: User,
    ip_address: str | None = None,
    user_agent: str | None = None,
    previous_token: str | None = None,
) -> tuple[SessionToken, str]:
    """
    Create a session for an authenticated user.

    Revokes previous_token (if still live) before issuing a fresh one, so a
    session identifier planted before login never becomes authenticated.

    Returns (session_record, plaintext_token).
    """
    previous = get_live_session(previous_token)
    if previous is not None:
        _revoke(previous, "Rotated on login")

    plaintext_token = generate_token()
    now = utcnow()

    session = SessionToken(
        user_id=user.id,
        username=user.username,
        email=user.email,
        role=user.role,
        vendor_id=user.vendor.id if user.vendor is not None else None,
        token_hash=hash_token(plaintext_token),
        created_at=now,
        last_activity_at=now,
        ip_address=ip_address or "",
        user_agent=user_agent or "",
        is_revoked=False,
    )

    db.session.add(session)
    db.session.commit()

    return session, plaintext_token


def check_session(
    token: str | None,
    ip_address: str | None = None,
    user_agent: str | None = None,
) -> SessionCheck:
    """
    Classify the session behind token for this client.

    Expired and compromised sessions are revoked before returning. The
    activity timestamp is NOT refreshed here; call touch() on the result.
    """
    session = get_live_session(token)
    if session is None:
        return SessionCheck(state=STATE_ABSENT)

    now = utcnow()

    if now - session.last_activity_at > session_timeout():
        _revoke(session, "Idle timeout")
        db.session.commit()
        logger.info("Session for user %s expired after inactivity", session.user_id)
        return SessionCheck(state=STATE_EXPIRED)

    if session.ip_address != (ip_address or "") or session.user_agent != (user_agent or ""):
        _revoke(session, "Client fingerprint mismatch")
        db.session.commit()
        logger.warning(
            "Session for user %s presented from a different client (ip=%s); revoked",
            session.user_id, ip_address,
        )
        return SessionCheck(state=STATE_COMPROMISED)

    context = SessionContext(
        user_id=session.user_id,
        username=session.username,
        email=session.email,
        role=session.role,
        vendor_id=session.vendor_id,
        ip_address=session.ip_address,
        user_agent=session.user_agent,
        created_at=session.created_at,
        last_activity_at=session.last_activity_at,
    )
    return SessionCheck(state=STATE_ACTIVE, context=context, session=session)


def resolve_session(
    token: str | None,
    ip_address: str | None = None,
    user_agent: str | None = None,
) -> SessionCheck:
    """check_session followed by touch(): the per-request entry point."""
    result = check_session(token, ip_address, user_agent)
    result.touch()
    return result


def is_authenticated(
    token: str | None,
    ip_address: str | None = None,
    user_agent: str | None = None,
) -> bool:
    return resolve_session(token, ip_address, user_agent).authenticated


def destroy_session(token: str | None, reason: str = "User logout") -> bool:
    """
    Revoke session token.

    Returns True if a live session was revoked, False if none was found.
    """
    session = get_live_session(token)
    if session is None:
        return False

    _revoke(session, reason)
    db.session.commit()
    return True


def revoke_all_user_sessions(user_id: int, reason: str = "Revoke all sessions") -> int:
    """
    Revoke all live sessions for a user.

    Returns count of sessions revoked.
    """
    sessions = db.session.query(SessionToken).filter_by(
        user_id=user_id,
        is_revoked=False
    ).all()

    for session in sessions:
        _revoke(session, reason)

    db.session.commit()
    return len(sessions)


def cleanup_expired_sessions(retention_days: int = 30) -> int:
    """
    Delete revoked or idle sessions older than the retention window.

    Returns count of sessions deleted.
    """
    now = utcnow()
    cutoff = now - timedelta(days=retention_days)
    idle_cutoff = now - session_timeout()

    def _delete():
        deleted = db.session.query(SessionToken).filter(
            db.or_(
                SessionToken.is_revoked.is_(True),
                SessionToken.last_activity_at < idle_cutoff
            ),
            SessionToken.created_at < cutoff
        ).delete(synchronize_session=False)
        db.session.commit()
        return deleted

    return run_with_retry(_delete)
