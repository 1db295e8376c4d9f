# Overview: Service-layer operations for auth; encapsulates business logic and database work.

"""
Authentication Service

WHY: Registration, login and logout are the only ways a session comes into
or goes out of existence. Uses bcrypt for password hashing; session tokens
are managed by session_service.

SECURITY NOTES:
- Passwords hashed with bcrypt (BCRYPT_ROUNDS, default cost factor 12)
- Failed logins never reveal whether the username exists
- Every login, failed login and logout is written to the audit trail
"""

import re
from dataclasses import dataclass

import bcrypt
from flask import current_app

from ..extensions import db
from ..models import User, Vendor, SessionToken
from ..permissions import Role, validate_role
from . import audit_service, session_service
from rentalhub.time_utils import utcnow


USERNAME_PATTERN = re.compile(r"^[a-zA-Z0-9_]+$")
EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


class RegistrationError(Exception):
    """Raised when registration input is invalid or already taken."""
    pass


@dataclass
class LoginResult:
    user: User
    session: SessionToken
    token: str


def validate_registration(username: str, email: str, password: str, role: str) -> None:
    """
    Validate registration input.

    Requirements:
    - Username 3-50 characters: letters, numbers, underscores
    - Well-formed email address
    - Password of at least 8 characters
    - Role is Customer, Vendor or Administrator

    Raises RegistrationError on the first failing rule.
    """
    if not username:
        raise RegistrationError("Username is required")
    if len(username) < 3:
        raise RegistrationError("Username must be at least 3 characters")
    if len(username) > 50:
        raise RegistrationError("Username must not exceed 50 characters")
    if not USERNAME_PATTERN.match(username):
        raise RegistrationError("Username can only contain letters, numbers, and underscores")

    if not email:
        raise RegistrationError("Email is required")
    if not EMAIL_PATTERN.match(email):
        raise RegistrationError("Invalid email format")

    if not password:
        raise RegistrationError("Password is required")
    if len(password) < 8:
        raise RegistrationError("Password must be at least 8 characters")

    if not validate_role(role):
        raise RegistrationError("Invalid role")


def hash_password(password: str) -> str:
    rounds = current_app.config.get("BCRYPT_ROUNDS", 12)
    hashed = bcrypt.hashpw(password.encode('utf-8'), bcrypt.gensalt(rounds=rounds))
    return hashed.decode('utf-8')  # Store as string in database


def verify_password(password: str, password_hash: str) -> bool:
    """
    Verify password against bcrypt hash.

    bcrypt.checkpw() compares in constant time. A malformed stored hash
    counts as a mismatch.
    """
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        return False


def register(
    username: str,
    email: str,
    password: str,
    role: str = Role.CUSTOMER,
    business_name: str | None = None,
) -> User:
    """
    Create a new account.

    Vendors also get their Vendor profile (business_name defaults to the
    username), which is what ownership checks compare against.

    Raises RegistrationError if input is invalid or username/email exist.
    """
    validate_registration(username, email, password, role)

    if db.session.query(User).filter_by(username=username).first():
        raise RegistrationError("Username already exists")

    if db.session.query(User).filter_by(email=email).first():
        raise RegistrationError("Email already exists")

    user = User(
        username=username,
        email=email,
        password_hash=hash_password(password),
        role=role,
    )
    db.session.add(user)

    if role == Role.VENDOR:
        db.session.flush()
        db.session.add(Vendor(user_id=user.id, business_name=business_name or username))

    db.session.commit()
    return user


def authenticate(identifier: str, password: str) -> User | None:
    """
    Look up a user by username or email and verify the password.

    Returns User if credentials valid, None otherwise.
    """
    if not identifier or not password:
        return None

    user = db.session.query(User).filter(
        db.or_(User.username == identifier, User.email == identifier)
    ).first()

    if user is None or not verify_password(password, user.password_hash):
        return None

    return user


def login(
    identifier: str,
    password: str,
    ip_address: str | None = None,
    user_agent: str | None = None,
    previous_token: str | None = None,
) -> LoginResult | None:
    """
    Authenticate and open a session bound to this client.

    previous_token is whatever session cookie the client presented; it is
    revoked so the new session always gets a fresh identifier.

    Returns LoginResult on success, None on bad credentials.
    """
    user = authenticate(identifier, password)

    if user is None:
        audit_service.log_login(None, False, username=identifier, ip_address=ip_address)
        return None

    session, token = session_service.create_session(
        user,
        ip_address=ip_address,
        user_agent=user_agent,
        previous_token=previous_token,
    )
    audit_service.log_login(user.id, True, username=user.username, ip_address=ip_address)

    return LoginResult(user=user, session=session, token=token)


def logout(token: str | None) -> bool:
    """
    Destroy the session behind token.

    Returns True if a live session was revoked.
    """
    session = session_service.get_live_session(token)
    if session is None:
        return False

    user_id = session.user_id
    session_service.destroy_session(token, reason="User logout")
    audit_service.log_logout(user_id)
    return True


def get_current_user(
    token: str | None,
    ip_address: str | None = None,
    user_agent: str | None = None,
) -> User | None:
    result = session_service.resolve_session(token, ip_address, user_agent)
    if not result.authenticated:
        return None
    return db.session.get(User, result.user_id)


def change_role(user_id: int, role: str) -> User:
    """
    Change a user's role and revoke their sessions.

    Sessions capture the role at login, so existing ones must not outlive
    the change.
    """
    if not validate_role(role):
        raise ValueError(f"Role {role} not found")

    user = db.session.get(User, user_id)
    if user is None:
        raise ValueError("User not found")

    user.role = role
    user.updated_at = utcnow()
    if role == Role.VENDOR and user.vendor is None:
        db.session.add(Vendor(user_id=user.id, business_name=user.username))
    db.session.commit()

    session_service.revoke_all_user_sessions(user_id, reason="Role changed")
    return user
