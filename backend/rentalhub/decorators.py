# Overview: Request decorators for API routes. Resolve the session once per
# request into flask.g and delegate the decision to the guard layer.

from functools import wraps
from flask import request, g, current_app

from . import middleware
from .services import session_service


def session_token() -> str | None:
    """Session token from the cookie, falling back to an Authorization: Bearer header."""
    token = request.cookies.get(current_app.config["RENTAL_SESSION_COOKIE"])
    if token:
        return token

    auth_header = request.headers.get("Authorization")
    if auth_header and auth_header.startswith("Bearer "):
        return auth_header.split(" ", 1)[1]
    return None


def current_session():
    """
    SessionCheck for this request, resolved (and touched) at most once.

    Sets:
    - g.session_check: the SessionCheck
    - g.identity: the caller's Identity, or None
    """
    if "session_check" not in g:
        check = session_service.resolve_session(
            session_token(),
            ip_address=request.remote_addr,
            user_agent=request.headers.get("User-Agent"),
        )
        g.session_check = check
        g.identity = check.identity()
    return g.session_check


def current_identity():
    current_session()
    return g.identity


def require_auth(f):
    """
    Require an authenticated session.

    Raises UnauthorizedError (401) if:
    - No session cookie or Bearer token
    - Token unknown or revoked
    - Session idle past the timeout
    - Client IP or user agent differs from the one that logged in
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        middleware.require_auth(current_identity())
        return f(*args, **kwargs)

    return decorated_function


def require_role(role: str):
    """Require the authenticated user to hold role."""
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            middleware.require_role(current_identity(), role)
            return f(*args, **kwargs)

        return decorated_function
    return decorator


def require_permission(resource: str, action: str):
    """Require the caller's role to allow action on resource."""
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            middleware.require_permission(current_identity(), resource, action)
            return f(*args, **kwargs)

        return decorated_function
    return decorator


def require_vendor_or_admin(f):
    @wraps(f)
    def decorated_function(*args, **kwargs):
        middleware.require_vendor_or_admin(current_identity())
        return f(*args, **kwargs)

    return decorated_function
