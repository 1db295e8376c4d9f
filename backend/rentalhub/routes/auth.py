# Overview: Flask API routes for auth operations; parses input and returns JSON responses.

"""
Authentication API routes

- Registration validates input and creates Vendor profiles for vendors
- Login rotates any session cookie the client already holds
- Session token travels in an HttpOnly, SameSite=Strict cookie
"""

from flask import Blueprint, request, jsonify, current_app

from .. import middleware
from ..decorators import current_identity, current_session, require_auth, session_token
from ..permissions import Role
from ..services.authorization_service import get_engine
from ..services import auth_service
from ..services.auth_service import RegistrationError


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


def _set_session_cookie(response, token: str):
    response.set_cookie(
        current_app.config["RENTAL_SESSION_COOKIE"],
        token,
        httponly=True,
        samesite="Strict",
        secure=current_app.config["RENTAL_SESSION_COOKIE_SECURE"],
    )
    return response


@auth_bp.post("/register")
def register_route():
    """
    Create a Customer or Vendor account.

    Administrator accounts can only be created by an administrator.
    """
    data = request.get_json(silent=True) or {}
    role = data.get("role") or Role.CUSTOMER

    if role == Role.ADMINISTRATOR:
        middleware.require_administrator(current_identity())

    try:
        user = auth_service.register(
            username=data.get("username", ""),
            email=data.get("email", ""),
            password=data.get("password", ""),
            role=role,
            business_name=data.get("business_name"),
        )
    except RegistrationError as e:
        return jsonify({"success": False, "error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to register user")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({
        "success": True,
        "message": "User registered successfully",
        "user": user.to_dict(),
    }), 201


@auth_bp.post("/login")
def login_route():
    """
    Authenticate user and create session.

    Returns user info; the session token is set as a cookie and also
    returned for clients that use the Authorization header.
    """
    try:
        data = request.get_json(silent=True) or {}
        identifier = data.get("username") or data.get("email") or data.get("identifier")
        password = data.get("password")

        if not all([identifier, password]):
            return jsonify({"error": "Username/email and password are required"}), 400

        result = auth_service.login(
            identifier,
            password,
            ip_address=request.remote_addr,
            user_agent=request.headers.get("User-Agent"),
            previous_token=session_token(),
        )

        if result is None:
            return jsonify({"error": "Invalid credentials"}), 401

        response = jsonify({
            "user": result.user.to_dict(),
            "token": result.token,
            "session": result.session.to_dict(),
            "message": "Login successful",
        })
        return _set_session_cookie(response, result.token), 200

    except Exception:
        current_app.logger.exception("Failed to login user")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.post("/logout")
def logout_route():
    """Destroy the session and clear the cookie."""
    try:
        token = session_token()
        if not token:
            return jsonify({"error": "Authentication required"}), 401

        if not auth_service.logout(token):
            return jsonify({"error": "Invalid or expired session"}), 401

        response = jsonify({"message": "Logout successful"})
        response.delete_cookie(current_app.config["RENTAL_SESSION_COOKIE"])
        return response, 200

    except Exception:
        current_app.logger.exception("Failed to logout user")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.get("/session")
@require_auth
def session_route():
    """Current session identity and the role's permission set."""
    context = current_session().context
    permissions = get_engine().matrix.get_permissions_for_role(context.role)
    return jsonify({
        "session": context.to_dict(),
        "permissions": {resource: sorted(actions) for resource, actions in permissions.items()},
    }), 200
