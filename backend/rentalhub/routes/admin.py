# Overview: Flask API routes for administrator oversight of users, roles and
# the audit trail.

from flask import Blueprint, request, jsonify, current_app

from ..decorators import require_permission, require_role
from ..permissions import Role, Resource, Action
from ..services import audit_service, auth_service
from ..services.authorization_service import get_engine


admin_bp = Blueprint("admin", __name__, url_prefix="/api/admin")


@admin_bp.get("/permissions")
@require_role(Role.ADMINISTRATOR)
def permissions_route():
    return jsonify({"permissions": get_engine().matrix.to_dict()}), 200


@admin_bp.get("/audit-logs")
@require_permission(Resource.AUDIT_LOG, Action.READ)
def audit_logs_route():
    limit = request.args.get("limit", default=100, type=int)
    entries = audit_service.list_entries(
        entity_type=request.args.get("entity_type"),
        action=request.args.get("action"),
        limit=max(1, min(limit, 500)),
    )
    return jsonify({"entries": [entry.to_dict() for entry in entries]}), 200


@admin_bp.patch("/users/<int:user_id>/role")
@require_permission(Resource.USER, Action.MANAGE)
def change_role_route(user_id: int):
    """Change a user's role; their open sessions are revoked."""
    data = request.get_json(silent=True) or {}
    try:
        user = auth_service.change_role(user_id, data.get("role", ""))
    except ValueError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to change user role")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({"user": user.to_dict()}), 200
