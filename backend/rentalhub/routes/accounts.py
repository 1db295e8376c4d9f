# Overview: Flask API routes for user and vendor profiles, guarded by the
# ownership rules.

from flask import Blueprint, jsonify

from .. import middleware
from ..decorators import current_identity
from ..extensions import db
from ..models import User, Vendor


accounts_bp = Blueprint("accounts", __name__, url_prefix="/api")


@accounts_bp.get("/users/<int:user_id>")
def user_route(user_id: int):
    """A user's own profile; administrators may read any."""
    middleware.require_user_data_access(current_identity(), user_id)

    user = db.session.get(User, user_id)
    if user is None:
        return jsonify({"error": "User not found"}), 404
    return jsonify({"user": user.to_dict()}), 200


@accounts_bp.get("/vendors/<int:vendor_id>")
def vendor_route(vendor_id: int):
    """A vendor's own business profile; administrators may read any."""
    middleware.require_vendor_data_access(current_identity(), vendor_id)

    vendor = db.session.get(Vendor, vendor_id)
    if vendor is None:
        return jsonify({"error": "Vendor not found"}), 404
    return jsonify({"vendor": vendor.to_dict()}), 200
