# Overview: Flask API routes for rental inventory locks; parses input and returns JSON responses.

"""
Inventory Lock API routes

Reservation conflicts are not errors: they return 409 with the conflicting
periods so the customer can pick other dates.

Every lock records the customer and vendor of its order. Reserving into an
existing order and releasing locks both check the caller against those
owners with the order data-access rule.
"""

from flask import Blueprint, request, jsonify, current_app, g

from .. import middleware
from ..decorators import require_auth, require_permission, require_vendor_or_admin
from ..extensions import db
from ..models import Vendor
from ..permissions import Resource, Action
from ..services.reservation_service import LockNotFoundError
from ..time_utils import parse_iso_datetime


inventory_bp = Blueprint("inventory", __name__, url_prefix="/api/inventory")


def _reservations():
    return current_app.extensions["rentalhub.reservations"]


def _parse_period(start_raw, end_raw):
    """Returns (start, end) or raises ValueError with a client-facing message."""
    try:
        start_date = parse_iso_datetime(start_raw)
        end_date = parse_iso_datetime(end_raw)
    except ValueError:
        raise ValueError("start_date and end_date must be ISO-8601 dates")
    if start_date is None or end_date is None:
        raise ValueError("start_date and end_date are required")
    return start_date, end_date


def _order_owners(data, order_id):
    """
    (customer_id, vendor_id) for the order being reserved.

    An order that already holds locks keeps the owners recorded on them.
    A new order takes vendor_id from the body and customer_id from the body
    or the caller. Raises ValueError with a client-facing message.
    """
    existing = _reservations().locks_for_order(order_id)
    vendor_id = data.get("vendor_id")

    if existing:
        owner = existing[0]
        if vendor_id is not None and vendor_id != owner.vendor_id:
            raise ValueError("vendor_id does not match the order")
        return owner.customer_id, owner.vendor_id

    if not isinstance(vendor_id, int) or isinstance(vendor_id, bool):
        raise ValueError("vendor_id must be an integer")
    if db.session.get(Vendor, vendor_id) is None:
        raise ValueError(f"Vendor {vendor_id} not found")

    customer_id = data.get("customer_id", g.identity.user_id)
    if not isinstance(customer_id, int) or isinstance(customer_id, bool):
        raise ValueError("customer_id must be an integer")
    return customer_id, vendor_id


@inventory_bp.post("/locks")
@require_permission(Resource.ORDER, Action.CREATE)
def reserve_route():
    """
    Reserve a variant for an order over [start_date, end_date).

    Body: variant_id, order_id, start_date, end_date, vendor_id, customer_id (optional)
    """
    data = request.get_json(silent=True) or {}
    variant_id = data.get("variant_id")
    order_id = data.get("order_id")

    if not isinstance(variant_id, int) or not isinstance(order_id, int):
        return jsonify({"error": "variant_id and order_id must be integers"}), 400

    try:
        start_date, end_date = _parse_period(data.get("start_date"), data.get("end_date"))
        customer_id, vendor_id = _order_owners(data, order_id)
    except ValueError as e:
        return jsonify({"error": str(e)}), 400

    middleware.require_order_data_access(g.identity, customer_id, vendor_id)

    try:
        result = _reservations().reserve(
            variant_id, order_id, start_date, end_date,
            actor_id=g.identity.user_id,
            customer_id=customer_id,
            vendor_id=vendor_id,
        )
    except Exception:
        current_app.logger.exception("Failed to reserve inventory")
        return jsonify({"error": "Internal server error"}), 500

    if result.success:
        return jsonify(result.to_dict()), 201
    if result.conflicts:
        return jsonify(result.to_dict()), 409
    return jsonify(result.to_dict()), 400


@inventory_bp.post("/locks/<int:lock_id>/release")
@require_vendor_or_admin
def release_route(lock_id: int):
    reservations = _reservations()
    try:
        lock = reservations.get_lock(lock_id)
    except LockNotFoundError as e:
        return jsonify({"error": str(e)}), 404

    middleware.require_order_data_access(g.identity, lock.customer_id, lock.vendor_id)

    try:
        lock = reservations.release(lock_id, actor_id=g.identity.user_id)
    except ValueError as e:
        return jsonify({"error": str(e)}), 409
    except Exception:
        current_app.logger.exception("Failed to release inventory lock")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({"lock": lock.to_dict()}), 200


@inventory_bp.post("/orders/<int:order_id>/release")
@require_permission(Resource.ORDER, Action.UPDATE)
def release_order_route(order_id: int):
    """Release every active lock of an order (cancelled, rejected or completed)."""
    reservations = _reservations()
    locks = reservations.locks_for_order(order_id)
    if not locks:
        return jsonify({"error": f"Order {order_id} has no inventory locks"}), 404

    middleware.require_order_data_access(g.identity, locks[0].customer_id, locks[0].vendor_id)

    try:
        released = reservations.release_for_order(order_id, actor_id=g.identity.user_id)
    except Exception:
        current_app.logger.exception("Failed to release order locks")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({"released": [lock.to_dict() for lock in released]}), 200


@inventory_bp.get("/variants/<int:variant_id>/locks")
@require_auth
def variant_locks_route(variant_id: int):
    locks = _reservations().active_locks(variant_id)
    return jsonify({"locks": [lock.to_dict() for lock in locks]}), 200


@inventory_bp.get("/variants/<int:variant_id>/availability")
@require_auth
def availability_route(variant_id: int):
    try:
        start_date, end_date = _parse_period(request.args.get("start_date"), request.args.get("end_date"))
    except ValueError as e:
        return jsonify({"error": str(e)}), 400

    available = _reservations().is_available(variant_id, start_date, end_date)
    return jsonify({"variant_id": variant_id, "available": available}), 200
