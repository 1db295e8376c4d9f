# Overview: Guard functions for request entry points. Each guard raises
# UnauthorizedError on the first failing condition and returns None otherwise.

"""
Request Guards

Every guard first requires an authenticated identity (401 when missing),
then applies its own rule (403 when it fails). Guards take the Identity
resolved once per request; they never look at the session themselves.

handle_unauthorized() is the single place an UnauthorizedError is turned
into data for the caller.
"""

from __future__ import annotations

from .permissions import Role
from .services.authorization_service import (
    AuthorizationEngine,
    Identity,
    UnauthorizedError,
    get_engine,
)


def require_auth(identity: Identity | None, engine: AuthorizationEngine | None = None) -> None:
    (engine or get_engine()).require_authentication(identity)


def require_role(identity: Identity | None, role: str, engine: AuthorizationEngine | None = None) -> None:
    engine = engine or get_engine()
    engine.require_authentication(identity)
    engine.require_role(identity, role)


def require_customer(identity: Identity | None, engine: AuthorizationEngine | None = None) -> None:
    require_role(identity, Role.CUSTOMER, engine)


def require_vendor(identity: Identity | None, engine: AuthorizationEngine | None = None) -> None:
    require_role(identity, Role.VENDOR, engine)


def require_administrator(identity: Identity | None, engine: AuthorizationEngine | None = None) -> None:
    require_role(identity, Role.ADMINISTRATOR, engine)


def require_permission(
    identity: Identity | None,
    resource: str,
    action: str,
    engine: AuthorizationEngine | None = None,
) -> None:
    engine = engine or get_engine()
    engine.require_authentication(identity)
    engine.require_authorization(resource, action, identity)


def require_vendor_or_admin(identity: Identity | None, engine: AuthorizationEngine | None = None) -> None:
    engine = engine or get_engine()
    engine.require_authentication(identity)
    if not (engine.has_role(identity, Role.VENDOR) or engine.has_role(identity, Role.ADMINISTRATOR)):
        engine.report_denial(identity, "role", "vendor_or_admin")
        raise UnauthorizedError("Vendor or Administrator role required")


def deny_customer(identity: Identity | None, engine: AuthorizationEngine | None = None) -> None:
    engine = engine or get_engine()
    engine.require_authentication(identity)
    if engine.has_role(identity, Role.CUSTOMER):
        engine.report_denial(identity, "role", "not_customer")
        raise UnauthorizedError("Customers are not authorized to access this resource")


def deny_vendor(identity: Identity | None, engine: AuthorizationEngine | None = None) -> None:
    engine = engine or get_engine()
    engine.require_authentication(identity)
    if engine.has_role(identity, Role.VENDOR):
        engine.report_denial(identity, "role", "not_vendor")
        raise UnauthorizedError("Vendors are not authorized to access this resource")


# -- Data access --

def require_user_data_access(
    identity: Identity | None,
    target_user_id,
    engine: AuthorizationEngine | None = None,
) -> None:
    engine = engine or get_engine()
    engine.require_authentication(identity)
    engine.require_user_data_access(identity, target_user_id)


def require_vendor_data_access(
    identity: Identity | None,
    target_vendor_id,
    caller_vendor_id=None,
    engine: AuthorizationEngine | None = None,
) -> None:
    engine = engine or get_engine()
    engine.require_authentication(identity)
    engine.require_vendor_data_access(identity, target_vendor_id, caller_vendor_id)


def require_order_data_access(
    identity: Identity | None,
    order_customer_id,
    order_vendor_id,
    caller_vendor_id=None,
    engine: AuthorizationEngine | None = None,
) -> None:
    engine = engine or get_engine()
    engine.require_authentication(identity)
    engine.require_order_data_access(identity, order_customer_id, order_vendor_id, caller_vendor_id)


def require_product_modification_access(
    identity: Identity | None,
    product_vendor_id,
    caller_vendor_id=None,
    engine: AuthorizationEngine | None = None,
) -> None:
    engine = engine or get_engine()
    engine.require_authentication(identity)
    engine.require_product_modification_access(identity, product_vendor_id, caller_vendor_id)


def handle_unauthorized(error: UnauthorizedError) -> dict:
    return {
        "success": False,
        "error": "Unauthorized",
        "message": error.message,
        "code": error.code,
    }
