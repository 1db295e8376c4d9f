# Overview: Authorization decisions combining the permission matrix with
# ownership (data-isolation) rules.

"""
Authorization Engine

The permission matrix governs capability ("may a Vendor update products at
all?"); the ownership rules govern which instance ("is this product the
vendor's own?"). Both are pure functions of the caller's Identity and the
ownership fields handed in by the calling code. Nothing here reads the
database or the session.

DESIGN PRINCIPLES:
- Fail closed: no identity, unknown role or missing entry means denial
- Administrators override every ownership rule
- can_* queries return booleans; require_* gates raise UnauthorizedError
  exactly when the matching query returns False
- Denials raised by require_* are reported to the audit sink, if any
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from flask import current_app, has_app_context

from ..permissions import Role, PermissionMatrix, DEFAULT_MATRIX


logger = logging.getLogger(__name__)

ENGINE_EXTENSION_KEY = "rentalhub.authorization"


class UnauthorizedError(Exception):
    """
    Raised when a caller may not perform an action.

    code defaults to 403; missing authentication uses 401.
    """

    def __init__(self, message: str = "Unauthorized access", code: int = 403):
        super().__init__(message)
        self.message = message
        self.code = code


@dataclass(frozen=True)
class Identity:
    """Resolved caller: who they are and, for vendors, which vendor."""
    user_id: int
    role: str
    username: str | None = None
    vendor_id: int | None = None

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


class AuthorizationEngine:
    def __init__(self, matrix: PermissionMatrix = DEFAULT_MATRIX, audit=None):
        self.matrix = matrix
        self.audit = audit

    # -- Authentication and roles --

    def is_authenticated(self, identity: Identity | None) -> bool:
        return identity is not None

    def require_authentication(self, identity: Identity | None) -> None:
        if not self.is_authenticated(identity):
            self.report_denial(None, "session", "authenticate")
            raise UnauthorizedError("Authentication required", code=401)

    def has_role(self, identity: Identity | None, role: str) -> bool:
        return identity is not None and identity.has_role(role)

    def require_role(self, identity: Identity | None, role: str) -> None:
        if not self.has_role(identity, role):
            self.report_denial(identity, "role", role)
            raise UnauthorizedError(f"Role '{role}' required")

    # -- Matrix --

    def authorize(self, resource: str, action: str, identity: Identity | None) -> bool:
        """Can this identity perform action on resource? No identity -> False."""
        if identity is None or identity.role is None:
            return False
        return self.matrix.has_permission(identity.role, resource, action)

    def require_authorization(self, resource: str, action: str, identity: Identity | None) -> None:
        if not self.authorize(resource, action, identity):
            role = identity.role if identity is not None else ""
            self.report_denial(identity, resource, action)
            raise UnauthorizedError(
                f"User with role '{role}' is not authorized to perform '{action}' on '{resource}'"
            )

    # -- Ownership rules --

    def can_access_user_data(self, identity: Identity | None, target_user_id) -> bool:
        if identity is None:
            return False
        if identity.is_administrator:
            return True
        return identity.user_id == target_user_id

    def require_user_data_access(self, identity: Identity | None, target_user_id) -> None:
        if not self.can_access_user_data(identity, target_user_id):
            self.report_denial(identity, "user", "access")
            raise UnauthorizedError("You are not authorized to access this user's data")

    def can_access_vendor_data(self, identity: Identity | None, target_vendor_id, caller_vendor_id=None) -> bool:
        if identity is None:
            return False
        if identity.is_administrator:
            return True
        if identity.is_vendor:
            return self._owns_vendor(identity, target_vendor_id, caller_vendor_id)
        return False

    def require_vendor_data_access(self, identity: Identity | None, target_vendor_id, caller_vendor_id=None) -> None:
        if not self.can_access_vendor_data(identity, target_vendor_id, caller_vendor_id):
            self.report_denial(identity, "vendor", "access")
            raise UnauthorizedError("You are not authorized to access this vendor's data")

    def can_access_order_data(
        self,
        identity: Identity | None,
        order_customer_id,
        order_vendor_id,
        caller_vendor_id=None,
    ) -> bool:
        if identity is None:
            return False
        if identity.is_administrator:
            return True
        if identity.is_customer:
            return identity.user_id == order_customer_id
        if identity.is_vendor:
            return self._owns_vendor(identity, order_vendor_id, caller_vendor_id)
        return False

    def require_order_data_access(
        self,
        identity: Identity | None,
        order_customer_id,
        order_vendor_id,
        caller_vendor_id=None,
    ) -> None:
        if not self.can_access_order_data(identity, order_customer_id, order_vendor_id, caller_vendor_id):
            self.report_denial(identity, "order", "access")
            raise UnauthorizedError("You are not authorized to access this order")

    def can_access_product_data(self, identity: Identity | None, product_vendor_id, caller_vendor_id=None) -> bool:
        if identity is None:
            return False
        if identity.is_administrator:
            return True
        # Browsing is open to customers; the matrix denies them every write action
        if identity.is_customer:
            return True
        if identity.is_vendor:
            return self._owns_vendor(identity, product_vendor_id, caller_vendor_id)
        return False

    def require_product_data_access(self, identity: Identity | None, product_vendor_id, caller_vendor_id=None) -> None:
        if not self.can_access_product_data(identity, product_vendor_id, caller_vendor_id):
            self.report_denial(identity, "product", "access")
            raise UnauthorizedError("You are not authorized to access this product")

    def can_modify_product_data(self, identity: Identity | None, product_vendor_id, caller_vendor_id=None) -> bool:
        if identity is None:
            return False
        if identity.is_administrator:
            return True
        if identity.is_vendor:
            return self._owns_vendor(identity, product_vendor_id, caller_vendor_id)
        return False

    def require_product_modification_access(
        self,
        identity: Identity | None,
        product_vendor_id,
        caller_vendor_id=None,
    ) -> None:
        if not self.can_modify_product_data(identity, product_vendor_id, caller_vendor_id):
            self.report_denial(identity, "product", "modify")
            raise UnauthorizedError("You are not authorized to modify this product")

    # -- Denials --

    def report_denial(self, identity: Identity | None, resource: str, action: str) -> None:
        """Log and audit a refused request. Guards outside the engine call this too."""
        user_id = identity.user_id if identity is not None else None
        logger.info("Authorization denied: user=%s resource=%s action=%s", user_id, resource, action)
        if self.audit is not None:
            self.audit.log_permission_denied(resource=resource, action=action, user_id=user_id)

    # -- Internals --

    @staticmethod
    def _owns_vendor(identity: Identity, target_vendor_id, caller_vendor_id) -> bool:
        # Explicit caller_vendor_id wins; otherwise use the vendor captured in the session
        vendor_id = caller_vendor_id if caller_vendor_id is not None else identity.vendor_id
        if vendor_id is None:
            return False
        return vendor_id == target_vendor_id


_default_engine = AuthorizationEngine()


def get_engine() -> AuthorizationEngine:
    """
    Engine configured on the current app, or a matrix-only engine outside one.
    """
    if has_app_context():
        engine = current_app.extensions.get(ENGINE_EXTENSION_KEY)
        if engine is not None:
            return engine
    return _default_engine
