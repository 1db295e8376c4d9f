# Overview: Permission system package.
# Re-exports the public APIs of the role/resource/action matrix.

from .catalog import Role, Resource, Action
from .definitions import (
    DEFAULT_PERMISSIONS,
    CUSTOMER_PERMISSIONS,
    VENDOR_PERMISSIONS,
    ADMINISTRATOR_PERMISSIONS,
)
from .matrix import PermissionMatrix, DEFAULT_MATRIX
from .helpers import (
    get_all_roles,
    validate_role,
    validate_resource,
    validate_action,
)

__all__ = [
    "Role",
    "Resource",
    "Action",
    "DEFAULT_PERMISSIONS",
    "CUSTOMER_PERMISSIONS",
    "VENDOR_PERMISSIONS",
    "ADMINISTRATOR_PERMISSIONS",
    "PermissionMatrix",
    "DEFAULT_MATRIX",
    "get_all_roles",
    "validate_role",
    "validate_resource",
    "validate_action",
]
