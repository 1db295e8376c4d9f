from .auth import User, Vendor, SessionToken
from .inventory import InventoryLock
from .audit import AuditLog

__all__ = [
    'User', 'Vendor', 'SessionToken',
    'InventoryLock',
    'AuditLog',
]
