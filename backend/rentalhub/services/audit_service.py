# Overview: Service-layer operations for the audit trail; append-only writes.

"""
Audit Logging

Every authorization denial, login/logout and inventory lock transition is
recorded here. The trail is write-only from the point of view of the
authorization core: nothing in it reads audit rows back to make a decision.

The module itself satisfies the audit sink interface expected by
AuthorizationEngine and ReservationService (log_permission_denied,
log_inventory_lock, log_inventory_release).
"""

from ..extensions import db
from ..models import AuditLog
from rentalhub.time_utils import utcnow


ENTITY_USER = "User"
ENTITY_PERMISSION = "Permission"
ENTITY_INVENTORY_LOCK = "InventoryLock"

ACTION_LOGIN = "login"
ACTION_LOGOUT = "logout"
ACTION_LOGIN_FAILED = "login_failed"
ACTION_PERMISSION_DENIED = "permission_denied"
ACTION_INVENTORY_LOCK = "inventory_lock"
ACTION_INVENTORY_RELEASE = "inventory_release"


def log(
    entity_type: str,
    entity_id,
    action: str,
    old_value: dict | None = None,
    new_value: dict | None = None,
    actor_id: int | None = None,
    ip_address: str | None = None,
) -> AuditLog:
    """Append one audit entry and commit it."""
    entry = AuditLog(
        user_id=actor_id,
        entity_type=entity_type,
        entity_id=str(entity_id),
        action=action,
        old_value=old_value,
        new_value=new_value,
        ip_address=ip_address,
        occurred_at=utcnow(),
    )

    db.session.add(entry)
    db.session.commit()

    return entry


def log_login(user_id: int | None, success: bool, username: str | None = None, ip_address: str | None = None) -> AuditLog:
    action = ACTION_LOGIN if success else ACTION_LOGIN_FAILED
    return log(
        ENTITY_USER,
        user_id if user_id is not None else "unknown",
        action,
        new_value={"username": username} if username else None,
        actor_id=user_id,
        ip_address=ip_address,
    )


def log_logout(user_id: int) -> AuditLog:
    return log(ENTITY_USER, user_id, ACTION_LOGOUT, actor_id=user_id)


def log_permission_denied(resource: str, action: str, user_id: int | None = None) -> AuditLog:
    return log(
        ENTITY_PERMISSION,
        resource,
        ACTION_PERMISSION_DENIED,
        new_value={"attempted_action": action},
        actor_id=user_id,
    )


def log_inventory_lock(lock, actor_id: int | None = None) -> AuditLog:
    return log(
        ENTITY_INVENTORY_LOCK,
        lock.id,
        ACTION_INVENTORY_LOCK,
        new_value={
            "variant_id": lock.variant_id,
            "order_id": lock.order_id,
            "rental_period": lock.period(),
        },
        actor_id=actor_id,
    )


def log_inventory_release(lock, actor_id: int | None = None) -> AuditLog:
    return log(
        ENTITY_INVENTORY_LOCK,
        lock.id,
        ACTION_INVENTORY_RELEASE,
        old_value={"status": lock.STATUS_ACTIVE},
        new_value={"status": lock.status, "order_id": lock.order_id},
        actor_id=actor_id,
    )


def list_entries(entity_type: str | None = None, action: str | None = None, limit: int = 100) -> list[AuditLog]:
    """Most recent entries first, optionally filtered."""
    query = db.session.query(AuditLog)
    if entity_type:
        query = query.filter(AuditLog.entity_type == entity_type)
    if action:
        query = query.filter(AuditLog.action == action)
    return query.order_by(AuditLog.id.desc()).limit(limit).all()
