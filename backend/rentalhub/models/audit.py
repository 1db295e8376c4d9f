from __future__ import annotations

from ..extensions import db
from rentalhub.time_utils import to_utc_z


class AuditLog(db.Model):
    """
    Audit trail of security-relevant and business actions.

    IMMUTABLE: Never update or delete. Append-only for audit integrity.
    """
    __tablename__ = "audit_logs"
    __table_args__ = (
        db.Index("ix_audit_logs_entity", "entity_type", "entity_id"),
        db.Index("ix_audit_logs_occurred", "occurred_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    user_id = db.Column(db.Integer, nullable=True, index=True)  # Nullable for anonymous

    entity_type = db.Column(db.String(64), nullable=False)  # User, Order, InventoryLock, Permission ...
    entity_id = db.Column(db.String(64), nullable=False)
    action = db.Column(db.String(64), nullable=False, index=True)  # login, permission_denied, inventory_lock ...

    old_value = db.Column(db.JSON, nullable=True)
    new_value = db.Column(db.JSON, nullable=True)

    ip_address = db.Column(db.String(45), nullable=True)

    occurred_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "action": self.action,
            "old_value": self.old_value,
            "new_value": self.new_value,
            "ip_address": self.ip_address,
            "occurred_at": to_utc_z(self.occurred_at),
        }
