from __future__ import annotations

from ..extensions import db
from ..permissions import Role
from rentalhub.time_utils import to_utc_z


class User(db.Model):
    """
    Marketplace accounts for authentication and attribution.

    Each user holds exactly one role at a time (Customer, Vendor or
    Administrator). Username and email are globally unique.
    """
    __tablename__ = "users"
    __table_args__ = (
        db.UniqueConstraint("username", name="uq_users_username"),
        db.UniqueConstraint("email", name="uq_users_email"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    username = db.Column(db.String(50), nullable=False, index=True)
    email = db.Column(db.String(255), nullable=False, index=True)

    # Bcrypt hashed password
    password_hash = db.Column(db.String(255), nullable=False)

    role = db.Column(db.String(32), nullable=False, default=Role.CUSTOMER)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "username": self.username,
            "email": self.email,
            "role": self.role,
            "created_at": to_utc_z(self.created_at),
        }


class Vendor(db.Model):
    """
    Vendor business profile owned by a Vendor-role user.

    Products and orders reference the vendor id, which is what the
    ownership rules compare against.
    """
    __tablename__ = "vendors"
    __table_args__ = (
        db.UniqueConstraint("user_id", name="uq_vendors_user"),
        {"sqlite_autoincrement": True},
    )

    STATUS_ACTIVE = "active"
    STATUS_SUSPENDED = "suspended"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    business_name = db.Column(db.String(255), nullable=False)
    status = db.Column(db.String(16), nullable=False, default=STATUS_ACTIVE)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    user = db.relationship("User", backref=db.backref("vendor", uselist=False, lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "business_name": self.business_name,
            "status": self.status,
            "created_at": to_utc_z(self.created_at),
        }


class SessionToken(db.Model):
    """
    Server-side session record bound to one client.

    The identity fields are captured at login so every request resolves
    its Identity without touching the users table. The client IP and user
    agent recorded here must match every later request, otherwise the
    session is revoked as compromised.

    SECURITY NOTES:
    - Tokens stored hashed (SHA-256); the plaintext lives only in the cookie
    - Sliding inactivity timeout (SESSION_TIMEOUT_SECONDS)
    - Revoked on logout, expiry, integrity failure or login rotation
    """
    __tablename__ = "session_tokens"
    __table_args__ = (
        db.Index("ix_session_tokens_user_active", "user_id", "is_revoked"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    # Identity captured at creation
    username = db.Column(db.String(50), nullable=False)
    email = db.Column(db.String(255), nullable=False)
    role = db.Column(db.String(32), nullable=False)
    vendor_id = db.Column(db.Integer, db.ForeignKey("vendors.id"), nullable=True)

    # Token hash (never store plaintext tokens!)
    token_hash = db.Column(db.String(64), nullable=False, unique=True, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False)
    last_activity_at = db.Column(db.DateTime(timezone=True), nullable=False)

    # Client fingerprint
    ip_address = db.Column(db.String(45), nullable=False, default="")  # IPv6 max length
    user_agent = db.Column(db.String(512), nullable=False, default="")

    is_revoked = db.Column(db.Boolean, nullable=False, default=False, index=True)
    revoked_at = db.Column(db.DateTime(timezone=True), nullable=True)
    revoked_reason = db.Column(db.String(255), nullable=True)

    user = db.relationship("User", backref=db.backref("session_tokens", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "role": self.role,
            "vendor_id": self.vendor_id,
            "created_at": to_utc_z(self.created_at),
            "last_activity_at": to_utc_z(self.last_activity_at),
            "is_revoked": self.is_revoked,
            "revoked_at": to_utc_z(self.revoked_at) if self.revoked_at else None,
        }
