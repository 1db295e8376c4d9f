from __future__ import annotations

from datetime import datetime

from ..extensions import db
from rentalhub.time_utils import as_naive_utc, to_utc_z, utcnow


class InventoryLock(db.Model):
    """
    Time-range reservation of one product variant for one order.

    The period is half-open: [start_date, end_date). A lock ending at the
    instant another begins does not overlap it, so back-to-back rentals
    need no gap.

    LIFECYCLE: ACTIVE -> RELEASED (terminal). Released locks are kept as
    history and never deleted; they take no part in overlap checks.
    """
    __tablename__ = "inventory_locks"
    __table_args__ = (
        db.CheckConstraint("start_date < end_date", name="ck_inventory_locks_period"),
        db.Index("ix_inventory_locks_variant_status", "variant_id", "status"),
        {"sqlite_autoincrement": True},
    )

    STATUS_ACTIVE = "active"
    STATUS_RELEASED = "released"

    id = db.Column(db.Integer, primary_key=True)
    variant_id = db.Column(db.Integer, nullable=False, index=True)
    order_id = db.Column(db.Integer, nullable=False, index=True)

    # Owners of the order, checked by the order data-access rule
    customer_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    vendor_id = db.Column(db.Integer, db.ForeignKey("vendors.id"), nullable=True, index=True)

    # Naive UTC, compared directly against request boundaries
    start_date = db.Column(db.DateTime, nullable=False)
    end_date = db.Column(db.DateTime, nullable=False)

    status = db.Column(db.String(16), nullable=False, default=STATUS_ACTIVE)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False)
    released_at = db.Column(db.DateTime(timezone=True), nullable=True)

    @classmethod
    def create(
        cls,
        variant_id: int,
        order_id: int,
        start_date: datetime,
        end_date: datetime,
        customer_id: int | None = None,
        vendor_id: int | None = None,
    ) -> "InventoryLock":
        start_date, end_date = as_naive_utc(start_date), as_naive_utc(end_date)
        if start_date >= end_date:
            raise ValueError("Lock start must be before lock end")
        return cls(
            variant_id=variant_id,
            order_id=order_id,
            customer_id=customer_id,
            vendor_id=vendor_id,
            start_date=start_date,
            end_date=end_date,
            status=cls.STATUS_ACTIVE,
            created_at=utcnow(),
        )

    @property
    def is_active(self) -> bool:
        return self.status == self.STATUS_ACTIVE

    def overlaps(self, start_date: datetime, end_date: datetime) -> bool:
        """True iff [start_date, end_date) intersects this lock's period."""
        return as_naive_utc(start_date) < self.end_date and as_naive_utc(end_date) > self.start_date

    def release(self) -> None:
        if not self.is_active:
            raise ValueError(f"Inventory lock {self.id} is already released")
        self.status = self.STATUS_RELEASED
        self.released_at = utcnow()

    def period(self) -> dict:
        return {
            "start_date": to_utc_z(self.start_date),
            "end_date": to_utc_z(self.end_date),
        }

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "variant_id": self.variant_id,
            "order_id": self.order_id,
            "customer_id": self.customer_id,
            "vendor_id": self.vendor_id,
            **self.period(),
            "status": self.status,
            "created_at": to_utc_z(self.created_at),
            "released_at": to_utc_z(self.released_at) if self.released_at else None,
        }
