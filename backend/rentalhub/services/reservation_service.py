# Overview: Service-layer operations for inventory reservations; guards
# against double-booking of rental variants.

"""
Inventory Reservation Service

INVARIANT: for any variant, the ACTIVE locks are pairwise non-overlapping
under half-open interval rules ([start, end); adjacency is not overlap).

The overlap check and the insert of the new lock form one unit. Two
requests racing for the same variant could otherwise both see "no overlap"
and both insert. reserve() therefore runs check-then-insert while holding
the variant's mutex, and the SQL store additionally takes a database-level
lock on the variant so separate processes serialize too.

An overlap is a business-rule rejection, not an exception: the caller gets
a ReservationResult carrying the conflicting periods so other dates can be
offered.
"""

from __future__ import annotations

import itertools
import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime

from ..extensions import db
from ..models import InventoryLock
from .concurrency import variant_mutex, lock_for_update, advisory_lock, sqlite_write_lock
from rentalhub.time_utils import as_naive_utc


logger = logging.getLogger(__name__)


class LockNotFoundError(LookupError):
    """Raised when a lock id does not exist."""
    pass


@dataclass
class ReservationResult:
    success: bool
    lock: InventoryLock | None = None
    reason: str | None = None
    conflicts: list[InventoryLock] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "success": self.success,
            "lock": self.lock.to_dict() if self.lock is not None else None,
            "reason": self.reason,
            "conflicts": [lock.period() for lock in self.conflicts],
        }


class SqlInventoryLockStore:
    """Lock persistence on the application database."""

    def serialize(self, variant_id: int) -> None:
        """
        Block other processes reserving this variant until we commit.

        PostgreSQL locks the variant key only. SQLite has no row or key
        locks, so the whole database write lock is taken instead.
        """
        if db.engine.dialect.name == "sqlite":
            sqlite_write_lock(InventoryLock.__tablename__)
        else:
            advisory_lock(variant_id)

    def find_active_by_variant(self, variant_id: int, for_update: bool = False) -> list[InventoryLock]:
        query = db.session.query(InventoryLock).filter_by(
            variant_id=variant_id,
            status=InventoryLock.STATUS_ACTIVE,
        )
        if for_update:
            query = lock_for_update(query)
        return query.order_by(InventoryLock.start_date).all()

    def find_active_by_order(self, order_id: int) -> list[InventoryLock]:
        return db.session.query(InventoryLock).filter_by(
            order_id=order_id,
            status=InventoryLock.STATUS_ACTIVE,
        ).all()

    def find_by_order(self, order_id: int) -> list[InventoryLock]:
        return db.session.query(InventoryLock).filter_by(order_id=order_id).all()

    def get(self, lock_id: int) -> InventoryLock | None:
        return db.session.get(InventoryLock, lock_id)

    def add(self, lock: InventoryLock) -> None:
        db.session.add(lock)
        db.session.commit()

    def save(self, lock: InventoryLock) -> None:
        db.session.commit()

    def rollback(self) -> None:
        db.session.rollback()


class MemoryInventoryLockStore:
    """In-process lock store; holds every lock ever created, released ones included."""

    def __init__(self):
        self._locks: dict[int, InventoryLock] = {}
        self._ids = itertools.count(1)
        self._guard = threading.Lock()

    def serialize(self, variant_id: int) -> None:
        pass

    def find_active_by_variant(self, variant_id: int, for_update: bool = False) -> list[InventoryLock]:
        with self._guard:
            locks = [
                lock for lock in self._locks.values()
                if lock.variant_id == variant_id and lock.is_active
            ]
        return sorted(locks, key=lambda lock: lock.start_date)

    def find_active_by_order(self, order_id: int) -> list[InventoryLock]:
        return [lock for lock in self.find_by_order(order_id) if lock.is_active]

    def find_by_order(self, order_id: int) -> list[InventoryLock]:
        with self._guard:
            return [lock for lock in self._locks.values() if lock.order_id == order_id]

    def get(self, lock_id: int) -> InventoryLock | None:
        with self._guard:
            return self._locks.get(lock_id)

    def add(self, lock: InventoryLock) -> None:
        with self._guard:
            lock.id = next(self._ids)
            self._locks[lock.id] = lock

    def save(self, lock: InventoryLock) -> None:
        pass

    def rollback(self) -> None:
        pass


class ReservationService:
    def __init__(self, store=None, audit=None):
        self.store = store if store is not None else SqlInventoryLockStore()
        self.audit = audit

    def reserve(
        self,
        variant_id: int,
        order_id: int,
        start_date: datetime,
        end_date: datetime,
        actor_id: int | None = None,
        customer_id: int | None = None,
        vendor_id: int | None = None,
    ) -> ReservationResult:
        """
        Lock [start_date, end_date) of variant_id for order_id.

        customer_id and vendor_id record who owns the order; the lock routes
        check them before releasing. Aware boundaries are converted to UTC.

        Returns a failed ReservationResult (no lock created) if the period is
        empty or intersects any active lock of the variant.
        """
        start_date, end_date = as_naive_utc(start_date), as_naive_utc(end_date)
        if start_date >= end_date:
            return ReservationResult(success=False, reason="Rental end must be after rental start")

        with variant_mutex(variant_id):
            self.store.serialize(variant_id)
            conflicts = [
                lock for lock in self.store.find_active_by_variant(variant_id, for_update=True)
                if lock.overlaps(start_date, end_date)
            ]
            if conflicts:
                self.store.rollback()
                logger.info(
                    "Reservation for variant %s order %s rejected: %d conflicting lock(s)",
                    variant_id, order_id, len(conflicts),
                )
                return ReservationResult(
                    success=False,
                    reason="Variant is already reserved for part of the requested period",
                    conflicts=conflicts,
                )

            lock = InventoryLock.create(
                variant_id, order_id, start_date, end_date,
                customer_id=customer_id, vendor_id=vendor_id,
            )
            self.store.add(lock)

        if self.audit is not None:
            self.audit.log_inventory_lock(lock, actor_id=actor_id)

        return ReservationResult(success=True, lock=lock)

    def release(self, lock_id: int, actor_id: int | None = None) -> InventoryLock:
        """
        Release one lock (ACTIVE -> RELEASED).

        Raises LockNotFoundError for an unknown id and ValueError if the lock
        was already released.
        """
        lock = self.get_lock(lock_id)

        with variant_mutex(lock.variant_id):
            lock.release()
            self.store.save(lock)

        if self.audit is not None:
            self.audit.log_inventory_release(lock, actor_id=actor_id)

        return lock

    def get_lock(self, lock_id: int) -> InventoryLock:
        lock = self.store.get(lock_id)
        if lock is None:
            raise LockNotFoundError(f"Inventory lock {lock_id} not found")
        return lock

    def release_for_order(self, order_id: int, actor_id: int | None = None) -> list[InventoryLock]:
        """Release every active lock held by an order (cancelled, rejected or completed)."""
        return [
            self.release(lock.id, actor_id=actor_id)
            for lock in self.store.find_active_by_order(order_id)
        ]

    def is_available(self, variant_id: int, start_date: datetime, end_date: datetime) -> bool:
        start_date, end_date = as_naive_utc(start_date), as_naive_utc(end_date)
        if start_date >= end_date:
            return False
        return not any(
            lock.overlaps(start_date, end_date)
            for lock in self.store.find_active_by_variant(variant_id)
        )

    def active_locks(self, variant_id: int) -> list[InventoryLock]:
        return self.store.find_active_by_variant(variant_id)

    def locks_for_order(self, order_id: int) -> list[InventoryLock]:
        return self.store.find_by_order(order_id)
