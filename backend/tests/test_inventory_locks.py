# Overview: Pytest coverage for inventory locks: overlap rules, release, and serialized reservation.

"""
Inventory Lock Tests

Covers the double-booking invariant:
- Half-open periods: adjacency is not overlap
- Released locks never block new reservations
- Concurrent reserves on the same variant cannot both succeed
"""

import contextlib
import threading
import time
from datetime import datetime, timedelta, timezone

import pytest

from rentalhub import create_app
from rentalhub.extensions import db
from rentalhub.models import AuditLog, InventoryLock
from rentalhub.services import audit_service, reservation_service
from rentalhub.services.reservation_service import (
    LockNotFoundError,
    MemoryInventoryLockStore,
    ReservationService,
    SqlInventoryLockStore,
)


def jan(day: int) -> datetime:
    return datetime(2026, 1, day)


@pytest.fixture
def service(recording_audit):
    return ReservationService(store=MemoryInventoryLockStore(), audit=recording_audit)


class TestOverlap:
    LOCK = InventoryLock.create(variant_id=1, order_id=1, start_date=jan(1), end_date=jan(10))

    @pytest.mark.parametrize("start,end,expected", [
        (jan(5), jan(15), True),
        (jan(10), jan(15), False),
        (datetime(2025, 12, 25), jan(1), False),
        (jan(2), jan(3), True),
        (datetime(2025, 12, 25), jan(20), True),
        (jan(1), jan(10), True),
        (jan(11), jan(12), False),
    ])
    def test_half_open_overlap(self, start, end, expected):
        assert self.LOCK.overlaps(start, end) is expected

    def test_create_rejects_empty_period(self):
        with pytest.raises(ValueError):
            InventoryLock.create(1, 1, jan(5), jan(5))
        with pytest.raises(ValueError):
            InventoryLock.create(1, 1, jan(6), jan(5))

    def test_release_is_terminal(self):
        lock = InventoryLock.create(1, 1, jan(1), jan(2))
        assert lock.is_active
        lock.release()
        assert not lock.is_active
        assert lock.released_at is not None
        with pytest.raises(ValueError):
            lock.release()

    def test_period_format(self):
        assert self.LOCK.period() == {
            "start_date": "2026-01-01T00:00:00Z",
            "end_date": "2026-01-10T00:00:00Z",
        }


class TestReserve:
    def test_reserve_free_period(self, service, recording_audit):
        result = service.reserve(7, 100, jan(1), jan(10), actor_id=3)

        assert result.success
        assert result.lock.id is not None
        assert result.lock.variant_id == 7
        assert result.lock.order_id == 100
        assert recording_audit.locks == [(result.lock.id, 3)]

    def test_overlapping_reserve_rejected(self, service, recording_audit):
        first = service.reserve(7, 100, jan(1), jan(10))
        second = service.reserve(7, 101, jan(5), jan(15))

        assert not second.success
        assert second.lock is None
        assert second.conflicts == [first.lock]
        assert second.reason == "Variant is already reserved for part of the requested period"
        assert len(service.active_locks(7)) == 1
        assert len(recording_audit.locks) == 1

    def test_back_to_back_reserves(self, service):
        assert service.reserve(7, 100, jan(1), jan(10)).success
        assert service.reserve(7, 101, jan(10), jan(15)).success
        assert service.reserve(7, 102, datetime(2025, 12, 25), jan(1)).success

    def test_other_variant_unaffected(self, service):
        assert service.reserve(7, 100, jan(1), jan(10)).success
        assert service.reserve(8, 101, jan(1), jan(10)).success

    def test_empty_period_rejected(self, service):
        result = service.reserve(7, 100, jan(5), jan(5))
        assert not result.success
        assert result.reason == "Rental end must be after rental start"
        assert service.active_locks(7) == []

    def test_result_to_dict(self, service):
        service.reserve(7, 100, jan(1), jan(10))
        data = service.reserve(7, 101, jan(2), jan(3)).to_dict()
        assert data["success"] is False
        assert data["lock"] is None
        assert data["conflicts"] == [{"start_date": "2026-01-01T00:00:00Z", "end_date": "2026-01-10T00:00:00Z"}]

    def test_active_locks_pairwise_disjoint(self, service):
        requests = [(1, 5), (3, 7), (5, 9), (8, 12), (12, 14), (2, 4), (14, 20)]
        for order_id, (start, end) in enumerate(requests):
            service.reserve(7, order_id, jan(start), jan(end))

        locks = service.active_locks(7)
        for i, a in enumerate(locks):
            for b in locks[i + 1:]:
                assert not a.overlaps(b.start_date, b.end_date)


class TestRelease:
    def test_release_frees_period(self, service, recording_audit):
        lock = service.reserve(7, 100, jan(1), jan(10)).lock
        assert not service.is_available(7, jan(5), jan(6))

        released = service.release(lock.id, actor_id=9)

        assert released.status == InventoryLock.STATUS_RELEASED
        assert service.is_available(7, jan(5), jan(6))
        assert service.reserve(7, 101, jan(5), jan(15)).success
        assert recording_audit.releases == [(lock.id, 9)]

    def test_released_locks_kept_as_history(self, service):
        lock = service.reserve(7, 100, jan(1), jan(10)).lock
        service.release(lock.id)

        assert service.active_locks(7) == []
        assert service.locks_for_order(100) == [lock]

    def test_release_twice(self, service):
        lock = service.reserve(7, 100, jan(1), jan(10)).lock
        service.release(lock.id)
        with pytest.raises(ValueError):
            service.release(lock.id)

    def test_release_unknown(self, service):
        with pytest.raises(LockNotFoundError):
            service.release(404)

    def test_release_for_order(self, service):
        service.reserve(7, 100, jan(1), jan(3))
        service.reserve(8, 100, jan(1), jan(3))
        service.reserve(7, 200, jan(5), jan(6))

        released = service.release_for_order(100)

        assert len(released) == 2
        assert service.active_locks(8) == []
        assert [lock.order_id for lock in service.active_locks(7)] == [200]
        assert service.release_for_order(100) == []

    def test_is_available_empty_period(self, service):
        assert service.is_available(7, jan(5), jan(5)) is False


class TestMixedOffsets:
    """Aware boundaries are compared in UTC against stored naive periods."""

    PLUS_TWO = timezone(timedelta(hours=2))

    def test_aware_start_naive_end(self, service):
        result = service.reserve(7, 1, datetime(2026, 1, 1, tzinfo=timezone.utc), jan(5))

        assert result.success
        assert result.lock.start_date == jan(1)
        assert result.lock.start_date.tzinfo is None

    def test_conflict_across_offsets(self, service):
        assert service.reserve(7, 1, jan(1), jan(5)).success

        # 2026-01-05T01:00+02:00 is 2026-01-04T23:00Z
        late_start = datetime(2026, 1, 5, 1, tzinfo=self.PLUS_TWO)
        result = service.reserve(7, 2, late_start, jan(8))
        assert not result.success
        assert [lock.order_id for lock in result.conflicts] == [1]

        assert service.reserve(7, 3, datetime(2026, 1, 5, 2, tzinfo=self.PLUS_TWO), jan(8)).success

    def test_is_available_across_offsets(self, service):
        assert service.reserve(7, 1, jan(1), jan(5)).success

        assert service.is_available(7, datetime(2026, 1, 5, 1, tzinfo=self.PLUS_TWO), jan(6)) is False
        assert service.is_available(7, datetime(2026, 1, 5, tzinfo=timezone.utc), jan(6)) is True


class SlowMemoryStore(MemoryInventoryLockStore):
    """Widens the window between the overlap check and the insert."""

    def find_active_by_variant(self, variant_id, for_update=False):
        locks = super().find_active_by_variant(variant_id, for_update)
        time.sleep(0.05)
        return locks


class TestConcurrentReserve:
    def test_only_one_of_two_overlapping_requests_wins(self):
        service = ReservationService(store=SlowMemoryStore())
        barrier = threading.Barrier(2)
        results = {}

        def attempt(order_id, start, end):
            barrier.wait()
            results[order_id] = service.reserve(42, order_id, start, end)

        threads = [
            threading.Thread(target=attempt, args=(1, jan(1), jan(5))),
            threading.Thread(target=attempt, args=(2, jan(3), jan(7))),
        ]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert sorted(result.success for result in results.values()) == [False, True]
        assert len(service.active_locks(42)) == 1

    def test_many_racers_same_period(self):
        service = ReservationService(store=SlowMemoryStore())
        barrier = threading.Barrier(8)
        results = []
        results_guard = threading.Lock()

        def attempt(order_id):
            barrier.wait()
            result = service.reserve(43, order_id, jan(1), jan(2))
            with results_guard:
                results.append(result)

        threads = [threading.Thread(target=attempt, args=(i,)) for i in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert sum(1 for result in results if result.success) == 1

    def test_different_variants_both_succeed(self):
        service = ReservationService(store=SlowMemoryStore())
        barrier = threading.Barrier(2)
        results = {}

        def attempt(variant_id):
            barrier.wait()
            results[variant_id] = service.reserve(variant_id, variant_id, jan(1), jan(5))

        threads = [threading.Thread(target=attempt, args=(v,)) for v in (50, 51)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert all(result.success for result in results.values())


class TestSqlStore:
    @pytest.fixture
    def sql_service(self, app_ctx):
        return ReservationService(store=SqlInventoryLockStore(), audit=audit_service)

    def test_reserve_persists_and_audits(self, sql_service):
        result = sql_service.reserve(7, 100, jan(1), jan(10), actor_id=None)

        assert result.success
        stored = db.session.get(InventoryLock, result.lock.id)
        assert stored.status == InventoryLock.STATUS_ACTIVE

        entry = db.session.query(AuditLog).filter_by(
            entity_type=audit_service.ENTITY_INVENTORY_LOCK,
            action=audit_service.ACTION_INVENTORY_LOCK,
        ).one()
        assert entry.entity_id == str(result.lock.id)

    def test_conflict_against_stored_locks(self, sql_service):
        assert sql_service.reserve(7, 100, jan(1), jan(10)).success

        result = sql_service.reserve(7, 101, jan(9), jan(12))
        assert not result.success
        assert [lock.order_id for lock in result.conflicts] == [100]
        assert db.session.query(InventoryLock).count() == 1

    def test_release_and_rebook(self, sql_service):
        lock = sql_service.reserve(7, 100, jan(1), jan(10)).lock
        sql_service.release(lock.id)

        assert db.session.get(InventoryLock, lock.id).status == InventoryLock.STATUS_RELEASED
        assert sql_service.reserve(7, 101, jan(1), jan(10)).success
        assert db.session.query(AuditLog).filter_by(action=audit_service.ACTION_INVENTORY_RELEASE).count() == 1

    def test_release_for_order(self, sql_service):
        sql_service.reserve(7, 100, jan(1), jan(3))
        sql_service.reserve(8, 100, jan(1), jan(3))

        assert len(sql_service.release_for_order(100)) == 2
        assert sql_service.is_available(7, jan(1), jan(3))
        assert len(sql_service.locks_for_order(100)) == 2

    def test_owners_recorded(self, sql_service, alice, vendor_one):
        lock = sql_service.reserve(
            7, 100, jan(1), jan(3), customer_id=alice["id"], vendor_id=vendor_one["vendor_id"]
        ).lock

        stored = db.session.get(InventoryLock, lock.id)
        assert stored.customer_id == alice["id"]
        assert stored.vendor_id == vendor_one["vendor_id"]

    def test_get_lock(self, sql_service):
        lock = sql_service.reserve(7, 100, jan(1), jan(3)).lock
        assert sql_service.get_lock(lock.id) is lock
        with pytest.raises(LockNotFoundError):
            sql_service.get_lock(404)


class SlowSqlStore(SqlInventoryLockStore):
    def find_active_by_variant(self, variant_id, for_update=False):
        locks = super().find_active_by_variant(variant_id, for_update)
        time.sleep(0.2)
        return locks


class TestSqliteAcrossProcesses:
    """
    Two workers sharing one SQLite file. The in-process mutex is replaced
    with a no-op, so only the database write lock keeps them apart.
    """

    @pytest.fixture
    def file_app(self, tmp_path):
        app = create_app({
            'TESTING': True,
            'SQLALCHEMY_DATABASE_URI': f"sqlite:///{tmp_path / 'locks.sqlite3'}",
            'BCRYPT_ROUNDS': 4,
        })
        with app.app_context():
            db.create_all()

        yield app

        with app.app_context():
            db.drop_all()
            db.engine.dispose()

    def test_only_one_of_two_overlapping_requests_wins(self, file_app, monkeypatch):
        monkeypatch.setattr(reservation_service, "variant_mutex", lambda variant_id: contextlib.nullcontext())
        service = ReservationService(store=SlowSqlStore())
        barrier = threading.Barrier(2)
        results = {}

        def attempt(order_id, start, end):
            with file_app.app_context():
                barrier.wait()
                results[order_id] = service.reserve(42, order_id, start, end).success

        threads = [
            threading.Thread(target=attempt, args=(1, jan(1), jan(5))),
            threading.Thread(target=attempt, args=(2, jan(3), jan(7))),
        ]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert sorted(results.values()) == [False, True]
        with file_app.app_context():
            assert db.session.query(InventoryLock).filter_by(variant_id=42).count() == 1
