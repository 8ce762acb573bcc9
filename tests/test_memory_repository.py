"""Tests for the in-memory reservation store."""

import threading
from datetime import date

import pytest

from campsite.domain.errors import StorageError, TransientStorageError
from campsite.domain.reservations import Reservation, ReservationStatus
from campsite.domain.store import BOOKING_SCOPE, CANCELLATION_SCOPE, READ_SCOPE
from campsite.infra.repositories.memory_repository import InMemoryReservationStore


def _insert(store, checkin, checkout, status=ReservationStatus.ACTIVE):
    with store.transaction(READ_SCOPE) as session:
        return session.save(Reservation(checkin=checkin, checkout=checkout, status=status))


class TestSave:
    def test_insert_assigns_id_and_timestamps(self, store):
        saved = _insert(store, date(2024, 1, 3), date(2024, 1, 5))

        assert saved.id
        assert saved.created_at is not None
        assert saved.updated_at == saved.created_at

    def test_update_unknown_id_fails(self, store):
        with pytest.raises(StorageError):
            with store.transaction(READ_SCOPE) as session:
                session.save(Reservation(checkin=date(2024, 1, 3), checkout=date(2024, 1, 5), id="ghost"))

    def test_writes_visible_only_after_commit(self, store):
        with store.transaction(READ_SCOPE) as session:
            saved = session.save(Reservation(checkin=date(2024, 1, 3), checkout=date(2024, 1, 5)))
            assert session.find_by_id(saved.id) == saved
            assert store.all() == []
        assert store.all() == [saved]

    def test_rollback_discards_writes(self, store):
        with pytest.raises(RuntimeError):
            with store.transaction(READ_SCOPE) as session:
                session.save(Reservation(checkin=date(2024, 1, 3), checkout=date(2024, 1, 5)))
                raise RuntimeError("boom")
        assert store.all() == []


class TestFindOverlapping:
    @pytest.mark.parametrize(
        "checkin, checkout, expected",
        [
            (date(2024, 1, 1), date(2024, 1, 3), True),   # checkout on window start
            (date(2024, 1, 6), date(2024, 1, 8), True),   # checkin on window end
            (date(2024, 1, 2), date(2024, 1, 8), True),   # spans the window
            (date(2024, 1, 4), date(2024, 1, 5), True),   # inside the window
            (date(2024, 1, 1), date(2024, 1, 2), False),
            (date(2024, 1, 7), date(2024, 1, 9), False),
        ],
    )
    def test_window_match(self, store, checkin, checkout, expected):
        saved = _insert(store, checkin, checkout)

        with store.transaction(READ_SCOPE) as session:
            rows = session.find_overlapping(date(2024, 1, 3), date(2024, 1, 6), ReservationStatus.ACTIVE)

        assert (saved in rows) is expected

    def test_status_filter(self, store):
        _insert(store, date(2024, 1, 3), date(2024, 1, 5), status=ReservationStatus.CANCELLED)

        with store.transaction(READ_SCOPE) as session:
            rows = session.find_overlapping(date(2024, 1, 3), date(2024, 1, 6), ReservationStatus.ACTIVE)

        assert rows == []

    def test_ordered_by_checkin(self, store):
        later = _insert(store, date(2024, 1, 5), date(2024, 1, 6))
        earlier = _insert(store, date(2024, 1, 3), date(2024, 1, 4))

        with store.transaction(READ_SCOPE) as session:
            rows = session.find_overlapping(date(2024, 1, 1), date(2024, 1, 10), ReservationStatus.ACTIVE)

        assert rows == [earlier, later]


class TestLocks:
    def _hold(self, store, acquire):
        """Run ``acquire(session)`` in a thread and keep the transaction open."""
        locked, release = threading.Event(), threading.Event()

        def run():
            with store.transaction(BOOKING_SCOPE) as session:
                acquire(session)
                locked.set()
                release.wait(timeout=10)

        thread = threading.Thread(target=run)
        thread.start()
        assert locked.wait(timeout=5)
        return thread, release

    def test_overlapping_range_lock_times_out(self):
        store = InMemoryReservationStore(lock_timeout=0.1)
        thread, release = self._hold(
            store,
            lambda s: s.find_overlapping(date(2024, 1, 3), date(2024, 1, 5), ReservationStatus.ACTIVE, lock=True),
        )
        try:
            with pytest.raises(TransientStorageError):
                with store.transaction(BOOKING_SCOPE) as session:
                    session.find_overlapping(date(2024, 1, 5), date(2024, 1, 7), ReservationStatus.ACTIVE, lock=True)
        finally:
            release.set()
            thread.join(timeout=10)

    def test_disjoint_range_lock_granted(self):
        store = InMemoryReservationStore(lock_timeout=0.1)
        thread, release = self._hold(
            store,
            lambda s: s.find_overlapping(date(2024, 1, 3), date(2024, 1, 5), ReservationStatus.ACTIVE, lock=True),
        )
        try:
            with store.transaction(BOOKING_SCOPE) as session:
                assert session.find_overlapping(
                    date(2024, 1, 6), date(2024, 1, 8), ReservationStatus.ACTIVE, lock=True
                ) == []
        finally:
            release.set()
            thread.join(timeout=10)

    def test_unlocked_read_not_blocked(self):
        store = InMemoryReservationStore(lock_timeout=0.1)
        thread, release = self._hold(
            store,
            lambda s: s.find_overlapping(date(2024, 1, 3), date(2024, 1, 5), ReservationStatus.ACTIVE, lock=True),
        )
        try:
            with store.transaction(READ_SCOPE) as session:
                assert session.find_overlapping(date(2024, 1, 3), date(2024, 1, 5), ReservationStatus.ACTIVE) == []
        finally:
            release.set()
            thread.join(timeout=10)

    def test_row_lock_blocks_same_id(self):
        store = InMemoryReservationStore(lock_timeout=0.1)
        saved = _insert(store, date(2024, 1, 3), date(2024, 1, 5))
        thread, release = self._hold(
            store,
            lambda s: s.find_by_id_and_status(saved.id, ReservationStatus.ACTIVE, lock=True),
        )
        try:
            with pytest.raises(TransientStorageError):
                with store.transaction(CANCELLATION_SCOPE) as session:
                    session.find_by_id_and_status(saved.id, ReservationStatus.ACTIVE, lock=True)
        finally:
            release.set()
            thread.join(timeout=10)

    def test_locks_released_on_rollback(self):
        store = InMemoryReservationStore(lock_timeout=0.1)

        with pytest.raises(RuntimeError):
            with store.transaction(BOOKING_SCOPE) as session:
                session.find_overlapping(date(2024, 1, 3), date(2024, 1, 5), ReservationStatus.ACTIVE, lock=True)
                raise RuntimeError("abort")

        with store.transaction(BOOKING_SCOPE) as session:
            assert session.find_overlapping(
                date(2024, 1, 3), date(2024, 1, 5), ReservationStatus.ACTIVE, lock=True
            ) == []
