"""
Tests for SeatService: seat allocation, renumbering, removal and guest-count sync.
"""

import uuid

import pytest
from sqlalchemy import select
from sqlalchemy.exc import OperationalError

from rest_api.models import OrderItem, Seat
from rest_api.services.domain import OrderService, SeatService, SeatSyncError, SessionService
from shared.config.constants import FailureReason, SeatStatus
from tests.factories import item, table_state


@pytest.fixture
def open_session_id(db_session, seed_location, seed_table, staff_ctx):
    return SessionService(db_session, staff_ctx).ensure_session_for_table(seed_location.id, "T5", 2)


class TestAddSeat:
    def test_next_seat_number(self, db_session, open_session_id, staff_ctx):
        result = SeatService(db_session, staff_ctx).add_seat_to_session(open_session_id)

        assert result.ok
        assert result.seat_number == 3
        assert db_session.get(Seat, result.seat_id).status == SeatStatus.ACTIVE

    def test_specific_free_number(self, db_session, open_session_id, staff_ctx):
        result = SeatService(db_session, staff_ctx).add_seat_to_session(open_session_id, seat_number=7)

        assert result.seat_number == 7

    def test_taken_number_is_refused(self, db_session, open_session_id, staff_ctx):
        result = SeatService(db_session, staff_ctx).add_seat_to_session(open_session_id, seat_number=2)

        assert not result.ok
        assert result.reason == FailureReason.SEAT_EXISTS
        assert len(SeatService(db_session).get_seats_for_session(open_session_id)) == 2

    def test_unknown_session(self, db_session, staff_ctx):
        result = SeatService(db_session, staff_ctx).add_seat_to_session(uuid.uuid4())

        assert result.reason == FailureReason.NOT_FOUND


class TestRemoveSeat:
    def test_unreferenced_seat_is_deleted(self, db_session, open_session_id, staff_ctx):
        service = SeatService(db_session, staff_ctx)
        seat_two = service.get_seats_for_session(open_session_id)[1]
        seat_two_id = seat_two.id

        assert service.remove_seat_from_session(seat_two_id).ok

        assert db_session.get(Seat, seat_two_id) is None

    def test_referenced_seat_is_marked_removed(self, db_session, seed_location, seed_table, staff_ctx):
        synced = OrderService(db_session, staff_ctx).sync_order_to_db(
            seed_location.id, "T5", table_state(guest_count=2, seats={1: [item("Soup")]})
        )
        service = SeatService(db_session, staff_ctx)
        seat_one = service.get_seats_for_session(synced.session_id)[0]

        assert service.remove_seat_from_session(seat_one.id).ok

        db_session.refresh(seat_one)
        assert seat_one.status == SeatStatus.REMOVED

    def test_unknown_seat(self, db_session, staff_ctx):
        assert SeatService(db_session, staff_ctx).remove_seat_from_session(uuid.uuid4()).reason == FailureReason.NOT_FOUND


class TestSeatSync:
    def test_raising_variant_on_unknown_session(self, db_session):
        with pytest.raises(SeatSyncError):
            SeatService(db_session).ensure_seats_for_session(uuid.uuid4(), 2)

    def test_removed_seats_come_back(self, db_session, open_session_id):
        service = SeatService(db_session)
        service.sync_seats_with_guest_count(open_session_id, 1)

        service.sync_seats_with_guest_count(open_session_id, 3)

        seats = db_session.scalars(select(Seat).where(Seat.session_id == open_session_id)).all()
        assert {s.seat_number: s.status for s in seats} == {
            1: SeatStatus.ACTIVE,
            2: SeatStatus.ACTIVE,
            3: SeatStatus.ACTIVE,
        }

    def test_other_location_is_unauthorized(self, db_session, open_session_id, other_location):
        ctx = {"user_id": "x", "location_ids": [str(other_location.id)], "roles": ["SERVER"]}

        result = SeatService(db_session, ctx).sync_seats_with_guest_count(open_session_id, 4)

        assert result.reason == FailureReason.UNAUTHORIZED


class TestRenameSeat:
    def test_rename_rewrites_item_seat_numbers(self, db_session, seed_location, seed_table, staff_ctx):
        synced = OrderService(db_session, staff_ctx).sync_order_to_db(
            seed_location.id, "T5", table_state(guest_count=2, seats={2: [item("Cake", wave=2)]})
        )

        result = SeatService(db_session, staff_ctx).rename_seat_by_session_and_number(synced.session_id, 2, 4)

        assert result.ok
        assert result.seat_number == 4
        db_session.expire_all()
        cake = db_session.scalars(select(OrderItem)).one()
        assert cake.seat == 4
        assert db_session.get(Seat, cake.seat_id).seat_number == 4

    def test_taken_number_is_refused(self, db_session, open_session_id, staff_ctx):
        result = SeatService(db_session, staff_ctx).rename_seat_by_session_and_number(open_session_id, 2, 1)

        assert result.reason == FailureReason.SEAT_EXISTS

    def test_seat_with_sent_items_keeps_its_number(self, db_session, seed_location, seed_table, staff_ctx):
        synced = OrderService(db_session, staff_ctx).sync_order_to_db(
            seed_location.id, "T5", table_state(guest_count=2, seats={1: [item("Soup")]})
        )

        result = SeatService(db_session, staff_ctx).rename_seat_by_session_and_number(synced.session_id, 1, 3)

        assert result.reason == FailureReason.ITEM_SENT_TO_KITCHEN
        assert [s.seat_number for s in SeatService(db_session).get_seats_for_session(synced.session_id)] == [1, 2]

    @pytest.mark.parametrize("new_number", [0, -1])
    def test_numbers_start_at_one(self, db_session, open_session_id, staff_ctx, new_number):
        seat = SeatService(db_session).get_seats_for_session(open_session_id)[0]

        result = SeatService(db_session, staff_ctx).rename_seat(seat.id, new_number)

        assert result.reason == FailureReason.INVALID_SEAT_NUMBER

    def test_unknown_seat_number(self, db_session, open_session_id, staff_ctx):
        result = SeatService(db_session, staff_ctx).rename_seat_by_session_and_number(open_session_id, 9, 3)

        assert result.reason == FailureReason.NOT_FOUND


class TestRemoveSeatByNumber:
    def test_removes_the_numbered_seat(self, db_session, open_session_id, staff_ctx):
        service = SeatService(db_session, staff_ctx)

        assert service.remove_seat_by_session_and_number(open_session_id, 2).ok

        assert [s.seat_number for s in service.get_seats_for_session(open_session_id)] == [1]

    def test_unknown_number(self, db_session, open_session_id, staff_ctx):
        result = SeatService(db_session, staff_ctx).remove_seat_by_session_and_number(open_session_id, 7)

        assert result.reason == FailureReason.NOT_FOUND


def _broken_commit(db):
    raise OperationalError("COMMIT", {}, Exception("db down"))


class TestSeatStorageFailures:
    """A failed commit rolls back and comes back as a failed result."""

    @pytest.fixture(autouse=True)
    def broken_commit(self, open_session_id, monkeypatch):
        monkeypatch.setattr("rest_api.services.domain.seat_service.safe_commit", _broken_commit)

    def test_add(self, db_session, open_session_id, staff_ctx):
        result = SeatService(db_session, staff_ctx).add_seat_to_session(open_session_id)

        assert result.error == "Failed to add seat"
        assert len(SeatService(db_session).get_seats_for_session(open_session_id)) == 2

    def test_remove(self, db_session, open_session_id, staff_ctx):
        service = SeatService(db_session, staff_ctx)

        result = service.remove_seat_by_session_and_number(open_session_id, 2)

        assert result.error == "Failed to remove seat"
        assert len(service.get_seats_for_session(open_session_id)) == 2

    def test_rename(self, db_session, open_session_id, staff_ctx):
        service = SeatService(db_session, staff_ctx)

        result = service.rename_seat_by_session_and_number(open_session_id, 2, 5)

        assert result.error == "Failed to rename seat"
        assert [s.seat_number for s in service.get_seats_for_session(open_session_id)] == [1, 2]

    def test_sync_raising_variant(self, db_session, open_session_id):
        with pytest.raises(SeatSyncError):
            SeatService(db_session).ensure_seats_for_session(open_session_id, 4)

        assert len(SeatService(db_session).get_seats_for_session(open_session_id)) == 2
