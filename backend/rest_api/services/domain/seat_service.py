"""
Seat Domain Service.

Keeps a session's seat rows in step with its guest count. Seat numbers are
unique per session; seats that items still point at are marked removed
instead of being deleted. A seat keeps its number once its items reach the
kitchen.
"""

import uuid
from typing import Any

from sqlalchemy import func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from shared.config.constants import FailureReason, SeatStatus
from shared.config.logging import get_logger
from shared.infrastructure.db import safe_commit
from rest_api.models import OrderItem, Seat, TableSession
from .access import UNAUTHORIZED_MESSAGE, LocationAccessGuard
from .order_lines import normalize_guest_count
from .results import SeatResult, ServiceResult

logger = get_logger(__name__)


class SeatSyncError(Exception):
    """Seat rows could not be brought in line with the guest count."""

    def __init__(self, session_id: uuid.UUID, error: str | None):
        self.session_id = session_id
        self.error = error
        super().__init__(f"Seat sync failed for session {session_id}: {error}")


class SeatService:
    """
    Domain service for seat allocation.

    Writes commit by default; pass commit=False to fold the change into the
    caller's transaction.
    """

    def __init__(self, db: Session, ctx: dict[str, Any] | None = None):
        self._db = db
        self._guard = LocationAccessGuard(db, ctx)

    def _load_session(self, session_id: uuid.UUID) -> TableSession | ServiceResult:
        session = self._db.get(TableSession, session_id)
        if session is None:
            return ServiceResult.failure("Session not found", FailureReason.NOT_FOUND)
        if self._guard.verify(session.location_id) is None:
            return ServiceResult.failure(UNAUTHORIZED_MESSAGE, FailureReason.UNAUTHORIZED)
        return session

    def sync_seats_with_guest_count(
        self,
        session_id: uuid.UUID,
        guest_count: float,
        commit: bool = True,
    ) -> ServiceResult:
        """
        Make seats 1..max(1, floor(guest_count)) active and mark every seat
        above that removed.
        """
        loaded = self._load_session(session_id)
        if isinstance(loaded, ServiceResult):
            return loaded

        target = normalize_guest_count(guest_count)
        seats = self._db.scalars(select(Seat).where(Seat.session_id == session_id)).all()
        by_number = {seat.seat_number: seat for seat in seats}

        created = 0
        for number in range(1, target + 1):
            seat = by_number.get(number)
            if seat is None:
                self._db.add(Seat(session_id=session_id, seat_number=number, status=SeatStatus.ACTIVE))
                created += 1
            elif seat.status == SeatStatus.REMOVED:
                seat.status = SeatStatus.ACTIVE

        removed = 0
        for seat in seats:
            if seat.seat_number > target and seat.status != SeatStatus.REMOVED:
                seat.status = SeatStatus.REMOVED
                removed += 1

        try:
            self._db.flush()
            if commit:
                safe_commit(self._db)
        except SQLAlchemyError:
            self._db.rollback()
            logger.error("Seat sync failed", session_id=str(session_id), target=target, exc_info=True)
            return ServiceResult.failure("Failed to sync seats")

        logger.debug(
            "Seats synced",
            session_id=str(session_id),
            target=target,
            created=created,
            removed=removed,
        )
        return ServiceResult.success()

    def ensure_seats_for_session(
        self,
        session_id: uuid.UUID,
        guest_count: float,
        commit: bool = True,
    ) -> None:
        """
        Like sync_seats_with_guest_count, but raises SeatSyncError instead of
        returning a failed result.
        """
        result = self.sync_seats_with_guest_count(session_id, guest_count, commit=commit)
        if not result.ok:
            raise SeatSyncError(session_id, result.error)

    def add_seat_to_session(
        self,
        session_id: uuid.UUID,
        seat_number: int | None = None,
    ) -> SeatResult:
        """Add the next seat (max + 1), or a specific number if it is free."""
        loaded = self._load_session(session_id)
        if isinstance(loaded, ServiceResult):
            return SeatResult.failure(loaded.error, loaded.reason)

        if seat_number is not None and seat_number > 0:
            existing = self._db.scalar(
                select(Seat.id).where(Seat.session_id == session_id, Seat.seat_number == seat_number)
            )
            if existing is not None:
                return SeatResult.failure(f"Seat {seat_number} already exists", FailureReason.SEAT_EXISTS)
            target = seat_number
        else:
            max_seat = self._db.scalar(
                select(func.coalesce(func.max(Seat.seat_number), 0)).where(Seat.session_id == session_id)
            )
            target = (max_seat or 0) + 1

        seat = Seat(session_id=session_id, seat_number=target, status=SeatStatus.ACTIVE)
        try:
            self._db.add(seat)
            safe_commit(self._db)
        except SQLAlchemyError:
            self._db.rollback()
            logger.error("Seat add failed", session_id=str(session_id), seat_number=target, exc_info=True)
            return SeatResult.failure("Failed to add seat")

        logger.info("Seat added", session_id=str(session_id), seat_number=target)
        return SeatResult.success(seat_id=seat.id, seat_number=target)

    def remove_seat_from_session(self, seat_id: uuid.UUID) -> ServiceResult:
        """Mark the seat removed if live items reference it, otherwise delete it."""
        seat = self._db.get(Seat, seat_id)
        if seat is None:
            return ServiceResult.failure("Seat not found", FailureReason.NOT_FOUND)

        loaded = self._load_session(seat.session_id)
        if isinstance(loaded, ServiceResult):
            return loaded

        referenced = self._db.scalar(
            select(OrderItem.id)
            .where(OrderItem.seat_id == seat_id, OrderItem.voided_at.is_(None))
            .limit(1)
        )
        try:
            if referenced is not None:
                seat.status = SeatStatus.REMOVED
                action = "marked_removed"
            else:
                self._db.delete(seat)
                action = "deleted"
            safe_commit(self._db)
        except SQLAlchemyError:
            self._db.rollback()
            logger.error("Seat remove failed", seat_id=str(seat_id), exc_info=True)
            return ServiceResult.failure("Failed to remove seat")

        logger.info("Seat removed", seat_id=str(seat_id), action=action)
        return ServiceResult.success()

    def remove_seat_by_session_and_number(self, session_id: uuid.UUID, seat_number: int) -> ServiceResult:
        """Remove a seat addressed by its number within the session."""
        loaded = self._load_session(session_id)
        if isinstance(loaded, ServiceResult):
            return loaded
        seat_id = self._seat_id_for_number(session_id, seat_number)
        if seat_id is None:
            return ServiceResult.failure("Seat not found", FailureReason.NOT_FOUND)
        return self.remove_seat_from_session(seat_id)

    def rename_seat(self, seat_id: uuid.UUID, new_seat_number: int) -> SeatResult:
        """
        Give a seat a new number. Refused once any of the seat's items has
        gone to the kitchen, since tickets already carry the old number.
        Item seat numbers are rewritten along with the seat.
        """
        if new_seat_number < 1:
            return SeatResult.failure("Invalid seat number", FailureReason.INVALID_SEAT_NUMBER)

        seat = self._db.get(Seat, seat_id)
        if seat is None:
            return SeatResult.failure("Seat not found", FailureReason.NOT_FOUND)

        loaded = self._load_session(seat.session_id)
        if isinstance(loaded, ServiceResult):
            return SeatResult.failure(loaded.error, loaded.reason)

        if seat.seat_number == new_seat_number:
            return SeatResult.success(seat_id=seat.id, seat_number=new_seat_number)

        taken = self._db.scalar(
            select(Seat.id).where(
                Seat.session_id == seat.session_id,
                Seat.seat_number == new_seat_number,
                Seat.id != seat_id,
            )
        )
        if taken is not None:
            return SeatResult.failure(f"Seat {new_seat_number} already exists", FailureReason.SEAT_EXISTS)

        sent = self._db.scalar(
            select(OrderItem.id)
            .where(OrderItem.seat_id == seat_id, OrderItem.sent_to_kitchen_at.is_not(None))
            .limit(1)
        )
        if sent is not None:
            return SeatResult.failure(
                "Cannot renumber a seat whose items have been sent to kitchen",
                FailureReason.ITEM_SENT_TO_KITCHEN,
            )

        previous = seat.seat_number
        try:
            seat.seat_number = new_seat_number
            self._db.execute(
                update(OrderItem)
                .where(OrderItem.seat_id == seat_id)
                .values(seat=new_seat_number)
                .execution_options(synchronize_session="fetch")
            )
            safe_commit(self._db)
        except SQLAlchemyError:
            self._db.rollback()
            logger.error("Seat rename failed", seat_id=str(seat_id), exc_info=True)
            return SeatResult.failure("Failed to rename seat")

        logger.info("Seat renamed", seat_id=str(seat_id), previous=previous, seat_number=new_seat_number)
        return SeatResult.success(seat_id=seat.id, seat_number=new_seat_number)

    def rename_seat_by_session_and_number(
        self,
        session_id: uuid.UUID,
        seat_number: int,
        new_seat_number: int,
    ) -> SeatResult:
        loaded = self._load_session(session_id)
        if isinstance(loaded, ServiceResult):
            return SeatResult.failure(loaded.error, loaded.reason)
        seat_id = self._seat_id_for_number(session_id, seat_number)
        if seat_id is None:
            return SeatResult.failure("Seat not found", FailureReason.NOT_FOUND)
        return self.rename_seat(seat_id, new_seat_number)

    def _seat_id_for_number(self, session_id: uuid.UUID, seat_number: int) -> uuid.UUID | None:
        return self._db.scalar(
            select(Seat.id).where(Seat.session_id == session_id, Seat.seat_number == seat_number)
        )

    def get_seats_for_session(self, session_id: uuid.UUID) -> list[Seat]:
        """All seats of a session (active and removed), by seat number."""
        return list(
            self._db.scalars(
                select(Seat).where(Seat.session_id == session_id).order_by(Seat.seat_number)
            ).all()
        )
