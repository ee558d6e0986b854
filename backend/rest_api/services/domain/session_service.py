"""
Session Domain Service.

Finds or opens the single open session of a table and owns guest-count
changes. The partial unique index on open sessions is what makes
find-then-insert safe: a losing concurrent insert is rolled back and the
winner's session is returned instead.
"""

import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from shared.config.constants import (
    FailureReason,
    SessionEventType,
    SessionSource,
    SessionStatus,
)
from shared.config.logging import get_logger
from shared.infrastructure.db import safe_commit
from rest_api.models import Table, TableSession
from .access import UNAUTHORIZED_MESSAGE, LocationAccessGuard
from .event_recorder import SessionEventRecorder
from .order_lines import normalize_guest_count
from .results import ServiceResult
from .seat_service import SeatService, SeatSyncError
from .service_period import resolve_service_period

logger = get_logger(__name__)


class SessionService:
    """
    Domain service for table sessions.

    Lookups by table number are case-insensitive ("t5" finds "T5") and are
    scoped to the location.
    """

    def __init__(self, db: Session, ctx: dict[str, Any] | None = None):
        self._db = db
        self._ctx = ctx
        self._guard = LocationAccessGuard(db, ctx)
        self._seats = SeatService(db, ctx)
        self._events = SessionEventRecorder(db, ctx)

    # =========================================================================
    # Lookups
    # =========================================================================

    def resolve_table(self, location_id: uuid.UUID, table_number: str) -> Table | None:
        """Table of the location whose number matches, ignoring case."""
        return self._db.scalars(
            select(Table)
            .where(
                Table.location_id == location_id,
                func.lower(Table.table_number) == table_number.strip().lower(),
            )
            .limit(1)
        ).first()

    def find_open_session(self, location_id: uuid.UUID, table_id: uuid.UUID) -> TableSession | None:
        return self._db.scalars(
            select(TableSession).where(
                TableSession.location_id == location_id,
                TableSession.table_id == table_id,
                TableSession.status == SessionStatus.OPEN,
            )
        ).first()

    def get_session(self, session_id: uuid.UUID) -> TableSession | ServiceResult:
        """Session by id if the caller may see it, else a failed result."""
        session = self._db.get(TableSession, session_id)
        if session is None:
            return ServiceResult.failure("Session not found", FailureReason.NOT_FOUND)
        if self._guard.verify(session.location_id) is None:
            return ServiceResult.failure(UNAUTHORIZED_MESSAGE, FailureReason.UNAUTHORIZED)
        return session

    # =========================================================================
    # Get or create
    # =========================================================================

    def open_or_get_session(
        self,
        location_id: uuid.UUID,
        table_id: uuid.UUID,
        guest_count: float,
        server_id: str | None = None,
        now: datetime | None = None,
    ) -> tuple[uuid.UUID | None, bool]:
        """
        Return (session_id, created).

        An existing open session is returned untouched, guest count included.
        A new session commits on its own before its seats are synced, so a
        seat failure leaves the session in place.
        """
        existing = self.find_open_session(location_id, table_id)
        if existing is not None:
            return existing.id, False

        seeded = normalize_guest_count(guest_count)
        session = TableSession(
            location_id=location_id,
            table_id=table_id,
            server_id=server_id,
            guest_count=seeded,
            status=SessionStatus.OPEN,
            source=SessionSource.WALK_IN,
            service_period_id=resolve_service_period(self._db, location_id, now),
        )
        try:
            self._db.add(session)
            self._db.commit()
        except IntegrityError:
            # Another request opened this table first
            self._db.rollback()
            winner = self.find_open_session(location_id, table_id)
            logger.info(
                "Concurrent session open resolved to existing session",
                table_id=str(table_id),
                session_id=str(winner.id) if winner else None,
            )
            return (winner.id if winner else None), False

        if session.id is None:
            return None, False

        seat_result = self._seats.sync_seats_with_guest_count(session.id, seeded)
        if not seat_result.ok:
            logger.warning(
                "Seat sync failed for new session",
                session_id=str(session.id),
                error=seat_result.error,
            )

        self._events.record(
            location_id,
            session.id,
            SessionEventType.SESSION_OPENED,
            {"guest_count": seeded, "source": SessionSource.WALK_IN},
        )
        logger.info(
            "Session opened",
            session_id=str(session.id),
            table_id=str(table_id),
            guest_count=seeded,
        )
        return session.id, True

    def get_or_create_session_for_table(
        self,
        location_id: uuid.UUID,
        table_id: uuid.UUID,
        guest_count: float,
        server_id: str | None = None,
    ) -> uuid.UUID | None:
        """Id of the table's open session, opening one if needed."""
        session_id, _ = self.open_or_get_session(location_id, table_id, guest_count, server_id)
        return session_id

    def ensure_session_for_table(
        self,
        location_id: uuid.UUID,
        table_number: str,
        guest_count: float,
        server_id: str | None = None,
    ) -> uuid.UUID | None:
        """Seat a party by table number. None on any miss."""
        if self._guard.verify(location_id) is None:
            return None
        table = self.resolve_table(location_id, table_number)
        if table is None:
            return None
        try:
            session_id, created = self.open_or_get_session(location_id, table.id, guest_count, server_id)
        except SQLAlchemyError:
            self._db.rollback()
            logger.error("Session open failed", table_id=str(table.id), exc_info=True)
            return None
        if session_id is not None and created:
            self._events.record(
                location_id,
                session_id,
                SessionEventType.GUEST_SEATED,
                {"table_number": table.table_number, "guest_count": normalize_guest_count(guest_count)},
            )
        return session_id

    def get_open_session_id_for_table(
        self,
        location_id: uuid.UUID,
        table_number: str,
    ) -> uuid.UUID | None:
        """Open session of a table by table number. None on any miss."""
        if self._guard.verify(location_id) is None:
            return None
        table = self.resolve_table(location_id, table_number)
        if table is None:
            return None
        session = self.find_open_session(location_id, table.id)
        return session.id if session else None

    # =========================================================================
    # Guest count
    # =========================================================================

    def set_guest_count(self, session: TableSession, guest_count: float) -> int:
        """
        Set the floored guest count and resync seats inside the caller's
        transaction. Returns the stored count.

        Raises:
            SeatSyncError: the seats could not follow the new count.
        """
        floored = normalize_guest_count(guest_count)
        session.guest_count = floored
        self._db.flush()
        self._seats.ensure_seats_for_session(session.id, floored, commit=False)
        return floored

    def update_guest_count(self, session_id: uuid.UUID, guest_count: float) -> ServiceResult:
        """Change the party size of an open session."""
        loaded = self.get_session(session_id)
        if isinstance(loaded, ServiceResult):
            return loaded
        session = loaded
        if session.status != SessionStatus.OPEN:
            return ServiceResult.failure("Session is not open", FailureReason.SESSION_NOT_OPEN)

        previous = session.guest_count
        try:
            floored = self.set_guest_count(session, guest_count)
            safe_commit(self._db)
        except (SeatSyncError, SQLAlchemyError):
            self._db.rollback()
            logger.error("Guest count update failed", session_id=str(session_id), exc_info=True)
            return ServiceResult.failure("Failed to update guest count")

        if floored != previous:
            self._events.record(
                session.location_id,
                session.id,
                SessionEventType.GUEST_COUNT_ADJUSTED,
                {"from": previous, "to": floored},
            )
        logger.info("Guest count updated", session_id=str(session_id), guest_count=floored)
        return ServiceResult.success()
