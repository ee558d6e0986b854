"""
Session event recorder.

Appends audit-trail rows for a table session. Recording is best-effort:
a failed insert is logged and rolled back but never fails the operation
that triggered it, so callers record only after their own commit.
"""

import uuid
from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from shared.config.constants import ActorType, Roles
from shared.config.logging import get_logger
from rest_api.models import SessionEvent

logger = get_logger(__name__)


class SessionEventRecorder:
    """Writes and reads the per-session audit trail."""

    def __init__(self, db: Session, ctx: dict[str, Any] | None = None):
        self._db = db
        self._ctx = ctx

    def _default_actor(self) -> tuple[str, str | None]:
        if self._ctx is None:
            return ActorType.SYSTEM, None
        roles = self._ctx.get("roles", [])
        actor_type = ActorType.KITCHEN if roles == [Roles.KITCHEN] else ActorType.SERVER
        return actor_type, self._ctx.get("user_id")

    def record(
        self,
        location_id: uuid.UUID,
        session_id: uuid.UUID,
        event_type: str,
        meta: dict[str, Any] | None = None,
        actor_type: str | None = None,
        actor_id: str | None = None,
    ) -> bool:
        """Append one event. Returns False (after logging) if it could not be stored."""
        default_type, default_id = self._default_actor()
        event = SessionEvent(
            location_id=location_id,
            session_id=session_id,
            type=event_type,
            actor_type=actor_type or default_type,
            actor_id=actor_id or default_id,
            meta=meta or {},
        )
        try:
            self._db.add(event)
            self._db.commit()
        except SQLAlchemyError:
            self._db.rollback()
            logger.warning(
                "Session event not recorded",
                session_id=str(session_id),
                event_type=event_type,
                exc_info=True,
            )
            return False

        logger.debug("Session event recorded", session_id=str(session_id), event_type=event_type)
        return True

    def list_events(self, session_id: uuid.UUID) -> list[SessionEvent]:
        """Events for a session, oldest first."""
        return list(
            self._db.scalars(
                select(SessionEvent)
                .where(SessionEvent.session_id == session_id)
                .order_by(SessionEvent.created_at, SessionEvent.id)
            ).all()
        )
