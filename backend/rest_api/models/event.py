"""
Audit Models: SessionEvent.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any, Optional

from sqlalchemy import JSON, DateTime, ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, UUIDPrimaryKeyMixin, utcnow


class SessionEvent(UUIDPrimaryKeyMixin, Base):
    """
    Append-only timeline entry for a table session
    (seated, course fired, item ready, paid, closed...).
    """

    __tablename__ = "session_event"

    location_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("location.id"), nullable=False, index=True
    )
    session_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("table_session.id"), nullable=False
    )
    type: Mapped[str] = mapped_column(Text, nullable=False)
    actor_type: Mapped[Optional[str]] = mapped_column(String(20))
    actor_id: Mapped[Optional[str]] = mapped_column(String(64))
    # "metadata" is reserved on declarative classes
    meta: Mapped[dict[str, Any]] = mapped_column(JSON, default=dict, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)

    __table_args__ = (
        Index("ix_session_event_session_created", "session_id", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<SessionEvent(type='{self.type}', session_id={self.session_id})>"
