"""
Table and Session Models: Table, TableSession, Seat.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import TYPE_CHECKING, Optional

from sqlalchemy import (
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from shared.config.constants import (
    SeatStatus,
    SessionSource,
    SessionStatus,
    TableStatus,
)

from .base import Base, TimestampMixin, UUIDPrimaryKeyMixin, utcnow

if TYPE_CHECKING:
    from .location import Location
    from .order import Order


class Table(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """
    Physical table in a location.

    table_number is the label printed on the floor map ("T5", "Patio-2") and is
    matched case-insensitively. guests/seated_at are the pre-session seating
    fields; they are only read by the legacy read path.
    """

    # "table" is a reserved SQL keyword
    __tablename__ = "restaurant_table"

    location_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("location.id"), nullable=False, index=True
    )
    table_number: Mapped[str] = mapped_column(String(20), nullable=False)
    capacity: Mapped[int] = mapped_column(Integer, default=4)
    status: Mapped[str] = mapped_column(Text, default=TableStatus.AVAILABLE, index=True)

    # Legacy seating fields
    guests: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    seated_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))

    __table_args__ = (
        Index("ix_table_location_number", "location_id", "table_number"),
    )

    # Relationships
    location: Mapped["Location"] = relationship(back_populates="tables")
    sessions: Mapped[list["TableSession"]] = relationship(back_populates="table")

    def __repr__(self) -> str:
        return f"<Table(id={self.id}, number={self.table_number})>"


class TableSession(UUIDPrimaryKeyMixin, Base):
    """
    One seating of a table, from the party sitting down to the check being settled.

    At most one session per table may be open at a time. The partial unique
    index below makes a second concurrent insert fail instead of silently
    producing two open sessions.
    """

    __tablename__ = "table_session"

    location_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("location.id"), nullable=False, index=True
    )
    table_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("restaurant_table.id"), nullable=False, index=True
    )
    server_id: Mapped[Optional[str]] = mapped_column(String(64), index=True)
    guest_count: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    status: Mapped[str] = mapped_column(Text, default=SessionStatus.OPEN, nullable=False, index=True)
    source: Mapped[str] = mapped_column(Text, default=SessionSource.WALK_IN, nullable=False)
    service_period_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        ForeignKey("service_period.id"), nullable=True
    )
    opened_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
    closed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    updated_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow
    )

    __table_args__ = (
        Index(
            "uq_table_session_open_table",
            "location_id",
            "table_id",
            unique=True,
            postgresql_where=text("status = 'open'"),
            sqlite_where=text("status = 'open'"),
        ),
        Index("ix_table_session_location_status", "location_id", "status"),
    )

    # Relationships
    table: Mapped["Table"] = relationship(back_populates="sessions")
    seats: Mapped[list["Seat"]] = relationship(
        back_populates="session", order_by="Seat.seat_number"
    )
    orders: Mapped[list["Order"]] = relationship(back_populates="session")

    def __repr__(self) -> str:
        return f"<TableSession(id={self.id}, table_id={self.table_id}, status={self.status})>"


class Seat(UUIDPrimaryKeyMixin, Base):
    """
    A guest position within a session.

    seat_number starts at 1; number 0 means "shared" and is never stored.
    Seats above the guest count are marked removed rather than deleted while
    items still point at them.
    """

    __tablename__ = "seat"

    session_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("table_session.id", ondelete="CASCADE"), nullable=False, index=True
    )
    seat_number: Mapped[int] = mapped_column(Integer, nullable=False)
    guest_name: Mapped[Optional[str]] = mapped_column(Text)
    status: Mapped[str] = mapped_column(Text, default=SeatStatus.ACTIVE, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)

    __table_args__ = (
        UniqueConstraint("session_id", "seat_number", name="uq_seat_session_number"),
    )

    session: Mapped["TableSession"] = relationship(back_populates="seats")

    def __repr__(self) -> str:
        return f"<Seat(session_id={self.session_id}, number={self.seat_number}, status={self.status})>"
