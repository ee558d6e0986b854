"""
Location Models: Location, ServicePeriod.
"""

from __future__ import annotations

import uuid
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, ForeignKey, Index, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, TimestampMixin, UUIDPrimaryKeyMixin

if TYPE_CHECKING:
    from .table import Table


class Location(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """
    A restaurant location (one physical venue).
    Every table, session and order is scoped to exactly one location.
    """

    __tablename__ = "location"

    name: Mapped[str] = mapped_column(Text, nullable=False)
    # IANA name, e.g. "America/Santiago"; service periods are local wall-clock times
    timezone: Mapped[str | None] = mapped_column(String(64), nullable=True)
    tax_rate: Mapped[Decimal] = mapped_column(Numeric(6, 4), default=Decimal("0"))
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False, index=True)

    # Relationships
    tables: Mapped[list["Table"]] = relationship(back_populates="location")
    service_periods: Mapped[list["ServicePeriod"]] = relationship(
        back_populates="location", order_by="ServicePeriod.start_time"
    )


class ServicePeriod(UUIDPrimaryKeyMixin, Base):
    """
    Named part of the service day (breakfast, lunch, dinner).

    start_time/end_time are zero-padded "HH:MM" strings compared lexically,
    so a period never wraps midnight.
    """

    __tablename__ = "service_period"

    location_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("location.id"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(Text, nullable=False)
    start_time: Mapped[str] = mapped_column(String(5), nullable=False)  # "11:30"
    end_time: Mapped[str] = mapped_column(String(5), nullable=False)  # "15:00"

    __table_args__ = (
        Index("ix_service_period_location_start", "location_id", "start_time"),
    )

    location: Mapped["Location"] = relationship(back_populates="service_periods")

    def __repr__(self) -> str:
        return f"<ServicePeriod(name={self.name}, {self.start_time}-{self.end_time})>"
