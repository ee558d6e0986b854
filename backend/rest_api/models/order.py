"""
Order Models: Order (one wave of a session), OrderItem.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Optional

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from shared.config.constants import OrderDefaults, OrderItemStatus, OrderStatus

from .base import Base, TimestampMixin, UUIDPrimaryKeyMixin

if TYPE_CHECKING:
    from .table import TableSession

MONEY = Numeric(10, 2)
ZERO = Decimal("0.00")


class Order(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """
    One wave (course) of a table session.

    Wave 1 is fired to the kitchen as soon as it is created by a sync; later
    waves wait for an explicit fire. session_id is null only for legacy
    orders written before sessions existed.
    """

    __tablename__ = "customer_order"

    session_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        ForeignKey("table_session.id"), nullable=True, index=True
    )
    wave: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    location_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("location.id"), nullable=False, index=True
    )
    table_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("restaurant_table.id"), nullable=False, index=True
    )
    order_number: Mapped[str] = mapped_column(String(20), nullable=False)
    order_type: Mapped[str] = mapped_column(Text, default=OrderDefaults.ORDER_TYPE, nullable=False)
    status: Mapped[str] = mapped_column(Text, default=OrderStatus.PENDING, nullable=False, index=True)
    payment_status: Mapped[str] = mapped_column(Text, default=OrderDefaults.PAYMENT_STATUS, nullable=False)
    payment_timing: Mapped[str] = mapped_column(Text, default=OrderDefaults.PAYMENT_TIMING, nullable=False)

    # Money
    subtotal: Mapped[Decimal] = mapped_column(MONEY, default=ZERO, nullable=False)
    tax_amount: Mapped[Decimal] = mapped_column(MONEY, default=ZERO, nullable=False)
    service_charge: Mapped[Decimal] = mapped_column(MONEY, default=ZERO, nullable=False)
    tip_amount: Mapped[Decimal] = mapped_column(MONEY, default=ZERO, nullable=False)
    discount_amount: Mapped[Decimal] = mapped_column(MONEY, default=ZERO, nullable=False)
    total: Mapped[Decimal] = mapped_column(MONEY, default=ZERO, nullable=False)

    fired_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    station: Mapped[Optional[str]] = mapped_column(Text)
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))

    __table_args__ = (
        UniqueConstraint("session_id", "wave", name="uq_order_session_wave"),
        CheckConstraint("wave >= 1", name="chk_order_wave_positive"),
        # Legacy read path looks up active orders by table
        Index("ix_order_location_table_status", "location_id", "table_id", "status"),
    )

    # Relationships
    session: Mapped[Optional["TableSession"]] = relationship(back_populates="orders")
    items: Mapped[list["OrderItem"]] = relationship(back_populates="order")

    def __repr__(self) -> str:
        return f"<Order(id={self.id}, wave={self.wave}, status='{self.status}', session_id={self.session_id})>"


class OrderItem(UUIDPrimaryKeyMixin, Base):
    """
    A single line on an order.

    seat is the seat number as typed on the floor (0 = shared); seat_id is
    only set when that number resolved to a seat row of the session.
    """

    __tablename__ = "order_item"

    order_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("customer_order.id", ondelete="CASCADE"), nullable=False, index=True
    )
    item_name: Mapped[str] = mapped_column(String(255), nullable=False)
    item_price: Mapped[Decimal] = mapped_column(MONEY, nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    seat: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    seat_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        ForeignKey("seat.id", ondelete="SET NULL"), nullable=True, index=True
    )
    customizations_total: Mapped[Decimal] = mapped_column(MONEY, default=ZERO, nullable=False)
    line_total: Mapped[Decimal] = mapped_column(MONEY, default=ZERO, nullable=False)
    notes: Mapped[Optional[str]] = mapped_column(Text)
    status: Mapped[str] = mapped_column(Text, default=OrderItemStatus.PENDING, nullable=False, index=True)

    # Kitchen timeline
    sent_to_kitchen_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    started_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    ready_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    served_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    voided_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    void_reason: Mapped[Optional[str]] = mapped_column(Text)
    # Remade once after a kitchen problem
    refired_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))

    __table_args__ = (
        CheckConstraint("quantity > 0", name="chk_order_item_qty_positive"),
        CheckConstraint("seat >= 0", name="chk_order_item_seat_non_negative"),
    )

    # Relationships
    order: Mapped["Order"] = relationship(back_populates="items")

    def __repr__(self) -> str:
        return f"<OrderItem(id={self.id}, name='{self.item_name}', status='{self.status}')>"
