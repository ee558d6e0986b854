"""
Billing Models: Payment.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Index, Numeric, Text
from sqlalchemy.orm import Mapped, mapped_column

from shared.config.constants import PaymentMethod, PaymentStatus

from .base import Base, TimestampMixin, UUIDPrimaryKeyMixin


class Payment(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """
    Money received against a session.
    Payments are appended and never edited once completed.
    """

    __tablename__ = "payment"

    session_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        ForeignKey("table_session.id"), nullable=True, index=True
    )
    order_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        ForeignKey("customer_order.id"), nullable=True, index=True
    )
    amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    tip_amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), default=Decimal("0.00"), nullable=False)
    method: Mapped[str] = mapped_column(Text, default=PaymentMethod.CARD, nullable=False)
    status: Mapped[str] = mapped_column(Text, default=PaymentStatus.COMPLETED, nullable=False, index=True)
    paid_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))

    __table_args__ = (
        CheckConstraint("amount >= 0", name="chk_payment_amount_non_negative"),
        CheckConstraint("tip_amount >= 0", name="chk_payment_tip_non_negative"),
        Index("ix_payment_session_status", "session_id", "status"),
    )

    def __repr__(self) -> str:
        return f"<Payment(id={self.id}, amount={self.amount}, status='{self.status}')>"
