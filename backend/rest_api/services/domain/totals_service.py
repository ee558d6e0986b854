"""
Totals Domain Service.

Order totals are always derived from their non-voided items; session totals
are the sum of the session's non-cancelled orders less completed payments.
Nothing here commits: callers fold the recalculation into their own
transaction.
"""

import uuid
from decimal import Decimal

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from shared.config.constants import OrderStatus, PaymentStatus
from shared.config.logging import get_logger
from rest_api.models import Order, OrderItem, Payment, utcnow
from .order_lines import CENT
from .results import SessionTotals

logger = get_logger(__name__)

ZERO = Decimal("0.00")


def _money(value) -> Decimal:
    return Decimal(value or 0).quantize(CENT)


class TotalsService:
    """Recomputes order and session money from the item rows."""

    def __init__(self, db: Session):
        self._db = db

    def recalculate_order_totals(self, order_id: uuid.UUID) -> Decimal:
        """Set subtotal = total = sum of non-voided line totals. Tax is not applied here."""
        subtotal = _money(
            self._db.scalar(
                select(func.coalesce(func.sum(OrderItem.line_total), 0)).where(
                    OrderItem.order_id == order_id,
                    OrderItem.voided_at.is_(None),
                )
            )
        )
        self._db.execute(
            update(Order)
            .where(Order.id == order_id)
            .values(subtotal=subtotal, tax_amount=ZERO, total=subtotal, updated_at=utcnow())
        )
        return subtotal

    def paid_total(self, session_id: uuid.UUID) -> Decimal:
        """Sum of completed payments for the session."""
        return _money(
            self._db.scalar(
                select(func.coalesce(func.sum(Payment.amount), 0)).where(
                    Payment.session_id == session_id,
                    Payment.status == PaymentStatus.COMPLETED,
                )
            )
        )

    def recalculate_session_totals(self, session_id: uuid.UUID) -> SessionTotals:
        """Recalculate every non-cancelled order of the session and sum them."""
        order_ids = self._db.scalars(
            select(Order.id).where(
                Order.session_id == session_id,
                Order.status != OrderStatus.CANCELLED,
            )
        ).all()

        total = ZERO
        for order_id in order_ids:
            total += self.recalculate_order_totals(order_id)

        paid = self.paid_total(session_id)
        remaining = max(ZERO, total - paid)
        logger.debug(
            "Session totals recalculated",
            session_id=str(session_id),
            total=str(total),
            paid=str(paid),
        )
        return SessionTotals(subtotal=total, total=total, paid=paid, remaining=remaining)
