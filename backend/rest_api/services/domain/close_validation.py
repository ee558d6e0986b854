"""
Close Validation Domain Service.

Answers "may this session close now?" for a normal (non-forced) close.
Checks run in a fixed order and the first failing one is reported.
"""

import uuid
from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from shared.config.constants import (
    FailureReason,
    OrderItemStatus,
    OrderStatus,
    PaymentStatus,
    SessionStatus,
)
from shared.config.settings import settings
from rest_api.models import Order, OrderItem, Payment, TableSession
from .results import CanCloseResult, OutstandingItem, OutstandingItemsResult
from .totals_service import TotalsService


def _round2(value: Decimal) -> float:
    return float(round(value, 2))


class CloseValidationService:
    """
    Closability oracle.

    Order of checks: session open, unfinished items, kitchen mid-fire,
    pending payment, unpaid balance.
    """

    def __init__(self, db: Session):
        self._db = db
        self._totals = TotalsService(db)

    def can_close_session(
        self,
        session_id: uuid.UUID,
        incoming_payment_amount: Decimal | float | None = None,
    ) -> CanCloseResult:
        session = self._db.get(TableSession, session_id)
        if session is None or session.status != SessionStatus.OPEN:
            return CanCloseResult.failure("Session is not open", FailureReason.SESSION_NOT_OPEN)

        order_ids = self._db.scalars(select(Order.id).where(Order.session_id == session_id)).all()
        if not order_ids:
            return CanCloseResult.success()

        items = self._db.scalars(
            select(OrderItem).where(
                OrderItem.order_id.in_(order_ids),
                OrderItem.voided_at.is_(None),
            )
        ).all()

        unfinished = [item for item in items if item.status in OrderItemStatus.UNFINISHED]
        if unfinished:
            return CanCloseResult.failure(
                f"Cannot close: {len(unfinished)} item(s) not yet served",
                FailureReason.UNFINISHED_ITEMS,
                items=[
                    OutstandingItem(
                        id=item.id,
                        item_name=item.item_name,
                        status=item.status,
                        quantity=item.quantity or 1,
                        order_id=item.order_id,
                    )
                    for item in unfinished
                ],
            )

        if any(item.sent_to_kitchen_at is not None and item.started_at is None for item in items):
            return CanCloseResult.failure(
                "Cannot close: kitchen has not started items already sent",
                FailureReason.KITCHEN_MID_FIRE,
            )

        pending_payments = self._db.scalar(
            select(func.count(Payment.id)).where(
                Payment.session_id == session_id,
                Payment.status == PaymentStatus.PENDING,
            )
        )
        if pending_payments:
            return CanCloseResult.failure(
                "Cannot close: a payment is still in progress",
                FailureReason.PAYMENT_IN_PROGRESS,
            )

        session_total = Decimal(
            self._db.scalar(
                select(func.coalesce(func.sum(Order.total), 0)).where(
                    Order.session_id == session_id,
                    Order.status != OrderStatus.CANCELLED,
                )
            )
            or 0
        )
        incoming = Decimal(str(incoming_payment_amount)) if incoming_payment_amount is not None else Decimal("0")
        if not incoming.is_finite() or incoming < 0:
            incoming = Decimal("0")
        payments_total = self._totals.paid_total(session_id) + incoming

        remaining = session_total - payments_total
        if remaining > Decimal(str(settings.payment_balance_tolerance)):
            return CanCloseResult.failure(
                f"Cannot close: unpaid balance of {_round2(remaining):.2f}",
                FailureReason.UNPAID_BALANCE,
                remaining=_round2(remaining),
                session_total=_round2(session_total),
                payments_total=_round2(payments_total),
            )

        return CanCloseResult.success()

    def get_session_outstanding_items(self, session_id: uuid.UUID) -> OutstandingItemsResult:
        """What still blocks closing the session, shaped for the floor UI."""
        result = self.can_close_session(session_id)
        if result.ok:
            return OutstandingItemsResult(can_close=True)
        return OutstandingItemsResult(
            can_close=False,
            reason=result.reason,
            unfinished_items=result.items or [],
            remaining=result.remaining,
        )
