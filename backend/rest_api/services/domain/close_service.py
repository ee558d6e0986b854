"""
Session Close Domain Service.

Closes a table's open session: validate (or apply a manager override),
record the payment, then close the session and complete all of its orders.
Writes commit once at the end; a refusal rolls back anything staged.
"""

import uuid
from decimal import Decimal
from typing import Any

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from shared.config.constants import (
    FailureReason,
    OrderItemStatus,
    OrderStatus,
    PaymentStatus,
    SessionEventType,
    SessionStatus,
)
from shared.config.logging import billing_logger as logger
from shared.infrastructure.db import safe_commit
from shared.utils.schemas import PaymentInput
from rest_api.models import Order, OrderItem, Payment, TableSession, utcnow
from .access import UNAUTHORIZED_MESSAGE, LocationAccessGuard
from .close_validation import CloseValidationService
from .event_recorder import SessionEventRecorder
from .results import CloseResult
from .session_service import SessionService
from .totals_service import TotalsService


class SessionCloseService:
    """
    Domain service for closing tables.

    Usage:
        result = SessionCloseService(db, ctx).close_order_for_table(
            location_id, "T5", payment=PaymentInput(amount=Decimal("42.00")),
        )
    """

    def __init__(self, db: Session, ctx: dict[str, Any] | None = None):
        self._db = db
        self._guard = LocationAccessGuard(db, ctx)
        self._sessions = SessionService(db, ctx)
        self._validation = CloseValidationService(db)
        self._totals = TotalsService(db)
        self._events = SessionEventRecorder(db, ctx)

    def close_order_for_table(
        self,
        location_id: uuid.UUID,
        table_number: str,
        payment: PaymentInput | None = None,
        force: bool = False,
    ) -> CloseResult:
        """Close the open session of a table, or the legacy order when there is none."""
        if self._guard.verify(location_id) is None:
            return CloseResult.failure(UNAUTHORIZED_MESSAGE, FailureReason.UNAUTHORIZED)

        table = self._sessions.resolve_table(location_id, table_number)
        if table is None:
            return CloseResult.failure("Table not found", FailureReason.NOT_FOUND)

        session = self._sessions.find_open_session(location_id, table.id)
        if session is not None:
            return self._close_open_session(session, payment, force)

        # Legacy: no session, complete the active order tied to the table
        legacy_order = self._db.scalars(
            select(Order)
            .where(
                Order.location_id == location_id,
                Order.table_id == table.id,
                Order.status.in_(OrderStatus.ACTIVE),
            )
            .order_by(Order.created_at)
        ).first()
        if legacy_order is None:
            return CloseResult.success()

        now = utcnow()
        legacy_order.status = OrderStatus.COMPLETED
        legacy_order.completed_at = now
        try:
            safe_commit(self._db)
        except SQLAlchemyError:
            logger.error("Legacy order close failed", order_id=str(legacy_order.id), exc_info=True)
            return CloseResult.failure("Failed to close order")

        logger.info("Legacy order closed", order_id=str(legacy_order.id), table_id=str(table.id))
        return CloseResult.success()

    def close_session(
        self,
        session_id: uuid.UUID,
        payment: PaymentInput | None = None,
        force: bool = False,
    ) -> CloseResult:
        """Close a session by id through the same path as close_order_for_table."""
        session = self._db.get(TableSession, session_id)
        if session is None:
            return CloseResult.failure("Session not found", FailureReason.NOT_FOUND)
        if self._guard.verify(session.location_id) is None:
            return CloseResult.failure(UNAUTHORIZED_MESSAGE, FailureReason.UNAUTHORIZED)
        if session.status != SessionStatus.OPEN:
            return CloseResult.failure("Session is not open", FailureReason.SESSION_NOT_OPEN)
        return self._close_open_session(session, payment, force)

    def _void_unfinished_items(self, session_id: uuid.UUID, now) -> int:
        order_ids = select(Order.id).where(Order.session_id == session_id)
        result = self._db.execute(
            update(OrderItem)
            .where(
                OrderItem.order_id.in_(order_ids),
                OrderItem.status.in_(OrderItemStatus.UNFINISHED),
                OrderItem.voided_at.is_(None),
            )
            .values(voided_at=now, void_reason="manager_override")
            .execution_options(synchronize_session="fetch")
        )
        return result.rowcount or 0

    def _close_open_session(
        self,
        session: TableSession,
        payment: PaymentInput | None,
        force: bool,
    ) -> CloseResult:
        session_id = session.id
        location_id = session.location_id

        if payment is not None and payment.tip_amount < 0:
            logger.warning("Close refused: negative tip", session_id=str(session_id))
            return CloseResult.failure(
                "Tip amount cannot be negative", FailureReason.INVALID_TIP, session_id=session_id
            )

        now = utcnow()
        voided = 0
        payment_recorded = False
        try:
            if force:
                voided = self._void_unfinished_items(session_id, now)
                self._totals.recalculate_session_totals(session_id)
            else:
                self._totals.recalculate_session_totals(session_id)
                check = self._validation.can_close_session(
                    session_id,
                    incoming_payment_amount=payment.amount if payment is not None else None,
                )
                if not check.ok:
                    self._db.rollback()
                    logger.warning("Close refused", session_id=str(session_id), reason=check.reason)
                    return CloseResult.failure(
                        check.error,
                        check.reason,
                        session_id=session_id,
                        items=check.items,
                        remaining=check.remaining,
                        session_total=check.session_total,
                        payments_total=check.payments_total,
                    )

            if payment is not None and payment.amount > 0:
                self._db.add(
                    Payment(
                        session_id=session_id,
                        amount=payment.amount,
                        tip_amount=payment.tip_amount,
                        method=payment.method,
                        status=PaymentStatus.COMPLETED,
                        paid_at=now,
                    )
                )
                self._db.flush()
                payment_recorded = True
                self._totals.recalculate_session_totals(session_id)

            self._db.execute(
                update(TableSession)
                .where(TableSession.id == session_id)
                .values(status=SessionStatus.CLOSED, closed_at=now, updated_at=now)
            )
            # Every order of the session, whatever its current status
            self._db.execute(
                update(Order)
                .where(Order.session_id == session_id)
                .values(status=OrderStatus.COMPLETED, completed_at=now, updated_at=now)
            )
            safe_commit(self._db)
        except SQLAlchemyError:
            self._db.rollback()
            logger.error("Session close failed", session_id=str(session_id), exc_info=True)
            return CloseResult.failure("Failed to close session", session_id=session_id)

        if force:
            meta: dict[str, Any] = {
                "forced_close": True,
                "reason": "manager_override",
                "voided_items": voided,
            }
            if payment_recorded:
                meta.update(amount=str(payment.amount), tip_amount=str(payment.tip_amount), method=payment.method)
            self._events.record(location_id, session_id, SessionEventType.PAYMENT_COMPLETED, meta)
        elif payment_recorded:
            self._events.record(
                location_id,
                session_id,
                SessionEventType.PAYMENT_COMPLETED,
                {
                    "amount": str(payment.amount),
                    "tip_amount": str(payment.tip_amount),
                    "method": payment.method,
                },
            )
        self._events.record(location_id, session_id, SessionEventType.SESSION_CLOSED, {"forced": force})

        logger.info(
            "Session closed",
            session_id=str(session_id),
            forced=force,
            voided_items=voided,
            payment_recorded=payment_recorded,
        )
        return CloseResult.success(session_id=session_id, voided_items=voided if force else None)
