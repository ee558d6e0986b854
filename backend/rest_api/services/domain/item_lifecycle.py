"""
Item Lifecycle Domain Service.

Per-item kitchen transitions: pending -> preparing -> ready -> served, plus
void, refire and seat moves. Each call is its own unit of work and commits on
success, so a bulk caller that stops part-way leaves earlier items transitioned.
"""

import uuid
from typing import Any, Callable

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from shared.config.constants import FailureReason, OrderItemStatus, SessionEventType
from shared.config.logging import kitchen_logger as logger
from shared.infrastructure.db import safe_commit
from rest_api.models import Order, OrderItem, Seat, utcnow
from .access import UNAUTHORIZED_MESSAGE, LocationAccessGuard
from .event_recorder import SessionEventRecorder
from .results import SeatResult, ServiceResult
from .service_rules import (
    can_mark_item_preparing,
    can_mark_item_ready,
    can_modify_item,
    can_refire_item,
    can_serve_item,
    can_void_item,
)
from .totals_service import TotalsService


class ItemLifecycleService:
    """Domain service for single order-item transitions."""

    def __init__(self, db: Session, ctx: dict[str, Any] | None = None):
        self._db = db
        self._guard = LocationAccessGuard(db, ctx)
        self._events = SessionEventRecorder(db, ctx)
        self._totals = TotalsService(db)

    def _load(self, item_id: uuid.UUID) -> tuple[OrderItem, Order] | ServiceResult:
        item = self._db.get(OrderItem, item_id)
        if item is None:
            return ServiceResult.failure("Order item not found", FailureReason.NOT_FOUND)
        order = self._db.get(Order, item.order_id)
        if order is None:
            return ServiceResult.failure("Order item not found", FailureReason.NOT_FOUND)
        if self._guard.verify(order.location_id) is None:
            return ServiceResult.failure(UNAUTHORIZED_MESSAGE, FailureReason.UNAUTHORIZED)
        return item, order

    def _commit(self, action: str, item_id: uuid.UUID, retotal: Order | None = None) -> ServiceResult | None:
        """
        Commit, first recalculating `retotal`'s totals when given. On a storage
        failure roll back and return the failed result.
        """
        try:
            if retotal is not None:
                self._db.flush()
                self._totals.recalculate_order_totals(retotal.id)
                if retotal.session_id is not None:
                    self._totals.recalculate_session_totals(retotal.session_id)
            safe_commit(self._db)
        except SQLAlchemyError:
            self._db.rollback()
            logger.error("Order item write failed", item_id=str(item_id), action=action, exc_info=True)
            return ServiceResult.failure(f"Failed to {action}")
        return None

    def _transition(
        self,
        item_id: uuid.UUID,
        rule: Callable[[str, Any], ServiceResult],
        target: str,
        timestamp_field: str,
        event_type: str | None,
    ) -> ServiceResult:
        loaded = self._load(item_id)
        if isinstance(loaded, ServiceResult):
            return loaded
        item, order = loaded

        check = rule(item.status, item.voided_at)
        if not check.ok:
            return check

        item.status = target
        setattr(item, timestamp_field, utcnow())
        failed = self._commit(f"mark item {target}", item_id)
        if failed is not None:
            return failed

        if event_type and order.session_id is not None:
            meta = {"order_item_id": str(item_id)}
            if target == OrderItemStatus.READY:
                meta["status"] = target
            self._events.record(order.location_id, order.session_id, event_type, meta)

        logger.info("Order item transitioned", item_id=str(item_id), status=target)
        return ServiceResult.success()

    def mark_item_preparing(self, item_id: uuid.UUID) -> ServiceResult:
        """pending -> preparing; stamps started_at."""
        return self._transition(
            item_id, can_mark_item_preparing, OrderItemStatus.PREPARING, "started_at", None
        )

    def mark_item_ready(self, item_id: uuid.UUID) -> ServiceResult:
        """preparing -> ready; stamps ready_at."""
        return self._transition(
            item_id, can_mark_item_ready, OrderItemStatus.READY, "ready_at", SessionEventType.ITEM_READY
        )

    def mark_item_served(self, item_id: uuid.UUID) -> ServiceResult:
        """ready -> served; stamps served_at."""
        return self._transition(
            item_id, can_serve_item, OrderItemStatus.SERVED, "served_at", SessionEventType.SERVED
        )

    def void_item(self, item_id: uuid.UUID, reason: str | None = None) -> ServiceResult:
        """Void an item and recalculate its order (and session) totals."""
        loaded = self._load(item_id)
        if isinstance(loaded, ServiceResult):
            return loaded
        item, order = loaded

        check = can_void_item(item.voided_at)
        if not check.ok:
            return check

        item.voided_at = utcnow()
        item.void_reason = reason
        failed = self._commit("void item", item_id, retotal=order)
        if failed is not None:
            return failed

        if order.session_id is not None:
            self._events.record(
                order.location_id,
                order.session_id,
                SessionEventType.ITEM_VOIDED,
                {"order_item_id": str(item_id), "reason": reason},
            )
        logger.info("Order item voided", item_id=str(item_id), reason=reason)
        return ServiceResult.success()

    def refire_item(self, item_id: uuid.UUID, reason: str | None = None) -> ServiceResult:
        """
        Send an item back to the kitchen for a remake: it returns to pending
        with a fresh kitchen timeline. An item is refired once.
        """
        loaded = self._load(item_id)
        if isinstance(loaded, ServiceResult):
            return loaded
        item, order = loaded

        check = can_refire_item(item.voided_at, item.refired_at)
        if not check.ok:
            return check

        now = utcnow()
        item.refired_at = now
        item.status = OrderItemStatus.PENDING
        item.sent_to_kitchen_at = now
        item.started_at = None
        item.ready_at = None
        item.served_at = None
        failed = self._commit("refire item", item_id, retotal=order)
        if failed is not None:
            return failed

        if order.session_id is not None:
            self._events.record(
                order.location_id,
                order.session_id,
                SessionEventType.ITEM_REFIRED,
                {"order_item_id": str(item_id), "reason": reason},
            )
        logger.info("Order item refired", item_id=str(item_id), reason=reason)
        return ServiceResult.success()

    def assign_item_to_seat(self, item_id: uuid.UUID, seat_id: uuid.UUID) -> SeatResult:
        """
        Put an item on a seat of its own session. Voided items and items the
        kitchen already has are refused.
        """
        loaded = self._load(item_id)
        if isinstance(loaded, ServiceResult):
            return SeatResult.failure(loaded.error, loaded.reason)
        item, order = loaded

        if item.voided_at is not None:
            return SeatResult.failure("Order item is voided", FailureReason.ALREADY_VOIDED)
        check = can_modify_item(item.sent_to_kitchen_at)
        if not check.ok:
            return SeatResult.failure(check.error, check.reason)

        seat = self._db.get(Seat, seat_id)
        if seat is None:
            return SeatResult.failure("Seat not found", FailureReason.NOT_FOUND)
        if order.session_id is None or seat.session_id != order.session_id:
            return SeatResult.failure("Seat belongs to another session", FailureReason.SEAT_NOT_IN_SESSION)

        item.seat_id = seat.id
        item.seat = seat.seat_number
        failed = self._commit("move item to seat", item_id)
        if failed is not None:
            return SeatResult.failure(failed.error)

        logger.info("Order item seated", item_id=str(item_id), seat_number=seat.seat_number)
        return SeatResult.success(seat_id=seat.id, seat_number=seat.seat_number)

    # Same rules; the floor UI distinguishes a first assignment from a move
    move_item_to_seat = assign_item_to_seat
