"""
Order Domain Service.

Maps the floor UI's table state onto one order per wave, opens new waves,
fires waves to the kitchen, advances a wave's items in bulk and reads a
table's current order back.

Waves are numbered per session from 1 by max(wave) + 1; the unique
(session_id, wave) constraint rejects a duplicate created by a concurrent
request.
"""

import uuid
from decimal import Decimal
from typing import Any, Literal

from sqlalchemy import delete, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from shared.config.constants import (
    FailureReason,
    OrderDefaults,
    OrderItemStatus,
    OrderStatus,
    SessionEventType,
)
from shared.config.logging import get_logger
from shared.config.settings import settings
from shared.infrastructure.db import safe_commit
from shared.utils.schemas import (
    StoreTableSessionState,
    TableOrderItemView,
    TableOrderView,
)
from rest_api.models import Order, OrderItem, Seat, Table, TableSession, utcnow
from .access import UNAUTHORIZED_MESSAGE, LocationAccessGuard
from .event_recorder import SessionEventRecorder
from .item_lifecycle import ItemLifecycleService
from .order_lines import (
    CENT,
    OrderLine,
    build_order_number,
    flatten_session,
    group_by_wave,
    kitchen_timestamps,
    normalize_guest_count,
)
from .results import AdvanceResult, ServiceResult, SyncResult, WaveRef, WaveResult
from .service_rules import can_add_items, can_fire_wave
from .seat_service import SeatSyncError
from .session_service import SessionService

logger = get_logger(__name__)

WaveStatus = Literal["preparing", "ready", "served"]


class OrderService:
    """
    Domain service for wave orders.

    Usage:
        service = OrderService(db, ctx)
        result = service.sync_order_to_db(location_id, "T5", state)
        if not result.ok:
            ...
    """

    def __init__(self, db: Session, ctx: dict[str, Any] | None = None):
        self._db = db
        self._ctx = ctx
        self._guard = LocationAccessGuard(db, ctx)
        self._sessions = SessionService(db, ctx)
        self._items = ItemLifecycleService(db, ctx)
        self._events = SessionEventRecorder(db, ctx)

    # =========================================================================
    # Helpers
    # =========================================================================

    def _new_order(self, session: TableSession, table: Table, wave: int, fired: bool) -> Order:
        now = utcnow()
        order = Order(
            session_id=session.id,
            wave=wave,
            location_id=session.location_id,
            table_id=table.id,
            order_number=build_order_number(
                table.table_number, max_length=settings.order_number_max_length
            ),
            order_type=OrderDefaults.ORDER_TYPE,
            status=OrderStatus.PENDING,
            payment_status=OrderDefaults.PAYMENT_STATUS,
            payment_timing=OrderDefaults.PAYMENT_TIMING,
            fired_at=now if fired else None,
        )
        self._db.add(order)
        self._db.flush()
        return order

    def _find_order(self, session_id: uuid.UUID, wave: int) -> Order | None:
        return self._db.scalars(
            select(Order).where(Order.session_id == session_id, Order.wave == wave)
        ).first()

    def _replace_items(
        self,
        order: Order,
        lines: list[OrderLine],
        seat_ids: dict[int, uuid.UUID],
    ) -> Decimal:
        """Delete the order's items, insert the wave's lines, return their price sum."""
        self._db.execute(delete(OrderItem).where(OrderItem.order_id == order.id))

        now = utcnow()
        fired = order.fired_at is not None
        for line in lines:
            seat_id = seat_ids.get(line.seat_number) if line.seat_number > 0 else None
            self._db.add(
                OrderItem(
                    order_id=order.id,
                    item_name=line.name,
                    item_price=line.price,
                    quantity=1,
                    seat=line.seat_number,
                    seat_id=seat_id,
                    customizations_total=Decimal("0.00"),
                    line_total=line.price,
                    notes=line.notes,
                    status=line.status,
                    **kitchen_timestamps(line.status, fired, now),
                )
            )

        subtotal = sum((line.price for line in lines), Decimal("0.00")).quantize(CENT)
        order.subtotal = subtotal
        order.tax_amount = Decimal("0.00")
        order.total = subtotal
        self._db.flush()
        return subtotal

    # =========================================================================
    # Full sync
    # =========================================================================

    def sync_order_to_db(
        self,
        location_id: uuid.UUID,
        table_number: str,
        state: StoreTableSessionState,
    ) -> SyncResult:
        """
        Reconcile the table state pushed by the floor UI into session, seat,
        order and item rows.

        Everything after the session lookup runs in one transaction; on any
        storage failure it is rolled back and a reason-less failure returned.
        """
        if self._guard.verify(location_id) is None:
            return SyncResult.failure(UNAUTHORIZED_MESSAGE, FailureReason.UNAUTHORIZED)

        table = self._sessions.resolve_table(location_id, table_number)
        if table is None:
            return SyncResult.failure("Table not found", FailureReason.NOT_FOUND)

        lines = flatten_session(state)
        guest_count = normalize_guest_count(state.guest_count)

        try:
            session_id, _ = self._sessions.open_or_get_session(location_id, table.id, guest_count)
        except SQLAlchemyError:
            self._db.rollback()
            logger.error("Session lookup failed during sync", table_id=str(table.id), exc_info=True)
            return SyncResult.failure("Failed to get or create session")
        if session_id is None:
            return SyncResult.failure("Failed to get or create session")

        session = self._db.get(TableSession, session_id)
        guard = can_add_items(session.status)
        if not guard.ok:
            logger.warning("Sync refused", session_id=str(session_id), reason=guard.reason)
            return SyncResult.failure(guard.error, guard.reason, session_id=session_id)

        waves = group_by_wave(lines)
        sent_orders: list[Order] = []
        try:
            self._sessions.set_guest_count(session, guest_count)
            seat_ids = {
                seat.seat_number: seat.id
                for seat in self._db.scalars(select(Seat).where(Seat.session_id == session_id))
            }

            for wave, wave_lines in waves.items():
                order = self._find_order(session_id, wave)
                if order is None:
                    order = self._new_order(session, table, wave, fired=(wave == 1))
                    if order.fired_at is not None:
                        sent_orders.append(order)
                self._replace_items(order, wave_lines, seat_ids)

            safe_commit(self._db)
        except (SQLAlchemyError, SeatSyncError):
            self._db.rollback()
            logger.error("Order sync failed", session_id=str(session_id), exc_info=True)
            return SyncResult.failure("Failed to sync order", session_id=session_id)

        for order in sent_orders:
            self._events.record(
                location_id,
                session_id,
                SessionEventType.ORDER_SENT,
                {"wave": order.wave, "order_id": str(order.id)},
            )
        if lines:
            self._events.record(
                location_id,
                session_id,
                SessionEventType.ITEMS_ADDED,
                {"item_count": len(lines), "waves": list(waves.keys())},
            )
        logger.info(
            "Order synced",
            session_id=str(session_id),
            table_number=table.table_number,
            waves=list(waves.keys()),
            item_count=len(lines),
        )
        return SyncResult.success(session_id=session_id)

    # =========================================================================
    # Incremental wave operations
    # =========================================================================

    def create_next_wave(self, session_id: uuid.UUID) -> WaveResult:
        """Open wave max(wave) + 1 for the session, unfired."""
        session = self._db.get(TableSession, session_id)
        if session is None:
            return WaveResult.failure("Session not found", FailureReason.NOT_FOUND)
        if self._guard.verify(session.location_id) is None:
            return WaveResult.failure(UNAUTHORIZED_MESSAGE, FailureReason.UNAUTHORIZED)

        table = self._db.get(Table, session.table_id)
        max_wave = self._db.scalar(
            select(func.coalesce(func.max(Order.wave), 0)).where(Order.session_id == session_id)
        )
        next_wave = (max_wave or 0) + 1

        try:
            order = self._new_order(session, table, next_wave, fired=False)
            safe_commit(self._db)
        except SQLAlchemyError:
            self._db.rollback()
            logger.error("Wave creation failed", session_id=str(session_id), wave=next_wave, exc_info=True)
            return WaveResult.failure("Failed to create wave")

        logger.info("Wave created", session_id=str(session_id), order_id=str(order.id), wave=next_wave)
        return WaveResult.success(order=WaveRef(id=order.id, wave=next_wave))

    def fire_wave(self, order_id: uuid.UUID) -> ServiceResult:
        """
        Send a wave to the kitchen. A wave fires once; a second fire is refused
        and changes nothing.
        """
        order = self._db.get(Order, order_id)
        if order is None:
            return ServiceResult.failure("Order not found", FailureReason.NOT_FOUND)
        if self._guard.verify(order.location_id) is None:
            return ServiceResult.failure(UNAUTHORIZED_MESSAGE, FailureReason.UNAUTHORIZED)

        guard = can_fire_wave(order.fired_at)
        if not guard.ok:
            logger.warning("Fire refused", order_id=str(order_id), reason=guard.reason)
            return guard

        now = utcnow()
        wave = order.wave
        try:
            order.fired_at = now
            order.status = OrderStatus.CONFIRMED
            unsent = self._db.scalars(
                select(OrderItem).where(
                    OrderItem.order_id == order_id,
                    OrderItem.sent_to_kitchen_at.is_(None),
                )
            ).all()
            for item in unsent:
                item.sent_to_kitchen_at = now
            safe_commit(self._db)
        except SQLAlchemyError:
            self._db.rollback()
            logger.error("Wave fire failed", order_id=str(order_id), wave=wave, exc_info=True)
            return ServiceResult.failure("Failed to fire wave")

        if order.session_id is not None:
            self._events.record(
                order.location_id,
                order.session_id,
                SessionEventType.COURSE_FIRED,
                {"wave": order.wave, "order_id": str(order.id)},
            )
        logger.info("Wave fired", order_id=str(order_id), wave=order.wave, items=len(unsent))
        return ServiceResult.success()

    def get_order_id_for_session_and_wave(self, session_id: uuid.UUID, wave: int) -> uuid.UUID | None:
        return self._db.scalar(
            select(Order.id).where(Order.session_id == session_id, Order.wave == wave)
        )

    def advance_order_wave_status(
        self,
        location_id: uuid.UUID,
        table_number: str,
        wave: int,
        status: WaveStatus,
    ) -> AdvanceResult:
        """
        Move every non-voided item of a wave to `status`, one item at a time.

        Stops at the first item that cannot move. Items advanced before it stay
        advanced; the failure names the item it stopped on.
        """
        if self._guard.verify(location_id) is None:
            return AdvanceResult.failure(UNAUTHORIZED_MESSAGE, FailureReason.UNAUTHORIZED)

        transitions = {
            OrderItemStatus.PREPARING: self._items.mark_item_preparing,
            OrderItemStatus.READY: self._items.mark_item_ready,
            OrderItemStatus.SERVED: self._items.mark_item_served,
        }
        transition = transitions.get(status)
        if transition is None:
            return AdvanceResult.failure(f"Invalid wave status: {status}", FailureReason.INVALID_STATUS)

        session_id = self._sessions.get_open_session_id_for_table(location_id, table_number)
        if session_id is None:
            return AdvanceResult.failure("No open session for table", FailureReason.NOT_FOUND)

        order_id = self.get_order_id_for_session_and_wave(session_id, wave)
        if order_id is None:
            return AdvanceResult.failure("Order (wave) not found", FailureReason.NOT_FOUND)

        item_ids = self._db.scalars(
            select(OrderItem.id)
            .where(OrderItem.order_id == order_id, OrderItem.voided_at.is_(None))
            .order_by(OrderItem.seat, OrderItem.item_name)
        ).all()

        advanced = 0
        for item_id in item_ids:
            result = transition(item_id)
            if not result.ok:
                logger.warning(
                    "Wave advance stopped",
                    order_id=str(order_id),
                    item_id=str(item_id),
                    advanced=advanced,
                    error=result.error,
                )
                return AdvanceResult.failure(
                    result.error,
                    FailureReason.ADVANCE_FAILED,
                    item_id=item_id,
                    advanced=advanced,
                )
            advanced += 1

        logger.info("Wave advanced", order_id=str(order_id), wave=wave, status=status, items=advanced)
        return AdvanceResult.success(advanced=advanced)

    # =========================================================================
    # Read path
    # =========================================================================

    def _item_views(self, items: list[OrderItem]) -> list[TableOrderItemView]:
        seat_ids = {item.seat_id for item in items if item.seat_id is not None}
        seat_numbers: dict[uuid.UUID, int] = {}
        if seat_ids:
            seat_numbers = {
                seat.id: seat.seat_number
                for seat in self._db.scalars(select(Seat).where(Seat.id.in_(seat_ids)))
            }

        views = []
        for item in items:
            status = item.status if item.status in OrderItemStatus.ALL else OrderItemStatus.PENDING
            seat_number = seat_numbers.get(item.seat_id, item.seat) if item.seat_id else item.seat
            views.append(
                TableOrderItemView(
                    name=item.item_name,
                    price=float(item.item_price),
                    quantity=item.quantity or 1,
                    status=status,
                    notes=item.notes,
                    seat_number=seat_number or 0,
                    seat_id=item.seat_id,
                )
            )
        return views

    def get_order_for_table(self, location_id: uuid.UUID, table_number: str) -> TableOrderView | None:
        """
        Current order of a table.

        Two separate branches: the open-session model first, then the legacy
        order tied directly to the table for data written before sessions.
        """
        if self._guard.verify(location_id) is None:
            return None
        table = self._sessions.resolve_table(location_id, table_number)
        if table is None:
            return None

        table_guests = table.guests or 0
        session = self._sessions.find_open_session(location_id, table.id)

        if session is not None:
            seated_at = table.seated_at or session.opened_at
            guest_count = session.guest_count if session.guest_count is not None else table_guests
            order_ids = self._db.scalars(
                select(Order.id).where(Order.session_id == session.id).order_by(Order.wave)
            ).all()
            if not order_ids:
                return TableOrderView(
                    guest_count=guest_count, seated_at=seated_at, items=[], session_id=session.id
                )
            items = self._db.scalars(
                select(OrderItem)
                .join(Order, Order.id == OrderItem.order_id)
                .where(OrderItem.order_id.in_(order_ids))
                .order_by(Order.wave, OrderItem.seat, OrderItem.item_name)
            ).all()
            return TableOrderView(
                guest_count=guest_count,
                seated_at=seated_at,
                items=self._item_views(list(items)),
                session_id=session.id,
            )

        # Legacy: an active order tied to the table without a session
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
            if table_guests <= 0:
                return None
            return TableOrderView(guest_count=table_guests, seated_at=table.seated_at, items=[])

        items = self._db.scalars(
            select(OrderItem)
            .where(OrderItem.order_id == legacy_order.id)
            .order_by(OrderItem.seat, OrderItem.item_name)
        ).all()
        return TableOrderView(
            guest_count=table_guests,
            seated_at=table.seated_at,
            items=self._item_views(list(items)),
        )
