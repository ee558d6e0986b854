"""
Tests for closing tables: the closability checks, payments, forced close and
the legacy fallback.
"""

import uuid
from decimal import Decimal

from sqlalchemy import select

from rest_api.models import Order, OrderItem, Payment, SessionEvent, TableSession
from rest_api.services.domain import (
    CloseValidationService,
    OrderService,
    SessionCloseService,
)
from shared.config.constants import (
    FailureReason,
    OrderStatus,
    PaymentStatus,
    SessionEventType,
    SessionStatus,
)
from shared.utils.schemas import PaymentInput
from tests.factories import item, table_state


def _seat_and_order(db_session, location, ctx, *lines, guest_count=2):
    result = OrderService(db_session, ctx).sync_order_to_db(
        location.id, "T5", table_state(guest_count=guest_count, seats={1: list(lines)})
    )
    assert result.ok, result.error
    return result.session_id


def _served(name, price):
    return item(name, price, status="served")


class TestNormalClose:
    """Closing once everything is served and paid."""

    def test_close_with_exact_payment(self, db_session, seed_location, seed_table, staff_ctx):
        session_id = _seat_and_order(
            db_session, seed_location, staff_ctx, _served("Soup", "8.00"), _served("Steak", "22.00")
        )

        result = SessionCloseService(db_session, staff_ctx).close_order_for_table(
            seed_location.id, "T5", payment=PaymentInput(amount=Decimal("30.00"), tip_amount=Decimal("5.00"), method="card")
        )

        assert result.ok, result.error
        assert result.session_id == session_id
        db_session.expire_all()
        session = db_session.get(TableSession, session_id)
        assert session.status == SessionStatus.CLOSED
        assert session.closed_at is not None
        orders = db_session.scalars(select(Order).where(Order.session_id == session_id)).all()
        assert {o.status for o in orders} == {OrderStatus.COMPLETED}
        payment = db_session.scalars(select(Payment).where(Payment.session_id == session_id)).one()
        assert payment.amount == Decimal("30.00")
        assert payment.tip_amount == Decimal("5.00")
        assert payment.status == PaymentStatus.COMPLETED

    def test_close_records_payment_and_close_events(self, db_session, seed_location, seed_table, staff_ctx):
        session_id = _seat_and_order(db_session, seed_location, staff_ctx, _served("Soup", "8.00"))

        SessionCloseService(db_session, staff_ctx).close_order_for_table(
            seed_location.id, "T5", payment=PaymentInput(amount=Decimal("8.00"))
        )

        events = {
            e.type: e
            for e in db_session.scalars(select(SessionEvent).where(SessionEvent.session_id == session_id))
        }
        assert events[SessionEventType.PAYMENT_COMPLETED].meta["method"] == "other"
        assert events[SessionEventType.PAYMENT_COMPLETED].meta["amount"] == "8.00"
        assert events[SessionEventType.SESSION_CLOSED].meta == {"forced": False}

    def test_balance_within_tolerance_closes(self, db_session, seed_location, seed_table, staff_ctx):
        _seat_and_order(db_session, seed_location, staff_ctx, _served("Soup", "20.00"))

        result = SessionCloseService(db_session, staff_ctx).close_order_for_table(
            seed_location.id, "T5", payment=PaymentInput(amount=Decimal("19.99"))
        )

        assert result.ok

    def test_earlier_payments_count(self, db_session, seed_location, seed_table, staff_ctx):
        session_id = _seat_and_order(db_session, seed_location, staff_ctx, _served("Soup", "20.00"))
        db_session.add(Payment(session_id=session_id, amount=Decimal("20.00"), status=PaymentStatus.COMPLETED))
        db_session.commit()

        result = SessionCloseService(db_session, staff_ctx).close_order_for_table(seed_location.id, "T5")

        assert result.ok

    def test_new_session_after_close(self, db_session, seed_location, seed_table, staff_ctx):
        first = _seat_and_order(db_session, seed_location, staff_ctx, _served("Soup", "5.00"))
        SessionCloseService(db_session, staff_ctx).close_order_for_table(
            seed_location.id, "T5", payment=PaymentInput(amount=Decimal("5.00"))
        )

        second = _seat_and_order(db_session, seed_location, staff_ctx, item("Coffee", "3.00"))

        assert second != first


class TestCloseRefusals:
    """The checks a normal close goes through, in order."""

    def test_unfinished_items(self, db_session, seed_location, seed_table, staff_ctx):
        session_id = _seat_and_order(
            db_session, seed_location, staff_ctx, item("Soup", "8.00"), _served("Bread", "2.00")
        )

        result = SessionCloseService(db_session, staff_ctx).close_order_for_table(
            seed_location.id, "T5", payment=PaymentInput(amount=Decimal("10.00"))
        )

        assert not result.ok
        assert result.reason == FailureReason.UNFINISHED_ITEMS
        assert [i.item_name for i in result.items] == ["Soup"]
        assert result.items[0].status == "pending"
        db_session.expire_all()
        assert db_session.get(TableSession, session_id).status == SessionStatus.OPEN
        assert db_session.scalars(select(Payment)).all() == []

    def test_unpaid_balance(self, db_session, seed_location, seed_table, staff_ctx):
        session_id = _seat_and_order(
            db_session, seed_location, staff_ctx, _served("Soup", "8.00"), _served("Steak", "12.00")
        )

        result = SessionCloseService(db_session, staff_ctx).close_order_for_table(
            seed_location.id, "T5", payment=PaymentInput(amount=Decimal("15.00"))
        )

        assert result.reason == FailureReason.UNPAID_BALANCE
        assert result.remaining == 5.0
        assert result.session_total == 20.0
        assert result.payments_total == 15.0
        db_session.expire_all()
        assert db_session.get(TableSession, session_id).status == SessionStatus.OPEN
        assert db_session.scalars(select(Payment)).all() == []

    def test_no_payment_and_nothing_owed(self, db_session, seed_location, seed_table, staff_ctx):
        _seat_and_order(db_session, seed_location, staff_ctx)

        result = SessionCloseService(db_session, staff_ctx).close_order_for_table(seed_location.id, "T5")

        assert result.ok

    def test_payment_in_progress(self, db_session, seed_location, seed_table, staff_ctx):
        session_id = _seat_and_order(db_session, seed_location, staff_ctx, _served("Soup", "8.00"))
        db_session.add(Payment(session_id=session_id, amount=Decimal("8.00"), status=PaymentStatus.PENDING))
        db_session.commit()

        result = SessionCloseService(db_session, staff_ctx).close_order_for_table(
            seed_location.id, "T5", payment=PaymentInput(amount=Decimal("8.00"))
        )

        assert result.reason == FailureReason.PAYMENT_IN_PROGRESS

    def test_negative_tip(self, db_session, seed_location, seed_table, staff_ctx):
        session_id = _seat_and_order(db_session, seed_location, staff_ctx, _served("Soup", "8.00"))

        result = SessionCloseService(db_session, staff_ctx).close_order_for_table(
            seed_location.id, "T5", payment=PaymentInput(amount=Decimal("8.00"), tip_amount=Decimal("-1.00"))
        )

        assert result.reason == FailureReason.INVALID_TIP
        assert db_session.scalars(select(Payment)).all() == []
        assert db_session.get(TableSession, session_id).status == SessionStatus.OPEN

    def test_negative_tip_refused_even_when_forced(self, db_session, seed_location, seed_table, manager_ctx):
        _seat_and_order(db_session, seed_location, manager_ctx, item("Soup", "8.00"))

        result = SessionCloseService(db_session, manager_ctx).close_order_for_table(
            seed_location.id,
            "T5",
            payment=PaymentInput(amount=Decimal("8.00"), tip_amount=Decimal("-2.00")),
            force=True,
        )

        assert result.reason == FailureReason.INVALID_TIP
        assert db_session.scalars(select(OrderItem).where(OrderItem.voided_at.is_not(None))).all() == []

    def test_close_session_twice(self, db_session, seed_location, seed_table, staff_ctx):
        session_id = _seat_and_order(db_session, seed_location, staff_ctx)
        service = SessionCloseService(db_session, staff_ctx)
        assert service.close_session(session_id).ok

        result = service.close_session(session_id)

        assert result.reason == FailureReason.SESSION_NOT_OPEN

    def test_unknown_table_and_location(self, db_session, seed_location, seed_table, other_location, staff_ctx):
        service = SessionCloseService(db_session, staff_ctx)

        assert service.close_order_for_table(seed_location.id, "T404").reason == FailureReason.NOT_FOUND
        assert service.close_order_for_table(other_location.id, "T5").reason == FailureReason.UNAUTHORIZED
        assert service.close_session(uuid.uuid4()).reason == FailureReason.NOT_FOUND


class TestForcedClose:
    """Manager override: void what is unfinished and close regardless of balance."""

    def test_force_voids_unfinished_items(self, db_session, seed_location, seed_table, manager_ctx):
        session_id = _seat_and_order(
            db_session, seed_location, manager_ctx,
            item("Soup", "8.00"), item("Steak", "20.00", status="cooking"), _served("Bread", "2.00"),
        )

        result = SessionCloseService(db_session, manager_ctx).close_order_for_table(
            seed_location.id, "T5", force=True
        )

        assert result.ok, result.error
        assert result.voided_items == 2
        db_session.expire_all()
        items = {i.item_name: i for i in db_session.scalars(select(OrderItem)).all()}
        assert items["Soup"].voided_at is not None
        assert items["Soup"].void_reason == "manager_override"
        assert items["Steak"].voided_at is not None
        assert items["Bread"].voided_at is None
        assert db_session.get(TableSession, session_id).status == SessionStatus.CLOSED
        order = db_session.scalars(select(Order).where(Order.session_id == session_id)).one()
        assert order.total == Decimal("2.00")

    def test_force_event_carries_override(self, db_session, seed_location, seed_table, manager_ctx):
        session_id = _seat_and_order(db_session, seed_location, manager_ctx, item("Soup", "8.00"))

        SessionCloseService(db_session, manager_ctx).close_order_for_table(seed_location.id, "T5", force=True)

        event = db_session.scalars(
            select(SessionEvent).where(
                SessionEvent.session_id == session_id,
                SessionEvent.type == SessionEventType.PAYMENT_COMPLETED,
            )
        ).one()
        assert event.meta["forced_close"] is True
        assert event.meta["reason"] == "manager_override"
        assert event.meta["voided_items"] == 1


class TestLegacyClose:
    """Tables without a session."""

    def test_completes_oldest_active_legacy_order(self, db_session, seed_location, seed_table, staff_ctx):
        order = Order(location_id=seed_location.id, table_id=seed_table.id, order_number="T5-old")
        db_session.add(order)
        db_session.commit()

        result = SessionCloseService(db_session, staff_ctx).close_order_for_table(seed_location.id, "T5")

        assert result.ok
        db_session.refresh(order)
        assert order.status == OrderStatus.COMPLETED
        assert order.completed_at is not None

    def test_nothing_to_close(self, db_session, seed_location, seed_table, staff_ctx):
        result = SessionCloseService(db_session, staff_ctx).close_order_for_table(seed_location.id, "T5")

        assert result.ok
        assert result.session_id is None


class TestOutstandingItems:
    """The closability summary shown before closing."""

    def test_lists_unfinished_items(self, db_session, seed_location, seed_table, staff_ctx):
        session_id = _seat_and_order(db_session, seed_location, staff_ctx, item("Soup"), _served("Bread", "2.00"))

        summary = CloseValidationService(db_session).get_session_outstanding_items(session_id)

        assert summary.can_close is False
        assert summary.reason == FailureReason.UNFINISHED_ITEMS
        assert [i.item_name for i in summary.unfinished_items] == ["Soup"]

    def test_closable_session(self, db_session, seed_location, seed_table, staff_ctx):
        session_id = _seat_and_order(db_session, seed_location, staff_ctx)

        summary = CloseValidationService(db_session).get_session_outstanding_items(session_id)

        assert summary.can_close is True
        assert summary.unfinished_items == []
