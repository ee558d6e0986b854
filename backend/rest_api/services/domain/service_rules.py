"""
Transition guards for sessions, waves and order items.

Pure functions over the fields they inspect; they never touch the database.
"""

from datetime import datetime

from shared.config.constants import FailureReason, OrderItemStatus, SessionStatus
from .results import ServiceResult


def can_add_items(status: str) -> ServiceResult:
    """Items may only be added to an open session."""
    if status != SessionStatus.OPEN:
        return ServiceResult.failure(
            "Cannot add items: session is not open", FailureReason.SESSION_NOT_OPEN
        )
    return ServiceResult.success()


def can_fire_wave(fired_at: datetime | None) -> ServiceResult:
    """A wave fires once. Firing it again is refused, not ignored."""
    if fired_at is not None:
        return ServiceResult.failure("Wave already fired", FailureReason.WAVE_ALREADY_FIRED)
    return ServiceResult.success()


def _item_transition(
    status: str,
    voided_at: datetime | None,
    expected: str,
    target: str,
) -> ServiceResult:
    if voided_at is not None:
        return ServiceResult.failure("Order item is voided", FailureReason.ALREADY_VOIDED)
    if status != expected:
        return ServiceResult.failure(
            f"Invalid transition: {status} → {target} (expected {expected})",
            FailureReason.INVALID_TRANSITION,
        )
    return ServiceResult.success()


def can_mark_item_preparing(status: str, voided_at: datetime | None) -> ServiceResult:
    return _item_transition(status, voided_at, OrderItemStatus.PENDING, OrderItemStatus.PREPARING)


def can_mark_item_ready(status: str, voided_at: datetime | None) -> ServiceResult:
    return _item_transition(status, voided_at, OrderItemStatus.PREPARING, OrderItemStatus.READY)


def can_serve_item(status: str, voided_at: datetime | None) -> ServiceResult:
    return _item_transition(status, voided_at, OrderItemStatus.READY, OrderItemStatus.SERVED)


def can_void_item(voided_at: datetime | None) -> ServiceResult:
    if voided_at is not None:
        return ServiceResult.failure("Order item already voided", FailureReason.ALREADY_VOIDED)
    return ServiceResult.success()


def can_refire_item(voided_at: datetime | None, refired_at: datetime | None) -> ServiceResult:
    """An item is remade at most once, and never after a void."""
    if voided_at is not None:
        return ServiceResult.failure("Order item is voided", FailureReason.ALREADY_VOIDED)
    if refired_at is not None:
        return ServiceResult.failure("Order item already refired", FailureReason.ALREADY_REFIRED)
    return ServiceResult.success()


def can_modify_item(sent_to_kitchen_at: datetime | None) -> ServiceResult:
    """Seat changes stop once the kitchen has the item."""
    if sent_to_kitchen_at is not None:
        return ServiceResult.failure(
            "Cannot modify order items that have been sent to kitchen",
            FailureReason.ITEM_SENT_TO_KITCHEN,
        )
    return ServiceResult.success()
