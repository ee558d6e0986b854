"""
Centralized constants for the backend application.
Avoids magic strings for statuses shared by models, services and routers.

Usage:
    from shared.config.constants import SessionStatus, OrderItemStatus

    if session.status != SessionStatus.OPEN:
        ...
"""

from typing import Final


# =============================================================================
# User Roles
# =============================================================================


class Roles:
    """Staff role constants."""

    ADMIN: Final[str] = "ADMIN"
    MANAGER: Final[str] = "MANAGER"
    SERVER: Final[str] = "SERVER"
    KITCHEN: Final[str] = "KITCHEN"

    ALL: Final[list[str]] = [ADMIN, MANAGER, SERVER, KITCHEN]


MANAGEMENT_ROLES: Final[frozenset[str]] = frozenset({Roles.ADMIN, Roles.MANAGER})
FLOOR_ROLES: Final[frozenset[str]] = frozenset({Roles.ADMIN, Roles.MANAGER, Roles.SERVER})
ALL_STAFF_ROLES: Final[frozenset[str]] = frozenset(Roles.ALL)


# =============================================================================
# Entity Status Constants
# =============================================================================


class TableStatus:
    """Physical table status."""

    AVAILABLE: Final[str] = "available"
    OCCUPIED: Final[str] = "occupied"
    RESERVED: Final[str] = "reserved"
    UNAVAILABLE: Final[str] = "unavailable"


class SessionStatus:
    """Table session (one seating) status."""

    OPEN: Final[str] = "open"
    CLOSED: Final[str] = "closed"
    CANCELLED: Final[str] = "cancelled"


class SessionSource:
    """How a session was opened."""

    WALK_IN: Final[str] = "walk_in"
    RESERVATION: Final[str] = "reservation"
    QR: Final[str] = "qr"
    POS: Final[str] = "pos"


class SeatStatus:
    """Seat status. Removed seats keep their row so item seat_id references survive."""

    ACTIVE: Final[str] = "active"
    REMOVED: Final[str] = "removed"


class OrderStatus:
    """Order (wave) status."""

    PENDING: Final[str] = "pending"
    CONFIRMED: Final[str] = "confirmed"
    PREPARING: Final[str] = "preparing"
    READY: Final[str] = "ready"
    COMPLETED: Final[str] = "completed"
    CANCELLED: Final[str] = "cancelled"

    # Orders still on the floor (legacy table lookups use this group)
    ACTIVE: Final[list[str]] = [PENDING, CONFIRMED, PREPARING, READY]


class OrderItemStatus:
    """Order item kitchen status."""

    PENDING: Final[str] = "pending"
    PREPARING: Final[str] = "preparing"
    READY: Final[str] = "ready"
    SERVED: Final[str] = "served"

    ALL: Final[list[str]] = [PENDING, PREPARING, READY, SERVED]
    # Items that block a normal close
    UNFINISHED: Final[list[str]] = [PENDING, PREPARING, READY]


class PaymentStatus:
    """Payment transaction status."""

    PENDING: Final[str] = "pending"
    COMPLETED: Final[str] = "completed"
    FAILED: Final[str] = "failed"
    REFUNDED: Final[str] = "refunded"


class PaymentMethod:
    """Payment method."""

    CARD: Final[str] = "card"
    CASH: Final[str] = "cash"
    MOBILE: Final[str] = "mobile"
    OTHER: Final[str] = "other"

    ALL: Final[list[str]] = [CARD, CASH, MOBILE, OTHER]


class StoreItemStatus:
    """Item status vocabulary used by the floor UI session state."""

    HELD: Final[str] = "held"
    SENT: Final[str] = "sent"
    COOKING: Final[str] = "cooking"
    READY: Final[str] = "ready"
    SERVED: Final[str] = "served"
    VOID: Final[str] = "void"


# UI status -> DB item status. Void items are never persisted.
STORE_TO_DB_ITEM_STATUS: Final[dict[str, str]] = {
    StoreItemStatus.HELD: OrderItemStatus.PENDING,
    StoreItemStatus.SENT: OrderItemStatus.PENDING,
    StoreItemStatus.COOKING: OrderItemStatus.PREPARING,
    StoreItemStatus.READY: OrderItemStatus.READY,
    StoreItemStatus.SERVED: OrderItemStatus.SERVED,
}


class SessionEventType:
    """Audit trail event types."""

    SESSION_OPENED: Final[str] = "session_opened"
    GUEST_SEATED: Final[str] = "guest_seated"
    ITEMS_ADDED: Final[str] = "items_added"
    ORDER_SENT: Final[str] = "order_sent"
    COURSE_FIRED: Final[str] = "course_fired"
    ITEM_READY: Final[str] = "item_ready"
    SERVED: Final[str] = "served"
    ITEM_VOIDED: Final[str] = "item_voided"
    ITEM_REFIRED: Final[str] = "item_refired"
    PAYMENT_COMPLETED: Final[str] = "payment_completed"
    GUEST_COUNT_ADJUSTED: Final[str] = "guest_count_adjusted"
    SESSION_CLOSED: Final[str] = "session_closed"


class ActorType:
    """Who triggered a session event."""

    SERVER: Final[str] = "server"
    KITCHEN: Final[str] = "kitchen"
    SYSTEM: Final[str] = "system"


# =============================================================================
# Order defaults
# =============================================================================


class OrderDefaults:
    """Values stamped on every dine-in wave order."""

    ORDER_TYPE: Final[str] = "dine_in"
    PAYMENT_STATUS: Final[str] = "unpaid"
    PAYMENT_TIMING: Final[str] = "pay_later"


# =============================================================================
# Validation Constants
# =============================================================================


class Limits:
    """Validation limits."""

    MAX_ITEM_NAME_LENGTH: Final[int] = 255
    MAX_ORDER_NUMBER_LENGTH: Final[int] = 20
    MAX_TABLE_NUMBER_LENGTH: Final[int] = 20
    MAX_GUEST_COUNT: Final[int] = 99


# =============================================================================
# Failure reasons
# =============================================================================


class FailureReason:
    """
    Machine-readable reasons carried by failed service results.
    Unexpected storage failures carry no reason.
    """

    UNAUTHORIZED: Final[str] = "unauthorized"
    NOT_FOUND: Final[str] = "not_found"
    SESSION_NOT_OPEN: Final[str] = "session_not_open"
    WAVE_ALREADY_FIRED: Final[str] = "wave_already_fired"
    UNFINISHED_ITEMS: Final[str] = "unfinished_items"
    KITCHEN_MID_FIRE: Final[str] = "kitchen_mid_fire"
    PAYMENT_IN_PROGRESS: Final[str] = "payment_in_progress"
    UNPAID_BALANCE: Final[str] = "unpaid_balance"
    INVALID_TIP: Final[str] = "invalid_tip"
    INVALID_STATUS: Final[str] = "invalid_status"
    INVALID_TRANSITION: Final[str] = "invalid_transition"
    ALREADY_VOIDED: Final[str] = "already_voided"
    ADVANCE_FAILED: Final[str] = "advance_failed"
    SEAT_EXISTS: Final[str] = "seat_exists"
    INVALID_SEAT_NUMBER: Final[str] = "invalid_seat_number"
    SEAT_NOT_IN_SESSION: Final[str] = "seat_not_in_session"
    ITEM_SENT_TO_KITCHEN: Final[str] = "item_sent_to_kitchen"
    ALREADY_REFIRED: Final[str] = "already_refired"


# Reasons a caller can fix by changing the request itself
CLIENT_ERROR_REASONS: Final[frozenset[str]] = frozenset({
    FailureReason.INVALID_TIP,
    FailureReason.INVALID_STATUS,
    FailureReason.INVALID_SEAT_NUMBER,
})
