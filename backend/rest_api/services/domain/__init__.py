"""
Domain Services - application layer for the floor.

Services hold the business rules and orchestrate writes; routers stay thin.

Structure:
    Router (thin controller)
        ↓
    Service (business rules, returns result objects)  ← YOU ARE HERE
        ↓
    Model (SQLAlchemy entity)

Usage:
    from rest_api.services.domain import OrderService

    # In router
    result = OrderService(db, ctx).fire_wave(order_id)
    if not result.ok:
        raise_for_result(result)
"""

from .access import LocationAccessGuard
from .service_period import resolve_service_period
from .seat_service import SeatService, SeatSyncError
from .session_service import SessionService
from .item_lifecycle import ItemLifecycleService
from .totals_service import TotalsService
from .order_service import OrderService
from .close_validation import CloseValidationService
from .close_service import SessionCloseService
from .event_recorder import SessionEventRecorder

__all__ = [
    "LocationAccessGuard",
    "resolve_service_period",
    "SeatService",
    "SeatSyncError",
    "SessionService",
    "ItemLifecycleService",
    "TotalsService",
    "OrderService",
    "CloseValidationService",
    "SessionCloseService",
    "SessionEventRecorder",
]
