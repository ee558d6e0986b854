"""
SQLAlchemy ORM Models Package.

All models are organized into domain-specific modules:
- base: Base class, UUID primary key and timestamp mixins
- location: Location, ServicePeriod
- table: Table, TableSession, Seat
- order: Order, OrderItem
- billing: Payment
- event: SessionEvent
"""

from .base import Base, TimestampMixin, UUIDPrimaryKeyMixin, utcnow
from .location import Location, ServicePeriod
from .table import Seat, Table, TableSession
from .order import Order, OrderItem
from .billing import Payment
from .event import SessionEvent

__all__ = [
    "Base",
    "TimestampMixin",
    "UUIDPrimaryKeyMixin",
    "utcnow",
    "Location",
    "ServicePeriod",
    "Table",
    "TableSession",
    "Seat",
    "Order",
    "OrderItem",
    "Payment",
    "SessionEvent",
]
