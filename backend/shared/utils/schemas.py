"""
Shared Pydantic schemas used across the application.

The floor UI pushes its in-memory table state as camelCase JSON; both the
camelCase names and the snake_case field names are accepted.
"""

from datetime import datetime
from decimal import Decimal
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, Field


# =============================================================================
# Common Types
# =============================================================================

StoreItemStatusLiteral = Literal["held", "sent", "cooking", "ready", "served", "void"]
OrderItemStatusLiteral = Literal["pending", "preparing", "ready", "served"]
PaymentMethodLiteral = Literal["card", "cash", "mobile", "other"]


# =============================================================================
# Inbound floor state
# =============================================================================


class StoreItem(BaseModel):
    """One line of the floor UI's table state."""

    name: str
    price: Decimal = Decimal("0")
    # Unknown statuses are dropped during flattening, not rejected here
    status: str = "held"
    wave_number: int | None = Field(default=None, alias="waveNumber")

    model_config = {"populate_by_name": True}


class StoreSeat(BaseModel):
    """A seat and the items ordered for it."""

    number: int
    items: list[StoreItem] = Field(default_factory=list)


class StoreTableSessionState(BaseModel):
    """Snapshot of a seated table as the floor UI sees it."""

    guest_count: float = Field(default=1, alias="guestCount")
    seats: list[StoreSeat] = Field(default_factory=list)
    table_items: list[StoreItem] = Field(default_factory=list, alias="tableItems")

    model_config = {"populate_by_name": True}


# =============================================================================
# Request Schemas
# =============================================================================


class SeatTableRequest(BaseModel):
    """Seat a party at a table."""

    guest_count: int = Field(default=1, ge=0, le=99)
    server_id: str | None = None


class UpdateGuestCountRequest(BaseModel):
    """Change the party size of an open session."""

    guest_count: int = Field(ge=0, le=99)


class AdvanceWaveRequest(BaseModel):
    """Move every live item of a wave to the next kitchen status."""

    status: Literal["preparing", "ready", "served"]


class PaymentInput(BaseModel):
    """Payment captured at close time."""

    amount: Decimal = Field(ge=0)
    # Sign is checked by the close operation so a negative tip gets a typed refusal
    tip_amount: Decimal = Decimal("0")
    method: PaymentMethodLiteral = "other"


class CloseTableRequest(BaseModel):
    """Close a table, optionally recording a payment."""

    payment: PaymentInput | None = None
    force: bool = False


class VoidItemRequest(BaseModel):
    """Void an order item."""

    reason: str | None = Field(default=None, max_length=200)


class RefireItemRequest(BaseModel):
    """Send an item back to the kitchen for a remake."""

    reason: str | None = Field(default=None, max_length=200)


class MoveItemSeatRequest(BaseModel):
    seat_id: UUID


class RenameSeatRequest(BaseModel):
    """Renumber a seat. Numbers below 1 are refused by the service."""

    new_seat_number: int


# =============================================================================
# Read Schemas
# =============================================================================


class TableOrderItemView(BaseModel):
    """One item of a table's current order, shared by both read paths."""

    name: str
    price: float
    quantity: int = 1
    status: OrderItemStatusLiteral = "pending"
    notes: str | None = None
    seat_number: int = 0
    seat_id: UUID | None = None


class TableOrderView(BaseModel):
    """What the floor UI needs to redraw a table."""

    guest_count: int
    seated_at: datetime | None = None
    items: list[TableOrderItemView] = Field(default_factory=list)
    session_id: UUID | None = None


class SeatOutput(BaseModel):
    """Seat row as returned to the UI."""

    id: UUID
    seat_number: int
    guest_name: str | None = None
    status: str

    model_config = {"from_attributes": True}


class SessionEventOutput(BaseModel):
    """Audit trail entry."""

    id: UUID
    type: str
    actor_type: str | None = None
    actor_id: str | None = None
    meta: dict = Field(default_factory=dict)
    created_at: datetime

    model_config = {"from_attributes": True}


class HealthResponse(BaseModel):
    """Health check response."""

    status: Literal["ok", "degraded"]
    service: str
    database: bool = True
