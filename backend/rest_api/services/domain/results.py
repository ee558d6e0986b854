"""
Result objects returned by the floor domain services.

Expected outcomes (refusals, misses) come back as a result with ok=False,
a human-readable error and, where the caller can act on it, a reason code
from FailureReason. Routers translate failed results into HTTP errors.
"""

from decimal import Decimal
from typing import Any
from uuid import UUID

from pydantic import BaseModel, Field


class ServiceResult(BaseModel):
    """Base result: ok, or an error with an optional reason code."""

    ok: bool
    error: str | None = None
    reason: str | None = None

    @classmethod
    def success(cls, **data: Any):
        return cls(ok=True, **data)

    @classmethod
    def failure(cls, error: str, reason: str | None = None, **data: Any):
        return cls(ok=False, error=error, reason=reason, **data)

    def extra(self) -> dict[str, Any]:
        """Payload fields beyond ok/error/reason, for error responses."""
        return self.model_dump(exclude={"ok", "error", "reason"}, exclude_none=True, mode="json")


class SyncResult(ServiceResult):
    session_id: UUID | None = None


class WaveRef(BaseModel):
    id: UUID
    wave: int


class WaveResult(ServiceResult):
    order: WaveRef | None = None


class AdvanceResult(ServiceResult):
    # Item the bulk advance stopped on
    item_id: UUID | None = None
    advanced: int = 0


class SeatResult(ServiceResult):
    seat_id: UUID | None = None
    seat_number: int | None = None


class OutstandingItem(BaseModel):
    """An item that still blocks a normal close."""

    id: UUID
    item_name: str
    status: str
    quantity: int
    order_id: UUID


class CanCloseResult(ServiceResult):
    items: list[OutstandingItem] | None = None
    remaining: float | None = None
    session_total: float | None = None
    payments_total: float | None = None


class CloseResult(CanCloseResult):
    session_id: UUID | None = None
    voided_items: int | None = None


class OutstandingItemsResult(BaseModel):
    """Closability summary for the floor UI."""

    can_close: bool
    reason: str | None = None
    unfinished_items: list[OutstandingItem] = Field(default_factory=list)
    remaining: float | None = None


class SessionTotals(BaseModel):
    subtotal: Decimal
    total: Decimal
    paid: Decimal
    remaining: Decimal
