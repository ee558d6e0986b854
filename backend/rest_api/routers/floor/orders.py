"""
Orders router.
Firing waves, moving single items through the kitchen and between seats.
"""

import uuid
from typing import Any, Literal

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from shared.config.constants import ALL_STAFF_ROLES, FLOOR_ROLES
from shared.infrastructure.db import get_db
from shared.security.auth import current_user_context, require_roles
from shared.utils.exceptions import NotFoundError
from shared.utils.schemas import MoveItemSeatRequest, RefireItemRequest, VoidItemRequest
from rest_api.models import Order, OrderItem
from rest_api.routers._common import raise_for_result
from rest_api.services.domain import ItemLifecycleService, OrderService
from rest_api.services.domain.results import SeatResult


router = APIRouter(prefix="/api/locations/{location_id}", tags=["orders"])


def _order_in_location(db: Session, location_id: uuid.UUID, order_id: uuid.UUID) -> Order:
    order = db.get(Order, order_id)
    if order is None or order.location_id != location_id:
        raise NotFoundError("Order", order_id, location_id=str(location_id))
    return order


def _item_in_location(db: Session, location_id: uuid.UUID, item_id: uuid.UUID) -> OrderItem:
    item = db.get(OrderItem, item_id)
    if item is None:
        raise NotFoundError("Order item", item_id)
    _order_in_location(db, location_id, item.order_id)
    return item


@router.post("/orders/{order_id}/fire")
def fire_wave(
    location_id: uuid.UUID,
    order_id: uuid.UUID,
    db: Session = Depends(get_db),
    ctx: dict[str, Any] = Depends(current_user_context),
) -> dict[str, Any]:
    """
    Send a wave to the kitchen.

    A wave fires once; firing it again is refused with 409 and
    reason=wave_already_fired.
    """
    require_roles(ctx, FLOOR_ROLES)
    _order_in_location(db, location_id, order_id)
    result = OrderService(db, ctx).fire_wave(order_id)
    raise_for_result(result, location_id)
    return {"ok": True}


@router.post("/order-items/{item_id}/void")
def void_item(
    location_id: uuid.UUID,
    item_id: uuid.UUID,
    body: VoidItemRequest,
    db: Session = Depends(get_db),
    ctx: dict[str, Any] = Depends(current_user_context),
) -> dict[str, Any]:
    """Void an item; order and session totals are recalculated."""
    require_roles(ctx, FLOOR_ROLES)
    _item_in_location(db, location_id, item_id)
    result = ItemLifecycleService(db, ctx).void_item(item_id, body.reason)
    raise_for_result(result, location_id)
    return {"ok": True}


@router.post("/order-items/{item_id}/refire")
def refire_item(
    location_id: uuid.UUID,
    item_id: uuid.UUID,
    body: RefireItemRequest,
    db: Session = Depends(get_db),
    ctx: dict[str, Any] = Depends(current_user_context),
) -> dict[str, Any]:
    """
    Remake an item. It goes back to pending with a fresh kitchen timeline;
    a second refire is refused with 409 and reason=already_refired.
    """
    require_roles(ctx, FLOOR_ROLES)
    _item_in_location(db, location_id, item_id)
    result = ItemLifecycleService(db, ctx).refire_item(item_id, body.reason or "Refired via API")
    raise_for_result(result, location_id)
    return {"ok": True}


@router.put("/order-items/{item_id}/seat", response_model=SeatResult)
def move_item_to_seat(
    location_id: uuid.UUID,
    item_id: uuid.UUID,
    body: MoveItemSeatRequest,
    db: Session = Depends(get_db),
    ctx: dict[str, Any] = Depends(current_user_context),
) -> SeatResult:
    """Put an unsent item on another seat of its session."""
    require_roles(ctx, FLOOR_ROLES)
    _item_in_location(db, location_id, item_id)
    result = ItemLifecycleService(db, ctx).move_item_to_seat(item_id, body.seat_id)
    raise_for_result(result, location_id)
    return result


# Registered after /void and /refire so those paths are not captured by {target}
@router.post("/order-items/{item_id}/{target}")
def advance_item(
    location_id: uuid.UUID,
    item_id: uuid.UUID,
    target: Literal["preparing", "ready", "served"],
    db: Session = Depends(get_db),
    ctx: dict[str, Any] = Depends(current_user_context),
) -> dict[str, Any]:
    """Move one item a step along pending -> preparing -> ready -> served."""
    require_roles(ctx, ALL_STAFF_ROLES)
    _item_in_location(db, location_id, item_id)

    service = ItemLifecycleService(db, ctx)
    transitions = {
        "preparing": service.mark_item_preparing,
        "ready": service.mark_item_ready,
        "served": service.mark_item_served,
    }
    result = transitions[target](item_id)
    raise_for_result(result, location_id)
    return {"ok": True}
