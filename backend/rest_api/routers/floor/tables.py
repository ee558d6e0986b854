"""
Tables router.
Seating, order sync, the current-order read and closing, addressed by table number.
"""

import uuid
from typing import Any

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from shared.config.constants import ALL_STAFF_ROLES, FLOOR_ROLES, MANAGEMENT_ROLES
from shared.config.logging import orders_logger as logger
from shared.infrastructure.db import get_db
from shared.security.auth import current_user_context, require_roles
from shared.utils.exceptions import InsufficientRoleError, LocationAccessError, NotFoundError
from shared.utils.schemas import (
    AdvanceWaveRequest,
    CloseTableRequest,
    SeatTableRequest,
    StoreTableSessionState,
    TableOrderView,
)
from rest_api.routers._common import raise_for_result
from rest_api.services.domain import (
    LocationAccessGuard,
    OrderService,
    SessionCloseService,
    SessionService,
)
from rest_api.services.domain.results import AdvanceResult, CloseResult, SyncResult


router = APIRouter(prefix="/api/locations/{location_id}/tables", tags=["tables"])


def _verify_location(db: Session, ctx: dict[str, Any], location_id: uuid.UUID) -> None:
    if LocationAccessGuard(db, ctx).verify(location_id) is None:
        raise LocationAccessError(location_id)


@router.post("/{table_number}/seat", status_code=status.HTTP_201_CREATED)
def seat_table(
    location_id: uuid.UUID,
    table_number: str,
    body: SeatTableRequest,
    db: Session = Depends(get_db),
    ctx: dict[str, Any] = Depends(current_user_context),
) -> dict[str, Any]:
    """
    Seat a party at a table.

    Returns the table's open session, opening one if there is none. Seating an
    already seated table returns the existing session unchanged.
    """
    require_roles(ctx, FLOOR_ROLES)
    _verify_location(db, ctx, location_id)

    session_id = SessionService(db, ctx).ensure_session_for_table(
        location_id, table_number, body.guest_count, server_id=body.server_id or ctx["user_id"]
    )
    if session_id is None:
        raise NotFoundError("Table", table_number, location_id=str(location_id))
    return {"session_id": str(session_id)}


@router.put("/{table_number}/order", response_model=SyncResult)
def sync_table_order(
    location_id: uuid.UUID,
    table_number: str,
    body: StoreTableSessionState,
    db: Session = Depends(get_db),
    ctx: dict[str, Any] = Depends(current_user_context),
) -> SyncResult:
    """
    Push the floor UI's state for a table.

    The whole state is reconciled: each wave's items are replaced by the
    lines sent here.
    """
    require_roles(ctx, FLOOR_ROLES)
    result = OrderService(db, ctx).sync_order_to_db(location_id, table_number, body)
    raise_for_result(result, location_id)
    return result


@router.get("/{table_number}/order", response_model=TableOrderView | None)
def get_table_order(
    location_id: uuid.UUID,
    table_number: str,
    db: Session = Depends(get_db),
    ctx: dict[str, Any] = Depends(current_user_context),
) -> TableOrderView | None:
    """
    Current order of a table, or null when the table is empty.
    """
    require_roles(ctx, ALL_STAFF_ROLES)
    _verify_location(db, ctx, location_id)
    return OrderService(db, ctx).get_order_for_table(location_id, table_number)


@router.post("/{table_number}/waves/{wave}/advance", response_model=AdvanceResult)
def advance_wave(
    location_id: uuid.UUID,
    table_number: str,
    wave: int,
    body: AdvanceWaveRequest,
    db: Session = Depends(get_db),
    ctx: dict[str, Any] = Depends(current_user_context),
) -> AdvanceResult:
    """
    Move every live item of a wave to preparing, ready or served.

    A 409 response names the item the advance stopped on; items before it
    stay advanced.
    """
    require_roles(ctx, ALL_STAFF_ROLES)
    result = OrderService(db, ctx).advance_order_wave_status(
        location_id, table_number, wave, body.status
    )
    raise_for_result(result, location_id)
    return result


@router.post("/{table_number}/close", response_model=CloseResult)
def close_table(
    location_id: uuid.UUID,
    table_number: str,
    body: CloseTableRequest,
    db: Session = Depends(get_db),
    ctx: dict[str, Any] = Depends(current_user_context),
) -> CloseResult:
    """
    Close a table, recording the payment if one is given.

    force=true voids whatever is still unfinished and skips the balance
    check. Requires MANAGER or ADMIN.
    """
    require_roles(ctx, FLOOR_ROLES)
    if body.force and not set(ctx.get("roles", [])) & MANAGEMENT_ROLES:
        raise InsufficientRoleError(sorted(MANAGEMENT_ROLES), user_id=ctx.get("user_id"))

    result = SessionCloseService(db, ctx).close_order_for_table(
        location_id, table_number, payment=body.payment, force=body.force
    )
    raise_for_result(result, location_id)
    logger.info("Table closed", location_id=str(location_id), table_number=table_number, force=body.force)
    return result
