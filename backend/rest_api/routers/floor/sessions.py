"""
Sessions router.
Waves, seats, guest count, closability and the audit trail of one table session.
"""

import uuid
from typing import Any

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from shared.config.constants import ALL_STAFF_ROLES, FLOOR_ROLES, MANAGEMENT_ROLES
from shared.infrastructure.db import get_db
from shared.security.auth import current_user_context, require_roles
from shared.utils.exceptions import InsufficientRoleError, NotFoundError
from shared.utils.schemas import (
    CloseTableRequest,
    RenameSeatRequest,
    SeatOutput,
    SessionEventOutput,
    UpdateGuestCountRequest,
)
from rest_api.models import Seat, TableSession
from rest_api.routers._common import raise_for_result
from rest_api.services.domain import (
    CloseValidationService,
    OrderService,
    SeatService,
    SessionCloseService,
    SessionEventRecorder,
    SessionService,
)
from rest_api.services.domain.results import (
    CloseResult,
    OutstandingItemsResult,
    SeatResult,
    ServiceResult,
    WaveResult,
)


router = APIRouter(prefix="/api/locations/{location_id}/sessions", tags=["sessions"])


def _load_session(
    db: Session,
    ctx: dict[str, Any],
    location_id: uuid.UUID,
    session_id: uuid.UUID,
) -> TableSession:
    loaded = SessionService(db, ctx).get_session(session_id)
    if isinstance(loaded, ServiceResult):
        raise_for_result(loaded, location_id)
    if loaded.location_id != location_id:
        raise NotFoundError("Session", session_id, location_id=str(location_id))
    return loaded


@router.post("/{session_id}/waves", response_model=WaveResult, status_code=status.HTTP_201_CREATED)
def create_wave(
    location_id: uuid.UUID,
    session_id: uuid.UUID,
    db: Session = Depends(get_db),
    ctx: dict[str, Any] = Depends(current_user_context),
) -> WaveResult:
    """Open the next wave (course) of the session. New waves start unfired."""
    require_roles(ctx, FLOOR_ROLES)
    _load_session(db, ctx, location_id, session_id)
    result = OrderService(db, ctx).create_next_wave(session_id)
    raise_for_result(result, location_id)
    return result


@router.get("/{session_id}/close-check", response_model=OutstandingItemsResult)
def close_check(
    location_id: uuid.UUID,
    session_id: uuid.UUID,
    db: Session = Depends(get_db),
    ctx: dict[str, Any] = Depends(current_user_context),
) -> OutstandingItemsResult:
    """
    Whether the session could be closed now, and if not, what blocks it.
    """
    require_roles(ctx, ALL_STAFF_ROLES)
    _load_session(db, ctx, location_id, session_id)
    return CloseValidationService(db).get_session_outstanding_items(session_id)


@router.post("/{session_id}/close", response_model=CloseResult)
def close_session(
    location_id: uuid.UUID,
    session_id: uuid.UUID,
    body: CloseTableRequest,
    db: Session = Depends(get_db),
    ctx: dict[str, Any] = Depends(current_user_context),
) -> CloseResult:
    """Close a session by id. Same rules as closing by table number."""
    require_roles(ctx, FLOOR_ROLES)
    if body.force and not set(ctx.get("roles", [])) & MANAGEMENT_ROLES:
        raise InsufficientRoleError(sorted(MANAGEMENT_ROLES), user_id=ctx.get("user_id"))
    _load_session(db, ctx, location_id, session_id)
    result = SessionCloseService(db, ctx).close_session(
        session_id, payment=body.payment, force=body.force
    )
    raise_for_result(result, location_id)
    return result


@router.put("/{session_id}/guest-count")
def update_guest_count(
    location_id: uuid.UUID,
    session_id: uuid.UUID,
    body: UpdateGuestCountRequest,
    db: Session = Depends(get_db),
    ctx: dict[str, Any] = Depends(current_user_context),
) -> dict[str, Any]:
    require_roles(ctx, FLOOR_ROLES)
    _load_session(db, ctx, location_id, session_id)
    result = SessionService(db, ctx).update_guest_count(session_id, body.guest_count)
    raise_for_result(result, location_id)
    return {"ok": True}


@router.get("/{session_id}/seats", response_model=list[SeatOutput])
def list_seats(
    location_id: uuid.UUID,
    session_id: uuid.UUID,
    db: Session = Depends(get_db),
    ctx: dict[str, Any] = Depends(current_user_context),
) -> list[SeatOutput]:
    require_roles(ctx, ALL_STAFF_ROLES)
    _load_session(db, ctx, location_id, session_id)
    seats = SeatService(db, ctx).get_seats_for_session(session_id)
    return [SeatOutput.model_validate(seat) for seat in seats]


@router.post("/{session_id}/seats", response_model=SeatResult, status_code=status.HTTP_201_CREATED)
def add_seat(
    location_id: uuid.UUID,
    session_id: uuid.UUID,
    seat_number: int | None = None,
    db: Session = Depends(get_db),
    ctx: dict[str, Any] = Depends(current_user_context),
) -> SeatResult:
    """Add the next seat, or a specific seat number if it is free."""
    require_roles(ctx, FLOOR_ROLES)
    _load_session(db, ctx, location_id, session_id)
    result = SeatService(db, ctx).add_seat_to_session(session_id, seat_number)
    raise_for_result(result, location_id)
    return result


@router.delete("/{session_id}/seats/{seat_id}", status_code=status.HTTP_204_NO_CONTENT)
def remove_seat(
    location_id: uuid.UUID,
    session_id: uuid.UUID,
    seat_id: uuid.UUID,
    db: Session = Depends(get_db),
    ctx: dict[str, Any] = Depends(current_user_context),
) -> None:
    require_roles(ctx, FLOOR_ROLES)
    _load_session(db, ctx, location_id, session_id)
    seat = db.get(Seat, seat_id)
    if seat is None or seat.session_id != session_id:
        raise NotFoundError("Seat", seat_id, session_id=str(session_id))
    result = SeatService(db, ctx).remove_seat_from_session(seat_id)
    raise_for_result(result, location_id)


@router.put("/{session_id}/seats/by-number/{seat_number}", response_model=SeatResult)
def rename_seat(
    location_id: uuid.UUID,
    session_id: uuid.UUID,
    seat_number: int,
    body: RenameSeatRequest,
    db: Session = Depends(get_db),
    ctx: dict[str, Any] = Depends(current_user_context),
) -> SeatResult:
    """
    Renumber a seat. Refused with 409 and reason=item_sent_to_kitchen once
    any of its items has gone to the kitchen.
    """
    require_roles(ctx, FLOOR_ROLES)
    _load_session(db, ctx, location_id, session_id)
    result = SeatService(db, ctx).rename_seat_by_session_and_number(
        session_id, seat_number, body.new_seat_number
    )
    raise_for_result(result, location_id)
    return result


@router.delete("/{session_id}/seats/by-number/{seat_number}", status_code=status.HTTP_204_NO_CONTENT)
def remove_seat_by_number(
    location_id: uuid.UUID,
    session_id: uuid.UUID,
    seat_number: int,
    db: Session = Depends(get_db),
    ctx: dict[str, Any] = Depends(current_user_context),
) -> None:
    require_roles(ctx, FLOOR_ROLES)
    _load_session(db, ctx, location_id, session_id)
    result = SeatService(db, ctx).remove_seat_by_session_and_number(session_id, seat_number)
    raise_for_result(result, location_id)


@router.get("/{session_id}/events", response_model=list[SessionEventOutput])
def list_session_events(
    location_id: uuid.UUID,
    session_id: uuid.UUID,
    db: Session = Depends(get_db),
    ctx: dict[str, Any] = Depends(current_user_context),
) -> list[SessionEventOutput]:
    """Audit trail of the session, oldest first."""
    require_roles(ctx, ALL_STAFF_ROLES)
    _load_session(db, ctx, location_id, session_id)
    events = SessionEventRecorder(db, ctx).list_events(session_id)
    return [SessionEventOutput.model_validate(event) for event in events]
