"""
Pure helpers that turn the floor UI's table state into order lines.

Nothing here touches the database, so the mapping rules can be tested on
their own.
"""

import math
import re
import time
from dataclasses import dataclass
from decimal import Decimal

from shared.config.constants import (
    STORE_TO_DB_ITEM_STATUS,
    Limits,
    OrderItemStatus,
    StoreItemStatus,
)
from shared.utils.schemas import StoreItem, StoreTableSessionState

_TABLE_DIGITS = re.compile(r"^[A-Za-z]*(\d+)$")
_BASE36 = "0123456789abcdefghijklmnopqrstuvwxyz"
CENT = Decimal("0.01")


@dataclass(frozen=True)
class OrderLine:
    """One persisted line, grouped into a wave."""

    name: str
    price: Decimal
    status: str
    notes: str
    seat_number: int
    wave: int


def map_item_status(status: str) -> str | None:
    """UI status to DB item status. None for void and anything unrecognised."""
    return STORE_TO_DB_ITEM_STATUS.get(status)


def normalize_wave(wave_number: int | None) -> int:
    """Missing, zero and negative wave numbers all land in wave 1."""
    return max(1, wave_number or 1)


def normalize_guest_count(guest_count: float | int | None) -> int:
    """Floor the guest count, never below one seat."""
    if guest_count is None or not math.isfinite(guest_count):
        return 1
    return max(1, math.floor(guest_count))


def _line(item: StoreItem, seat_number: int) -> OrderLine | None:
    if item.status == StoreItemStatus.VOID:
        return None
    status = map_item_status(item.status)
    if status is None:
        return None
    wave = normalize_wave(item.wave_number)
    label = f"Seat {seat_number}" if seat_number > 0 else "Shared"
    return OrderLine(
        name=item.name[: Limits.MAX_ITEM_NAME_LENGTH],
        price=Decimal(item.price).quantize(CENT),
        status=status,
        notes=f"{label} · Wave {wave}",
        seat_number=seat_number,
        wave=wave,
    )


def flatten_session(state: StoreTableSessionState) -> list[OrderLine]:
    """
    Seat items first (in seat order as given), then table-level items as seat 0.
    Duplicate lines are kept.
    """
    lines: list[OrderLine] = []
    for seat in state.seats:
        for item in seat.items:
            line = _line(item, seat.number)
            if line is not None:
                lines.append(line)
    for item in state.table_items:
        line = _line(item, 0)
        if line is not None:
            lines.append(line)
    return lines


def group_by_wave(lines: list[OrderLine]) -> dict[int, list[OrderLine]]:
    """
    Lines keyed by wave in ascending order. An empty state still yields
    wave 1 so a freshly seated table gets its first order.
    """
    if not lines:
        return {1: []}
    grouped: dict[int, list[OrderLine]] = {}
    for line in lines:
        grouped.setdefault(line.wave, []).append(line)
    return dict(sorted(grouped.items()))


def table_digits(table_number: str) -> str:
    """Trailing digits of a table label ("T12" -> "12"); "1" when there are none."""
    match = _TABLE_DIGITS.match(table_number)
    return match.group(1) if match else "1"


def to_base36(value: int) -> str:
    if value == 0:
        return "0"
    digits = []
    while value:
        value, rem = divmod(value, 36)
        digits.append(_BASE36[rem])
    return "".join(reversed(digits))


def build_order_number(
    table_number: str,
    now_ms: int | None = None,
    max_length: int = Limits.MAX_ORDER_NUMBER_LENGTH,
) -> str:
    """
    Order number like "T12-lq3x9a": table digits plus a base36 clock suffix.

    Over-long table digits are cut from the left so the suffix survives the
    length cap.
    """
    if now_ms is None:
        now_ms = time.time_ns() // 1_000_000
    suffix = to_base36(now_ms)[-6:]
    digits = table_digits(table_number)
    room = max_length - len(suffix) - 2
    if len(digits) > room:
        digits = digits[-room:]
    return f"T{digits}-{suffix}"


def kitchen_timestamps(status: str, fired: bool, now) -> dict:
    """
    Timeline columns for an inserted line, consistent with its status and
    with whether its wave has gone to the kitchen.
    """
    stamps = {
        "sent_to_kitchen_at": now if fired else None,
        "started_at": None,
        "ready_at": None,
        "served_at": None,
    }
    if status in (OrderItemStatus.PREPARING, OrderItemStatus.READY, OrderItemStatus.SERVED):
        stamps["started_at"] = now
    if status in (OrderItemStatus.READY, OrderItemStatus.SERVED):
        stamps["ready_at"] = now
    if status == OrderItemStatus.SERVED:
        stamps["served_at"] = now
    return stamps
