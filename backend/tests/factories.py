"""
Builders for floor UI table states used across tests.
"""

from shared.utils.schemas import StoreItem, StoreSeat, StoreTableSessionState


def item(name: str, price: str = "10.00", status: str = "held", wave: int | None = None) -> StoreItem:
    """Shorthand for one floor UI line."""
    return StoreItem(name=name, price=price, status=status, wave_number=wave)


def table_state(
    guest_count: float = 2,
    seats: dict[int, list[StoreItem]] | None = None,
    table_items: list[StoreItem] | None = None,
) -> StoreTableSessionState:
    """Build a floor UI table state from {seat_number: [items]}."""
    return StoreTableSessionState(
        guest_count=guest_count,
        seats=[StoreSeat(number=n, items=items) for n, items in (seats or {}).items()],
        table_items=table_items or [],
    )
