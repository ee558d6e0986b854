"""
Tableside CLI.

Operator commands for setting up a database and inspecting or closing tables
outside the HTTP API.
"""

import sys
import uuid
from decimal import Decimal
from enum import Enum
from pathlib import Path

# Add backend to path for imports
sys.path.insert(0, str(Path(__file__).parent))

import typer
from rich.console import Console
from rich.table import Table

app = typer.Typer(
    name="tableside",
    help="Tableside floor operations CLI",
    add_completion=False,
)
console = Console()


class PaymentChoice(str, Enum):
    """Payment methods accepted by close-table."""

    CARD = "card"
    CASH = "cash"
    MOBILE = "mobile"
    OTHER = "other"


@app.callback()
def main():
    """Configure logging before any command runs."""
    from shared.config.logging import setup_logging

    setup_logging()


DEMO_PERIODS = [
    ("Breakfast", "07:00", "11:00"),
    ("Lunch", "11:00", "16:00"),
    ("Dinner", "17:00", "23:00"),
]


def _parse_location(location_id: str) -> uuid.UUID:
    try:
        return uuid.UUID(location_id)
    except ValueError:
        console.print(f"[red]✗ Not a location id: {location_id}[/red]")
        raise typer.Exit(1)


# =============================================================================
# Database Commands
# =============================================================================


@app.command()
def db_init():
    """Create all tables."""
    from shared.infrastructure.db import engine
    from rest_api.models import Base

    Base.metadata.create_all(bind=engine)
    console.print("[green]✓ Tables created[/green]")


@app.command()
def seed_demo(
    name: str = typer.Option("Demo Bistro", help="Location name"),
    timezone: str = typer.Option("UTC", help="IANA timezone of the location"),
    tables: int = typer.Option(8, min=1, max=99, help="Number of tables (T1..Tn)"),
):
    """Create a demo location with service periods and tables."""
    from shared.infrastructure.db import get_db_context
    from rest_api.models import Location, ServicePeriod
    from rest_api.models import Table as FloorTable

    with get_db_context() as db:
        location = Location(name=name, timezone=timezone, is_active=True)
        db.add(location)
        db.flush()
        for period_name, start, end in DEMO_PERIODS:
            db.add(
                ServicePeriod(
                    location_id=location.id, name=period_name, start_time=start, end_time=end
                )
            )
        for number in range(1, tables + 1):
            db.add(FloorTable(location_id=location.id, table_number=f"T{number}", capacity=4))
        db.commit()
        location_id = location.id

    console.print(f"[green]✓ Seeded location {name}[/green]")
    console.print(f"  location_id: [cyan]{location_id}[/cyan]")


@app.command()
def issue_token(
    location_id: str = typer.Argument(..., help="Location the token grants access to"),
    role: list[str] = typer.Option(["SERVER"], "--role", "-r", help="Role(s) to grant"),
    user_id: str = typer.Option("dev-user", help="Subject of the token"),
):
    """Print a staff access token for local testing."""
    from shared.security.auth import sign_staff_token

    _parse_location(location_id)
    console.print(sign_staff_token(user_id, [location_id], [r.upper() for r in role]))


# =============================================================================
# Floor Commands
# =============================================================================


@app.command()
def table_state(
    location_id: str = typer.Argument(..., help="Location id"),
    table_number: str = typer.Argument(..., help="Table label, e.g. T5"),
):
    """Show the current order of a table."""
    from shared.infrastructure.db import get_db_context
    from rest_api.services.domain import OrderService

    loc = _parse_location(location_id)
    with get_db_context() as db:
        view = OrderService(db).get_order_for_table(loc, table_number)

    if view is None:
        console.print(f"[yellow]Table {table_number} is empty[/yellow]")
        return

    console.print(
        f"Table [cyan]{table_number}[/cyan]: {view.guest_count} guest(s), "
        f"seated {view.seated_at or '-'}, session {view.session_id or 'legacy'}"
    )
    table = Table(title=f"Order for {table_number}")
    table.add_column("Seat", style="cyan")
    table.add_column("Item")
    table.add_column("Price", justify="right", style="green")
    table.add_column("Status", style="yellow")
    table.add_column("Notes")
    for item in view.items:
        table.add_row(
            str(item.seat_number or "shared"),
            item.name,
            f"{item.price:.2f}",
            item.status,
            item.notes or "",
        )
    console.print(table)


@app.command()
def close_table(
    location_id: str = typer.Argument(..., help="Location id"),
    table_number: str = typer.Argument(..., help="Table label, e.g. T5"),
    amount: float = typer.Option(0.0, help="Payment amount to record"),
    tip: float = typer.Option(0.0, help="Tip amount"),
    method: PaymentChoice = typer.Option(PaymentChoice.OTHER, case_sensitive=False, help="Payment method"),
    force: bool = typer.Option(False, "--force", "-f", help="Void unfinished items and skip the balance check"),
):
    """Close a table, optionally recording a payment."""
    from shared.infrastructure.db import get_db_context
    from shared.utils.schemas import PaymentInput
    from rest_api.services.domain import SessionCloseService

    loc = _parse_location(location_id)
    payment = None
    if amount > 0 or tip != 0:
        payment = PaymentInput(amount=Decimal(str(amount)), tip_amount=Decimal(str(tip)), method=method.value)

    with get_db_context() as db:
        result = SessionCloseService(db).close_order_for_table(
            loc, table_number, payment=payment, force=force
        )

    if not result.ok:
        console.print(f"[red]✗ {result.error}[/red] ({result.reason or 'error'})")
        for item in result.items or []:
            console.print(f"  - {item.item_name} ({item.status}) x{item.quantity}")
        if result.remaining is not None:
            console.print(f"  remaining: {result.remaining:.2f}")
        raise typer.Exit(1)

    if result.voided_items:
        console.print(f"[yellow]Voided {result.voided_items} unfinished item(s)[/yellow]")
    console.print(f"[green]✓ Table {table_number} closed[/green]")


if __name__ == "__main__":
    app()
