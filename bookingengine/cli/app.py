"""
Main CLI application using Typer.
"""

import logging
from pathlib import Path
from typing import Annotated, Optional

import pendulum
import typer
from rich.console import Console
from rich.table import Table

from ..adapters.memory_store import MemoryBookingStore
from ..config import EngineConfig, get_default_config_path
from ..domain.exceptions import BookingEngineError
from ..domain.models import RecurrencePattern
from ..domain.recurrence import default_recurrence_end, generate_recurring_dates, recurrence_label
from ..services.booking_service import BookingService

app = typer.Typer(
    name="bookingengine",
    help="Inspect provider availability and booking recurrence",
    add_completion=False
)

console = Console()
logger = logging.getLogger(__name__)


def _load_config(config_file: Optional[Path]) -> EngineConfig:
    config_path = config_file or get_default_config_path()
    return EngineConfig.load_from_yaml(config_path)


def _parse_moment(value: Optional[str], tz: str, label: str):
    if value is None:
        return None
    try:
        return pendulum.parse(value, tz=tz)
    except Exception as e:
        console.print(f"[red]Could not parse {label} {value!r}: {e}[/red]")
        raise typer.Exit(1)


@app.callback()
def main(
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Enable debug logging.")] = False,
):
    """Availability and booking lifecycle engine."""
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s %(levelname)s %(name)s: %(message)s"
        )


@app.command()
def slots(
    provider_id: Annotated[str, typer.Argument(help="Provider id from the config file")],
    config_file: Annotated[Optional[Path], typer.Option("--config", "-c", help="Path to config file. Defaults to ./config.yaml")] = None,
    bookings_file: Annotated[Optional[Path], typer.Option("--bookings", "-b", help="JSON booking snapshot (overrides config)")] = None,
    days: Annotated[Optional[int], typer.Option("--days", "-d", help="Number of days to show")] = None,
    duration: Annotated[Optional[int], typer.Option("--duration", help="Slot duration in minutes")] = None,
    date: Annotated[Optional[str], typer.Option("--date", help="Only show this day (YYYY-MM-DD)")] = None,
    now: Annotated[Optional[str], typer.Option("--now", help="Reference time (ISO 8601), defaults to the current time")] = None,
    show_all: Annotated[bool, typer.Option("--all", help="Also list slots that are not available")] = False,
):
    """
    Show the bookable slots of a provider.

    Examples:

        bookingengine slots sunny-days

        bookingengine slots sunny-days --days 3 --bookings bookings.json

        bookingengine slots sunny-days --date 2025-03-10 --all
    """
    try:
        config = _load_config(config_file)
        tz = config.timezone
        schedule = config.schedule_for(provider_id)
        provider = config.find_provider(provider_id)
        reference = _parse_moment(now, tz, "--now")

        snapshot = bookings_file or config.bookings_file
        store = MemoryBookingStore.load_from_json(snapshot, tz) if snapshot else MemoryBookingStore()
        logger.debug("Loaded %d booking(s) from %s", len(store), snapshot or "nowhere")

        service = BookingService(store, policy=config.policy)
        availability = service.available_slots(
            provider_id=provider.id,
            schedule=schedule,
            days_ahead=days,
            slot_duration_minutes=duration,
            now=reference
        )

        if date:
            availability = [day for day in availability if day.date_string == date]
            if not availability:
                console.print(f"[yellow]⚠ {date} is outside the generated horizon.[/yellow]")
                raise typer.Exit(1)

        table = Table(
            title=f"Availability - {provider.display_name()}",
            show_header=True,
            header_style="bold cyan"
        )
        table.add_column("Date", style="bold")
        table.add_column("Day")
        table.add_column("Free", justify="right")
        table.add_column("Slots")

        for day in availability:
            if not day.is_open:
                table.add_row(day.date_string, day.day_of_week, "-", "[dim]closed[/dim]")
                continue

            shown = day.slots if show_all else day.available_slots()
            rendered = " ".join(
                slot.time if slot.available else f"[dim strike]{slot.time}[/dim strike]"
                for slot in shown
            )
            table.add_row(
                day.date_string,
                day.day_of_week,
                str(day.available_count),
                rendered or "[yellow]fully booked[/yellow]"
            )

        console.print()
        console.print(table)
        console.print()

    except (FileNotFoundError, ValueError, BookingEngineError) as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)


@app.command()
def recurrence(
    pattern: Annotated[RecurrencePattern, typer.Argument(help="NONE, WEEKLY, BIWEEKLY or MONTHLY", case_sensitive=False)],
    start: Annotated[str, typer.Argument(help="First occurrence (ISO 8601)")],
    end: Annotated[Optional[str], typer.Argument(help="Last allowed occurrence, defaults to start + 3 months")] = None,
    timezone: Annotated[str, typer.Option("--timezone", "-t", help="IANA timezone for naive values")] = "UTC",
):
    """
    Expand a recurrence pattern into concrete dates (max. 12).
    """
    start_at = _parse_moment(start, timezone, "start")
    end_at = _parse_moment(end, timezone, "end") or default_recurrence_end(start_at)

    try:
        dates = generate_recurring_dates(pattern, start_at, end_at)
    except BookingEngineError as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)

    console.print(f"\n[bold cyan]{recurrence_label(pattern)}[/bold cyan]: {len(dates)} occurrence(s)\n")
    for idx, moment in enumerate(dates, 1):
        console.print(f"  {idx:>2}. {moment.format('ddd, YYYY-MM-DD HH:mm')}")
    console.print()


@app.command()
def providers(
    config_file: Optional[Path] = typer.Option(
        None,
        "--config", "-c",
        help="Path to config file"
    )
):
    """
    List all configured providers.
    """
    try:
        config = _load_config(config_file)
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)

    if not config.providers:
        console.print("[yellow]No providers defined in the config file.[/yellow]")
        return

    table = Table(
        title="Configured providers",
        show_header=True,
        header_style="bold cyan"
    )
    table.add_column("Id", style="bold yellow")
    table.add_column("Name")
    table.add_column("Hours")
    table.add_column("Days", style="dim")

    for provider in config.providers:
        table.add_row(
            provider.id,
            provider.display_name(),
            f"{provider.opening_time} - {provider.closing_time}",
            ", ".join(provider.operating_days)
        )

    console.print()
    console.print(table)
    console.print()


@app.command()
def version():
    """
    Show version information.
    """
    from .. import __version__
    console.print(f"\n[bold cyan]bookingengine[/bold cyan] version [bold]{__version__}[/bold]\n")


if __name__ == "__main__":
    app()
