"""Field commands: list, inspect and progress the caller's fields."""

import click
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from ..services.fields import FieldAccessService
from .common import CliState, current_user, echo_json, format_date, get_console, pass_state, run_with_store


YEAR_STYLES = {"low": "yellow", "high": "green"}


@click.group()
def fields():
    """Fields visible to the logged-in user."""
    pass


@fields.command(name="list")
@click.option("--json", "as_json", is_flag=True, help="Print JSON instead of a table")
@pass_state
def list_fields(state: CliState, as_json: bool):
    """List the fields you may access."""
    async def fetch(store):
        user = await current_user(state, store)
        return await FieldAccessService(store).list_fields_for(user)

    records = run_with_store(state, fetch)

    if as_json:
        echo_json([fld.to_dict() for fld in records])
        return

    console = get_console()
    if not records:
        console.print("[yellow]No fields available.[/yellow]")
        return

    table = Table(title="Fields", show_header=True, header_style="bold blue")
    table.add_column("ID", style="cyan")
    table.add_column("Name")
    table.add_column("Area (ha)", justify="right")
    table.add_column("Variety")
    table.add_column("Year")
    for fld in records:
        year = fld.current_lifecycle_year.value
        table.add_row(escape(fld.id), escape(fld.name), f"{fld.area:g}", escape(fld.variety or "N/A"),
                      f"[{YEAR_STYLES[year]}]{year}[/{YEAR_STYLES[year]}]")
    console.print(table)


@fields.command(name="show")
@click.argument("field_id")
@click.option("--json", "as_json", is_flag=True, help="Print JSON instead of a panel")
@pass_state
def show_field(state: CliState, field_id: str, as_json: bool):
    """Show one field with its lifecycle."""
    async def fetch(store):
        user = await current_user(state, store)
        service = FieldAccessService(store)
        fld = await service.get_field_for(user, field_id)
        lifecycle = await store.get_lifecycle(field_id)
        return fld, lifecycle

    fld, lifecycle = run_with_store(state, fetch)

    if as_json:
        echo_json({"field": fld.to_dict(), "lifecycle": lifecycle.to_dict() if lifecycle else None})
        return

    lines = [
        f"[bold]{escape(fld.name)}[/bold] ({escape(fld.id)})",
        f"Area: {fld.area:g} ha",
        f"Variety: {escape(fld.variety or 'N/A')}",
        f"Tree age: {fld.tree_age if fld.tree_age is not None else 'N/A'}",
        f"Ground type: {escape(fld.ground_type or 'N/A')}",
        f"Irrigated: {'yes' if fld.irrigation_status else 'no'}",
        f"Lifecycle year: {fld.current_lifecycle_year.value}",
    ]
    if lifecycle:
        lines.append(f"Cycle started: {format_date(lifecycle.cycle_start_date)}")
        lines.append(f"Last progression: {format_date(lifecycle.last_progression_date)}")
    get_console().print(Panel("\n".join(lines), title="Field", border_style="blue"))


@fields.command(name="progress")
@click.argument("field_id")
@pass_state
def progress_field(state: CliState, field_id: str):
    """Toggle a field's lifecycle year (owner only)."""
    async def progress(store):
        user = await current_user(state, store)
        return await FieldAccessService(store).progress_lifecycle_for(user, field_id)

    lifecycle = run_with_store(state, progress)
    get_console().print(
        f"[green]Field {escape(field_id)} progressed to the {lifecycle.current_year.value} year[/green]"
    )
