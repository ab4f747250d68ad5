"""Calendar commands: task and deadline events over a date window."""

from datetime import datetime, timedelta
from typing import Optional, Tuple

import click
from rich.markup import escape
from rich.table import Table

from ..services.calendar import CalendarFilters, CalendarService
from ..task import TaskStatus
from ..utils.datetime import end_of_day, ensure_aware, now_utc, start_of_day
from .common import DATE_FORMATS, CliState, echo_json, format_date, get_console, pass_state, run_with_store


@click.group()
def calendar():
    """Calendar views of scheduled work."""
    pass


@calendar.command(name="events")
@click.option("--start", type=click.DateTime(formats=DATE_FORMATS), help="First day (default today)")
@click.option("--end", type=click.DateTime(formats=DATE_FORMATS), help="Last day (default start + 30 days)")
@click.option("--field", "field_ids", multiple=True, help="Only these fields (repeatable)")
@click.option("--type", "task_types", multiple=True, help="Only these task types (repeatable)")
@click.option("--status", "statuses", multiple=True,
              type=click.Choice([status.value for status in TaskStatus]),
              help="Only these statuses (repeatable)")
@click.option("--tasks/--no-tasks", "show_tasks", default=True, help="Include task events")
@click.option("--deadlines/--no-deadlines", "show_deadlines", default=True, help="Include deadline events")
@click.option("--json", "as_json", is_flag=True, help="Print JSON")
@pass_state
def events(state: CliState, start: Optional[datetime], end: Optional[datetime],
           field_ids: Tuple[str, ...], task_types: Tuple[str, ...], statuses: Tuple[str, ...],
           show_tasks: bool, show_deadlines: bool, as_json: bool):
    """List calendar events between two days."""
    first = start_of_day(ensure_aware(start) if start else now_utc())
    last = end_of_day(ensure_aware(end)) if end else end_of_day(first + timedelta(days=30))
    filters = CalendarFilters(
        field_ids=list(field_ids),
        task_types=list(task_types),
        statuses=list(statuses),
        show_tasks=show_tasks,
        show_deadlines=show_deadlines,
    )
    service_args = dict(window_days=state.config.deadline_window_days,
                        urgent_days=state.config.deadline_urgent_days)

    found = run_with_store(
        state, lambda store: CalendarService(store, **service_args).get_events(first, last, filters)
    )

    if as_json:
        echo_json([event.to_dict() for event in found])
        return

    console = get_console()
    if not found:
        console.print("[yellow]No events in this window.[/yellow]")
        return

    table = Table(title="Calendar", show_header=True, header_style="bold blue")
    table.add_column("Start")
    table.add_column("End")
    table.add_column("Type")
    table.add_column("Title")
    table.add_column("Field")
    for event in found:
        table.add_row(
            format_date(event.start),
            format_date(event.end),
            f"[{event.color}]{event.type.value}[/{event.color}]",
            escape(event.title),
            escape(event.field_name or event.field_id or "-"),
        )
    console.print(table)


@calendar.command(name="day")
@click.argument("day", type=click.DateTime(formats=["%Y-%m-%d"]))
@click.option("--json", "as_json", is_flag=True, help="Print JSON")
@pass_state
def day(state: CliState, day: datetime, as_json: bool):
    """Tasks scheduled to start on DAY (YYYY-MM-DD)."""
    found = run_with_store(state, lambda store: CalendarService(store).get_tasks_for_date(day.date()))

    if as_json:
        echo_json([task.to_dict() for task in found])
        return

    console = get_console()
    if not found:
        console.print(f"[yellow]Nothing scheduled on {day:%Y-%m-%d}.[/yellow]")
        return
    for task in found:
        status = escape(f"[{task.status.value}]")
        console.print(f"{escape(task.id)}  {escape(task.title)}  {status}")
