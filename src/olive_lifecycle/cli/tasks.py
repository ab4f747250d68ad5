"""Task commands."""

from datetime import datetime
from typing import Optional

import click
from rich.markup import escape
from rich.table import Table

from ..models import EvidenceCreate, TaskCreate, parse_model
from ..services.calendar import status_color
from ..task import TaskStatus
from .common import (
    DATE_FORMATS,
    CliState,
    echo_json,
    format_date,
    get_console,
    pass_state,
    run_with_store,
)


STATUS_CHOICES = [status.value for status in TaskStatus]


def _status_markup(status: TaskStatus) -> str:
    return f"[{status_color(status)}]{status.value}[/{status_color(status)}]"


@click.group()
def tasks():
    """Manage field tasks."""
    pass


@tasks.command(name="list")
@click.option("--field", "field_id", help="Only tasks on this field")
@click.option("--assigned-to", help="Only tasks assigned to this user id")
@click.option("--status", type=click.Choice(STATUS_CHOICES), help="Only tasks in this status")
@click.option("--json", "as_json", is_flag=True, help="Print JSON instead of a table")
@pass_state
def list_tasks(state: CliState, field_id: Optional[str], assigned_to: Optional[str],
               status: Optional[str], as_json: bool):
    """List tasks."""
    async def fetch(store):
        return await store.list_tasks(field_id=field_id, assigned_to=assigned_to)

    records = run_with_store(state, fetch)
    if status:
        records = [task for task in records if task.status.value == status]

    if as_json:
        echo_json([task.to_dict() for task in records])
        return

    console = get_console()
    if not records:
        console.print("[yellow]No tasks found.[/yellow]")
        return

    table = Table(title=f"Tasks ({len(records)})", show_header=True, header_style="bold blue")
    table.add_column("ID", style="cyan")
    table.add_column("Title")
    table.add_column("Field")
    table.add_column("Status")
    table.add_column("Assigned")
    table.add_column("Scheduled")
    for task in records:
        table.add_row(
            escape(task.id),
            escape(task.title),
            escape(task.field_id),
            _status_markup(task.status),
            escape(task.assigned_to or "-"),
            f"{format_date(task.scheduled_start)} - {format_date(task.scheduled_end)}",
        )
    console.print(table)


@tasks.command(name="show")
@click.argument("task_id")
@click.option("--json", "as_json", is_flag=True, help="Print JSON")
@pass_state
def show_task(state: CliState, task_id: str, as_json: bool):
    """Show one task with its evidence."""
    task = run_with_store(state, lambda store: store.get_task(task_id))

    if as_json:
        echo_json(task.to_dict())
        return

    console = get_console()
    console.print(f"[bold]{escape(task.title)}[/bold] ({escape(task.id)})")
    console.print(f"Field: {escape(task.field_id)}  Type: {escape(task.type)}  Year: {task.lifecycle_year}")
    console.print(f"Status: {_status_markup(task.status)}  Assigned: {escape(task.assigned_to or '-')}")
    console.print(f"Scheduled: {format_date(task.scheduled_start)} - {format_date(task.scheduled_end)}")
    console.print(f"Actual: {format_date(task.actual_start)} - {format_date(task.actual_end)}")
    if task.cost is not None:
        console.print(f"Cost: ${task.cost:.2f}")
    if task.description:
        console.print(escape(task.description))
    for entry in task.evidence:
        details = entry.notes or entry.photo_url
        console.print(f"  - {format_date(entry.timestamp, '%Y-%m-%d %H:%M')}: {escape(details)}")


@tasks.command(name="create")
@click.option("--field", "field_id", required=True, help="Field the task belongs to")
@click.option("--type", "task_type", required=True, help="Task type, e.g. Pruning")
@click.option("--title", required=True, help="Task title")
@click.option("--description", help="Longer description")
@click.option("--assign", "assigned_to", help="Assign to this user id")
@click.option("--start", type=click.DateTime(formats=DATE_FORMATS), help="Scheduled start")
@click.option("--end", type=click.DateTime(formats=DATE_FORMATS), help="Scheduled end")
@pass_state
def create_task(state: CliState, field_id: str, task_type: str, title: str,
                description: Optional[str], assigned_to: Optional[str],
                start: Optional[datetime], end: Optional[datetime]):
    """Create a pending task on a field."""
    async def create(store):
        data = parse_model(TaskCreate, {
            "field_id": field_id,
            "type": task_type,
            "title": title,
            "description": description,
            "assigned_to": assigned_to,
            "scheduled_start": start,
            "scheduled_end": end,
        })
        return await store.create_task(data)

    task = run_with_store(state, create)
    get_console().print(f"[green]Created task {escape(task.id)}: {escape(task.title)}[/green]")


@tasks.command(name="status")
@click.argument("task_id")
@click.argument("status", type=click.Choice(STATUS_CHOICES))
@pass_state
def update_status(state: CliState, task_id: str, status: str):
    """Change a task's status."""
    task = run_with_store(state, lambda store: store.update_task_status(task_id, status))
    get_console().print(f"Task {escape(task.id)} is now {_status_markup(task.status)}")


@tasks.command(name="assign")
@click.argument("task_id")
@click.argument("user_id")
@pass_state
def assign_task(state: CliState, task_id: str, user_id: str):
    """Assign a task to a user."""
    async def assign(store):
        await store.get_user(user_id)
        return await store.assign_task(task_id, user_id)

    task = run_with_store(state, assign)
    get_console().print(f"[green]Task {escape(task.id)} assigned to {escape(task.assigned_to)}[/green]")


@tasks.command(name="evidence")
@click.argument("task_id")
@click.option("--photo", "photo_url", help="Photo URL or base64 payload")
@click.option("--notes", help="Free-text notes")
@pass_state
def add_evidence(state: CliState, task_id: str, photo_url: Optional[str], notes: Optional[str]):
    """Attach evidence (a photo, notes or both) to a task."""
    async def attach(store):
        data = parse_model(EvidenceCreate, {"photo_url": photo_url, "notes": notes})
        return await store.add_evidence(task_id, photo_url=data.photo_url, notes=data.notes)

    task = run_with_store(state, attach)
    get_console().print(f"[green]Evidence added to task {escape(task.id)} ({len(task.evidence)} total)[/green]")
