"""CLI analytics commands.

Every command fetches the full task and field collections and aggregates
them locally over a whole-day date range (default: the last 30 days).
"""

from datetime import datetime
from typing import Optional, Tuple

import click
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from ..services.analytics import AnalyticsService
from .common import (
    DATE_FORMATS,
    CliState,
    date_range_from_options,
    echo_json,
    get_console,
    pass_state,
    range_bounds,
    run_with_store,
)


def format_metric(value: float, unit: str = "", format_spec: str = ".1f") -> str:
    """Format a metric value with its unit"""
    formatted = f"{value:{format_spec}}"
    return f"{formatted}{unit}" if unit else formatted


def range_options(func):
    """Attach the shared --start/--end/--days/--json options."""
    func = click.option("--json", "as_json", is_flag=True, help="Print JSON")(func)
    func = click.option("--days", default=30, show_default=True,
                        help="Window length when --start is omitted")(func)
    func = click.option("--end", type=click.DateTime(formats=DATE_FORMATS), help="Last day")(func)
    func = click.option("--start", type=click.DateTime(formats=DATE_FORMATS), help="First day")(func)
    return func


@click.group()
def analytics():
    """Task, field, cost and completion analytics."""
    pass


@analytics.command()
@range_options
@pass_state
def overview(state: CliState, start: Optional[datetime], end: Optional[datetime],
             days: int, as_json: bool):
    """Dashboard: every aggregation for the period."""
    date_range = date_range_from_options(start, end, days)
    dashboard = run_with_store(state, lambda store: AnalyticsService(store).get_dashboard(date_range))

    if as_json:
        echo_json(dashboard)
        return

    metrics = dashboard["taskMetrics"]
    costs = dashboard["costAnalysis"]
    first, last = range_bounds(date_range)
    lines = [
        f"Tasks: {metrics['total']} "
        f"(pending {metrics['pending']}, in progress {metrics['inProgress']}, "
        f"completed {metrics['completed']})",
        f"Completion rate: {format_metric(metrics['completionRate'], '%')}",
        f"Average completion time: {format_metric(metrics['averageCompletionTime'], ' days')}",
        f"Total cost: ${costs['totalCost']:.2f}",
    ]
    get_console().print(Panel("\n".join(lines), title=f"Overview {first} to {last}", border_style="green"))


@analytics.command(name="fields")
@click.option("--field", "field_ids", multiple=True, help="Field id (repeatable; default all)")
@range_options
@pass_state
def field_metrics(state: CliState, field_ids: Tuple[str, ...], start: Optional[datetime],
                  end: Optional[datetime], days: int, as_json: bool):
    """Per-field task and cost metrics."""
    date_range = date_range_from_options(start, end, days)

    async def fetch(store):
        ids = list(field_ids) or [fld.id for fld in await store.list_fields()]
        return await AnalyticsService(store).get_field_metrics(ids, date_range)

    metrics = run_with_store(state, fetch)

    if as_json:
        echo_json([entry.to_dict() for entry in metrics])
        return

    table = Table(title="Field Metrics", show_header=True, header_style="bold blue")
    table.add_column("Field")
    table.add_column("Tasks", justify="right")
    table.add_column("Completed", justify="right")
    table.add_column("Rate", justify="right")
    table.add_column("Cost", justify="right")
    table.add_column("Avg Cost", justify="right")
    for entry in metrics:
        table.add_row(
            escape(entry.field_name),
            str(entry.total_tasks),
            str(entry.completed_tasks),
            format_metric(entry.completion_rate, "%"),
            f"${entry.total_cost:.2f}",
            f"${entry.average_cost_per_task:.2f}",
        )
    get_console().print(table)


@analytics.command()
@range_options
@pass_state
def costs(state: CliState, start: Optional[datetime], end: Optional[datetime],
          days: int, as_json: bool):
    """Cost of completed work by field, task type and day."""
    date_range = date_range_from_options(start, end, days)
    analysis = run_with_store(state, lambda store: AnalyticsService(store).get_cost_analysis(date_range))

    if as_json:
        echo_json(analysis.to_dict())
        return

    console = get_console()
    console.print(f"[bold]Total cost:[/bold] ${analysis.total_cost:.2f}")

    by_field = Table(title="By Field", show_header=True, header_style="bold blue")
    by_field.add_column("Field")
    by_field.add_column("Cost", justify="right")
    for entry in analysis.cost_by_field:
        by_field.add_row(escape(entry["fieldName"]), f"${entry['cost']:.2f}")
    console.print(by_field)

    by_type = Table(title="By Task Type", show_header=True, header_style="bold blue")
    by_type.add_column("Type")
    by_type.add_column("Cost", justify="right")
    for entry in analysis.cost_by_task_type:
        by_type.add_row(escape(entry["type"]), f"${entry['cost']:.2f}")
    console.print(by_type)


@analytics.command()
@click.option("--period", type=click.Choice(["daily", "weekly", "monthly"]), default="weekly",
              show_default=True, help="Bucket size for the table")
@range_options
@pass_state
def completion(state: CliState, period: str, start: Optional[datetime], end: Optional[datetime],
               days: int, as_json: bool):
    """Completion rates by day, week or month."""
    date_range = date_range_from_options(start, end, days)
    rates = run_with_store(state, lambda store: AnalyticsService(store).get_completion_rates(date_range))

    if as_json:
        echo_json(rates.to_dict())
        return

    key = {"daily": "date", "weekly": "week", "monthly": "month"}[period]
    table = Table(title=f"Completion Rates ({period})", show_header=True, header_style="bold blue")
    table.add_column(key.title())
    table.add_column("Completed", justify="right")
    table.add_column("Total", justify="right")
    table.add_column("Rate", justify="right")
    for bucket in getattr(rates, period):
        table.add_row(bucket[key], str(bucket["completed"]), str(bucket["total"]),
                      format_metric(bucket["rate"], "%"))
    get_console().print(table)
