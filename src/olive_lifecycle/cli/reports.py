"""Report export commands (field owners and administrators only)."""

from datetime import datetime
from pathlib import Path
from typing import Optional, Tuple

import click
from rich.markup import escape

from ..errors import OliveLifecycleError, UnauthorizedError
from ..policy import can_generate_reports
from ..services.analytics import AnalyticsService
from ..services.export import ExportData, ExportFormat, ExportManager
from ..services.fields import FieldAccessService
from ..services.reports import cost_analysis_report, field_summary_report, task_completion_report
from .common import (
    DATE_FORMATS,
    CliState,
    current_user,
    date_range_from_options,
    get_console,
    pass_state,
    run_with_store,
)


def export_options(default_name: str):
    def decorate(func):
        func = click.option("--filename", default=default_name, show_default=True,
                            help="File name without extension")(func)
        func = click.option("--output", "output_dir", type=click.Path(file_okay=False),
                            help="Output directory (default: configured export dir)")(func)
        func = click.option("--format", "format_name", type=click.Choice([f.value for f in ExportFormat]),
                            default="csv", show_default=True, help="Export format")(func)
        return func
    return decorate


async def _require_report_user(state: CliState, store):
    user = await current_user(state, store)
    if not can_generate_reports(user):
        raise UnauthorizedError("You do not have permission to generate reports.")
    return user


def _write(state: CliState, data: ExportData, format_name: str, filename: str,
           output_dir: Optional[str]) -> None:
    target_dir = Path(output_dir) if output_dir else state.config.get_export_path()
    try:
        path = ExportManager().export(data, ExportFormat(format_name), filename, target_dir)
    except OliveLifecycleError as e:
        raise click.ClickException(str(e))
    get_console().print(f"[green]Wrote {len(data.rows)} rows to {escape(str(path))}[/green]")


@click.group()
def report():
    """Export reports as CSV, JSON or PDF."""
    pass


@report.command(name="field-summary")
@click.option("--field", "field_ids", multiple=True, help="Field id (repeatable; default all visible)")
@export_options("field-summary")
@pass_state
def field_summary(state: CliState, field_ids: Tuple[str, ...], format_name: str,
                  output_dir: Optional[str], filename: str):
    """Per-field task completion summary."""
    async def build(store):
        user = await _require_report_user(state, store)
        visible = await FieldAccessService(store).list_fields_for(user)
        tasks = await store.list_tasks()
        return field_summary_report(visible, tasks, list(field_ids) or None)

    _write(state, run_with_store(state, build), format_name, filename, output_dir)


@report.command(name="task-completion")
@export_options("task-completion")
@pass_state
def task_completion(state: CliState, format_name: str, output_dir: Optional[str], filename: str):
    """Every task on your visible fields with its schedule and outcome."""
    async def build(store):
        user = await _require_report_user(state, store)
        visible = await FieldAccessService(store).list_fields_for(user)
        visible_ids = {fld.id for fld in visible}
        tasks = [task for task in await store.list_tasks() if task.field_id in visible_ids]
        return task_completion_report(tasks, visible)

    _write(state, run_with_store(state, build), format_name, filename, output_dir)


@report.command(name="cost-analysis")
@click.option("--start", type=click.DateTime(formats=DATE_FORMATS), help="First day")
@click.option("--end", type=click.DateTime(formats=DATE_FORMATS), help="Last day")
@click.option("--days", default=30, show_default=True, help="Window length when --start is omitted")
@export_options("cost-analysis")
@pass_state
def cost_analysis(state: CliState, start: Optional[datetime], end: Optional[datetime], days: int,
                  format_name: str, output_dir: Optional[str], filename: str):
    """Cost of completed work per field."""
    date_range = date_range_from_options(start, end, days)

    async def build(store):
        await _require_report_user(state, store)
        analysis = await AnalyticsService(store).get_cost_analysis(date_range)
        return cost_analysis_report(analysis)

    _write(state, run_with_store(state, build), format_name, filename, output_dir)
