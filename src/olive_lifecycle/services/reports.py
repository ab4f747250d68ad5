"""Report tables built from records and analytics results."""

from typing import Iterable, List, Optional, Sequence

from ..field import Field
from ..task import Task
from ..utils.datetime import ensure_aware
from .analytics import CompletionRates, CostAnalysis, FieldMetrics
from .export import ExportData


FIELD_SUMMARY_HEADERS = [
    "Field Name", "Area (ha)", "Variety", "Lifecycle Year",
    "Total Tasks", "Completed Tasks", "Completion Rate",
]
TASK_COMPLETION_HEADERS = [
    "Task Title", "Field", "Type", "Status", "Assigned To",
    "Scheduled Start", "Scheduled End", "Actual End",
]
COST_ANALYSIS_HEADERS = ["Field", "Total Cost"]


def _percent(value: float) -> str:
    return f"{value:.1f}%"


def _money(value: float) -> str:
    return f"${value:.2f}"


def _date_cell(dt) -> str:
    return ensure_aware(dt).strftime("%Y-%m-%d") if dt else "N/A"


def field_summary_report(fields: Iterable[Field], tasks: Iterable[Task],
                         field_ids: Optional[Sequence[str]] = None) -> ExportData:
    """One row per selected field with its task completion summary.

    Fields keep store order; ``field_ids`` of None selects every field.
    """
    tasks = list(tasks)
    rows = []
    for fld in fields:
        if field_ids is not None and fld.id not in field_ids:
            continue
        field_tasks = [task for task in tasks if task.field_id == fld.id]
        completed = sum(1 for task in field_tasks if task.is_completed)
        rate = _percent(completed / len(field_tasks) * 100) if field_tasks else "0%"
        rows.append([
            fld.name,
            fld.area,
            fld.variety or "N/A",
            fld.current_lifecycle_year.value,
            len(field_tasks),
            completed,
            rate,
        ])
    return ExportData(headers=list(FIELD_SUMMARY_HEADERS), rows=rows, title="Field Summary Report")


def task_completion_report(tasks: Iterable[Task], fields: Iterable[Field]) -> ExportData:
    names = {fld.id: fld.name for fld in fields}
    rows = [
        [
            task.title,
            names.get(task.field_id, "Unknown"),
            task.type,
            task.status.value,
            task.assigned_to or "Unassigned",
            _date_cell(task.scheduled_start),
            _date_cell(task.scheduled_end),
            _date_cell(task.actual_end),
        ]
        for task in tasks
    ]
    return ExportData(headers=list(TASK_COMPLETION_HEADERS), rows=rows, title="Task Completion Report")


def cost_analysis_report(analysis: CostAnalysis) -> ExportData:
    rows = [[entry["fieldName"], _money(entry["cost"])] for entry in analysis.cost_by_field]
    return ExportData(headers=list(COST_ANALYSIS_HEADERS), rows=rows, title="Cost Analysis Report")


def field_metrics_report(metrics: List[FieldMetrics]) -> ExportData:
    rows = [
        [
            entry.field_name,
            entry.total_tasks,
            entry.completed_tasks,
            _percent(entry.completion_rate),
            _money(entry.total_cost),
            _money(entry.average_cost_per_task),
        ]
        for entry in metrics
    ]
    return ExportData(
        headers=["Field", "Total Tasks", "Completed Tasks", "Completion Rate",
                 "Total Cost", "Average Cost per Task"],
        rows=rows,
        title="Field Metrics Report",
    )


def completion_rates_report(rates: CompletionRates) -> ExportData:
    """Daily, weekly and monthly buckets stacked in one table."""
    rows = []
    for period, key, buckets in (
        ("Daily", "date", rates.daily),
        ("Weekly", "week", rates.weekly),
        ("Monthly", "month", rates.monthly),
    ):
        for bucket in buckets:
            rows.append([period, bucket[key], bucket["completed"], bucket["total"],
                         _percent(bucket["rate"])])
    return ExportData(
        headers=["Period", "Bucket", "Completed", "Total", "Rate"],
        rows=rows,
        title="Completion Rates Report",
    )
