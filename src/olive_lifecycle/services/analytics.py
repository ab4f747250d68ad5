"""Analytics aggregations for the Olive Lifecycle Platform.

This module provides the read-only rollups behind the dashboard:
- Task metrics (status counts, completion rate, average completion time)
- Per-field metrics (task counts, completion rate, cost)
- Cost analysis by field, task type and day
- Daily, weekly and monthly completion rates
- Task status distribution

The ``compute_*`` functions are pure and operate on already-fetched
records. :class:`AnalyticsService` fetches the full collections from a
record store and filters client-side.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Sequence

from ..field import Field
from ..task import Task, TaskStatus
from ..utils.datetime import day_key, ensure_aware, month_key, week_start_key
from .store import RecordStore


logger = logging.getLogger(__name__)

SECONDS_PER_DAY = 86400.0


def _rate(completed: int, total: int) -> float:
    return completed / total * 100 if total > 0 else 0.0


@dataclass(frozen=True)
class DateRange:
    """Inclusive ``[start, end]`` window; an inverted range matches nothing."""
    start: datetime
    end: datetime

    def __post_init__(self):
        object.__setattr__(self, "start", ensure_aware(self.start))
        object.__setattr__(self, "end", ensure_aware(self.end))

    def contains(self, dt: Optional[datetime]) -> bool:
        if dt is None:
            return False
        return self.start <= ensure_aware(dt) <= self.end


@dataclass
class TaskMetrics:
    """Status counts and completion statistics"""
    total: int = 0
    pending: int = 0
    in_progress: int = 0
    completed: int = 0
    completion_rate: float = 0.0
    average_completion_time: float = 0.0  # days

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total": self.total,
            "pending": self.pending,
            "inProgress": self.in_progress,
            "completed": self.completed,
            "completionRate": self.completion_rate,
            "averageCompletionTime": self.average_completion_time,
        }


@dataclass
class FieldMetrics:
    """Task and cost rollup for a single field"""
    field_id: str
    field_name: str
    total_tasks: int = 0
    completed_tasks: int = 0
    completion_rate: float = 0.0
    total_cost: float = 0.0
    average_cost_per_task: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "fieldId": self.field_id,
            "fieldName": self.field_name,
            "totalTasks": self.total_tasks,
            "completedTasks": self.completed_tasks,
            "completionRate": self.completion_rate,
            "totalCost": self.total_cost,
            "averageCostPerTask": self.average_cost_per_task,
        }


@dataclass
class CostAnalysis:
    """Cost of completed work, grouped three ways"""
    total_cost: float = 0.0
    cost_by_field: List[Dict[str, Any]] = field(default_factory=list)
    cost_by_task_type: List[Dict[str, Any]] = field(default_factory=list)
    cost_over_time: List[Dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "totalCost": self.total_cost,
            "costByField": [dict(entry) for entry in self.cost_by_field],
            "costByTaskType": [dict(entry) for entry in self.cost_by_task_type],
            "costOverTime": [dict(entry) for entry in self.cost_over_time],
        }


@dataclass
class CompletionRates:
    """Completion rates bucketed by day, Sunday-starting week and month"""
    daily: List[Dict[str, Any]] = field(default_factory=list)
    weekly: List[Dict[str, Any]] = field(default_factory=list)
    monthly: List[Dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "daily": [dict(entry) for entry in self.daily],
            "weekly": [dict(entry) for entry in self.weekly],
            "monthly": [dict(entry) for entry in self.monthly],
        }


@dataclass
class TaskStatusDistribution:
    pending: int = 0
    in_progress: int = 0
    completed: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "pending": self.pending,
            "inProgress": self.in_progress,
            "completed": self.completed,
        }


def _created_in(tasks: Iterable[Task], date_range: DateRange) -> List[Task]:
    return [task for task in tasks if date_range.contains(task.created_at)]


def _field_names(fields: Iterable[Field]) -> Dict[str, str]:
    return {fld.id: fld.name for fld in fields}


def compute_task_metrics(tasks: Iterable[Task], date_range: DateRange) -> TaskMetrics:
    """Summarize tasks created within ``date_range``.

    ``average_completion_time`` is the mean of ``actual_end - actual_start``
    in fractional days over completed tasks carrying both timestamps.
    """
    in_range = _created_in(tasks, date_range)

    metrics = TaskMetrics(total=len(in_range))
    durations = []
    for task in in_range:
        if task.status == TaskStatus.PENDING:
            metrics.pending += 1
        elif task.status == TaskStatus.IN_PROGRESS:
            metrics.in_progress += 1
        elif task.status == TaskStatus.COMPLETED:
            metrics.completed += 1
            if task.actual_start and task.actual_end:
                elapsed = (task.actual_end - task.actual_start).total_seconds()
                durations.append(elapsed / SECONDS_PER_DAY)

    metrics.completion_rate = _rate(metrics.completed, metrics.total)
    if durations:
        metrics.average_completion_time = sum(durations) / len(durations)
    return metrics


def compute_field_metrics(field_ids: Sequence[str], tasks: Iterable[Task],
                          fields: Iterable[Field], date_range: DateRange) -> List[FieldMetrics]:
    """Build one FieldMetrics per requested id, preserving input order.

    Ids without tasks get zeroed metrics; ids without a field record are
    reported as ``"Unknown Field"``.
    """
    names = _field_names(fields)
    in_range = _created_in(tasks, date_range)

    results = []
    for field_id in field_ids:
        field_tasks = [task for task in in_range if task.field_id == field_id]
        completed = [task for task in field_tasks if task.is_completed]
        total_cost = sum(task.cost or 0 for task in completed)

        results.append(FieldMetrics(
            field_id=field_id,
            field_name=names.get(field_id, "Unknown Field"),
            total_tasks=len(field_tasks),
            completed_tasks=len(completed),
            completion_rate=_rate(len(completed), len(field_tasks)),
            total_cost=total_cost,
            average_cost_per_task=total_cost / len(completed) if completed else 0.0,
        ))
    return results


def compute_cost_analysis(tasks: Iterable[Task], fields: Iterable[Field],
                          date_range: DateRange) -> CostAnalysis:
    """Group the cost of tasks that ended within ``date_range``.

    Tasks without an ``actual_end`` in range, or with a cost of zero or
    None, are left out entirely.
    """
    names = _field_names(fields)
    costed = [
        task for task in tasks
        if date_range.contains(task.actual_end) and task.cost
    ]

    by_field: Dict[str, float] = {}
    by_type: Dict[str, float] = {}
    by_day: Dict[str, float] = {}
    for task in costed:
        by_field[task.field_id] = by_field.get(task.field_id, 0) + task.cost
        by_type[task.type] = by_type.get(task.type, 0) + task.cost
        key = day_key(task.actual_end)
        by_day[key] = by_day.get(key, 0) + task.cost

    return CostAnalysis(
        total_cost=sum(task.cost for task in costed),
        cost_by_field=[
            {"fieldId": field_id, "fieldName": names.get(field_id, "Unknown"), "cost": cost}
            for field_id, cost in by_field.items()
        ],
        cost_by_task_type=[{"type": task_type, "cost": cost} for task_type, cost in by_type.items()],
        cost_over_time=[{"date": day, "cost": by_day[day]} for day in sorted(by_day)],
    )


def _bucket(tasks: Iterable[Task], key_func) -> Dict[str, Dict[str, int]]:
    buckets: Dict[str, Dict[str, int]] = {}
    for task in tasks:
        bucket = buckets.setdefault(key_func(task.created_at), {"completed": 0, "total": 0})
        bucket["total"] += 1
        if task.is_completed:
            bucket["completed"] += 1
    return buckets


def _roll_up_weeks(daily: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Merge daily buckets into Sunday-starting weeks, in first-seen order."""
    weekly: List[Dict[str, Any]] = []
    by_week: Dict[str, Dict[str, Any]] = {}
    for day in daily:
        week = week_start_key(day["date"])
        existing = by_week.get(week)
        if existing is None:
            existing = {"week": week, "completed": 0, "total": 0, "rate": 0.0}
            by_week[week] = existing
            weekly.append(existing)
        existing["completed"] += day["completed"]
        existing["total"] += day["total"]
        existing["rate"] = _rate(existing["completed"], existing["total"])
    return weekly


def compute_completion_rates(tasks: Iterable[Task], date_range: DateRange) -> CompletionRates:
    """Bucket tasks created in ``date_range`` by UTC day, week and month."""
    in_range = _created_in(tasks, date_range)

    days = _bucket(in_range, day_key)
    daily = [
        {"date": day, "completed": days[day]["completed"], "total": days[day]["total"],
         "rate": _rate(days[day]["completed"], days[day]["total"])}
        for day in sorted(days)
    ]

    months = _bucket(in_range, month_key)
    monthly = [
        {"month": month, "completed": months[month]["completed"], "total": months[month]["total"],
         "rate": _rate(months[month]["completed"], months[month]["total"])}
        for month in sorted(months)
    ]

    return CompletionRates(daily=daily, weekly=_roll_up_weeks(daily), monthly=monthly)


def compute_status_distribution(tasks: Iterable[Task], date_range: DateRange) -> TaskStatusDistribution:
    distribution = TaskStatusDistribution()
    for task in _created_in(tasks, date_range):
        if task.status == TaskStatus.PENDING:
            distribution.pending += 1
        elif task.status == TaskStatus.IN_PROGRESS:
            distribution.in_progress += 1
        elif task.status == TaskStatus.COMPLETED:
            distribution.completed += 1
    return distribution


class AnalyticsService:
    """Store-backed analytics: fetch everything, aggregate client-side."""

    def __init__(self, store: RecordStore):
        self.store = store

    async def get_task_metrics(self, date_range: DateRange) -> TaskMetrics:
        tasks = await self.store.list_tasks()
        return compute_task_metrics(tasks, date_range)

    async def get_field_metrics(self, field_ids: Sequence[str], date_range: DateRange) -> List[FieldMetrics]:
        tasks, fields = await asyncio.gather(self.store.list_tasks(), self.store.list_fields())
        return compute_field_metrics(field_ids, tasks, fields, date_range)

    async def get_cost_analysis(self, date_range: DateRange) -> CostAnalysis:
        tasks, fields = await asyncio.gather(self.store.list_tasks(), self.store.list_fields())
        return compute_cost_analysis(tasks, fields, date_range)

    async def get_completion_rates(self, date_range: DateRange) -> CompletionRates:
        tasks = await self.store.list_tasks()
        return compute_completion_rates(tasks, date_range)

    async def get_task_status_distribution(self, date_range: DateRange) -> TaskStatusDistribution:
        tasks = await self.store.list_tasks()
        return compute_status_distribution(tasks, date_range)

    async def get_dashboard(self, date_range: DateRange,
                            field_ids: Optional[Sequence[str]] = None) -> Dict[str, Any]:
        """Run every aggregation concurrently against the one store.

        Args:
            date_range: Window applied to each aggregation
            field_ids: Fields for the per-field metrics; defaults to all fields

        Returns:
            Dictionary of camelCase-serialized results keyed by aggregation
        """
        if field_ids is None:
            field_ids = [fld.id for fld in await self.store.list_fields()]

        logger.debug(f"Building dashboard for {len(field_ids)} fields "
                     f"({date_range.start.isoformat()} - {date_range.end.isoformat()})")

        metrics, field_metrics, costs, rates, distribution = await asyncio.gather(
            self.get_task_metrics(date_range),
            self.get_field_metrics(field_ids, date_range),
            self.get_cost_analysis(date_range),
            self.get_completion_rates(date_range),
            self.get_task_status_distribution(date_range),
        )
        return {
            "taskMetrics": metrics.to_dict(),
            "fieldMetrics": [entry.to_dict() for entry in field_metrics],
            "costAnalysis": costs.to_dict(),
            "completionRates": rates.to_dict(),
            "statusDistribution": distribution.to_dict(),
        }
