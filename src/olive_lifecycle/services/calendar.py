"""Calendar event derivation from scheduled tasks."""

import logging
import math
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Sequence, Union

from ..field import Field
from ..task import Task, TaskStatus
from ..utils.datetime import end_of_day, ensure_aware, now_utc, start_of_day, to_iso_string
from .analytics import DateRange
from .store import RecordStore


logger = logging.getLogger(__name__)

SECONDS_PER_DAY = 86400.0

STATUS_COLORS = {
    TaskStatus.PENDING: "#ffc107",
    TaskStatus.IN_PROGRESS: "#17a2b8",
    TaskStatus.COMPLETED: "#28a745",
}
DEFAULT_COLOR = "#6c757d"
DEADLINE_URGENT_COLOR = "#dc3545"
DEADLINE_UPCOMING_COLOR = "#ffc107"


class CalendarEventType(Enum):
    TASK = "task"
    LIFECYCLE = "lifecycle"
    DEADLINE = "deadline"


@dataclass
class CalendarEvent:
    """A display event derived from a task."""
    id: str
    title: str
    start: datetime
    end: datetime
    type: CalendarEventType
    status: Optional[str] = None
    field_id: Optional[str] = None
    field_name: Optional[str] = None
    task_id: Optional[str] = None
    color: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "start": to_iso_string(self.start),
            "end": to_iso_string(self.end),
            "type": self.type.value,
            "status": self.status,
            "fieldId": self.field_id,
            "fieldName": self.field_name,
            "taskId": self.task_id,
            "color": self.color,
        }


@dataclass
class CalendarFilters:
    """Allow-lists are AND-ed when non-empty; toggles are on unless False."""
    field_ids: List[str] = field(default_factory=list)
    task_types: List[str] = field(default_factory=list)
    statuses: List[str] = field(default_factory=list)
    show_tasks: Optional[bool] = True
    show_lifecycles: Optional[bool] = True
    show_deadlines: Optional[bool] = True

    def matches(self, task: Task) -> bool:
        if self.field_ids and task.field_id not in self.field_ids:
            return False
        if self.task_types and task.type not in self.task_types:
            return False
        if self.statuses and task.status.value not in self.statuses:
            return False
        return True


def status_color(status: Union[TaskStatus, str, None]) -> str:
    try:
        return STATUS_COLORS.get(TaskStatus(status), DEFAULT_COLOR)
    except ValueError:
        return DEFAULT_COLOR


def days_until(deadline: datetime, now: datetime) -> int:
    """Whole days until ``deadline``, rounding any partial day up."""
    return math.ceil((deadline - now).total_seconds() / SECONDS_PER_DAY)


def lifecycle_events(fields: Iterable[Field], start: datetime, end: datetime) -> List[CalendarEvent]:
    """Lifecycle progression events; none are derived yet."""
    return []


def derive_calendar_events(tasks: Iterable[Task], start: datetime, end: datetime,
                           filters: Optional[CalendarFilters] = None,
                           fields: Iterable[Field] = (),
                           now: Optional[datetime] = None,
                           window_days: int = 7,
                           urgent_days: int = 3) -> List[CalendarEvent]:
    """Turn scheduled tasks into task and deadline events.

    A task qualifies when it has a ``scheduled_start`` and its span
    ``[scheduled_start, scheduled_end or scheduled_start]`` overlaps
    ``[start, end]``, and it passes ``filters``. Deadline events are emitted
    for unfinished tasks whose end is 0 to ``window_days`` days from
    ``now`` (red at ``urgent_days`` or fewer).

    Returns:
        Events sorted by start time
    """
    filters = filters or CalendarFilters()
    start = ensure_aware(start)
    end = ensure_aware(end)
    now = ensure_aware(now) or now_utc()
    fields = list(fields)
    names = {fld.id: fld.name for fld in fields}

    qualifying = []
    for task in tasks:
        if task.scheduled_start is None:
            continue
        task_end = task.scheduled_end or task.scheduled_start
        if task.scheduled_start > end or task_end < start:
            continue
        if filters.matches(task):
            qualifying.append(task)

    events: List[CalendarEvent] = []

    if filters.show_tasks is not False:
        for task in qualifying:
            events.append(CalendarEvent(
                id=f"task-{task.id}",
                title=task.title,
                start=task.scheduled_start,
                end=task.scheduled_end or task.scheduled_start,
                type=CalendarEventType.TASK,
                status=task.status.value,
                field_id=task.field_id,
                field_name=names.get(task.field_id),
                task_id=task.id,
                color=status_color(task.status),
            ))

    if filters.show_deadlines is not False:
        for task in qualifying:
            if task.is_completed or task.scheduled_end is None:
                continue
            remaining = days_until(task.scheduled_end, now)
            if 0 <= remaining <= window_days:
                events.append(CalendarEvent(
                    id=f"deadline-{task.id}",
                    title=f"Deadline: {task.title}",
                    start=task.scheduled_end,
                    end=task.scheduled_end,
                    type=CalendarEventType.DEADLINE,
                    status=task.status.value,
                    field_id=task.field_id,
                    field_name=names.get(task.field_id),
                    task_id=task.id,
                    color=DEADLINE_URGENT_COLOR if remaining <= urgent_days else DEADLINE_UPCOMING_COLOR,
                ))

    if filters.show_lifecycles is not False:
        events.extend(lifecycle_events(fields, start, end))

    # sorted() is stable, so ties keep task events ahead of deadlines
    return sorted(events, key=lambda event: event.start)


class CalendarService:
    """Store-backed calendar queries."""

    def __init__(self, store: RecordStore, window_days: int = 7, urgent_days: int = 3):
        self.store = store
        self.window_days = window_days
        self.urgent_days = urgent_days

    async def get_events(self, start: datetime, end: datetime,
                         filters: Optional[CalendarFilters] = None,
                         now: Optional[datetime] = None) -> List[CalendarEvent]:
        tasks = await self.store.list_tasks()
        fields = await self.store.list_fields()
        events = derive_calendar_events(
            tasks, start, end, filters=filters, fields=fields, now=now,
            window_days=self.window_days, urgent_days=self.urgent_days,
        )
        logger.debug(f"Derived {len(events)} calendar events from {len(tasks)} tasks")
        return events

    async def get_tasks_for_date(self, day: Union[date, datetime]) -> List[Task]:
        """Tasks whose scheduled start falls on the given UTC calendar day."""
        first, last = start_of_day(day), end_of_day(day)
        tasks = await self.store.list_tasks()
        return [
            task for task in tasks
            if task.scheduled_start is not None and first <= task.scheduled_start <= last
        ]

    async def get_lifecycle_events(self, field_id: str, date_range: DateRange) -> List[CalendarEvent]:
        return []
