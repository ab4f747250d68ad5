"""Task data model for the Olive Lifecycle Platform."""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from .errors import ValidationError
from .utils.datetime import ensure_aware, now_utc, parse_iso, to_iso_string


logger = logging.getLogger(__name__)


class TaskStatus(Enum):
    """Task status states."""
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"

    @classmethod
    def parse(cls, value: Any) -> "TaskStatus":
        """Coerce a status string (or enum) into a TaskStatus."""
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            raise ValidationError(f"Unknown task status: {value!r}")


# Position in the pending -> in_progress -> completed sequence
STATUS_ORDER = {
    TaskStatus.PENDING: 0,
    TaskStatus.IN_PROGRESS: 1,
    TaskStatus.COMPLETED: 2,
}


@dataclass(frozen=True)
class Evidence:
    """Append-only proof-of-work record attached to a task."""

    timestamp: datetime
    photo_url: Optional[str] = None  # URL or base64 payload
    notes: Optional[str] = None

    def __post_init__(self):
        if not self.photo_url and not self.notes:
            raise ValidationError("Evidence requires a photo or notes")
        object.__setattr__(self, "timestamp", ensure_aware(self.timestamp))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "photoUrl": self.photo_url,
            "notes": self.notes,
            "timestamp": to_iso_string(self.timestamp),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Evidence":
        return cls(
            timestamp=parse_iso(data.get("timestamp")) or now_utc(),
            photo_url=data.get("photoUrl"),
            notes=data.get("notes"),
        )


@dataclass
class Task:
    """A unit of field work on a single field."""

    # Core identification
    id: str
    field_id: str
    type: str
    title: str
    lifecycle_year: str  # snapshot of the field's year at creation
    description: Optional[str] = None
    template_id: Optional[str] = None

    # Status and people
    status: TaskStatus = TaskStatus.PENDING
    assigned_to: Optional[str] = None

    # Scheduling
    scheduled_start: Optional[datetime] = None
    scheduled_end: Optional[datetime] = None
    actual_start: Optional[datetime] = None
    actual_end: Optional[datetime] = None

    # Outcome
    cost: Optional[float] = None
    evidence: List[Evidence] = field(default_factory=list)
    notes: Optional[str] = None

    # Metadata
    created_at: datetime = field(default_factory=now_utc)
    updated_at: datetime = field(default_factory=now_utc)

    def __post_init__(self):
        """Normalize status and datetime fields."""
        self.status = TaskStatus.parse(self.status)
        self.scheduled_start = ensure_aware(self.scheduled_start)
        self.scheduled_end = ensure_aware(self.scheduled_end)
        self.actual_start = ensure_aware(self.actual_start)
        self.actual_end = ensure_aware(self.actual_end)
        self.created_at = ensure_aware(self.created_at)
        self.updated_at = ensure_aware(self.updated_at)

    @property
    def is_completed(self) -> bool:
        return self.status == TaskStatus.COMPLETED

    def transition_to(self, status, now: Optional[datetime] = None) -> None:
        """Move the task to ``status``, stamping actual start/end once.

        ``actual_start`` is set on entering ``in_progress`` and ``actual_end``
        on entering ``completed``, each only if not already set, so repeated
        calls leave the first timestamps untouched. Skipping ``in_progress``
        or moving backward is accepted.
        """
        target = TaskStatus.parse(status)
        now = ensure_aware(now) or now_utc()
        previous = self.status

        if STATUS_ORDER[target] < STATUS_ORDER[previous]:
            logger.info(f"Task {self.id} moved backward from {previous.value} to {target.value}")
        elif STATUS_ORDER[target] - STATUS_ORDER[previous] > 1:
            logger.info(f"Task {self.id} skipped from {previous.value} to {target.value}")

        if target == TaskStatus.IN_PROGRESS and self.actual_start is None:
            self.actual_start = now
        if target == TaskStatus.COMPLETED and self.actual_end is None:
            self.actual_end = now

        self.status = target
        self.updated_at = now

    def add_evidence(self, photo_url: Optional[str] = None, notes: Optional[str] = None,
                     now: Optional[datetime] = None) -> Evidence:
        """Append an evidence record; at least one of photo or notes is required."""
        now = ensure_aware(now) or now_utc()
        entry = Evidence(timestamp=now, photo_url=photo_url, notes=notes)
        self.evidence.append(entry)
        self.updated_at = now
        return entry

    def assign(self, user_id: str, now: Optional[datetime] = None) -> None:
        """Assign the task to a user."""
        self.assigned_to = user_id
        self.updated_at = ensure_aware(now) or now_utc()

    def to_dict(self) -> Dict[str, Any]:
        """Convert the Task to the REST contract's camelCase dictionary."""
        return {
            "id": self.id,
            "fieldId": self.field_id,
            "templateId": self.template_id,
            "type": self.type,
            "title": self.title,
            "description": self.description,
            "status": self.status.value,
            "assignedTo": self.assigned_to,
            "scheduledStart": to_iso_string(self.scheduled_start),
            "scheduledEnd": to_iso_string(self.scheduled_end),
            "actualStart": to_iso_string(self.actual_start),
            "actualEnd": to_iso_string(self.actual_end),
            "lifecycleYear": self.lifecycle_year,
            "cost": self.cost,
            "evidence": [entry.to_dict() for entry in self.evidence],
            "notes": self.notes,
            "createdAt": to_iso_string(self.created_at),
            "updatedAt": to_iso_string(self.updated_at),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Task":
        """Create a Task from a REST contract dictionary."""
        return cls(
            id=data["id"],
            field_id=data["fieldId"],
            template_id=data.get("templateId"),
            type=data.get("type", ""),
            title=data.get("title", ""),
            description=data.get("description"),
            status=data.get("status", "pending"),
            assigned_to=data.get("assignedTo"),
            scheduled_start=parse_iso(data.get("scheduledStart")),
            scheduled_end=parse_iso(data.get("scheduledEnd")),
            actual_start=parse_iso(data.get("actualStart")),
            actual_end=parse_iso(data.get("actualEnd")),
            lifecycle_year=data.get("lifecycleYear", "low"),
            cost=data.get("cost"),
            evidence=[Evidence.from_dict(item) for item in data.get("evidence") or []],
            notes=data.get("notes"),
            created_at=parse_iso(data.get("createdAt")) or now_utc(),
            updated_at=parse_iso(data.get("updatedAt")) or now_utc(),
        )
