"""Lifecycle data model: the low/high bearing cycle of one field."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional

from .field import LifecycleYear
from .utils.datetime import ensure_aware, now_utc, parse_iso, to_iso_string


@dataclass
class Lifecycle:
    """Bearing cycle record; at most one per field."""

    id: str
    field_id: str
    current_year: LifecycleYear = LifecycleYear.LOW
    cycle_start_date: datetime = field(default_factory=now_utc)
    last_progression_date: Optional[datetime] = None
    created_at: datetime = field(default_factory=now_utc)
    updated_at: datetime = field(default_factory=now_utc)

    def __post_init__(self):
        self.current_year = LifecycleYear.parse(self.current_year)
        self.cycle_start_date = ensure_aware(self.cycle_start_date)
        self.last_progression_date = ensure_aware(self.last_progression_date)
        self.created_at = ensure_aware(self.created_at)
        self.updated_at = ensure_aware(self.updated_at)

    def progress(self, now: Optional[datetime] = None) -> LifecycleYear:
        """Toggle the current year and stamp the progression date."""
        now = ensure_aware(now) or now_utc()
        self.current_year = self.current_year.toggled()
        self.last_progression_date = now
        self.updated_at = now
        return self.current_year

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "fieldId": self.field_id,
            "currentYear": self.current_year.value,
            "cycleStartDate": to_iso_string(self.cycle_start_date),
            "lastProgressionDate": to_iso_string(self.last_progression_date),
            "createdAt": to_iso_string(self.created_at),
            "updatedAt": to_iso_string(self.updated_at),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Lifecycle":
        return cls(
            id=data["id"],
            field_id=data["fieldId"],
            current_year=data.get("currentYear", "low"),
            cycle_start_date=parse_iso(data.get("cycleStartDate")) or now_utc(),
            last_progression_date=parse_iso(data.get("lastProgressionDate")),
            created_at=parse_iso(data.get("createdAt")) or now_utc(),
            updated_at=parse_iso(data.get("updatedAt")) or now_utc(),
        )
