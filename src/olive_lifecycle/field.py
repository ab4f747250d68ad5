"""Field (land parcel) data model for the Olive Lifecycle Platform."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from .errors import ValidationError
from .utils.datetime import ensure_aware, now_utc, parse_iso, to_iso_string


class LifecycleYear(Enum):
    """Alternate-bearing phase of an olive grove."""
    LOW = "low"
    HIGH = "high"

    @classmethod
    def parse(cls, value: Any) -> "LifecycleYear":
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            raise ValidationError(f"Unknown lifecycle year: {value!r}")

    def toggled(self) -> "LifecycleYear":
        return LifecycleYear.HIGH if self == LifecycleYear.LOW else LifecycleYear.LOW


@dataclass
class Field:
    """A managed land parcel owned by a single user."""

    id: str
    owner_id: str
    name: str
    area: float  # hectares
    irrigation_status: bool = False
    current_lifecycle_year: LifecycleYear = LifecycleYear.LOW

    # Location and agronomy
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    variety: Optional[str] = None
    tree_age: Optional[int] = None
    ground_type: Optional[str] = None

    created_at: datetime = field(default_factory=now_utc)
    updated_at: datetime = field(default_factory=now_utc)

    def __post_init__(self):
        self.current_lifecycle_year = LifecycleYear.parse(self.current_lifecycle_year)
        if self.area is None or self.area <= 0:
            raise ValidationError(f"Field area must be positive, got {self.area!r}")
        self.created_at = ensure_aware(self.created_at)
        self.updated_at = ensure_aware(self.updated_at)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "ownerId": self.owner_id,
            "name": self.name,
            "latitude": self.latitude,
            "longitude": self.longitude,
            "area": self.area,
            "variety": self.variety,
            "treeAge": self.tree_age,
            "groundType": self.ground_type,
            "irrigationStatus": self.irrigation_status,
            "currentLifecycleYear": self.current_lifecycle_year.value,
            "createdAt": to_iso_string(self.created_at),
            "updatedAt": to_iso_string(self.updated_at),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Field":
        return cls(
            id=data["id"],
            owner_id=data.get("ownerId", ""),
            name=data.get("name", ""),
            latitude=data.get("latitude"),
            longitude=data.get("longitude"),
            area=data.get("area"),
            variety=data.get("variety"),
            tree_age=data.get("treeAge"),
            ground_type=data.get("groundType"),
            irrigation_status=data.get("irrigationStatus", False),
            current_lifecycle_year=data.get("currentLifecycleYear", "low"),
            created_at=parse_iso(data.get("createdAt")) or now_utc(),
            updated_at=parse_iso(data.get("updatedAt")) or now_utc(),
        )
