"""User data model."""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

from .errors import ValidationError


class UserRole(Enum):
    """Roles recognised by the platform."""
    FIELD_OWNER = "FieldOwner"
    PRODUCER = "Producer"
    AGRONOMIST = "Agronomist"
    ADMINISTRATOR = "Administrator"
    SERVICE_PROVIDER = "ServiceProvider"

    @classmethod
    def parse(cls, value: Any) -> "UserRole":
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            raise ValidationError(f"Unknown user role: {value!r}")


@dataclass
class User:
    """A platform user."""

    id: str
    email: str
    role: UserRole
    first_name: Optional[str] = None
    last_name: Optional[str] = None

    def __post_init__(self):
        self.role = UserRole.parse(self.role)

    @property
    def display_name(self) -> str:
        parts = [part for part in (self.first_name, self.last_name) if part]
        return " ".join(parts) if parts else self.email

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "email": self.email,
            "firstName": self.first_name,
            "lastName": self.last_name,
            "role": self.role.value,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "User":
        return cls(
            id=data["id"],
            email=data.get("email", ""),
            first_name=data.get("firstName"),
            last_name=data.get("lastName"),
            role=data.get("role", UserRole.PRODUCER.value),
        )
