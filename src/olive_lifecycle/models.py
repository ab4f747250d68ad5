"""
Pydantic models for validating record-store and API input
"""

from datetime import datetime
from typing import Any, Dict, Optional, Type, TypeVar

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator, model_validator
from pydantic import ValidationError as PydanticValidationError

from .errors import ValidationError


ModelT = TypeVar("ModelT", bound=BaseModel)


class ApiModel(BaseModel):
    """Base model accepting both snake_case and the contract's camelCase keys."""

    model_config = ConfigDict(populate_by_name=True)

    def to_payload(self) -> Dict[str, Any]:
        """Dump as a camelCase JSON payload, dropping unset optionals."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


def parse_model(model_cls: Type[ModelT], data: Dict[str, Any]) -> ModelT:
    """Validate ``data`` into ``model_cls``, raising our ValidationError."""
    try:
        return model_cls.model_validate(data)
    except PydanticValidationError as e:
        messages = []
        for error in e.errors():
            location = ".".join(str(part) for part in error.get("loc", ()))
            messages.append(f"{location}: {error.get('msg')}" if location else error.get("msg"))
        raise ValidationError("; ".join(messages)) from e


# ============================================================================
# Task Models
# ============================================================================

class TaskCreate(ApiModel):
    """Task creation model"""
    field_id: str = Field(..., min_length=1, alias="fieldId")
    type: str = Field(..., min_length=1, max_length=100)
    title: str = Field(..., min_length=1, max_length=500)
    description: Optional[str] = None
    lifecycle_year: Optional[str] = Field(None, pattern="^(low|high)$", alias="lifecycleYear")
    assigned_to: Optional[str] = Field(None, alias="assignedTo")
    scheduled_start: Optional[datetime] = Field(None, alias="scheduledStart")
    scheduled_end: Optional[datetime] = Field(None, alias="scheduledEnd")
    template_id: Optional[str] = Field(None, alias="templateId")

    @field_validator("title", "type")
    @classmethod
    def strip_required_text(cls, v):
        """Reject whitespace-only titles and types"""
        v = v.strip()
        if not v:
            raise ValueError("must not be blank")
        return v

    @model_validator(mode="after")
    def check_schedule(self):
        if self.scheduled_start and self.scheduled_end and self.scheduled_end < self.scheduled_start:
            raise ValueError("scheduledEnd must not precede scheduledStart")
        return self


class TaskStatusUpdate(ApiModel):
    """Task status change model"""
    status: str = Field(..., pattern="^(pending|in_progress|completed)$")


class EvidenceCreate(ApiModel):
    """Evidence append model"""
    photo_url: Optional[str] = Field(None, alias="photoUrl")
    notes: Optional[str] = None

    @model_validator(mode="after")
    def require_photo_or_notes(self):
        if not self.photo_url and not self.notes:
            raise ValueError("evidence requires a photo or notes")
        return self


class TaskAssign(ApiModel):
    """Task assignment model"""
    assigned_to: str = Field(..., min_length=1, alias="assignedTo")


# ============================================================================
# Field Models
# ============================================================================

class FieldCreate(ApiModel):
    """Field creation model"""
    name: str = Field(..., min_length=1, max_length=200)
    area: float = Field(..., gt=0)
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)
    variety: Optional[str] = None
    tree_age: Optional[int] = Field(None, ge=0, alias="treeAge")
    ground_type: Optional[str] = Field(None, alias="groundType")
    irrigation_status: bool = Field(False, alias="irrigationStatus")


class FieldUpdate(ApiModel):
    """Field update model - all fields optional"""
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    area: Optional[float] = Field(None, gt=0)
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)
    variety: Optional[str] = None
    tree_age: Optional[int] = Field(None, ge=0, alias="treeAge")
    ground_type: Optional[str] = Field(None, alias="groundType")
    irrigation_status: Optional[bool] = Field(None, alias="irrigationStatus")


# ============================================================================
# Auth Models
# ============================================================================

class LoginRequest(ApiModel):
    """User login model"""
    email: EmailStr
    password: str = Field(..., min_length=1)


class RegisterRequest(ApiModel):
    """User registration model"""
    email: EmailStr
    password: str = Field(..., min_length=8)
    first_name: Optional[str] = Field(None, alias="firstName")
    last_name: Optional[str] = Field(None, alias="lastName")
    role: str = Field(
        "Producer",
        pattern="^(FieldOwner|Producer|Agronomist|Administrator|ServiceProvider)$",
    )


class AuthResponse(ApiModel):
    """Login/registration response model"""
    token: str
    user_id: str = Field(..., alias="userId")
    email: str
    role: str
    expires_at: datetime = Field(..., alias="expiresAt")
