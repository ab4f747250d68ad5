"""Tests for the pydantic input models."""

import pytest

from olive_lifecycle.errors import ValidationError
from olive_lifecycle.models import (
    EvidenceCreate,
    FieldCreate,
    FieldUpdate,
    LoginRequest,
    RegisterRequest,
    TaskCreate,
    parse_model,
)


class TestTaskCreate:

    def test_accepts_camel_case_keys(self):
        data = parse_model(TaskCreate, {
            "fieldId": "f1",
            "type": "Pruning",
            "title": "Prune",
            "scheduledStart": "2024-06-10T00:00:00Z",
            "scheduledEnd": "2024-06-12T00:00:00Z",
        })
        assert data.field_id == "f1"
        assert data.scheduled_end.day == 12

    def test_accepts_snake_case_keys(self):
        data = parse_model(TaskCreate, {"field_id": "f1", "type": "Pruning", "title": "Prune"})
        assert data.lifecycle_year is None

    def test_blank_title_rejected(self):
        with pytest.raises(ValidationError, match="title"):
            parse_model(TaskCreate, {"fieldId": "f1", "type": "Pruning", "title": "   "})

    def test_end_before_start_rejected(self):
        with pytest.raises(ValidationError):
            parse_model(TaskCreate, {
                "fieldId": "f1", "type": "Pruning", "title": "Prune",
                "scheduledStart": "2024-06-12T00:00:00Z",
                "scheduledEnd": "2024-06-10T00:00:00Z",
            })

    def test_bad_lifecycle_year_rejected(self):
        with pytest.raises(ValidationError):
            parse_model(TaskCreate, {"fieldId": "f1", "type": "Pruning", "title": "P",
                                     "lifecycleYear": "medium"})

    def test_payload_drops_unset_optionals(self):
        data = parse_model(TaskCreate, {"fieldId": "f1", "type": "Pruning", "title": "Prune"})
        assert data.to_payload() == {"fieldId": "f1", "type": "Pruning", "title": "Prune"}


class TestEvidenceCreate:

    def test_requires_photo_or_notes(self):
        with pytest.raises(ValidationError):
            parse_model(EvidenceCreate, {})

    def test_photo_only(self):
        data = parse_model(EvidenceCreate, {"photoUrl": "data:image/png;base64,AAAA"})
        assert data.notes is None


class TestFieldModels:

    def test_area_must_be_positive(self):
        with pytest.raises(ValidationError):
            parse_model(FieldCreate, {"name": "North", "area": -1})

    def test_latitude_bounds(self):
        with pytest.raises(ValidationError):
            parse_model(FieldCreate, {"name": "North", "area": 2, "latitude": 91})

    def test_partial_update(self):
        data = parse_model(FieldUpdate, {"variety": "Picual"})
        assert data.model_dump(exclude_none=True) == {"variety": "Picual"}


class TestAuthModels:

    def test_login_requires_valid_email(self):
        with pytest.raises(ValidationError):
            parse_model(LoginRequest, {"email": "not-an-email", "password": "x"})

    def test_register_defaults_to_producer(self):
        data = parse_model(RegisterRequest, {"email": "new@olivefarm.com", "password": "longenough"})
        assert data.role == "Producer"

    def test_register_short_password(self):
        with pytest.raises(ValidationError):
            parse_model(RegisterRequest, {"email": "new@olivefarm.com", "password": "short"})

    def test_register_unknown_role(self):
        with pytest.raises(ValidationError):
            parse_model(RegisterRequest, {"email": "new@olivefarm.com", "password": "longenough",
                                          "role": "Gardener"})
