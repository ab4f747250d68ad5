"""Tests for the Task, Field, User and Lifecycle models."""

import pytest
from datetime import datetime, timedelta, timezone

from olive_lifecycle.errors import ValidationError
from olive_lifecycle.field import Field, LifecycleYear
from olive_lifecycle.lifecycle import Lifecycle
from olive_lifecycle.task import Evidence, Task, TaskStatus
from olive_lifecycle.user import User, UserRole


NOW = datetime(2024, 6, 10, 12, 0, tzinfo=timezone.utc)


class TestTask:
    """Test Task model functionality."""

    def test_task_creation_defaults(self, make_task):
        task = make_task()

        assert task.status == TaskStatus.PENDING
        assert task.assigned_to is None
        assert task.evidence == []
        assert task.actual_start is None
        assert task.actual_end is None
        assert not task.is_completed

    def test_status_string_is_coerced(self, make_task):
        task = make_task(status="in_progress")
        assert task.status == TaskStatus.IN_PROGRESS

    def test_unknown_status_rejected(self, make_task):
        with pytest.raises(ValidationError):
            make_task(status="archived")

    def test_naive_datetimes_become_utc(self, make_task):
        task = make_task(scheduled_start=datetime(2024, 6, 10, 8))
        assert task.scheduled_start.tzinfo is not None
        assert task.scheduled_start.utcoffset() == timedelta(0)

    def test_start_stamps_actual_start(self, make_task):
        task = make_task()
        task.transition_to("in_progress", now=NOW)

        assert task.status == TaskStatus.IN_PROGRESS
        assert task.actual_start == NOW
        assert task.actual_end is None
        assert task.updated_at == NOW

    def test_completion_stamps_actual_end(self, make_task):
        task = make_task()
        task.transition_to(TaskStatus.IN_PROGRESS, now=NOW)
        task.transition_to(TaskStatus.COMPLETED, now=NOW + timedelta(hours=3))

        assert task.is_completed
        assert task.actual_start == NOW
        assert task.actual_end == NOW + timedelta(hours=3)

    def test_timestamps_set_only_once(self, make_task):
        task = make_task()
        task.transition_to("in_progress", now=NOW)
        task.transition_to("pending", now=NOW + timedelta(days=1))
        task.transition_to("in_progress", now=NOW + timedelta(days=2))

        assert task.actual_start == NOW

    def test_skipping_in_progress_is_allowed(self, make_task):
        task = make_task()
        task.transition_to("completed", now=NOW)

        assert task.is_completed
        assert task.actual_start is None
        assert task.actual_end == NOW

    def test_add_evidence(self, make_task):
        task = make_task()
        entry = task.add_evidence(notes="Rows 1-4 pruned", now=NOW)

        assert task.evidence == [entry]
        assert entry.timestamp == NOW
        assert entry.photo_url is None

    def test_evidence_requires_photo_or_notes(self, make_task):
        task = make_task()
        with pytest.raises(ValidationError):
            task.add_evidence()
        assert task.evidence == []

    def test_assign(self, make_task):
        task = make_task()
        task.assign("u-prod", now=NOW)
        assert task.assigned_to == "u-prod"
        assert task.updated_at == NOW

    def test_to_dict_uses_contract_keys(self, make_task):
        task = make_task(scheduled_start=NOW, cost=120.5)
        data = task.to_dict()

        assert data["fieldId"] == "f1"
        assert data["lifecycleYear"] == "low"
        assert data["status"] == "pending"
        assert data["scheduledStart"] == "2024-06-10T12:00:00+00:00"
        assert data["scheduledEnd"] is None
        assert data["cost"] == 120.5

    def test_from_dict_accepts_z_suffix(self):
        task = Task.from_dict({
            "id": "t9",
            "fieldId": "f1",
            "type": "Harvesting",
            "title": "Harvest",
            "status": "completed",
            "lifecycleYear": "high",
            "actualEnd": "2024-06-12T10:00:00Z",
            "evidence": [{"notes": "done", "timestamp": "2024-06-12T10:05:00Z"}],
        })

        assert task.status == TaskStatus.COMPLETED
        assert task.actual_end == datetime(2024, 6, 12, 10, tzinfo=timezone.utc)
        assert task.evidence[0].notes == "done"

    def test_dict_round_trip(self, make_task):
        task = make_task(assigned_to="u-prod", scheduled_start=NOW, scheduled_end=NOW + timedelta(days=2))
        task.add_evidence(photo_url="https://example.com/p.jpg", now=NOW)

        restored = Task.from_dict(task.to_dict())
        assert restored == task


class TestEvidence:

    def test_evidence_is_immutable(self):
        entry = Evidence(timestamp=NOW, notes="ok")
        with pytest.raises(AttributeError):
            entry.notes = "changed"


class TestField:

    def test_non_positive_area_rejected(self):
        with pytest.raises(ValidationError):
            Field(id="f", owner_id="u", name="Bad", area=0)

    def test_lifecycle_year_parsed(self):
        fld = Field(id="f", owner_id="u", name="Grove", area=1.5, current_lifecycle_year="high")
        assert fld.current_lifecycle_year == LifecycleYear.HIGH

    def test_from_dict(self):
        fld = Field.from_dict({
            "id": "f1", "ownerId": "u1", "name": "North", "area": 3.2,
            "treeAge": 12, "irrigationStatus": True, "currentLifecycleYear": "high",
        })
        assert fld.tree_age == 12
        assert fld.irrigation_status is True
        assert fld.to_dict()["currentLifecycleYear"] == "high"


class TestLifecycle:

    def test_progress_toggles_year(self):
        lifecycle = Lifecycle(id="l1", field_id="f1")
        assert lifecycle.progress(now=NOW) == LifecycleYear.HIGH
        assert lifecycle.last_progression_date == NOW
        assert lifecycle.progress(now=NOW) == LifecycleYear.LOW


class TestUser:

    def test_display_name_falls_back_to_email(self):
        assert User(id="u", email="a@b.com", role="Producer").display_name == "a@b.com"
        assert User(id="u", email="a@b.com", role="Producer", first_name="Ana").display_name == "Ana"

    def test_unknown_role_rejected(self):
        with pytest.raises(ValidationError):
            User(id="u", email="a@b.com", role="Gardener")

    def test_role_enum_values(self):
        assert UserRole.parse("FieldOwner") == UserRole.FIELD_OWNER
