"""Tests for calendar event derivation."""

import pytest
from datetime import date, datetime, timezone

from olive_lifecycle.field import Field
from olive_lifecycle.services.analytics import DateRange
from olive_lifecycle.services.calendar import (
    DEADLINE_UPCOMING_COLOR,
    DEADLINE_URGENT_COLOR,
    DEFAULT_COLOR,
    CalendarEventType,
    CalendarFilters,
    CalendarService,
    days_until,
    derive_calendar_events,
    status_color,
)


def utc(*args):
    return datetime(*args, tzinfo=timezone.utc)


JUNE_START = utc(2024, 6, 1)
JUNE_END = utc(2024, 6, 30, 23, 59, 59)
NOW = utc(2024, 6, 1)


def deadlines(events):
    return [e for e in events if e.type == CalendarEventType.DEADLINE]


class TestTaskEvents:

    def test_overlapping_task_included(self, make_task):
        task = make_task(scheduled_start=utc(2024, 6, 10), scheduled_end=utc(2024, 6, 12))
        events = derive_calendar_events([task], utc(2024, 6, 11), utc(2024, 6, 20), now=NOW)

        assert [e.id for e in events] == [f"task-{task.id}"]
        assert events[0].start == utc(2024, 6, 10)
        assert events[0].end == utc(2024, 6, 12)

    def test_task_outside_window_excluded(self, make_task):
        task = make_task(scheduled_start=utc(2024, 6, 1), scheduled_end=utc(2024, 6, 5))
        assert derive_calendar_events([task], utc(2024, 6, 11), utc(2024, 6, 20), now=NOW) == []

    def test_unscheduled_task_excluded(self, make_task):
        assert derive_calendar_events([make_task()], JUNE_START, JUNE_END, now=NOW) == []

    def test_start_only_task_is_a_point(self, make_task):
        task = make_task(scheduled_start=utc(2024, 6, 15))
        events = derive_calendar_events([task], JUNE_START, JUNE_END, now=NOW)

        assert len(events) == 1
        assert events[0].end == events[0].start

    def test_event_fields(self, make_task):
        fields = [Field(id="f1", owner_id="u1", name="North Grove", area=3)]
        task = make_task(status="in_progress", scheduled_start=utc(2024, 6, 20))
        event = derive_calendar_events([task], JUNE_START, JUNE_END, fields=fields, now=NOW)[0]

        assert event.type == CalendarEventType.TASK
        assert event.field_name == "North Grove"
        assert event.task_id == task.id
        assert event.color == "#17a2b8"
        assert event.to_dict()["fieldId"] == "f1"

    def test_sorted_by_start(self, make_task):
        later = make_task(scheduled_start=utc(2024, 6, 20))
        earlier = make_task(scheduled_start=utc(2024, 6, 5))
        events = derive_calendar_events([later, earlier], JUNE_START, JUNE_END, now=NOW)
        assert [e.task_id for e in events] == [earlier.id, later.id]


class TestDeadlineEvents:

    def test_urgent_deadline_is_red(self, make_task):
        task = make_task(scheduled_start=utc(2024, 6, 1), scheduled_end=utc(2024, 6, 4))
        found = deadlines(derive_calendar_events([task], JUNE_START, JUNE_END, now=NOW))

        assert len(found) == 1
        assert found[0].color == DEADLINE_URGENT_COLOR
        assert found[0].title == f"Deadline: {task.title}"
        assert found[0].start == utc(2024, 6, 4)

    def test_upcoming_deadline_is_yellow(self, make_task):
        task = make_task(scheduled_start=utc(2024, 6, 1), scheduled_end=utc(2024, 6, 8))
        found = deadlines(derive_calendar_events([task], JUNE_START, JUNE_END, now=NOW))
        assert [e.color for e in found] == [DEADLINE_UPCOMING_COLOR]

    def test_deadline_beyond_window_ignored(self, make_task):
        task = make_task(scheduled_start=utc(2024, 6, 1), scheduled_end=utc(2024, 6, 9))
        assert deadlines(derive_calendar_events([task], JUNE_START, JUNE_END, now=NOW)) == []

    def test_overdue_and_completed_ignored(self, make_task):
        overdue = make_task(scheduled_start=utc(2024, 5, 25), scheduled_end=utc(2024, 5, 31))
        done = make_task(status="completed", scheduled_start=utc(2024, 6, 1), scheduled_end=utc(2024, 6, 2))
        events = derive_calendar_events([overdue, done], utc(2024, 5, 1), JUNE_END, now=NOW)
        assert deadlines(events) == []

    def test_custom_windows(self, make_task):
        task = make_task(scheduled_start=utc(2024, 6, 1), scheduled_end=utc(2024, 6, 9))
        found = deadlines(derive_calendar_events([task], JUNE_START, JUNE_END, now=NOW,
                                                 window_days=10, urgent_days=8))
        assert [e.color for e in found] == [DEADLINE_URGENT_COLOR]

    def test_partial_day_rounds_up(self):
        assert days_until(utc(2024, 6, 2, 1), NOW) == 2
        assert days_until(NOW, NOW) == 0


class TestFilters:

    @pytest.fixture
    def mixed(self, make_task):
        return [
            make_task(field_id="f1", type="Pruning", scheduled_start=utc(2024, 6, 10)),
            make_task(field_id="f2", type="Pruning", scheduled_start=utc(2024, 6, 11)),
            make_task(field_id="f1", type="Harvesting", status="completed",
                      scheduled_start=utc(2024, 6, 12)),
        ]

    def test_allow_lists_are_anded(self, mixed):
        filters = CalendarFilters(field_ids=["f1"], task_types=["Pruning"])
        events = derive_calendar_events(mixed, JUNE_START, JUNE_END, filters=filters, now=NOW)
        assert [e.task_id for e in events] == [mixed[0].id]

    def test_status_filter(self, mixed):
        filters = CalendarFilters(statuses=["completed"])
        events = derive_calendar_events(mixed, JUNE_START, JUNE_END, filters=filters, now=NOW)
        assert [e.task_id for e in events] == [mixed[2].id]

    def test_hide_tasks_keeps_deadlines(self, make_task):
        task = make_task(scheduled_start=utc(2024, 6, 1), scheduled_end=utc(2024, 6, 3))
        filters = CalendarFilters(show_tasks=False)
        events = derive_calendar_events([task], JUNE_START, JUNE_END, filters=filters, now=NOW)
        assert [e.type for e in events] == [CalendarEventType.DEADLINE]

    def test_hide_deadlines(self, make_task):
        task = make_task(scheduled_start=utc(2024, 6, 1), scheduled_end=utc(2024, 6, 3))
        filters = CalendarFilters(show_deadlines=False)
        events = derive_calendar_events([task], JUNE_START, JUNE_END, filters=filters, now=NOW)
        assert [e.type for e in events] == [CalendarEventType.TASK]

    def test_none_toggle_means_shown(self, make_task):
        task = make_task(scheduled_start=utc(2024, 6, 10))
        filters = CalendarFilters(show_tasks=None)
        assert len(derive_calendar_events([task], JUNE_START, JUNE_END, filters=filters, now=NOW)) == 1


class TestStatusColor:

    def test_known_and_unknown(self):
        assert status_color("pending") == "#ffc107"
        assert status_color("completed") == "#28a745"
        assert status_color("archived") == DEFAULT_COLOR
        assert status_color(None) == DEFAULT_COLOR


class TestCalendarService:

    async def test_get_events(self, small_store):
        service = CalendarService(small_store)
        events = await service.get_events(utc(2024, 6, 11), utc(2024, 6, 20), now=utc(2024, 6, 9))

        assert [e.id for e in events] == ["task-t1", "deadline-t1"]
        assert events[0].field_name == "North Grove"
        assert events[1].color == DEADLINE_URGENT_COLOR

    async def test_tasks_for_date(self, small_store):
        service = CalendarService(small_store)
        assert [t.id for t in await service.get_tasks_for_date(date(2024, 6, 10))] == ["t1"]
        assert await service.get_tasks_for_date(date(2024, 6, 11)) == []

    async def test_lifecycle_events_empty(self, small_store):
        service = CalendarService(small_store)
        assert await service.get_lifecycle_events("f1", DateRange(JUNE_START, JUNE_END)) == []
