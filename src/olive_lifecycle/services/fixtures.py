"""Development fixture data for the in-memory record store."""

import random
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import List, Optional

from ..field import Field
from ..lifecycle import Lifecycle
from ..task import Evidence, Task, TaskStatus
from ..user import User, UserRole
from ..utils.datetime import ensure_aware, now_utc


TASK_TYPES = ["Pruning", "Harvesting", "Fertilization", "Irrigation", "Pest Control", "Soil Testing"]

# Shared password of the fixture accounts
DEV_PASSWORD = "password123"


@dataclass
class FixtureSet:
    users: List[User] = field(default_factory=list)
    fields: List[Field] = field(default_factory=list)
    tasks: List[Task] = field(default_factory=list)
    lifecycles: List[Lifecycle] = field(default_factory=list)


def fixture_users() -> List[User]:
    return [
        User(id="user1", email="owner@olivefarm.com", first_name="John", last_name="Smith",
             role=UserRole.FIELD_OWNER),
        User(id="user2", email="producer1@olivefarm.com", first_name="Maria", last_name="Garcia",
             role=UserRole.PRODUCER),
        User(id="user3", email="producer2@olivefarm.com", first_name="Ahmed", last_name="Hassan",
             role=UserRole.PRODUCER),
        User(id="user4", email="producer3@olivefarm.com", first_name="Sophie", last_name="Martin",
             role=UserRole.PRODUCER),
        User(id="user5", email="agronomist@olivefarm.com", first_name="Dr. James", last_name="Wilson",
             role=UserRole.AGRONOMIST),
    ]


def fixture_fields(now: datetime) -> List[Field]:
    one_year_ago = now - timedelta(days=365)
    rows = [
        ("field1", "North Olive Grove", 37.7749, -122.4194, 12.5, "Kalamata", 15, "Clay Loam", True, "low"),
        ("field2", "South Valley Fields", 37.7849, -122.4094, 8.3, "Arbequina", 8, "Sandy Loam", False, "high"),
        ("field3", "East Hill Plantation", 37.7649, -122.4294, 15.7, "Picual", 20, "Loam", True, "low"),
        ("field4", "West Slope Orchard", 37.7549, -122.4394, 6.2, "Koroneiki", 12, "Sandy", True, "high"),
        ("field5", "Central Meadow", 37.7949, -122.3994, 10.0, "Frantoio", 18, "Clay", False, "low"),
    ]
    return [
        Field(
            id=field_id,
            owner_id="user1",
            name=name,
            latitude=lat,
            longitude=lon,
            area=area,
            variety=variety,
            tree_age=tree_age,
            ground_type=ground_type,
            irrigation_status=irrigated,
            current_lifecycle_year=year,
            created_at=one_year_ago,
            updated_at=now,
        )
        for field_id, name, lat, lon, area, variety, tree_age, ground_type, irrigated, year in rows
    ]


def _generate_tasks(fields: List[Field], producers: List[User], rng: random.Random,
                    now: datetime) -> List[Task]:
    """Generate 5-8 tasks per field scheduled over the last 90 days."""
    tasks = []
    statuses = list(TaskStatus)

    for field_index, fld in enumerate(fields):
        task_count = 5 + rng.randrange(4)
        for i in range(task_count):
            scheduled_start = now - timedelta(days=rng.randrange(90))
            scheduled_end = scheduled_start + timedelta(days=rng.randrange(7) + 1)
            status = rng.choice(statuses)

            actual_start = actual_end = None
            if status in (TaskStatus.IN_PROGRESS, TaskStatus.COMPLETED):
                actual_start = scheduled_start + timedelta(seconds=rng.random() * 86400)
            if status == TaskStatus.COMPLETED:
                actual_end = scheduled_end - timedelta(seconds=rng.random() * 86400)

            assigned_to = rng.choice(producers).id if rng.random() > 0.3 else None
            task_type = rng.choice(TASK_TYPES)

            evidence = []
            if status == TaskStatus.COMPLETED and rng.random() > 0.5:
                evidence.append(Evidence(
                    timestamp=actual_end,
                    photo_url=f"https://picsum.photos/400/300?random={field_index}_{i}",
                    notes="Task completed successfully",
                ))

            tasks.append(Task(
                id=f"task{field_index + 1}_{i + 1}",
                field_id=fld.id,
                type=task_type,
                title=f"{task_type} - {fld.name}",
                description=f"Perform {task_type.lower()} on {fld.name}",
                status=status,
                assigned_to=assigned_to,
                scheduled_start=scheduled_start,
                scheduled_end=scheduled_end,
                actual_start=actual_start,
                actual_end=actual_end,
                lifecycle_year=fld.current_lifecycle_year.value,
                cost=round(rng.random() * 500 + 100, 2) if status == TaskStatus.COMPLETED else None,
                evidence=evidence,
                created_at=scheduled_start,
                updated_at=actual_end or scheduled_start,
            ))

    return tasks


def build_fixtures(seed: Optional[int] = None, now: Optional[datetime] = None) -> FixtureSet:
    """Build a fresh fixture set; the same seed and ``now`` give the same data."""
    now = ensure_aware(now) or now_utc()
    rng = random.Random(seed)

    users = fixture_users()
    fields = fixture_fields(now)
    producers = [u for u in users if u.role == UserRole.PRODUCER]
    tasks = _generate_tasks(fields, producers, rng, now)

    lifecycles = [
        Lifecycle(
            id=f"lifecycle{index + 1}",
            field_id=fld.id,
            current_year=fld.current_lifecycle_year,
            cycle_start_date=now - timedelta(days=365),
            last_progression_date=now - timedelta(days=30) if index % 2 == 0 else None,
            created_at=now - timedelta(days=365),
            updated_at=now,
        )
        for index, fld in enumerate(fields)
    ]

    return FixtureSet(users=users, fields=fields, tasks=tasks, lifecycles=lifecycles)
