"""Record store contract and its in-memory implementation.

The record store is the single data source behind every service: tasks,
fields, users and lifecycles with their CRUD operations. Two
implementations exist: :class:`InMemoryRecordStore` (fixture data held in an
explicit store object) and :class:`~olive_lifecycle.services.api_client.ApiRecordStore`
(the remote REST API). :func:`create_record_store` picks one from the
configuration once at process start.
"""

import copy
import logging
import uuid
from abc import ABC, abstractmethod
from typing import Dict, List, Optional

from ..config import ConfigModel
from ..errors import NotFoundError, ValidationError
from ..field import Field, LifecycleYear
from ..lifecycle import Lifecycle
from ..models import FieldCreate, FieldUpdate, TaskCreate
from ..task import Task, TaskStatus
from ..user import User, UserRole
from ..utils.datetime import now_utc


logger = logging.getLogger(__name__)


class RecordStore(ABC):
    """Abstract data source for tasks, fields, users and lifecycles"""

    # Tasks

    @abstractmethod
    async def list_tasks(self, field_id: Optional[str] = None,
                         assigned_to: Optional[str] = None) -> List[Task]:
        """List tasks, optionally narrowed to one field and/or assignee"""

    @abstractmethod
    async def get_task(self, task_id: str) -> Task:
        """Get one task; raises NotFoundError"""

    @abstractmethod
    async def create_task(self, data: TaskCreate) -> Task:
        """Create a pending task on an existing field"""

    @abstractmethod
    async def update_task_status(self, task_id: str, status: str) -> Task:
        """Transition a task's status, stamping actual start/end once"""

    @abstractmethod
    async def add_evidence(self, task_id: str, photo_url: Optional[str] = None,
                           notes: Optional[str] = None) -> Task:
        """Append an evidence record to a task"""

    @abstractmethod
    async def assign_task(self, task_id: str, assigned_to: str) -> Task:
        """Assign a task to a user"""

    # Fields

    @abstractmethod
    async def list_fields(self) -> List[Field]:
        """List every field visible to the store"""

    @abstractmethod
    async def get_field(self, field_id: str) -> Field:
        """Get one field; raises NotFoundError"""

    @abstractmethod
    async def create_field(self, owner_id: str, data: FieldCreate) -> Field:
        """Create a field owned by ``owner_id``"""

    @abstractmethod
    async def update_field(self, field_id: str, data: FieldUpdate) -> Field:
        """Apply a partial update to a field"""

    @abstractmethod
    async def delete_field(self, field_id: str) -> None:
        """Delete a field"""

    # Users

    @abstractmethod
    async def list_users(self, role: Optional[str] = None) -> List[User]:
        """List users, optionally filtered by role"""

    @abstractmethod
    async def get_user(self, user_id: str) -> User:
        """Get one user; raises NotFoundError"""

    # Lifecycles

    @abstractmethod
    async def get_lifecycle(self, field_id: str) -> Optional[Lifecycle]:
        """Get a field's lifecycle, or None when it was never initialized"""

    @abstractmethod
    async def initialize_lifecycle(self, field_id: str) -> Lifecycle:
        """Create the field's lifecycle (idempotent)"""

    @abstractmethod
    async def progress_lifecycle(self, field_id: str) -> Lifecycle:
        """Toggle the lifecycle year on the lifecycle and its field"""

    async def close(self) -> None:
        """Release any resources held by the store"""


def _new_id(prefix: str) -> str:
    return f"{prefix}{uuid.uuid4().hex[:12]}"


class InMemoryRecordStore(RecordStore):
    """Record store backed by lists owned by this instance.

    Every read returns deep copies, so callers can never mutate the store's
    records except through its operations.
    """

    def __init__(self, tasks: Optional[List[Task]] = None,
                 fields: Optional[List[Field]] = None,
                 users: Optional[List[User]] = None,
                 lifecycles: Optional[List[Lifecycle]] = None):
        self._tasks: List[Task] = list(tasks or [])
        self._fields: List[Field] = list(fields or [])
        self._users: List[User] = list(users or [])
        self._lifecycles: List[Lifecycle] = list(lifecycles or [])

    @classmethod
    def with_fixtures(cls, seed: Optional[int] = None) -> "InMemoryRecordStore":
        """Build a store seeded with the development fixture data."""
        from .fixtures import build_fixtures

        fixtures = build_fixtures(seed=seed)
        return cls(
            tasks=fixtures.tasks,
            fields=fixtures.fields,
            users=fixtures.users,
            lifecycles=fixtures.lifecycles,
        )

    # Lookup helpers operate on the live records

    def _find_task(self, task_id: str) -> Task:
        for task in self._tasks:
            if task.id == task_id:
                return task
        raise NotFoundError(f"Task not found: {task_id}")

    def _find_field(self, field_id: str) -> Field:
        for field in self._fields:
            if field.id == field_id:
                return field
        raise NotFoundError(f"Field not found: {field_id}")

    def _find_lifecycle(self, field_id: str) -> Optional[Lifecycle]:
        for lifecycle in self._lifecycles:
            if lifecycle.field_id == field_id:
                return lifecycle
        return None

    # Tasks

    async def list_tasks(self, field_id: Optional[str] = None,
                         assigned_to: Optional[str] = None) -> List[Task]:
        tasks = self._tasks
        if field_id:
            tasks = [t for t in tasks if t.field_id == field_id]
        if assigned_to:
            tasks = [t for t in tasks if t.assigned_to == assigned_to]
        return copy.deepcopy(tasks)

    async def get_task(self, task_id: str) -> Task:
        return copy.deepcopy(self._find_task(task_id))

    async def create_task(self, data: TaskCreate) -> Task:
        field = self._find_field(data.field_id)
        current_year = field.current_lifecycle_year.value
        if data.lifecycle_year and data.lifecycle_year != current_year:
            raise ValidationError(
                f"Task lifecycle year '{data.lifecycle_year}' does not match "
                f"field's current lifecycle year '{current_year}'"
            )

        now = now_utc()
        task = Task(
            id=_new_id("task"),
            field_id=field.id,
            type=data.type,
            title=data.title,
            description=data.description,
            template_id=data.template_id,
            lifecycle_year=current_year,
            assigned_to=data.assigned_to,
            scheduled_start=data.scheduled_start,
            scheduled_end=data.scheduled_end,
            status=TaskStatus.PENDING,
            created_at=now,
            updated_at=now,
        )
        self._tasks.append(task)
        logger.info(f"Task created: {task.id} for field {field.id}")
        return copy.deepcopy(task)

    async def update_task_status(self, task_id: str, status: str) -> Task:
        task = self._find_task(task_id)
        previous = task.status
        task.transition_to(status)
        logger.info(f"Task {task_id} status updated from {previous.value} to {task.status.value}")
        return copy.deepcopy(task)

    async def add_evidence(self, task_id: str, photo_url: Optional[str] = None,
                           notes: Optional[str] = None) -> Task:
        task = self._find_task(task_id)
        task.add_evidence(photo_url=photo_url, notes=notes)
        logger.info(f"Evidence added to task {task_id}")
        return copy.deepcopy(task)

    async def assign_task(self, task_id: str, assigned_to: str) -> Task:
        task = self._find_task(task_id)
        task.assign(assigned_to)
        logger.info(f"Task {task_id} assigned to {assigned_to}")
        return copy.deepcopy(task)

    # Fields

    async def list_fields(self) -> List[Field]:
        return copy.deepcopy(self._fields)

    async def get_field(self, field_id: str) -> Field:
        return copy.deepcopy(self._find_field(field_id))

    async def create_field(self, owner_id: str, data: FieldCreate) -> Field:
        now = now_utc()
        field = Field(
            id=_new_id("field"),
            owner_id=owner_id,
            name=data.name,
            area=data.area,
            latitude=data.latitude,
            longitude=data.longitude,
            variety=data.variety,
            tree_age=data.tree_age,
            ground_type=data.ground_type,
            irrigation_status=data.irrigation_status,
            current_lifecycle_year=LifecycleYear.LOW,
            created_at=now,
            updated_at=now,
        )
        self._fields.append(field)
        logger.info(f"Field created: {field.id} for owner {owner_id}")
        return copy.deepcopy(field)

    async def update_field(self, field_id: str, data: FieldUpdate) -> Field:
        field = self._find_field(field_id)
        for name, value in data.model_dump(exclude_none=True).items():
            setattr(field, name, value)
        field.updated_at = now_utc()
        logger.info(f"Field updated: {field_id}")
        return copy.deepcopy(field)

    async def delete_field(self, field_id: str) -> None:
        """Remove the field and its lifecycle; its tasks stay as history."""
        field = self._find_field(field_id)
        self._fields.remove(field)
        lifecycle = self._find_lifecycle(field_id)
        if lifecycle is not None:
            self._lifecycles.remove(lifecycle)
        logger.info(f"Field deleted: {field_id}")

    # Users

    async def list_users(self, role: Optional[str] = None) -> List[User]:
        users = self._users
        if role:
            wanted = UserRole.parse(role)
            users = [u for u in users if u.role == wanted]
        return copy.deepcopy(users)

    async def get_user(self, user_id: str) -> User:
        for user in self._users:
            if user.id == user_id:
                return copy.deepcopy(user)
        raise NotFoundError(f"User not found: {user_id}")

    def add_user(self, user: User) -> User:
        """Register a user record (used by the auth shim)."""
        if any(existing.id == user.id for existing in self._users):
            raise ValidationError(f"User already exists: {user.id}")
        self._users.append(copy.deepcopy(user))
        return copy.deepcopy(user)

    # Lifecycles

    async def get_lifecycle(self, field_id: str) -> Optional[Lifecycle]:
        lifecycle = self._find_lifecycle(field_id)
        return copy.deepcopy(lifecycle) if lifecycle else None

    async def initialize_lifecycle(self, field_id: str) -> Lifecycle:
        existing = self._find_lifecycle(field_id)
        if existing is not None:
            return copy.deepcopy(existing)

        field = self._find_field(field_id)
        now = now_utc()
        lifecycle = Lifecycle(
            id=_new_id("lifecycle"),
            field_id=field_id,
            current_year=LifecycleYear.LOW,
            cycle_start_date=now,
            created_at=now,
            updated_at=now,
        )
        self._lifecycles.append(lifecycle)
        field.current_lifecycle_year = LifecycleYear.LOW
        field.updated_at = now
        logger.info(f"Lifecycle initialized for field {field_id}")
        return copy.deepcopy(lifecycle)

    async def progress_lifecycle(self, field_id: str) -> Lifecycle:
        """Toggle the year on the lifecycle, then mirror it onto the field.

        The two writes are sequential, not transactional. If the field is
        gone by the second step the lifecycle stays progressed and the
        NotFoundError propagates to the caller.
        """
        lifecycle = self._find_lifecycle(field_id)
        if lifecycle is None:
            raise NotFoundError(f"Lifecycle not found for field: {field_id}")

        year = lifecycle.progress()

        try:
            field = self._find_field(field_id)
        except NotFoundError:
            logger.error(
                f"Lifecycle for field {field_id} progressed to {year.value} "
                f"but the field record is missing; records are now inconsistent"
            )
            raise
        field.current_lifecycle_year = year
        field.updated_at = lifecycle.updated_at

        logger.info(f"Lifecycle progressed for field {field_id} to {year.value}")
        return copy.deepcopy(lifecycle)


def create_record_store(config: ConfigModel, token: Optional[str] = None) -> RecordStore:
    """Select the record store implementation from configuration.

    Args:
        config: Process configuration; ``use_mock_data`` picks the store
        token: Bearer token for the remote API (falls back to ``config.api_token``)

    Returns:
        An in-memory fixture store or an HTTP-backed store
    """
    if config.use_mock_data:
        logger.debug(f"Using in-memory fixture store (seed={config.fixture_seed})")
        return InMemoryRecordStore.with_fixtures(seed=config.fixture_seed)

    from .api_client import ApiRecordStore

    logger.debug(f"Using API record store at {config.api_base_url}")
    return ApiRecordStore(
        base_url=config.api_base_url,
        token=token or config.api_token,
        timeout=config.request_timeout,
    )
