"""Domain models for the Olive Lifecycle Platform."""

from ..field import Field, LifecycleYear
from ..lifecycle import Lifecycle
from ..task import Evidence, Task, TaskStatus
from ..user import User, UserRole

__all__ = [
    "Field",
    "LifecycleYear",
    "Lifecycle",
    "Evidence",
    "Task",
    "TaskStatus",
    "User",
    "UserRole",
]
