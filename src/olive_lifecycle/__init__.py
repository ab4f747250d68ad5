"""Olive Lifecycle Platform - field, task and lifecycle management for olive groves."""

__version__ = "0.1.0"
__author__ = "Olive Lifecycle Team"

from .domain import (
    Field,
    Lifecycle,
    LifecycleYear,
    Task,
    TaskStatus,
    User,
    UserRole,
)

__all__ = [
    "Field",
    "Lifecycle",
    "LifecycleYear",
    "Task",
    "TaskStatus",
    "User",
    "UserRole",
    "__version__",
]
