"""Access policy shared by every field read and write path."""

from typing import Iterable, Optional

from .field import Field
from .task import Task
from .user import User, UserRole


# Roles that may read any field
_READ_ALL_ROLES = {UserRole.ADMINISTRATOR, UserRole.AGRONOMIST}

# Roles that may generate exported reports
_REPORT_ROLES = {UserRole.FIELD_OWNER, UserRole.ADMINISTRATOR}


def can_access_field(user: Optional[User], field: Field, tasks: Iterable[Task] = ()) -> bool:
    """Return True when ``user`` may read ``field``.

    Owners, administrators and agronomists always may. Producers may read a
    field when one of ``tasks`` on that field is assigned to them. Anonymous
    callers and every other role are denied.
    """
    if user is None:
        return False
    if field.owner_id == user.id:
        return True
    if user.role in _READ_ALL_ROLES:
        return True
    if user.role == UserRole.PRODUCER:
        return any(
            task.field_id == field.id and task.assigned_to == user.id
            for task in tasks
        )
    return False


def can_modify_field(user: Optional[User], field: Field) -> bool:
    """Only the owner may update or delete a field."""
    return user is not None and field.owner_id == user.id


def can_generate_reports(user: Optional[User]) -> bool:
    return user is not None and user.role in _REPORT_ROLES
