"""Permission-checked field operations on top of a record store."""

import logging
from typing import List, Optional

from ..errors import UnauthorizedError
from ..field import Field
from ..lifecycle import Lifecycle
from ..models import FieldCreate, FieldUpdate
from ..policy import can_access_field, can_modify_field
from ..user import User
from .store import RecordStore


logger = logging.getLogger(__name__)


class FieldAccessService:
    """Every field read and write path for a given actor goes through here."""

    def __init__(self, store: RecordStore):
        self.store = store

    async def list_fields_for(self, user: User) -> List[Field]:
        """Fields ``user`` may read, in store order."""
        fields = await self.store.list_fields()
        assigned = await self.store.list_tasks(assigned_to=user.id)
        return [fld for fld in fields if can_access_field(user, fld, assigned)]

    async def get_field_for(self, user: User, field_id: str) -> Field:
        """Get a field, raising UnauthorizedError when ``user`` may not read it."""
        fld = await self.store.get_field(field_id)
        assigned = await self.store.list_tasks(field_id=field_id, assigned_to=user.id)
        if not can_access_field(user, fld, assigned):
            logger.warning(f"User {user.id} denied access to field {field_id}")
            raise UnauthorizedError("You do not have access to this field.")
        return fld

    async def _get_modifiable(self, user: User, field_id: str) -> Field:
        fld = await self.store.get_field(field_id)
        if not can_modify_field(user, fld):
            logger.warning(f"User {user.id} denied modification of field {field_id}")
            raise UnauthorizedError("Only the field owner may modify this field.")
        return fld

    async def create_field_for(self, user: User, data: FieldCreate) -> Field:
        fld = await self.store.create_field(user.id, data)
        await self.store.initialize_lifecycle(fld.id)
        return await self.store.get_field(fld.id)

    async def update_field_for(self, user: User, field_id: str, data: FieldUpdate) -> Field:
        await self._get_modifiable(user, field_id)
        return await self.store.update_field(field_id, data)

    async def delete_field_for(self, user: User, field_id: str) -> None:
        await self._get_modifiable(user, field_id)
        await self.store.delete_field(field_id)

    async def get_lifecycle_for(self, user: User, field_id: str) -> Optional[Lifecycle]:
        await self.get_field_for(user, field_id)
        return await self.store.get_lifecycle(field_id)

    async def progress_lifecycle_for(self, user: User, field_id: str) -> Lifecycle:
        await self._get_modifiable(user, field_id)
        return await self.store.progress_lifecycle(field_id)

    async def initialize_lifecycle_for(self, user: User, field_id: str) -> Lifecycle:
        await self._get_modifiable(user, field_id)
        return await self.store.initialize_lifecycle(field_id)
