"""HTTP record store for the Olive Lifecycle REST API.

This module mirrors the backend's fixed ``/api/v1`` contract with an
``httpx.AsyncClient`` and maps HTTP failures onto the platform's error
taxonomy. It holds no state besides the client.
"""

import logging
from typing import Any, Dict, List, Optional

import httpx

from ..errors import NotFoundError, ServiceError, UnauthorizedError, ValidationError
from ..field import Field
from ..lifecycle import Lifecycle
from ..models import AuthResponse, FieldCreate, FieldUpdate, LoginRequest, RegisterRequest, TaskCreate
from ..task import Task
from ..user import User
from .store import RecordStore


logger = logging.getLogger(__name__)


class ApiRecordStore(RecordStore):
    """Record store talking to the remote REST API."""

    API_PREFIX = "/api/v1"

    def __init__(self, base_url: str, token: Optional[str] = None, timeout: float = 30.0,
                 client: Optional[httpx.AsyncClient] = None):
        """Initialize the API store.

        Args:
            base_url: Backend root, e.g. ``http://localhost:5000``
            token: Bearer token sent on every request
            timeout: Request timeout in seconds
            client: Pre-built client (tests pass one with an ASGI transport)
        """
        self.base_url = base_url.rstrip("/")
        self.headers = {"Content-Type": "application/json"}
        if token:
            self.headers["Authorization"] = f"Bearer {token}"
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(base_url=self.base_url, timeout=timeout)

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def close(self) -> None:
        if self._owns_client:
            await self.client.aclose()

    async def _make_request(self, method: str, path: str, params: Optional[Dict[str, Any]] = None,
                            json: Optional[Dict[str, Any]] = None) -> Any:
        """Make an HTTP request against the API.

        Raises:
            NotFoundError: On 404
            UnauthorizedError: On 401/403
            ValidationError: On 400/422
            ServiceError: On any other failure, including network errors
        """
        url = f"{self.API_PREFIX}{path}"
        try:
            response = await self.client.request(method, url, params=params, json=json,
                                                 headers=self.headers)
        except httpx.TimeoutException:
            raise ServiceError(f"{method} {url} timed out")
        except httpx.RequestError as e:
            raise ServiceError(f"{method} {url} failed: {e}")

        if response.status_code == 404:
            raise NotFoundError(self._error_detail(response) or f"Not found: {url}")
        if response.status_code in (401, 403):
            raise UnauthorizedError(self._error_detail(response) or "Not authorized")
        if response.status_code in (400, 422):
            raise ValidationError(self._error_detail(response) or "Invalid request")
        if response.status_code >= 400:
            raise ServiceError(f"API error {response.status_code}: {response.text}")

        if response.status_code == 204 or not response.content:
            return None
        return response.json()

    @staticmethod
    def _error_detail(response: httpx.Response) -> Optional[str]:
        try:
            body = response.json()
        except ValueError:
            return response.text or None
        if isinstance(body, dict):
            detail = body.get("detail") or body.get("message")
            return str(detail) if detail else None
        return None

    # Tasks

    async def list_tasks(self, field_id: Optional[str] = None,
                         assigned_to: Optional[str] = None) -> List[Task]:
        params = {}
        if field_id:
            params["fieldId"] = field_id
        if assigned_to:
            params["assignedTo"] = assigned_to
        data = await self._make_request("GET", "/tasks", params=params or None)
        return [Task.from_dict(item) for item in data or []]

    async def get_task(self, task_id: str) -> Task:
        return Task.from_dict(await self._make_request("GET", f"/tasks/{task_id}"))

    async def create_task(self, data: TaskCreate) -> Task:
        return Task.from_dict(await self._make_request("POST", "/tasks", json=data.to_payload()))

    async def update_task_status(self, task_id: str, status: str) -> Task:
        data = await self._make_request("PUT", f"/tasks/{task_id}/status", json={"status": status})
        return Task.from_dict(data)

    async def add_evidence(self, task_id: str, photo_url: Optional[str] = None,
                           notes: Optional[str] = None) -> Task:
        payload = {"photoUrl": photo_url, "notes": notes}
        data = await self._make_request("POST", f"/tasks/{task_id}/evidence", json=payload)
        return Task.from_dict(data)

    async def assign_task(self, task_id: str, assigned_to: str) -> Task:
        data = await self._make_request("PUT", f"/tasks/{task_id}/assign",
                                        json={"assignedTo": assigned_to})
        return Task.from_dict(data)

    # Fields

    async def list_fields(self) -> List[Field]:
        data = await self._make_request("GET", "/fields")
        return [Field.from_dict(item) for item in data or []]

    async def get_field(self, field_id: str) -> Field:
        return Field.from_dict(await self._make_request("GET", f"/fields/{field_id}"))

    async def create_field(self, owner_id: str, data: FieldCreate) -> Field:
        # The backend assigns the owner from the bearer token
        return Field.from_dict(await self._make_request("POST", "/fields", json=data.to_payload()))

    async def update_field(self, field_id: str, data: FieldUpdate) -> Field:
        return Field.from_dict(
            await self._make_request("PUT", f"/fields/{field_id}", json=data.to_payload())
        )

    async def delete_field(self, field_id: str) -> None:
        await self._make_request("DELETE", f"/fields/{field_id}")

    # Users

    async def list_users(self, role: Optional[str] = None) -> List[User]:
        data = await self._make_request("GET", "/users", params={"role": role} if role else None)
        return [User.from_dict(item) for item in data or []]

    async def get_user(self, user_id: str) -> User:
        return User.from_dict(await self._make_request("GET", f"/users/{user_id}"))

    # Lifecycles

    async def get_lifecycle(self, field_id: str) -> Optional[Lifecycle]:
        try:
            data = await self._make_request("GET", f"/fields/{field_id}/lifecycle")
        except NotFoundError:
            return None
        return Lifecycle.from_dict(data) if data else None

    async def initialize_lifecycle(self, field_id: str) -> Lifecycle:
        data = await self._make_request("POST", f"/fields/{field_id}/lifecycle/initialize")
        return Lifecycle.from_dict(data)

    async def progress_lifecycle(self, field_id: str) -> Lifecycle:
        data = await self._make_request("POST", f"/fields/{field_id}/lifecycle/progress")
        return Lifecycle.from_dict(data)

    # Auth

    async def login(self, request: LoginRequest) -> AuthResponse:
        data = await self._make_request("POST", "/auth/login", json=request.to_payload())
        return AuthResponse.model_validate(data)

    async def register(self, request: RegisterRequest) -> AuthResponse:
        data = await self._make_request("POST", "/auth/register", json=request.to_payload())
        return AuthResponse.model_validate(data)
