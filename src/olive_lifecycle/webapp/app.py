"""FastAPI development server exposing the Olive Lifecycle REST contract."""

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timedelta
from typing import List, Optional, Tuple

from fastapi import Depends, FastAPI, HTTPException, Query, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from .. import __version__
from ..errors import NotFoundError, OliveLifecycleError, UnauthorizedError, ValidationError
from ..field import Field
from ..models import (
    EvidenceCreate,
    FieldCreate,
    FieldUpdate,
    LoginRequest,
    RegisterRequest,
    TaskAssign,
    TaskCreate,
    TaskStatusUpdate,
)
from ..services.analytics import (
    DateRange,
    compute_completion_rates,
    compute_cost_analysis,
    compute_field_metrics,
    compute_status_distribution,
    compute_task_metrics,
)
from ..services.auth import AuthService
from ..services.calendar import CalendarFilters, derive_calendar_events
from ..services.fields import FieldAccessService
from ..services.store import RecordStore
from ..task import Task
from ..user import User, UserRole
from ..utils.datetime import now_utc


logger = logging.getLogger(__name__)

# HTTP Bearer token scheme
security = HTTPBearer(auto_error=False)

# Roles allowed to list users
_USER_LIST_ROLES = {UserRole.FIELD_OWNER, UserRole.ADMINISTRATOR}


def _split(value: Optional[str]) -> List[str]:
    """Split a comma-separated query value."""
    if not value:
        return []
    return [part.strip() for part in value.split(",") if part.strip()]


def create_app(store: RecordStore, auth: AuthService,
               window_days: int = 7, urgent_days: int = 3) -> FastAPI:
    """Build the API server around a record store and auth service.

    Args:
        store: Data source for every route
        auth: Issues and resolves bearer tokens for ``store``'s users
        window_days: Deadline look-ahead for calendar events
        urgent_days: Deadlines at or under this many days are urgent

    Returns:
        Configured FastAPI application
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Starting Olive Lifecycle development server")
        seeded = await auth.seed_dev_passwords()
        if seeded:
            logger.info(f"Development password set for {seeded} users")
        yield
        logger.info("Shutting down Olive Lifecycle development server")
        await store.close()

    app = FastAPI(
        title="Olive Lifecycle API",
        description="Development server for the Olive Lifecycle Platform",
        version=__version__,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[
            "http://localhost:3000",
            "http://127.0.0.1:3000",
        ],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    fields_service = FieldAccessService(store)

    # ========================================================================
    # Error handling
    # ========================================================================

    def _error(status_code: int, exc: Exception) -> JSONResponse:
        return JSONResponse(status_code=status_code, content={"detail": str(exc)})

    @app.exception_handler(NotFoundError)
    async def not_found_handler(request: Request, exc: NotFoundError):
        return _error(status.HTTP_404_NOT_FOUND, exc)

    @app.exception_handler(UnauthorizedError)
    async def forbidden_handler(request: Request, exc: UnauthorizedError):
        return _error(status.HTTP_403_FORBIDDEN, exc)

    @app.exception_handler(ValidationError)
    async def validation_handler(request: Request, exc: ValidationError):
        return _error(status.HTTP_400_BAD_REQUEST, exc)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        messages = []
        for error in exc.errors():
            location = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
            messages.append(f"{location}: {error.get('msg')}" if location else error.get("msg"))
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST,
                            content={"detail": "; ".join(messages)})

    @app.exception_handler(OliveLifecycleError)
    async def service_error_handler(request: Request, exc: OliveLifecycleError):
        logger.error(f"Service error on {request.url.path}: {exc}")
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, exc)

    # ========================================================================
    # Dependencies
    # ========================================================================

    async def get_current_user(
        credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    ) -> User:
        """Resolve the bearer token, answering 401 when it is missing or invalid."""
        if credentials is None:
            raise _unauthenticated("Not authenticated")
        try:
            return await auth.resolve_token(credentials.credentials)
        except UnauthorizedError as e:
            raise _unauthenticated(str(e))

    def _unauthenticated(detail: str) -> HTTPException:
        return HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            headers={"WWW-Authenticate": "Bearer"},
        )

    async def visible_records(user: User) -> Tuple[List[Field], List[Task]]:
        """Fields the user may read and every task on them."""
        fields = await fields_service.list_fields_for(user)
        field_ids = {fld.id for fld in fields}
        tasks = [task for task in await store.list_tasks() if task.field_id in field_ids]
        return fields, tasks

    async def readable_task(user: User, task_id: str) -> Task:
        task = await store.get_task(task_id)
        await fields_service.get_field_for(user, task.field_id)
        return task

    def date_range(start: Optional[datetime], end: Optional[datetime]) -> DateRange:
        end = end or now_utc()
        start = start or end - timedelta(days=30)
        return DateRange(start, end)

    # ========================================================================
    # Service endpoints
    # ========================================================================

    @app.get("/health")
    async def health_check():
        return {"status": "healthy", "service": "olive-lifecycle", "version": __version__}

    # ========================================================================
    # Auth
    # ========================================================================

    @app.post("/api/v1/auth/login")
    async def login(request: LoginRequest):
        try:
            response = await auth.login(request)
        except UnauthorizedError as e:
            raise _unauthenticated(str(e))
        return response.to_payload()

    @app.post("/api/v1/auth/register")
    async def register(request: RegisterRequest):
        response = await auth.register(request)
        return response.to_payload()

    # ========================================================================
    # Tasks
    # ========================================================================

    @app.get("/api/v1/tasks")
    async def list_tasks(
        field_id: Optional[str] = Query(None, alias="fieldId"),
        assigned_to: Optional[str] = Query(None, alias="assignedTo"),
        user: User = Depends(get_current_user),
    ):
        _, tasks = await visible_records(user)
        if field_id:
            tasks = [task for task in tasks if task.field_id == field_id]
        if assigned_to:
            tasks = [task for task in tasks if task.assigned_to == assigned_to]
        return [task.to_dict() for task in tasks]

    @app.get("/api/v1/tasks/{task_id}")
    async def get_task(task_id: str, user: User = Depends(get_current_user)):
        return (await readable_task(user, task_id)).to_dict()

    @app.post("/api/v1/tasks", status_code=status.HTTP_201_CREATED)
    async def create_task(data: TaskCreate, user: User = Depends(get_current_user)):
        await fields_service.get_field_for(user, data.field_id)
        task = await store.create_task(data)
        return task.to_dict()

    @app.put("/api/v1/tasks/{task_id}/status")
    async def update_task_status(task_id: str, data: TaskStatusUpdate,
                                 user: User = Depends(get_current_user)):
        await readable_task(user, task_id)
        return (await store.update_task_status(task_id, data.status)).to_dict()

    @app.post("/api/v1/tasks/{task_id}/evidence")
    async def add_evidence(task_id: str, data: EvidenceCreate,
                           user: User = Depends(get_current_user)):
        await readable_task(user, task_id)
        task = await store.add_evidence(task_id, photo_url=data.photo_url, notes=data.notes)
        return task.to_dict()

    @app.put("/api/v1/tasks/{task_id}/assign")
    async def assign_task(task_id: str, data: TaskAssign, user: User = Depends(get_current_user)):
        await readable_task(user, task_id)
        return (await store.assign_task(task_id, data.assigned_to)).to_dict()

    # ========================================================================
    # Fields
    # ========================================================================

    @app.get("/api/v1/fields")
    async def list_fields(user: User = Depends(get_current_user)):
        return [fld.to_dict() for fld in await fields_service.list_fields_for(user)]

    @app.get("/api/v1/fields/{field_id}")
    async def get_field(field_id: str, user: User = Depends(get_current_user)):
        return (await fields_service.get_field_for(user, field_id)).to_dict()

    @app.post("/api/v1/fields", status_code=status.HTTP_201_CREATED)
    async def create_field(data: FieldCreate, user: User = Depends(get_current_user)):
        return (await fields_service.create_field_for(user, data)).to_dict()

    @app.put("/api/v1/fields/{field_id}")
    async def update_field(field_id: str, data: FieldUpdate, user: User = Depends(get_current_user)):
        return (await fields_service.update_field_for(user, field_id, data)).to_dict()

    @app.delete("/api/v1/fields/{field_id}", status_code=status.HTTP_204_NO_CONTENT)
    async def delete_field(field_id: str, user: User = Depends(get_current_user)):
        await fields_service.delete_field_for(user, field_id)

    # ========================================================================
    # Lifecycles
    # ========================================================================

    @app.get("/api/v1/fields/{field_id}/lifecycle")
    async def get_lifecycle(field_id: str, user: User = Depends(get_current_user)):
        lifecycle = await fields_service.get_lifecycle_for(user, field_id)
        if lifecycle is None:
            raise NotFoundError(f"Lifecycle not found for field: {field_id}")
        return lifecycle.to_dict()

    @app.post("/api/v1/fields/{field_id}/lifecycle/initialize")
    async def initialize_lifecycle(field_id: str, user: User = Depends(get_current_user)):
        return (await fields_service.initialize_lifecycle_for(user, field_id)).to_dict()

    @app.post("/api/v1/fields/{field_id}/lifecycle/progress")
    async def progress_lifecycle(field_id: str, user: User = Depends(get_current_user)):
        return (await fields_service.progress_lifecycle_for(user, field_id)).to_dict()

    # ========================================================================
    # Users
    # ========================================================================

    @app.get("/api/v1/users")
    async def list_users(role: Optional[str] = None, user: User = Depends(get_current_user)):
        if user.role not in _USER_LIST_ROLES:
            raise UnauthorizedError("You do not have permission to list users.")
        return [entry.to_dict() for entry in await store.list_users(role=role)]

    @app.get("/api/v1/users/{user_id}")
    async def get_user(user_id: str, user: User = Depends(get_current_user)):
        return (await store.get_user(user_id)).to_dict()

    # ========================================================================
    # Analytics (read-only, over the caller's visible records)
    # ========================================================================

    @app.get("/api/v1/analytics/task-metrics")
    async def task_metrics(start: Optional[datetime] = None, end: Optional[datetime] = None,
                           user: User = Depends(get_current_user)):
        _, tasks = await visible_records(user)
        return compute_task_metrics(tasks, date_range(start, end)).to_dict()

    @app.get("/api/v1/analytics/field-metrics")
    async def field_metrics(field_ids: Optional[str] = Query(None, alias="fieldIds"),
                            start: Optional[datetime] = None, end: Optional[datetime] = None,
                            user: User = Depends(get_current_user)):
        fields, tasks = await visible_records(user)
        requested = _split(field_ids) or [fld.id for fld in fields]
        for field_id in requested:
            if not any(fld.id == field_id for fld in fields):
                await fields_service.get_field_for(user, field_id)
        metrics = compute_field_metrics(requested, tasks, fields, date_range(start, end))
        return [entry.to_dict() for entry in metrics]

    @app.get("/api/v1/analytics/cost-analysis")
    async def cost_analysis(start: Optional[datetime] = None, end: Optional[datetime] = None,
                            user: User = Depends(get_current_user)):
        fields, tasks = await visible_records(user)
        return compute_cost_analysis(tasks, fields, date_range(start, end)).to_dict()

    @app.get("/api/v1/analytics/completion-rates")
    async def completion_rates(start: Optional[datetime] = None, end: Optional[datetime] = None,
                               user: User = Depends(get_current_user)):
        _, tasks = await visible_records(user)
        return compute_completion_rates(tasks, date_range(start, end)).to_dict()

    @app.get("/api/v1/analytics/status-distribution")
    async def status_distribution(start: Optional[datetime] = None, end: Optional[datetime] = None,
                                  user: User = Depends(get_current_user)):
        _, tasks = await visible_records(user)
        return compute_status_distribution(tasks, date_range(start, end)).to_dict()

    # ========================================================================
    # Calendar
    # ========================================================================

    @app.get("/api/v1/calendar/events")
    async def calendar_events(
        start: datetime,
        end: datetime,
        field_ids: Optional[str] = Query(None, alias="fieldIds"),
        task_types: Optional[str] = Query(None, alias="taskTypes"),
        statuses: Optional[str] = None,
        show_tasks: bool = Query(True, alias="showTasks"),
        show_deadlines: bool = Query(True, alias="showDeadlines"),
        show_lifecycles: bool = Query(True, alias="showLifecycles"),
        user: User = Depends(get_current_user),
    ):
        fields, tasks = await visible_records(user)
        filters = CalendarFilters(
            field_ids=_split(field_ids),
            task_types=_split(task_types),
            statuses=_split(statuses),
            show_tasks=show_tasks,
            show_deadlines=show_deadlines,
            show_lifecycles=show_lifecycles,
        )
        events = derive_calendar_events(
            tasks, start, end, filters=filters, fields=fields,
            window_days=window_days, urgent_days=urgent_days,
        )
        return [event.to_dict() for event in events]

    return app


def start_server(app: FastAPI, host: str = "127.0.0.1", port: int = 5000,
                 log_level: str = "info") -> None:
    """Run the development server with uvicorn."""
    import uvicorn

    logger.info(f"Serving Olive Lifecycle API on http://{host}:{port}")
    uvicorn.run(app, host=host, port=port, log_level=log_level)
