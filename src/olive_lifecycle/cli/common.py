"""Shared plumbing for the command-line interface."""

import asyncio
import json
from datetime import datetime, timedelta
from typing import Any, Awaitable, Callable, Optional, Tuple, TypeVar

import click
from rich.console import Console

from ..config import ConfigModel, get_config
from ..errors import OliveLifecycleError, UnauthorizedError
from ..services.analytics import DateRange
from ..services.auth import AuthService, SessionStore
from ..services.settings import PreferenceStore
from ..services.store import RecordStore, create_record_store
from ..user import User
from ..utils.datetime import end_of_day, ensure_aware, now_utc, start_of_day


T = TypeVar("T")

DATE_FORMATS = ["%Y-%m-%d", "%Y-%m-%dT%H:%M:%S"]


def get_console() -> Console:
    """Console bound to the current stdout."""
    return Console()


class CliState:
    """Per-invocation state carried on the click context."""

    def __init__(self, config: Optional[ConfigModel] = None):
        self.config = config or get_config()

    @property
    def session_store(self) -> SessionStore:
        return SessionStore(self.config.get_session_path())

    @property
    def preferences(self) -> PreferenceStore:
        return PreferenceStore(self.config.get_preferences_path())

    def auth_service(self, store: RecordStore) -> AuthService:
        return AuthService(
            store,
            secret_key=self.config.secret_key,
            token_lifetime_hours=self.config.token_lifetime_hours,
        )

    def token(self) -> Optional[str]:
        session = self.session_store.load()
        return session.token if session else None


pass_state = click.make_pass_decorator(CliState, ensure=True)


def run_with_store(state: CliState, func: Callable[[RecordStore], Awaitable[T]]) -> T:
    """Run ``func`` against a fresh record store on a new event loop.

    Platform errors become ``click.ClickException`` so they print as a
    one-line message with a non-zero exit code.
    """
    async def runner():
        store = create_record_store(state.config, token=state.token())
        try:
            return await func(store)
        finally:
            await store.close()

    try:
        return asyncio.run(runner())
    except OliveLifecycleError as e:
        raise click.ClickException(str(e))


async def current_user(state: CliState, store: RecordStore) -> User:
    """The logged-in user, or UnauthorizedError when there is no session."""
    session = state.session_store.load()
    if session is None:
        raise UnauthorizedError("Not logged in. Run 'olive auth login' first.")
    if state.config.use_mock_data:
        return await state.auth_service(store).resolve_token(session.token)
    return await store.get_user(session.user_id)


def date_range_from_options(start: Optional[datetime], end: Optional[datetime],
                            days: int = 30) -> DateRange:
    """Whole-day range; defaults to the last ``days`` days."""
    end_dt = end_of_day(ensure_aware(end)) if end else now_utc()
    start_dt = start_of_day(ensure_aware(start)) if start else start_of_day(end_dt - timedelta(days=days))
    return DateRange(start_dt, end_dt)


def range_bounds(date_range: DateRange) -> Tuple[str, str]:
    return format_date(date_range.start), format_date(date_range.end)


def echo_json(data: Any) -> None:
    click.echo(json.dumps(data, indent=2, default=str))


def format_date(dt: Optional[datetime], fmt: Optional[str] = None) -> str:
    """Render a date with ``fmt``, or the configured ``date_format``."""
    if dt is None:
        return "-"
    return ensure_aware(dt).strftime(fmt or get_config().date_format)
