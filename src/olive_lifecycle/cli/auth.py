"""Login session commands."""

import click
from rich.markup import escape

from ..models import LoginRequest, parse_model
from .common import CliState, current_user, get_console, pass_state, run_with_store


@click.group()
def auth():
    """Log in and out."""
    pass


@auth.command()
@click.option("--email", prompt=True, help="Account email")
@click.option("--password", prompt=True, hide_input=True, help="Account password")
@pass_state
def login(state: CliState, email: str, password: str):
    """Log in and store the session token."""
    async def authenticate(store):
        request = parse_model(LoginRequest, {"email": email, "password": password})
        if state.config.use_mock_data:
            service = state.auth_service(store)
            await service.seed_dev_passwords()
            return await service.login(request)
        return await store.login(request)

    session = run_with_store(state, authenticate)
    state.session_store.save(session)
    get_console().print(f"[green]Logged in as {escape(session.email)} ({escape(session.role)})[/green]")


@auth.command()
@pass_state
def logout(state: CliState):
    """Forget the stored session."""
    if state.session_store.clear():
        get_console().print("[green]Logged out[/green]")
    else:
        get_console().print("[yellow]No active session[/yellow]")


@auth.command()
@pass_state
def whoami(state: CliState):
    """Show the logged-in user."""
    user = run_with_store(state, lambda store: current_user(state, store))
    get_console().print(f"{escape(user.display_name)} <{escape(user.email)}> ({user.role.value}, id {escape(user.id)})")
