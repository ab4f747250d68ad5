"""Preference commands."""

import click
from rich.markup import escape
from rich.table import Table

from ..errors import OliveLifecycleError
from ..services.settings import DEFAULT_PREFERENCES, coerce_preference
from .common import CliState, echo_json, get_console, pass_state


@click.group()
def settings():
    """Show and change display and notification preferences."""
    pass


@settings.command(name="show")
@click.option("--json", "as_json", is_flag=True, help="Print JSON")
@pass_state
def show_settings(state: CliState, as_json: bool):
    """Show current preferences."""
    preferences = state.preferences.get_preferences()

    if as_json:
        echo_json(preferences)
        return

    table = Table(title="Preferences", show_header=True, header_style="bold blue")
    table.add_column("Key", style="cyan")
    table.add_column("Value")
    table.add_column("Default", style="dim")
    for key, value in preferences.items():
        table.add_row(escape(key), escape(str(value)), escape(str(DEFAULT_PREFERENCES.get(key, ""))))
    get_console().print(table)


@settings.command(name="set")
@click.argument("key")
@click.argument("value")
@pass_state
def set_setting(state: CliState, key: str, value: str):
    """Set one preference, e.g. `olive settings set theme dark`."""
    try:
        typed = coerce_preference(key, value)
        state.preferences.save_preferences({key: typed})
    except OliveLifecycleError as e:
        raise click.ClickException(str(e))
    get_console().print(f"[green]{escape(key)} = {escape(str(typed))}[/green]")


@settings.command(name="reset")
@click.confirmation_option(prompt="Reset all preferences to defaults?")
@pass_state
def reset_settings(state: CliState):
    """Restore the default preferences."""
    state.preferences.reset_preferences()
    get_console().print("[green]Preferences reset to defaults[/green]")
