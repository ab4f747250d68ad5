"""Command-line entry point for the Olive Lifecycle Platform."""

import logging
from pathlib import Path

import click
from rich.console import Console
from rich.logging import RichHandler

from .. import __version__
from ..config import get_config, load_config
from .analytics import analytics
from .auth import auth
from .calendar import calendar
from .common import CliState, get_console, pass_state
from .fields import fields
from .reports import report
from .settings import settings
from .tasks import tasks


def setup_logging(level: str) -> None:
    """Route log records through rich on stderr."""
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False, rich_tracebacks=True)],
        force=True,
    )


@click.group()
@click.option("--config", type=click.Path(dir_okay=False), help="Path to config file")
@click.option("--verbose", "-v", is_flag=True, help="Verbose (DEBUG) logging")
@click.version_option(__version__, prog_name="olive")
@click.pass_context
def main(ctx, config, verbose):
    """Olive Lifecycle Platform - fields, tasks and analytics for olive groves."""
    try:
        loaded = load_config(Path(config)) if config else get_config()
    except OSError as e:
        raise click.ClickException(f"Configuration error: {e}")

    setup_logging("DEBUG" if verbose else loaded.log_level.upper())
    ctx.obj = CliState(loaded)


@main.command()
@click.option("--host", default="127.0.0.1", show_default=True, help="Host to bind the server to")
@click.option("--port", default=5000, type=int, show_default=True, help="Port to bind the server to")
@pass_state
def serve(state: CliState, host: str, port: int):
    """Run the development REST server."""
    from ..services.store import create_record_store
    from ..webapp import create_app, start_server

    store = create_record_store(state.config)
    app = create_app(
        store,
        state.auth_service(store),
        window_days=state.config.deadline_window_days,
        urgent_days=state.config.deadline_urgent_days,
    )
    source = "fixture data" if state.config.use_mock_data else state.config.api_base_url
    get_console().print(f"[bold cyan]Olive Lifecycle API[/bold cyan] on http://{host}:{port} ({source})")
    start_server(app, host=host, port=port, log_level=state.config.log_level.lower())


main.add_command(fields)
main.add_command(tasks)
main.add_command(analytics)
main.add_command(calendar)
main.add_command(report)
main.add_command(settings)
main.add_command(auth)
