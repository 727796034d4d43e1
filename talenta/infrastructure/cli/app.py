"""Talenta CLI - Main application entry point and app structure."""

from importlib.metadata import PackageNotFoundError, version
from typing import Annotated

from rich.console import Console
import typer

from talenta.config import configure_httpx_logging, get_logger, setup_loguru_logger
from talenta.infrastructure.cli import audio_commands
from talenta.infrastructure.cli.setup_commands import register_setup_commands
from talenta.infrastructure.cli.status_commands import register_status_commands

try:
    VERSION = version("talenta")
except PackageNotFoundError:
    VERSION = "0.0.0"

console = Console(width=80)
logger = get_logger(__name__)

app = typer.Typer(
    help=f"🎙️ Talenta v{VERSION} - Record, arrange and publish audio segments",
    no_args_is_help=True,
    rich_markup_mode="rich",
    add_completion=False,
    pretty_exceptions_enable=True,
    pretty_exceptions_short=True,
    pretty_exceptions_show_locals=False,
)

app.add_typer(
    audio_commands.app,
    name="audio",
    help="Edit audio entries and their segments",
    rich_help_panel="🎧 Audio",
)

register_status_commands(app)
register_setup_commands(app)


@app.command(name="version", rich_help_panel="⚙️ System")
def version_command() -> None:
    """Show version information."""
    console.print(
        f"[bold bright_blue]🎙️ Talenta[/bold bright_blue] [dim]v{VERSION}[/dim]"
    )


@app.callback()
def init_cli(
    ctx: typer.Context,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Enable verbose output"),
    ] = False,
) -> None:
    """Initialize Talenta CLI."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose

    setup_loguru_logger(verbose)
    configure_httpx_logging()


def main() -> int:
    """Application entry point."""
    try:
        return app() or 0
    except Exception:
        logger.exception("Unhandled exception")
        return 1
