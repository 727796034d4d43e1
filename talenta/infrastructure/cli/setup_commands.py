"""Sign-in commands for Talenta CLI."""

from typing import Annotated

from rich.console import Console
import typer

from talenta.config import get_logger, settings
from talenta.infrastructure.cli.ui import command_error_handler
from talenta.infrastructure.connectors import TokenFileCredentialProvider

# Initialize console and logger
console = Console()
logger = get_logger(__name__)


def register_setup_commands(app: typer.Typer) -> None:
    """Register sign-in commands with the Typer app."""
    app.command(
        name="login",
        help="Save an API token for later commands",
        rich_help_panel="⚙️ System",
    )(login)
    app.command(
        name="logout",
        help="Forget the saved API token",
        rich_help_panel="⚙️ System",
    )(logout)


@command_error_handler
def login(
    token: Annotated[
        str | None,
        typer.Option("--token", help="API token; prompted for when omitted"),
    ] = None,
) -> None:
    """Save an API token for later commands."""
    if token is None:
        token = typer.prompt("API token", hide_input=True)
    if not token.strip():
        console.print("[red]Token must not be empty.[/red]")
        raise typer.Exit(1)

    TokenFileCredentialProvider(settings.credentials.token_file).save(token)
    token_file = settings.credentials.token_file
    console.print(f"[bold green]✓ Token saved[/bold green] [dim]({token_file})[/dim]")


@command_error_handler
def logout() -> None:
    """Forget the saved API token."""
    if TokenFileCredentialProvider(settings.credentials.token_file).clear():
        console.print("[bold green]✓ Signed out[/bold green]")
    else:
        console.print("[yellow]No saved token.[/yellow]")
