"""UI helpers for CLI interaction.

This module provides reusable UI components and helpers for the CLI,
keeping the presentation logic separate from business logic.
"""

from collections.abc import Callable, Sequence
import functools
import json
from typing import ParamSpec, TypeVar

from rich.console import Console
from rich.table import Table
import typer

from talenta.config import get_logger
from talenta.domain.entities import AudioEntity, Segment
from talenta.domain.exceptions import TalentaError

# Initialize console and logger
console = Console()
logger = get_logger(__name__)

P = ParamSpec("P")
R = TypeVar("R")


def command_error_handler(func: Callable[P, R]) -> Callable[P, R]:
    """Decorator to standardize error handling for CLI commands.

    This decorator wraps a command function to:
    1. Provide consistent error handling using Typer's Exit mechanism
    2. Log errors using Loguru with proper context
    3. Display user-friendly error messages with Rich

    Args:
        func: The command function to wrap

    Returns:
        Wrapped function with integrated error handling
    """

    @functools.wraps(func)
    def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
        operation = func.__name__.strip("_").replace("_", " ")

        with logger.contextualize(operation=operation):
            try:
                logger.debug(f"Executing {operation}")
                return func(*args, **kwargs)

            except typer.Exit:
                raise

            except typer.Abort:
                logger.info(f"Operation {operation} aborted by user")
                raise

            except TalentaError as e:
                # Expected failures: no traceback on the console
                logger.opt(exception=e).debug(f"Error during {operation}")
                logger.error(f"{type(e).__name__} during {operation}: {e}")
                console.print(f"\n[bold red]✗ Error during {operation}:[/bold red] {e}")
                raise typer.Exit(code=1) from e

            except Exception as e:
                logger.exception(f"Error during {operation}")
                console.print(f"\n[bold red]✗ Error during {operation}:[/bold red] {e}")
                raise typer.Exit(code=1) from e

    return wrapper


def display_audio(
    audio: AudioEntity,
    segments: Sequence[Segment] | None = None,
    output_format: str = "table",
) -> None:
    """Print an audio entity with its segments.

    Args:
        audio: Audio entity to show
        segments: Local segment order, including pending ones; defaults to
            the entity's persisted segments
        output_format: "table" or "json"
    """
    segments = audio.segments if segments is None else segments

    if output_format == "json":
        console.print_json(json.dumps(audio_to_dict(audio, segments)))
        return

    console.print(f"\n[bold blue]{audio.title or '(untitled)'}[/bold blue]")

    summary = Table(show_header=False, box=None, padding=(0, 2))
    summary.add_column(style="cyan")
    summary.add_column(style="green")
    summary.add_row("ID", audio.id)
    summary.add_row("Status", status_label(audio))
    summary.add_row("Category", audio.category or "—")
    summary.add_row("Tags", ", ".join(sorted(audio.tags)) or "—")
    if audio.description:
        summary.add_row("Description", audio.description)
    summary.add_row("Main track", audio.main_track.file_name or audio.main_track.url)
    console.print(summary)

    if not segments:
        console.print("\n[dim]No segments yet.[/dim]\n")
        return

    console.print()
    console.print(segment_table(segments))
    console.print()


def segment_table(segments: Sequence[Segment]) -> Table:
    table = Table(title="Segments")
    table.add_column("#", style="dim", justify="right")
    table.add_column("Segment ID", style="cyan")
    table.add_column("Source", style="green")
    table.add_column("State", style="yellow")

    for segment in segments:
        table.add_row(
            str(segment.order + 1),
            segment.remote_id or "—",
            segment.provenance.value,
            "pending" if segment.is_pending else "saved",
        )
    return table


def status_label(audio: AudioEntity) -> str:
    if audio.is_published:
        return "[bold green]Published[/bold green]"
    return "[yellow]Draft[/yellow]"


def audio_to_dict(
    audio: AudioEntity, segments: Sequence[Segment]
) -> dict[str, object]:
    return {
        "id": audio.id,
        "title": audio.title,
        "description": audio.description,
        "tags": sorted(audio.tags),
        "category": audio.category,
        "status": audio.status.value,
        "fileUrl": audio.main_track.url,
        "createdAt": audio.created_at.isoformat() if audio.created_at else None,
        "segments": [
            {
                "position": s.order + 1,
                "publicId": s.remote_id,
                "url": s.url,
                "provenance": s.provenance.value,
                "pending": s.is_pending,
            }
            for s in segments
        ],
    }
