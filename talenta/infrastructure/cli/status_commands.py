"""Service status commands for Talenta CLI."""

import asyncio
import shutil

from rich.console import Console
from rich.table import Table
import typer

from talenta.config import get_logger, resilient_operation, settings
from talenta.infrastructure.cli.async_helpers import async_operation
from talenta.infrastructure.connectors import (
    TalentaApiConnector,
    credential_provider_from_settings,
)
from talenta.infrastructure.media import FfmpegCaptureBackend

# Initialize console and logger
console = Console()
logger = get_logger(__name__)

SERVICES = ["Talenta API", "Credentials", "Recording", "Playback"]


def register_status_commands(app: typer.Typer) -> None:
    """Register status commands with the Typer app."""
    app.command(
        name="status",
        help="Check API, credentials and audio tooling",
        rich_help_panel="⚙️ System",
    )(status)


@resilient_operation("api_check")
async def _check_api() -> tuple[bool, str]:
    async with TalentaApiConnector() as connector:
        status_code = await connector.ping()
    if status_code >= 500:
        return False, f"{settings.api.base_url} answered {status_code}"
    return True, f"Reachable at {settings.api.base_url}"


async def _check_credentials() -> tuple[bool, str]:
    if credential_provider_from_settings().get_token():
        return True, "API token configured"
    return False, "No token - run 'talenta login'"


async def _check_recording() -> tuple[bool, str]:
    backend = FfmpegCaptureBackend()
    candidates = settings.recorder.mime_candidates
    await backend.load_encoders()
    supported = [m for m in candidates if backend.is_type_supported(m)]
    if not supported:
        return False, f"{backend.ffmpeg_binary} missing or lacks opus/aac encoders"
    return True, f"{backend.input_format}:{backend.input_device} → {supported[0]}"


async def _check_playback() -> tuple[bool, str]:
    missing = [b for b in ("ffplay", "ffprobe") if shutil.which(b) is None]
    if missing:
        return False, f"Not found: {', '.join(missing)}"
    return True, "ffplay and ffprobe available"


async def _check_connections() -> list[tuple[str, bool, str]]:
    """Run all checks concurrently.

    Returns:
        list[tuple[str, bool, str]]: List of (service_name, is_ok, details)
    """
    results = await asyncio.gather(
        _check_api(),
        _check_credentials(),
        _check_recording(),
        _check_playback(),
        return_exceptions=True,
    )

    def process_result(service: str, result: object) -> tuple[str, bool, str]:
        match result:
            case Exception() as e:
                return service, False, f"Error: {e!s}"
            case (is_ok, details):
                return service, bool(is_ok), str(details)
            case _:
                return service, False, "Invalid response format"

    return [
        process_result(service, result)
        for service, result in zip(SERVICES, results, strict=True)
    ]


def status() -> None:
    """Check API, credentials and audio tooling."""
    _run_status_check()


@async_operation("Checking services...")
async def _run_status_check() -> None:
    results = await _check_connections()

    table = Table(title="Talenta Status")
    table.add_column("Service", style="cyan")
    table.add_column("Status", style="bold")
    table.add_column("Details", style="dim")

    for service, ok, details in results:
        status_text = "[green]✓ OK[/green]" if ok else "[red]✗ Unavailable[/red]"
        table.add_row(service, status_text, details)

    console.print(table)

    logger.success(
        "Status check completed",
        ok=sum(1 for _, ok, _ in results if ok),
        total=len(SERVICES),
    )
