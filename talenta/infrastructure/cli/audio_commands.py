"""Audio editing commands for Talenta CLI."""

import asyncio
from pathlib import Path
from typing import Annotated

from rich.console import Console
from rich.status import Status
import typer

from talenta.application.services import RecorderAdapter
from talenta.config import get_logger
from talenta.domain.entities import AudioBlob
from talenta.domain.exceptions import (
    MediaLoadError,
    PlaybackAdvanceError,
    PlaybackError,
)
from talenta.domain.playlist import PlaybackCursor, PlaybackState, PlaylistSequencer
from talenta.domain.recording import format_recording_time, guess_mime_type
from talenta.infrastructure.cli.async_helpers import (
    async_operation,
    audio_session,
    interactive_async_operation,
)
from talenta.infrastructure.cli.ui import display_audio, segment_table
from talenta.infrastructure.media import FfmpegCaptureBackend, FfplayPlayer

# Create audio subcommand app
app = typer.Typer(help="Edit audio entries and their segments")
console = Console()
logger = get_logger(__name__)

AudioId = Annotated[str, typer.Argument(help="Audio ID")]
AssumeYes = Annotated[
    bool, typer.Option("--yes", "-y", help="Skip the confirmation prompt")
]


@app.command()
def show(
    audio_id: AudioId,
    output_format: Annotated[
        str,
        typer.Option("--format", "-f", help="Output format (table, json)"),
    ] = "table",
) -> None:
    """Show an audio entry with its segments."""
    _show(audio_id, output_format)


@app.command()
def update(
    audio_id: AudioId,
    title: Annotated[str | None, typer.Option(help="New title")] = None,
    description: Annotated[str | None, typer.Option(help="New description")] = None,
    tags: Annotated[
        list[str] | None,
        typer.Option("--tag", "-t", help="Tag (repeat for several); replaces all tags"),
    ] = None,
    category: Annotated[str | None, typer.Option(help="New category")] = None,
) -> None:
    """Update title, description, tags or category."""
    if title is None and description is None and tags is None and category is None:
        console.print("[yellow]Nothing to update.[/yellow]")
        raise typer.Exit(0)
    _update(audio_id, title, description, tags, category)


@app.command()
def upload(
    audio_id: AudioId,
    files: Annotated[
        list[Path],
        typer.Argument(
            help="Audio files to append as segments",
            exists=True,
            dir_okay=False,
            readable=True,
        ),
    ],
) -> None:
    """Append audio files as new segments."""
    _upload(audio_id, files)


@app.command()
def record(
    audio_id: AudioId,
    duration: Annotated[
        float | None,
        typer.Option(
            "--duration", "-d", min=0.5, help="Stop after this many seconds"
        ),
    ] = None,
    save: Annotated[
        bool,
        typer.Option("--save/--no-save", help="Upload the recording as a segment"),
    ] = True,
) -> None:
    """Record a new segment from the microphone."""
    _record(audio_id, duration, save)


@app.command()
def reorder(
    audio_id: AudioId,
    from_position: Annotated[int, typer.Argument(min=1, help="Segment # to move")],
    to_position: Annotated[int, typer.Argument(min=1, help="Segment # to swap with")],
) -> None:
    """Swap two saved segments."""
    _reorder(audio_id, from_position - 1, to_position - 1)


@app.command(name="delete-segment")
def delete_segment(
    audio_id: AudioId,
    segment_id: Annotated[str, typer.Argument(help="Segment ID to delete")],
    yes: AssumeYes = False,
) -> None:
    """Delete a saved segment."""
    if not yes:
        typer.confirm(
            f"Delete segment {segment_id}? This cannot be undone.", abort=True
        )
    _delete_segment(audio_id, segment_id)


@app.command()
def publish(audio_id: AudioId, yes: AssumeYes = False) -> None:
    """Publish, merging the main track and all segments into one file."""
    if not yes:
        typer.confirm(
            "Publish and merge all segments into a single file?", abort=True
        )
    _publish(audio_id)


@app.command()
def draft(audio_id: AudioId) -> None:
    """Save pending changes and mark the audio as draft."""
    _draft(audio_id)


@app.command()
def play(audio_id: AudioId) -> None:
    """Play the main track and all segments back to back."""
    _play(audio_id)


# -------------------------------------------------------------------------
# Async implementations
# -------------------------------------------------------------------------


@async_operation("Loading audio...")
async def _show(audio_id: str, output_format: str) -> None:
    async with audio_session(audio_id) as controller:
        audio = controller.audio
    display_audio(audio, output_format=output_format)


@async_operation("Saving metadata...")
async def _update(
    audio_id: str,
    title: str | None,
    description: str | None,
    tags: list[str] | None,
    category: str | None,
) -> None:
    async with audio_session(audio_id) as controller:
        audio = await controller.save_metadata(title, description, tags, category)
    console.print("[bold green]✓ Metadata saved[/bold green]")
    display_audio(audio)


@async_operation("Uploading segments...")
async def _upload(audio_id: str, files: list[Path]) -> None:
    async with audio_session(audio_id) as controller:
        for path in files:
            controller.add_upload(
                AudioBlob(
                    data=path.read_bytes(),
                    mime_type=guess_mime_type(path.name),
                    file_name=path.name,
                )
            )
        persisted = await controller.persist_all_pending()
        snapshot = controller.store.snapshot()
    console.print(f"[bold green]✓ Uploaded {len(persisted)} segment(s)[/bold green]")
    console.print(segment_table(snapshot))


@interactive_async_operation()
async def _record(audio_id: str, duration: float | None, save: bool) -> None:
    async with audio_session(audio_id) as controller:
        backend = FfmpegCaptureBackend()
        # MIME negotiation in start() reads the cached encoder list
        await backend.load_encoders()
        recorder = RecorderAdapter(backend)
        mime_type = await recorder.start()
        try:
            if duration is None:
                console.print("[dim]Press Enter to stop recording.[/dim]")
            with console.status("Recording 0:00") as status:
                await _wait_for_stop(recorder, duration, status)
            result = await recorder.stop()
        finally:
            if recorder.is_recording:
                await recorder.discard()

        console.print(
            f"[bold green]✓ Recorded {format_recording_time(result.elapsed_seconds)}"
            f"[/bold green] [dim]({result.blob.size} bytes, "
            f"{mime_type or result.blob.mime_type})[/dim]"
        )
        if not save:
            return

        segment = controller.add_recording(result)
        with console.status("[bold blue]Uploading recording..."):
            persisted = await controller.persist_pending(segment)
        console.print(
            f"[bold green]✓ Saved as segment #{persisted.order + 1}[/bold green]"
        )


async def _wait_for_stop(
    recorder: RecorderAdapter, duration: float | None, status: Status
) -> None:
    enter_pressed = None if duration is not None else asyncio.create_task(
        asyncio.to_thread(input)
    )
    while True:
        status.update(f"Recording {format_recording_time(recorder.elapsed_seconds)}")
        if duration is not None and recorder.elapsed_seconds >= duration:
            return
        if enter_pressed is not None and enter_pressed.done():
            return
        await asyncio.sleep(0.1)


@async_operation("Saving segment order...")
async def _reorder(audio_id: str, from_index: int, to_index: int) -> None:
    async with audio_session(audio_id) as controller:
        snapshot = await controller.reorder(from_index, to_index)
    console.print("[bold green]✓ Segment order saved[/bold green]")
    console.print(segment_table(snapshot))


@async_operation("Deleting segment...")
async def _delete_segment(audio_id: str, segment_id: str) -> None:
    async with audio_session(audio_id) as controller:
        await controller.delete(segment_id)
        remaining = len(controller.store)
    console.print(
        f"[bold green]✓ Deleted segment {segment_id}[/bold green] "
        f"[dim]({remaining} remaining)[/dim]"
    )


@async_operation("Publishing and merging...")
async def _publish(audio_id: str) -> None:
    async with audio_session(audio_id) as controller:
        audio = await controller.publish_with_merge()
    console.print(f"[bold green]✓ Published {audio.title or audio.id}[/bold green]")


@async_operation("Saving draft...")
async def _draft(audio_id: str) -> None:
    async with audio_session(audio_id) as controller:
        audio = await controller.save_as_draft()
    console.print(f"[bold green]✓ Saved {audio.title or audio.id} as draft[/bold green]")


@interactive_async_operation()
async def _play(audio_id: str) -> None:
    async with audio_session(audio_id) as controller:
        player = FfplayPlayer()
        sequencer = PlaylistSequencer(
            controller.audio.main_track, controller.store, player
        )
        total = len(sequencer.source_list())
        finished = asyncio.Event()
        playback_errors: list[PlaybackError] = []

        def on_state(state: PlaybackState, cursor: PlaybackCursor) -> None:
            if state is PlaybackState.PLAYING:
                label = "main track" if cursor.index == 0 else f"segment {cursor.index}"
                console.print(f"▶ {cursor.index + 1}/{total} [dim]({label})[/dim]")
            elif state is PlaybackState.IDLE:
                finished.set()

        async def on_ended() -> None:
            try:
                await sequencer.on_track_ended()
            except PlaybackAdvanceError as e:
                playback_errors.append(e)

        async def on_error(error: MediaLoadError) -> None:
            try:
                await sequencer.on_playback_failed(error)
            except PlaybackError as e:
                playback_errors.append(e)

        sequencer.subscribe(on_state)
        player.on_ended = on_ended
        player.on_error = on_error
        try:
            await sequencer.play()
            await finished.wait()
        finally:
            sequencer.stop()
            sequencer.close()

        if playback_errors:
            raise playback_errors[0]
        console.print("[bold green]✓ Playback finished[/bold green]")
