"""Headless audio output through ffplay.

Each source runs in its own ``ffplay -nodisp -autoexit`` process. When a
process exits on its own the player reports end-of-track through the
``on_ended`` callback, which the playlist sequencer uses to advance.
Seeking restarts the process from the new offset; if the restart cannot
load the source the failure is reported through ``on_error``.
Pausing suspends the process with SIGSTOP; resuming the same source sends
SIGCONT instead of starting it again.
"""

import asyncio
from collections.abc import Awaitable, Callable
import contextlib
import signal
from urllib.parse import unquote, urlparse

from attrs import define, field

from talenta.config import get_logger
from talenta.domain.exceptions import MediaLoadError

logger = get_logger(__name__).bind(service="playback")


def _local_path(source: str) -> str:
    parsed = urlparse(source)
    if parsed.scheme == "file":
        return unquote(parsed.path)
    return source


@define(slots=True)
class FfplayPlayer:
    """``AudioPlayerProtocol`` implementation backed by ffplay and ffprobe."""

    ffplay_binary: str = "ffplay"
    ffprobe_binary: str = "ffprobe"
    on_ended: Callable[[], Awaitable[None]] | None = None
    on_error: Callable[[MediaLoadError], Awaitable[None]] | None = None
    _process: asyncio.subprocess.Process | None = field(
        default=None, init=False, repr=False
    )
    _watcher: asyncio.Task[None] | None = field(default=None, init=False, repr=False)
    _restart: asyncio.Task[None] | None = field(default=None, init=False, repr=False)
    _source: str | None = field(default=None, init=False)
    _paused: bool = field(default=False, init=False)

    async def play(self, source: str, position: float = 0.0) -> float:
        if self._paused and source == self._source and self._process is not None:
            self._signal(signal.SIGCONT)
            self._paused = False
            return await self.probe_duration(source)

        self.stop()
        duration = await self.probe_duration(source)
        cmd = [
            self.ffplay_binary,
            "-nodisp",
            "-autoexit",
            "-loglevel", "error",
            "-ss", f"{max(0.0, position):.3f}",
            _local_path(source),
        ]
        try:
            process = await asyncio.create_subprocess_exec(
                *cmd,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.DEVNULL,
            )
        except FileNotFoundError as e:
            raise MediaLoadError(f"{self.ffplay_binary} not found on PATH") from e

        self._process = process
        self._source = source
        self._watcher = asyncio.create_task(self._watch(process))
        logger.debug(f"Playing {source} from {position:.1f}s")
        return duration

    def pause(self) -> None:
        if self._process is not None and not self._paused:
            self._signal(signal.SIGSTOP)
            self._paused = True

    def seek(self, position: float) -> None:
        # ffplay cannot seek a headless process; restart from the new offset
        if self._source is None:
            return
        source, paused = self._source, self._paused
        self.stop()
        if paused:
            # Resuming starts again from the sequencer's new position
            return
        self._restart = asyncio.get_running_loop().create_task(
            self._restart_at(source, position)
        )

    def stop(self) -> None:
        restart, self._restart = self._restart, None
        if (
            restart is not None
            and not restart.done()
            and restart is not asyncio.current_task()
        ):
            restart.cancel()
        process, self._process = self._process, None
        watcher, self._watcher = self._watcher, None
        self._source = None
        if watcher is not None:
            watcher.cancel()
        if process is not None and process.returncode is None:
            with contextlib.suppress(ProcessLookupError):
                if self._paused:
                    process.send_signal(signal.SIGCONT)
                process.kill()
        self._paused = False

    async def probe_duration(self, source: str) -> float:
        """Read the source duration with ffprobe.

        Raises:
            MediaLoadError: If ffprobe is missing or cannot read the source
        """
        try:
            process = await asyncio.create_subprocess_exec(
                self.ffprobe_binary,
                "-v", "error",
                "-show_entries", "format=duration",
                "-of", "default=noprint_wrappers=1:nokey=1",
                _local_path(source),
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except FileNotFoundError as e:
            raise MediaLoadError(f"{self.ffprobe_binary} not found on PATH") from e

        stdout, stderr = await process.communicate()
        if process.returncode != 0:
            raise MediaLoadError(
                f"Cannot load {source}: {stderr.decode(errors='replace').strip()}"
            )
        try:
            return float(stdout.decode().strip())
        except ValueError as e:
            raise MediaLoadError(f"Cannot read duration of {source}") from e

    async def _restart_at(self, source: str, position: float) -> None:
        try:
            await self.play(source, position)
        except MediaLoadError as e:
            logger.warning(f"Restart of {source} at {position:.1f}s failed: {e}")
            if self.on_error is not None:
                await self.on_error(e)

    async def _watch(self, process: asyncio.subprocess.Process) -> None:
        returncode = await process.wait()
        if process is not self._process:
            return
        self._process = None
        self._watcher = None
        if returncode != 0:
            logger.warning(f"ffplay exited with status {returncode}")
        if self.on_ended is not None:
            await self.on_ended()

    def _signal(self, signum: int) -> None:
        if self._process is not None and self._process.returncode is None:
            with contextlib.suppress(ProcessLookupError):
                self._process.send_signal(signum)
