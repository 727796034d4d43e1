"""Microphone capture through an ffmpeg subprocess.

ffmpeg reads the configured input device and writes an encoded container to
stdout. A reader task drains the pipe continuously so the encoder never
blocks; the recorder collects whatever has accumulated once per chunk
interval.
"""

import asyncio
import contextlib
import subprocess
from typing import ClassVar

from attrs import define, field

from talenta.config import get_logger, settings
from talenta.domain.exceptions import DeviceUnavailable, PermissionDenied

logger = get_logger(__name__).bind(service="capture")

_READ_SIZE = 4096


@define(slots=True)
class FfmpegCaptureStream:
    """A running ffmpeg process holding the capture device."""

    process: asyncio.subprocess.Process
    shutdown_timeout: float = 5.0
    _buffer: bytearray = field(factory=bytearray, init=False, repr=False)
    _reader: asyncio.Task[None] | None = field(default=None, init=False, repr=False)

    def __attrs_post_init__(self) -> None:
        self._reader = asyncio.create_task(self._drain())

    async def read_available(self) -> bytes:
        data = bytes(self._buffer)
        self._buffer.clear()
        return data

    async def close(self) -> bytes:
        """Ask ffmpeg to finish the container, then return the trailing bytes."""
        if self.process.returncode is None:
            # SIGTERM lets ffmpeg write the container trailer before exiting
            with contextlib.suppress(ProcessLookupError):
                self.process.terminate()
            try:
                await asyncio.wait_for(self.process.wait(), self.shutdown_timeout)
            except TimeoutError:
                logger.warning("ffmpeg did not exit after SIGTERM, killing it")
                with contextlib.suppress(ProcessLookupError):
                    self.process.kill()
                await self.process.wait()

        if self._reader is not None:
            await self._reader
            self._reader = None
        return await self.read_available()

    async def _drain(self) -> None:
        stdout = self.process.stdout
        if stdout is None:
            return
        while chunk := await stdout.read(_READ_SIZE):
            self._buffer.extend(chunk)


@define(slots=True)
class FfmpegCaptureBackend:
    """Capture backend encoding the default input device with ffmpeg.

    Attributes:
        ffmpeg_binary: ffmpeg executable
        input_format: ffmpeg input device format (pulse, alsa, avfoundation, ...)
        input_device: Device name for the input format
        sample_rate: Capture sample rate in Hz
        startup_grace: Seconds to wait for ffmpeg to fail on device open
        encoder_list_timeout: Seconds to wait for ``ffmpeg -encoders``
    """

    ffmpeg_binary: str = field(factory=lambda: settings.recorder.ffmpeg_binary)
    input_format: str = field(factory=lambda: settings.recorder.input_format)
    input_device: str = field(factory=lambda: settings.recorder.input_device)
    sample_rate: int = field(factory=lambda: settings.recorder.sample_rate)
    startup_grace: float = 0.3
    encoder_list_timeout: float = 5.0
    _encoders: frozenset[str] | None = field(default=None, init=False, repr=False)

    # MIME type -> (ffmpeg muxer, acceptable encoders in preference order)
    FORMATS: ClassVar[dict[str, tuple[str, tuple[str, ...]]]] = {
        "audio/webm;codecs=opus": ("webm", ("libopus",)),
        "audio/webm": ("webm", ("libopus", "libvorbis")),
        "audio/mp4": ("mp4", ("aac",)),
        "audio/ogg": ("ogg", ("libopus", "libvorbis")),
    }

    async def load_encoders(self) -> frozenset[str]:
        """Discover available encoders off the event loop and cache them."""
        return await asyncio.to_thread(self._available_encoders)

    def is_type_supported(self, mime_type: str) -> bool:
        if not mime_type:
            return True
        return self._encoder_for(mime_type) is not None

    async def open_stream(self, mime_type: str) -> FfmpegCaptureStream:
        cmd = self.build_command(mime_type)
        logger.debug(f"Starting capture: {' '.join(cmd)}")
        try:
            process = await asyncio.create_subprocess_exec(
                *cmd,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except FileNotFoundError as e:
            raise DeviceUnavailable(f"{self.ffmpeg_binary} not found on PATH") from e

        # A device that cannot be opened makes ffmpeg exit almost immediately
        try:
            await asyncio.wait_for(process.wait(), self.startup_grace)
        except TimeoutError:
            return FfmpegCaptureStream(process)

        stderr = await process.stderr.read() if process.stderr else b""
        raise _capture_error(stderr.decode(errors="replace"), self.input_device)

    def build_command(self, mime_type: str) -> list[str]:
        """ffmpeg arguments capturing the input device into ``mime_type``."""
        muxer, encoder = self._output_for(mime_type)
        cmd = [
            self.ffmpeg_binary,
            "-hide_banner",
            "-loglevel", "error",
            "-f", self.input_format,
            "-i", self.input_device,
            "-ac", "1",
            "-ar", str(self.sample_rate),
            "-c:a", encoder,
        ]
        if muxer == "mp4":
            # Plain mp4 needs a seekable output; fragment it for the pipe
            cmd += ["-movflags", "frag_keyframe+empty_moov"]
        return [*cmd, "-f", muxer, "pipe:1"]

    def _output_for(self, mime_type: str) -> tuple[str, str]:
        if mime_type:
            encoder = self._encoder_for(mime_type)
            if encoder is None:
                raise DeviceUnavailable(f"ffmpeg cannot encode {mime_type}")
            return self.FORMATS[mime_type][0], encoder
        # Unspecified: let the first usable webm encoder decide
        return "webm", self._encoder_for("audio/webm") or "libopus"

    def _encoder_for(self, mime_type: str) -> str | None:
        fmt = self.FORMATS.get(mime_type)
        if fmt is None:
            return None
        available = self._available_encoders()
        return next((name for name in fmt[1] if name in available), None)

    def _available_encoders(self) -> frozenset[str]:
        if self._encoders is None:
            self._encoders = _list_encoders(
                self.ffmpeg_binary, self.encoder_list_timeout
            )
        return self._encoders


def _list_encoders(ffmpeg_binary: str, timeout: float) -> frozenset[str]:
    try:
        result = subprocess.run(
            [ffmpeg_binary, "-hide_banner", "-encoders"],
            capture_output=True,
            text=True,
            check=False,
            timeout=timeout,
        )
    except FileNotFoundError:
        logger.warning(f"{ffmpeg_binary} not found, no capture formats available")
        return frozenset()
    except subprocess.TimeoutExpired:
        logger.warning(f"{ffmpeg_binary} -encoders timed out after {timeout}s")
        return frozenset()

    # Legend first, then " ------", then rows like " A....D libopus  libopus Opus"
    _, separator, table = result.stdout.partition("------")
    if not separator:
        return frozenset()
    names = set()
    for line in table.splitlines():
        parts = line.split()
        if len(parts) >= 2 and parts[0].startswith("A") and len(parts[0]) == 6:
            names.add(parts[1])
    return frozenset(names)


def _capture_error(stderr: str, device: str) -> PermissionDenied | DeviceUnavailable:
    message = stderr.strip().splitlines()[-1] if stderr.strip() else "ffmpeg exited"
    if "permission denied" in stderr.lower():
        return PermissionDenied(f"Microphone access denied for {device}: {message}")
    return DeviceUnavailable(f"Could not open capture device {device}: {message}")
