"""Recorder adapter turning a capture device into finalized audio blobs.

The adapter owns at most one capture stream at a time. While recording, a
background task collects the encoded bytes once per chunk interval and
advances the elapsed-time counter; ``stop()`` drains the stream, releases the
microphone and emits exactly one blob together with a preview URL.
"""

import asyncio
import contextlib

from attrs import define, field

from talenta.config import get_logger, settings
from talenta.domain.entities import RecordingResult, RecordingSession
from talenta.domain.exceptions import (
    DeviceUnavailable,
    PermissionDenied,
    RecorderBusy,
    RecorderNotActive,
)
from talenta.domain.recording import negotiate_mime_type
from talenta.domain.repositories import (
    CaptureStream,
    MediaCaptureBackend,
    ObjectUrlRegistry,
)

logger = get_logger(__name__).bind(service="recorder")


@define(slots=True)
class RecorderAdapter:
    """Records one segment at a time from a ``MediaCaptureBackend``.

    Attributes:
        backend: Capture device
        object_urls: Registry used to expose the finished blob for preview
        chunk_interval: Seconds between chunk collections
        mime_candidates: Preferred encodings, first supported one wins
        auto_tick: Collect chunks from a background task; when False the
            caller drives collection through ``tick()``
    """

    backend: MediaCaptureBackend
    object_urls: ObjectUrlRegistry | None = None
    chunk_interval: float = field(
        factory=lambda: settings.recorder.chunk_interval_seconds
    )
    mime_candidates: tuple[str, ...] = field(
        factory=lambda: tuple(settings.recorder.mime_candidates), converter=tuple
    )
    auto_tick: bool = True
    session: RecordingSession | None = field(default=None, init=False)
    preview_url: str | None = field(default=None, init=False)
    _stream: CaptureStream | None = field(default=None, init=False, repr=False)
    _ticker: asyncio.Task[None] | None = field(default=None, init=False, repr=False)

    @property
    def is_recording(self) -> bool:
        return self._stream is not None

    @property
    def elapsed_seconds(self) -> float:
        return self.session.elapsed_seconds if self.session else 0.0

    async def start(self) -> str:
        """Acquire the microphone and begin collecting chunks.

        Returns:
            The negotiated MIME type ("" when unspecified)

        Raises:
            RecorderBusy: If a recording is already active
            PermissionDenied: If microphone access is refused
            DeviceUnavailable: If no capture device exists
        """
        if self.is_recording:
            raise RecorderBusy("A recording is already in progress")

        # A new recording supersedes the previous preview
        self._release_preview()
        self.session = None

        mime_type = negotiate_mime_type(
            self.backend.is_type_supported, self.mime_candidates
        )
        logger.debug(f"Negotiated recording MIME type: {mime_type or 'unspecified'}")

        try:
            stream = await self.backend.open_stream(mime_type)
        except (PermissionDenied, DeviceUnavailable) as e:
            logger.warning(f"Could not start recording: {e}")
            raise

        self._stream = stream
        self.session = RecordingSession(mime_type=mime_type)
        if self.auto_tick:
            self._ticker = asyncio.create_task(self._run_ticker())

        logger.info("Recording started", mime_type=mime_type)
        return mime_type

    async def tick(self) -> None:
        """Collect the bytes of one chunk interval and advance elapsed time."""
        if self._stream is None or self.session is None:
            raise RecorderNotActive("No active recording")
        chunk = await self._stream.read_available()
        self.session.add_chunk(chunk)
        self.session.advance(self.chunk_interval)

    async def stop(self) -> RecordingResult:
        """Finalize the recording and release the microphone.

        Raises:
            RecorderNotActive: If nothing is being recorded
        """
        if self._stream is None or self.session is None:
            raise RecorderNotActive("No active recording")

        await self._cancel_ticker()
        stream, session = self._stream, self.session
        self._stream = None

        trailing = await stream.close()
        session.add_chunk(trailing)
        blob = session.finalize()
        self.session = None

        if self.object_urls is not None:
            self.preview_url = self.object_urls.create(blob)

        logger.info(
            "Recording stopped",
            elapsed_seconds=session.elapsed_seconds,
            size=blob.size,
            chunks=len(session.chunks),
        )
        return RecordingResult(
            blob=blob,
            elapsed_seconds=session.elapsed_seconds,
            preview_url=self.preview_url,
        )

    async def discard(self) -> None:
        """Drop the current recording or preview without emitting a blob."""
        if self._stream is not None:
            await self._cancel_ticker()
            stream, self._stream = self._stream, None
            await stream.close()
            logger.info("Recording discarded")
        self.session = None
        self._release_preview()

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    async def _run_ticker(self) -> None:
        while True:
            await asyncio.sleep(self.chunk_interval)
            await self.tick()

    async def _cancel_ticker(self) -> None:
        ticker, self._ticker = self._ticker, None
        if ticker is None:
            return
        if ticker.done():
            exc = None if ticker.cancelled() else ticker.exception()
            if exc is not None:
                # The stream is still released by the caller
                logger.opt(exception=exc).error(
                    f"Chunk collection stopped early: {exc}"
                )
            return
        ticker.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await ticker

    def _release_preview(self) -> None:
        if self.preview_url is not None and self.object_urls is not None:
            self.object_urls.revoke(self.preview_url)
        self.preview_url = None
