"""Recording session entity.

A RecordingSession accumulates the chunks of one capture run and is
finalized into exactly one blob. It holds no device resources itself; the
recorder service owns the capture stream and destroys the session when it is
cleared or superseded.
"""

from attrs import define, field

from talenta.domain.recording.mime import FALLBACK_BLOB_MIME_TYPE

from .segment import AudioBlob


@define(slots=True)
class RecordingSession:
    """Mutable accumulator for one recording attempt."""

    mime_type: str
    chunks: list[bytes] = field(factory=list)
    elapsed_seconds: float = 0.0
    finalized: bool = False

    def add_chunk(self, chunk: bytes) -> None:
        if self.finalized:
            raise RuntimeError("Recording session is already finalized")
        if chunk:
            self.chunks.append(chunk)

    def advance(self, seconds: float) -> None:
        self.elapsed_seconds += seconds

    def finalize(self) -> AudioBlob:
        """Join the chunks into one blob. Only one blob is ever produced."""
        if self.finalized:
            raise RuntimeError("Recording session is already finalized")
        self.finalized = True
        return AudioBlob(
            data=b"".join(self.chunks),
            mime_type=self.mime_type or FALLBACK_BLOB_MIME_TYPE,
        )


@define(frozen=True, slots=True)
class RecordingResult:
    """Outcome of a finished recording: the blob, its duration and preview URL."""

    blob: AudioBlob
    elapsed_seconds: float
    preview_url: str | None = None
