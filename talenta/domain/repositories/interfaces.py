"""Domain interfaces for the collaborators the audio editor core depends on.

These protocols define the contracts for the remote store, credentials and
media devices without depending on infrastructure implementations, following
the dependency inversion principle.
"""

from collections.abc import Awaitable, Sequence
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from talenta.domain.entities import AudioBlob, AudioEntity


@runtime_checkable
class CredentialProvider(Protocol):
    """Supplies the bearer token for API calls."""

    def get_token(self) -> str | None:
        """Return the current token, or None when the user is signed out."""
        ...


class AudioStoreProtocol(Protocol):
    """Remote store for audio entities and their segments.

    Every method is a suspension point; implementations raise subclasses of
    ``RemoteStoreError`` (including ``Timeout``) on failure.
    """

    def fetch_audio(self, audio_id: str) -> Awaitable["AudioEntity"]:
        """Fetch an audio entity with its ordered segment list.

        Raises:
            NotFound: If the audio does not exist
        """
        ...

    def update_metadata(
        self, audio_id: str, fields: dict[str, object]
    ) -> Awaitable["AudioEntity"]:
        """Update metadata fields (title, description, tags, category, status).

        Raises:
            ValidationError: If the API rejects the fields
        """
        ...

    def upload_segments(
        self, audio_id: str, blobs: Sequence["AudioBlob"]
    ) -> Awaitable["AudioEntity"]:
        """Upload one or more segment payloads and return the updated entity.

        New segments are appended after the existing ones in upload order.

        Raises:
            UploadRejected: If the API refuses the payload
        """
        ...

    def reorder_segments(
        self, audio_id: str, segment_ids: Sequence[str], segment_urls: Sequence[str]
    ) -> Awaitable[None]:
        """Submit the complete new segment order.

        Raises:
            ConflictOrValidationError: If the API refuses the order
        """
        ...

    def delete_segment(self, audio_id: str, segment_id: str) -> Awaitable[None]:
        """Delete a segment by remote identifier.

        Raises:
            NotFound: If the segment does not exist remotely
        """
        ...

    def publish_with_merge(
        self, audio_id: str, merge: bool = True
    ) -> Awaitable["AudioEntity"]:
        """Publish the audio, asking the server to merge all segments.

        Raises:
            MergeFailed: If publishing or merging fails
        """
        ...


class CaptureStream(Protocol):
    """An open capture stream holding the microphone."""

    def read_available(self) -> Awaitable[bytes]:
        """Return the encoded bytes collected since the previous call."""
        ...

    def close(self) -> Awaitable[bytes]:
        """Stop capturing, release the device and return any trailing bytes."""
        ...


class MediaCaptureBackend(Protocol):
    """Audio capture device with MIME type negotiation."""

    def is_type_supported(self, mime_type: str) -> bool:
        """Whether the device can encode to ``mime_type``."""
        ...

    def open_stream(self, mime_type: str) -> Awaitable[CaptureStream]:
        """Acquire the microphone and start encoding.

        An empty ``mime_type`` lets the device choose its default encoding.

        Raises:
            PermissionDenied: If access to the microphone is refused
            DeviceUnavailable: If no capture device exists
        """
        ...


class AudioPlayerProtocol(Protocol):
    """Audio output device driven by the playlist sequencer.

    The device reports end-of-track and time updates back to the sequencer
    through ``PlaylistSequencer.on_track_ended`` and ``on_time_update``, and
    a source it loses mid-playback through ``on_playback_failed``.
    """

    def play(self, source: str, position: float = 0.0) -> Awaitable[float]:
        """Load ``source`` and start playing from ``position``.

        Returns:
            Duration of the source in seconds

        Raises:
            MediaLoadError: If the source cannot be loaded or started
        """
        ...

    def pause(self) -> None:
        """Pause the current source, keeping its position."""
        ...

    def seek(self, position: float) -> None:
        """Move the current source to ``position`` seconds."""
        ...

    def stop(self) -> None:
        """Stop and unload the current source."""
        ...


class ObjectUrlRegistry(Protocol):
    """Creates and revokes local preview URLs for in-memory blobs."""

    def create(self, blob: "AudioBlob") -> str:
        """Expose ``blob`` under a local URL."""
        ...

    def revoke(self, url: str) -> None:
        """Release the resources behind ``url``. Unknown URLs are ignored."""
        ...
