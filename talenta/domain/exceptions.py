"""Domain error taxonomy.

Every error raised by the audio editor core derives from ``TalentaError`` so
callers can surface a single human-readable notification. The hierarchy
groups errors by where they originate:

- MediaError: capture and playback devices
- SegmentStoreError: local ordering primitives
- RemoteStoreError: the Talenta API (carries the HTTP status when known)
- ReconciliationError: an optimistic mutation that could not be confirmed
"""


class TalentaError(Exception):
    """Base class for all Talenta errors."""


# =============================================================================
# MEDIA
# =============================================================================


class MediaError(TalentaError):
    """Base class for capture and playback failures."""


class PermissionDenied(MediaError):
    """The user or the OS refused access to the capture device."""


class DeviceUnavailable(MediaError):
    """No capture device exists or it could not be opened."""


class RecorderBusy(MediaError):
    """The microphone is already held by another recording session."""


class RecorderNotActive(MediaError):
    """``stop()`` was called without an active recording session."""


class MediaLoadError(MediaError):
    """An audio source could not be loaded by the output device."""


class PlaybackError(MediaError):
    """Playback of the source at the cursor could not start."""


class PlaybackAdvanceError(PlaybackError):
    """Automatic advance to the next source could not start playback."""


# =============================================================================
# SEGMENT STORE
# =============================================================================


class SegmentStoreError(TalentaError):
    """Base class for local segment ordering errors."""


class IndexOutOfRange(SegmentStoreError, IndexError):
    """A segment position is outside ``0..N-1``."""


class InvalidReorderRange(SegmentStoreError):
    """Reorder indices fall outside the persisted segment range."""


# =============================================================================
# REMOTE STORE
# =============================================================================


class RemoteStoreError(TalentaError):
    """Base class for Talenta API failures."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class AuthenticationRequired(RemoteStoreError):
    """No bearer token is available, or the API rejected it."""


class NotFound(RemoteStoreError):
    """The audio entity or segment does not exist."""


class ValidationError(RemoteStoreError):
    """The API rejected submitted fields."""


class UploadRejected(RemoteStoreError):
    """The API refused an uploaded segment payload."""


class ConflictOrValidationError(RemoteStoreError):
    """The API refused a new segment order."""


class MergeFailed(RemoteStoreError):
    """The API could not publish and merge the audio."""


class Timeout(RemoteStoreError):
    """A remote call did not complete within the configured timeout."""


# =============================================================================
# RECONCILIATION
# =============================================================================


class OperationInProgress(TalentaError):
    """Another mutating operation for the same audio is awaiting confirmation."""


class ReconciliationError(TalentaError):
    """An optimistic mutation was rejected and local state was restored."""

    def __init__(self, message: str, cause: Exception | None = None) -> None:
        super().__init__(message)
        self.cause = cause


class ReorderFailed(ReconciliationError):
    """The remote store rejected a new segment order."""


class DeleteFailed(ReconciliationError):
    """The remote store failed to delete a segment."""


class UploadFailed(ReconciliationError):
    """A pending segment could not be uploaded; it stays pending."""
