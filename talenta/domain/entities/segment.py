"""Segment-related domain entities.

Pure segment representations and related value objects with zero external
dependencies.
"""

from enum import Enum
from uuid import uuid4

import attrs
from attrs import define, field, validators

from talenta.domain.recording.mime import extension_for_mime_type


class SegmentProvenance(Enum):
    """How a segment entered the playlist."""

    RECORDED = "recorded"
    UPLOADED = "uploaded"

    @property
    def file_prefix(self) -> str:
        """File name prefix the API stores for this provenance."""
        return "recorded" if self is SegmentProvenance.RECORDED else "segment"


@define(frozen=True, slots=True)
class AudioBlob:
    """Binary audio payload held locally before upload."""

    data: bytes = field(validator=validators.instance_of(bytes), repr=False)
    mime_type: str = field(default="audio/webm")
    file_name: str | None = field(default=None)

    @property
    def size(self) -> int:
        return len(self.data)

    @property
    def extension(self) -> str:
        return extension_for_mime_type(self.mime_type)


@define(frozen=True, slots=True)
class Segment:
    """One appended audio unit in an audio entity's playlist.

    A segment is either *pending* (it only exists locally as a blob, possibly
    with a preview URL) or *persisted* (the API assigned it a remote id and a
    URL). ``key`` is a local identity that survives the pending -> persisted
    transition, so callers can track a segment across an upload.
    """

    provenance: SegmentProvenance = field(
        validator=validators.instance_of(SegmentProvenance)
    )
    order: int = field(default=0)
    remote_id: str | None = field(default=None)
    url: str | None = field(default=None)
    blob: AudioBlob | None = field(default=None)
    local_url: str | None = field(default=None)
    key: str = field(factory=lambda: uuid4().hex)

    def __attrs_post_init__(self) -> None:
        if self.remote_id is None:
            if self.blob is None:
                raise ValueError("Pending segment requires a blob payload")
        elif not self.url:
            raise ValueError(f"Persisted segment {self.remote_id} requires a URL")

    @classmethod
    def pending(
        cls,
        blob: AudioBlob,
        provenance: SegmentProvenance,
        local_url: str | None = None,
    ) -> "Segment":
        """Create a segment that exists only locally."""
        return cls(provenance=provenance, blob=blob, local_url=local_url)

    @classmethod
    def from_remote(cls, remote_id: str, url: str, order: int = 0) -> "Segment":
        """Create a persisted segment from the API's stored reference.

        Recordings are stored under a ``recorded_`` file name, everything else
        counts as an upload.
        """
        names = (url.rsplit("/", 1)[-1], remote_id.rsplit("/", 1)[-1])
        provenance = (
            SegmentProvenance.RECORDED
            if any(name.startswith("recorded_") for name in names)
            else SegmentProvenance.UPLOADED
        )
        return cls(provenance=provenance, order=order, remote_id=remote_id, url=url)

    @property
    def is_pending(self) -> bool:
        return self.remote_id is None

    @property
    def source(self) -> str | None:
        """Playable reference: the remote URL, else the local preview URL."""
        return self.url or self.local_url

    def with_order(self, order: int) -> "Segment":
        return attrs.evolve(self, order=order)

    def persisted(self, remote_id: str, url: str) -> "Segment":
        """Return the persisted form of this segment, keeping position and key."""
        if not self.is_pending:
            raise ValueError(f"Segment {self.remote_id} is already persisted")
        return attrs.evolve(
            self, remote_id=remote_id, url=url, blob=None, local_url=None
        )
