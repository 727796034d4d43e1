"""Audio-related domain entities.

Pure audio representations and related value objects with zero external
dependencies.
"""

from datetime import datetime
from enum import Enum
from typing import Any

import attrs
from attrs import define, field, validators

from .segment import Segment


class AudioStatus(Enum):
    """Lifecycle status of an audio entity."""

    DRAFT = "DRAFT"
    PUBLISHED = "PUBLISHED"

    @classmethod
    def parse(cls, value: str | None) -> "AudioStatus":
        """Parse the API's status string, which may arrive in either case."""
        if not value:
            return cls.DRAFT
        return cls(value.upper())


@define(frozen=True, slots=True)
class MainTrack:
    """The original uploaded or recorded file of an audio entity."""

    url: str = field(validator=validators.instance_of(str))
    file_name: str | None = field(default=None)


def _to_frozenset(value: Any) -> frozenset[str]:
    return frozenset(value or ())


@define(frozen=True, slots=True)
class AudioEntity:
    """Top-level audio content item owning a main track and ordered segments.

    The main track always plays first; ``segments`` hold playback positions
    1..N in stored order. Segments here are the persisted ones as reported by
    the API. Pending local segments live in the ``SegmentStore`` only.
    """

    id: str = field(validator=validators.instance_of(str))
    title: str = field(validator=validators.instance_of(str))
    main_track: MainTrack = field(validator=validators.instance_of(MainTrack))
    description: str | None = field(default=None)
    tags: frozenset[str] = field(factory=frozenset, converter=_to_frozenset)
    category: str | None = field(default=None)
    status: AudioStatus = field(default=AudioStatus.DRAFT)
    segments: tuple[Segment, ...] = field(factory=tuple, converter=tuple)
    created_at: datetime | None = field(default=None)

    @property
    def segment_ids(self) -> list[str]:
        """Remote identifiers of all persisted segments, in order."""
        return [s.remote_id for s in self.segments if s.remote_id is not None]

    @property
    def is_published(self) -> bool:
        return self.status is AudioStatus.PUBLISHED

    def with_status(self, status: AudioStatus) -> "AudioEntity":
        return attrs.evolve(self, status=status)

    def with_segments(self, segments: list[Segment]) -> "AudioEntity":
        return attrs.evolve(self, segments=tuple(segments))

    def with_metadata(
        self,
        title: str | None = None,
        description: str | None = None,
        tags: set[str] | frozenset[str] | None = None,
        category: str | None = None,
    ) -> "AudioEntity":
        """Create a new entity with the given metadata fields replaced."""
        changes: dict[str, Any] = {}
        if title is not None:
            changes["title"] = title
        if description is not None:
            changes["description"] = description
        if tags is not None:
            changes["tags"] = tags
        if category is not None:
            changes["category"] = category
        return attrs.evolve(self, **changes)
