"""In-memory ordered collection of an audio entity's segments.

The store is the single place where segment order changes. Every mutation
goes through ``append``/``remove``/``swap``/``replace``/``reset`` and leaves
order indices as a dense ``0..N-1`` sequence.

Subscribers are notified after every mutation with the new snapshot and a
``structural`` flag: True when membership or order changed, False when a
segment was replaced in place (a pending segment becoming persisted).
"""

from collections.abc import Callable, Iterable

from attrs import define, field

from talenta.domain.entities import Segment
from talenta.domain.exceptions import IndexOutOfRange

StoreListener = Callable[[tuple[Segment, ...], bool], None]


@define(slots=True)
class SegmentStore:
    """Ordered segments with copy-on-read snapshots."""

    _segments: list[Segment] = field(factory=list, converter=list)
    _listeners: list[StoreListener] = field(factory=list, init=False, repr=False)

    def __attrs_post_init__(self) -> None:
        self._reindex()

    def __len__(self) -> int:
        return len(self._segments)

    def __getitem__(self, index: int) -> Segment:
        self._check_index(index)
        return self._segments[index]

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def snapshot(self) -> tuple[Segment, ...]:
        """Immutable ordered view decoupled from internal state."""
        return tuple(self._segments)

    def index_of_remote(self, remote_id: str) -> int | None:
        for index, segment in enumerate(self._segments):
            if segment.remote_id == remote_id:
                return index
        return None

    def index_of_key(self, key: str) -> int | None:
        for index, segment in enumerate(self._segments):
            if segment.key == key:
                return index
        return None

    @property
    def persisted(self) -> list[Segment]:
        return [s for s in self._segments if not s.is_pending]

    @property
    def pending(self) -> list[Segment]:
        return [s for s in self._segments if s.is_pending]

    # -------------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------------

    def append(self, segment: Segment) -> Segment:
        """Add ``segment`` at the end and return it with its order index."""
        placed = segment.with_order(len(self._segments))
        self._segments.append(placed)
        self._notify(structural=True)
        return placed

    def remove(self, index: int) -> Segment:
        """Remove the segment at ``index``; later segments shift down by one."""
        self._check_index(index)
        removed = self._segments.pop(index)
        self._reindex()
        self._notify(structural=True)
        return removed

    def swap(self, index_a: int, index_b: int) -> None:
        """Exchange the segments at two positions."""
        self._check_index(index_a)
        self._check_index(index_b)
        segments = self._segments
        segments[index_a], segments[index_b] = segments[index_b], segments[index_a]
        self._reindex()
        self._notify(structural=True)

    def replace(self, index: int, segment: Segment) -> Segment:
        """Replace the segment at ``index`` in place, keeping its position."""
        self._check_index(index)
        placed = segment.with_order(index)
        self._segments[index] = placed
        self._notify(structural=False)
        return placed

    def reset(self, segments: Iterable[Segment]) -> None:
        """Replace the whole sequence, e.g. with authoritative remote state."""
        self._segments = list(segments)
        self._reindex()
        self._notify(structural=True)

    # -------------------------------------------------------------------------
    # Subscriptions
    # -------------------------------------------------------------------------

    def subscribe(self, listener: StoreListener) -> Callable[[], None]:
        """Register ``listener`` and return a function that unregisters it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _check_index(self, index: int) -> None:
        if not 0 <= index < len(self._segments):
            raise IndexOutOfRange(
                f"Segment index {index} out of range for {len(self._segments)} segments"
            )

    def _reindex(self) -> None:
        self._segments = [
            segment if segment.order == position else segment.with_order(position)
            for position, segment in enumerate(self._segments)
        ]

    def _notify(self, structural: bool) -> None:
        snapshot = self.snapshot()
        for listener in list(self._listeners):
            listener(snapshot, structural)
