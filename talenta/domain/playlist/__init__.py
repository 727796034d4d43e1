"""Segment ordering and playback sequencing."""

from .segment_store import SegmentStore, StoreListener
from .sequencer import PlaybackCursor, PlaybackState, PlaylistSequencer

__all__ = [
    "PlaybackCursor",
    "PlaybackState",
    "PlaylistSequencer",
    "SegmentStore",
    "StoreListener",
]
