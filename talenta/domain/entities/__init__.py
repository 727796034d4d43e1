"""Core domain entities representing audio editing concepts."""

from .audio import AudioEntity, AudioStatus, MainTrack
from .recording import RecordingResult, RecordingSession
from .segment import AudioBlob, Segment, SegmentProvenance

__all__ = [
    # Audio entities
    "AudioEntity",
    "AudioStatus",
    "MainTrack",
    # Segment entities
    "AudioBlob",
    "Segment",
    "SegmentProvenance",
    # Recording entities
    "RecordingResult",
    "RecordingSession",
]
