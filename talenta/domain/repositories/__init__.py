"""Domain interfaces following Clean Architecture principles.

These interfaces define the contracts for remote storage and media devices
without depending on infrastructure implementations.
"""

from .interfaces import (
    AudioPlayerProtocol,
    AudioStoreProtocol,
    CaptureStream,
    CredentialProvider,
    MediaCaptureBackend,
    ObjectUrlRegistry,
)

__all__ = [
    "AudioPlayerProtocol",
    "AudioStoreProtocol",
    "CaptureStream",
    "CredentialProvider",
    "MediaCaptureBackend",
    "ObjectUrlRegistry",
]
