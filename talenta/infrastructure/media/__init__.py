"""Media device adapters built on ffmpeg tooling."""

from .ffmpeg_capture import FfmpegCaptureBackend, FfmpegCaptureStream
from .ffplay_player import FfplayPlayer
from .object_urls import TempFileObjectUrls

__all__ = [
    "FfmpegCaptureBackend",
    "FfmpegCaptureStream",
    "FfplayPlayer",
    "TempFileObjectUrls",
]
