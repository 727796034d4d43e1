"""Pure recording helpers: MIME negotiation and time formatting."""

from .mime import (
    DEFAULT_MIME_CANDIDATES,
    FALLBACK_BLOB_MIME_TYPE,
    UNSPECIFIED_MIME_TYPE,
    extension_for_mime_type,
    guess_mime_type,
    negotiate_mime_type,
)


def format_recording_time(seconds: float) -> str:
    """Format elapsed recording time as ``m:ss``."""
    total = int(seconds)
    return f"{total // 60}:{total % 60:02d}"


__all__ = [
    "DEFAULT_MIME_CANDIDATES",
    "FALLBACK_BLOB_MIME_TYPE",
    "UNSPECIFIED_MIME_TYPE",
    "extension_for_mime_type",
    "format_recording_time",
    "guess_mime_type",
    "negotiate_mime_type",
]
