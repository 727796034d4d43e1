"""MIME type negotiation and naming helpers for recorded and uploaded audio.

Pure functions with zero external dependencies.
"""

from collections.abc import Callable, Iterable

# Preferred recording encodings, tried in order. The first supported one wins.
DEFAULT_MIME_CANDIDATES: tuple[str, ...] = (
    "audio/webm;codecs=opus",
    "audio/webm",
    "audio/mp4",
)

# Empty string means "let the capture device pick its own encoding".
UNSPECIFIED_MIME_TYPE = ""

# Blob type used when the negotiated type is unspecified.
FALLBACK_BLOB_MIME_TYPE = "audio/webm"

_EXTENSION_MIME_TYPES = {
    "mp3": "audio/mpeg",
    "wav": "audio/wav",
    "ogg": "audio/ogg",
    "flac": "audio/flac",
    "webm": "audio/webm",
    "m4a": "audio/mp4",
    "mp4": "audio/mp4",
}

_MIME_EXTENSIONS = {
    "audio/webm": "webm",
    "audio/mp4": "m4a",
    "audio/mpeg": "mp3",
    "audio/wav": "wav",
    "audio/ogg": "ogg",
    "audio/flac": "flac",
}


def negotiate_mime_type(
    is_supported: Callable[[str], bool],
    candidates: Iterable[str] = DEFAULT_MIME_CANDIDATES,
) -> str:
    """Return the first candidate the capture device supports.

    Returns ``UNSPECIFIED_MIME_TYPE`` when none is supported.
    """
    for candidate in candidates:
        if candidate and is_supported(candidate):
            return candidate
    return UNSPECIFIED_MIME_TYPE


def guess_mime_type(file_name: str) -> str:
    """Guess an audio MIME type from a file name's extension.

    Unknown extensions default to ``audio/mpeg``.
    """
    _, dot, extension = file_name.rpartition(".")
    if not dot:
        return "audio/mpeg"
    return _EXTENSION_MIME_TYPES.get(extension.lower(), "audio/mpeg")


def extension_for_mime_type(mime_type: str) -> str:
    """File extension for a MIME type, ignoring codec parameters."""
    essence = mime_type.split(";", 1)[0].strip().lower()
    return _MIME_EXTENSIONS.get(essence, "webm")
