"""In-memory collaborators for tests.

Each fake implements one of the domain protocols and records how it was
called. Failures and suspension are scripted per method name so tests can
drive rejection, timeout and single-flight scenarios deterministically.
"""

import asyncio
from collections.abc import Iterable, Sequence
from typing import Any

from talenta.domain.entities import (
    AudioBlob,
    AudioEntity,
    AudioStatus,
    MainTrack,
    Segment,
)
from talenta.domain.exceptions import MediaLoadError


def make_segments(count: int, prefix: str = "segment") -> list[Segment]:
    return [
        Segment.from_remote(
            remote_id=f"s{i}",
            url=f"https://cdn.test/{prefix}_{i}.webm",
            order=i - 1,
        )
        for i in range(1, count + 1)
    ]


def make_audio(
    audio_id: str = "a1", segment_count: int = 3, **overrides: Any
) -> AudioEntity:
    fields: dict[str, Any] = {
        "id": audio_id,
        "title": "Morning Show",
        "main_track": MainTrack(url="https://cdn.test/main.mp3", file_name="main.mp3"),
        "description": "Episode one",
        "tags": ["news"],
        "category": "podcast",
        "segments": make_segments(segment_count),
    }
    fields.update(overrides)
    return AudioEntity(**fields)


class FakeAudioStore:
    """AudioStoreProtocol backed by a single server-side entity."""

    def __init__(self, audio: AudioEntity) -> None:
        self.audio = audio
        self.calls: list[tuple[str, tuple[Any, ...]]] = []
        self.failures: dict[str, Exception] = {}
        self.gates: dict[str, asyncio.Event] = {}
        self.closed = False
        self._next_id = 100

    @property
    def call_names(self) -> list[str]:
        return [name for name, _ in self.calls]

    def calls_to(self, name: str) -> list[tuple[Any, ...]]:
        return [args for call, args in self.calls if call == name]

    async def fetch_audio(self, audio_id: str) -> AudioEntity:
        await self._enter("fetch_audio", audio_id)
        return self.audio

    async def update_metadata(
        self, audio_id: str, fields: dict[str, object]
    ) -> AudioEntity:
        await self._enter("update_metadata", audio_id, dict(fields))
        self.audio = self.audio.with_metadata(
            title=fields.get("title"),  # type: ignore[arg-type]
            description=fields.get("description"),  # type: ignore[arg-type]
            tags=fields.get("tags"),  # type: ignore[arg-type]
            category=fields.get("category"),  # type: ignore[arg-type]
        )
        if "status" in fields:
            self.audio = self.audio.with_status(AudioStatus.parse(str(fields["status"])))
        return self.audio

    async def upload_segments(
        self, audio_id: str, blobs: Sequence[AudioBlob]
    ) -> AudioEntity:
        await self._enter("upload_segments", audio_id, tuple(blobs))
        created = []
        for blob in blobs:
            self._next_id += 1
            name = blob.file_name or f"segment_{self._next_id}.{blob.extension}"
            created.append(
                Segment.from_remote(
                    remote_id=f"s{self._next_id}", url=f"https://cdn.test/{name}"
                )
            )
        self.audio = self.audio.with_segments([*self.audio.segments, *created])
        return self.audio

    async def reorder_segments(
        self, audio_id: str, segment_ids: Sequence[str], segment_urls: Sequence[str]
    ) -> None:
        await self._enter(
            "reorder_segments", audio_id, list(segment_ids), list(segment_urls)
        )
        by_id = {s.remote_id: s for s in self.audio.segments}
        self.audio = self.audio.with_segments([by_id[i] for i in segment_ids])

    async def delete_segment(self, audio_id: str, segment_id: str) -> None:
        await self._enter("delete_segment", audio_id, segment_id)
        self.audio = self.audio.with_segments(
            [s for s in self.audio.segments if s.remote_id != segment_id]
        )

    async def publish_with_merge(
        self, audio_id: str, merge: bool = True
    ) -> AudioEntity:
        await self._enter("publish_with_merge", audio_id, merge)
        self.audio = self.audio.with_status(AudioStatus.PUBLISHED)
        return self.audio

    async def aclose(self) -> None:
        self.closed = True

    async def _enter(self, name: str, *args: Any) -> None:
        self.calls.append((name, args))
        gate = self.gates.get(name)
        if gate is not None:
            await gate.wait()
        failure = self.failures.pop(name, None)
        if failure is not None:
            raise failure


class FakePlayer:
    """AudioPlayerProtocol that records transport events."""

    def __init__(
        self,
        durations: dict[str, float] | None = None,
        failing: Iterable[str] = (),
    ) -> None:
        self.durations = durations or {}
        self.failing = set(failing)
        self.events: list[tuple[Any, ...]] = []
        self.gate: asyncio.Event | None = None

    @property
    def played(self) -> list[str]:
        return [event[1] for event in self.events if event[0] == "play"]

    async def play(self, source: str, position: float = 0.0) -> float:
        self.events.append(("play", source, position))
        if self.gate is not None:
            await self.gate.wait()
        if source in self.failing:
            raise MediaLoadError(f"cannot decode {source}")
        return self.durations.get(source, 10.0)

    def pause(self) -> None:
        self.events.append(("pause",))

    def seek(self, position: float) -> None:
        self.events.append(("seek", position))

    def stop(self) -> None:
        self.events.append(("stop",))


class FakeCaptureStream:
    def __init__(self, chunks: Iterable[bytes], trailing: bytes = b"") -> None:
        self.chunks = list(chunks)
        self.trailing = trailing
        self.closed = False

    async def read_available(self) -> bytes:
        return self.chunks.pop(0) if self.chunks else b""

    async def close(self) -> bytes:
        self.closed = True
        return self.trailing


class FakeCaptureBackend:
    """MediaCaptureBackend producing scripted chunks."""

    def __init__(
        self,
        supported: Iterable[str] = ("audio/webm;codecs=opus", "audio/webm"),
        chunks: Iterable[bytes] = (),
        trailing: bytes = b"",
        error: Exception | None = None,
    ) -> None:
        self.supported = set(supported)
        self.chunks = list(chunks)
        self.trailing = trailing
        self.error = error
        self.opened: list[str] = []
        self.streams: list[FakeCaptureStream] = []

    def is_type_supported(self, mime_type: str) -> bool:
        return mime_type in self.supported

    async def open_stream(self, mime_type: str) -> FakeCaptureStream:
        if self.error is not None:
            raise self.error
        self.opened.append(mime_type)
        stream = FakeCaptureStream(self.chunks, self.trailing)
        self.streams.append(stream)
        return stream


class FakeObjectUrls:
    """ObjectUrlRegistry handing out ``blob:`` style URLs."""

    def __init__(self) -> None:
        self.active: dict[str, AudioBlob] = {}
        self.revoked: list[str] = []
        self._counter = 0

    def create(self, blob: AudioBlob) -> str:
        self._counter += 1
        url = f"blob:fake/{self._counter}"
        self.active[url] = blob
        return url

    def revoke(self, url: str) -> None:
        if self.active.pop(url, None) is not None:
            self.revoked.append(url)
