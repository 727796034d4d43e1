"""Tests for RecorderAdapter capture lifecycle."""

import asyncio

import pytest

from talenta.application.services import RecorderAdapter
from talenta.domain.exceptions import (
    DeviceUnavailable,
    PermissionDenied,
    RecorderBusy,
    RecorderNotActive,
)
from tests.fixtures.fakes import FakeCaptureBackend, FakeObjectUrls


@pytest.fixture
def backend():
    """Capture device producing three one-second chunks."""
    return FakeCaptureBackend(chunks=[b"c1", b"c2", b"c3"], trailing=b"end")


@pytest.fixture
def recorder(backend, object_urls):
    """Recorder driven manually through tick()."""
    return RecorderAdapter(backend, object_urls, chunk_interval=1.0, auto_tick=False)


class TestRecording:
    """Start, collect and stop."""

    async def test_three_second_recording_yields_one_blob(self, recorder, backend):
        """Chunks and trailing bytes join into a single opus blob."""
        mime_type = await recorder.start()
        for _ in range(3):
            await recorder.tick()

        result = await recorder.stop()

        assert mime_type == "audio/webm;codecs=opus"
        assert result.blob.data == b"c1c2c3end"
        assert result.blob.mime_type == "audio/webm;codecs=opus"
        assert result.elapsed_seconds == 3.0
        assert backend.streams[0].closed
        assert not recorder.is_recording

    async def test_elapsed_time_visible_while_recording(self, recorder):
        """Elapsed time advances by one chunk interval per tick."""
        await recorder.start()
        await recorder.tick()
        await recorder.tick()

        assert recorder.elapsed_seconds == 2.0

        await recorder.discard()

    async def test_stop_creates_preview_url(self, recorder, object_urls):
        """The finished blob is exposed for preview."""
        await recorder.start()
        result = await recorder.stop()

        assert result.preview_url in object_urls.active
        assert object_urls.active[result.preview_url] == result.blob

    async def test_unsupported_types_fall_back_to_device_default(self, object_urls):
        """With no supported candidate the stream opens unspecified."""
        backend = FakeCaptureBackend(supported=(), chunks=[b"x"])
        recorder = RecorderAdapter(backend, object_urls, auto_tick=False)

        assert await recorder.start() == ""
        await recorder.tick()
        result = await recorder.stop()

        assert backend.opened == [""]
        assert result.blob.mime_type == "audio/webm"

    async def test_auto_tick_collects_in_background(self, backend):
        """Without manual ticks, chunks are collected on a timer."""
        recorder = RecorderAdapter(backend, chunk_interval=0.01)
        await recorder.start()
        await asyncio.sleep(0.1)

        result = await recorder.stop()

        assert result.elapsed_seconds >= 0.01
        assert result.blob.data.startswith(b"c1")


class TestRecorderErrors:
    async def test_second_start_is_rejected(self, recorder):
        """The microphone cannot be acquired twice."""
        await recorder.start()

        with pytest.raises(RecorderBusy):
            await recorder.start()

        await recorder.discard()

    async def test_stop_without_start(self, recorder):
        with pytest.raises(RecorderNotActive):
            await recorder.stop()

    async def test_tick_without_start(self, recorder):
        with pytest.raises(RecorderNotActive):
            await recorder.tick()

    @pytest.mark.parametrize("error_type", [PermissionDenied, DeviceUnavailable])
    async def test_device_errors_propagate(self, error_type):
        """Permission and device failures reach the caller; nothing is held."""
        backend = FakeCaptureBackend(error=error_type("no microphone"))
        recorder = RecorderAdapter(backend, auto_tick=False)

        with pytest.raises(error_type):
            await recorder.start()

        assert not recorder.is_recording
        assert recorder.session is None


class TestPreviewLifecycle:
    """Preview URLs are revoked when superseded or discarded."""

    async def test_new_recording_revokes_previous_preview(self, recorder, object_urls):
        await recorder.start()
        first = await recorder.stop()

        await recorder.start()

        assert first.preview_url in object_urls.revoked
        await recorder.discard()

    async def test_discard_releases_stream_and_preview(self, recorder, backend):
        """Discarding mid-recording closes the stream without a blob."""
        object_urls = FakeObjectUrls()
        recorder.object_urls = object_urls
        await recorder.start()
        first = await recorder.stop()
        await recorder.start()
        await recorder.tick()

        await recorder.discard()

        assert backend.streams[-1].closed
        assert not recorder.is_recording
        assert recorder.session is None
        assert recorder.preview_url is None
        assert first.preview_url in object_urls.revoked
