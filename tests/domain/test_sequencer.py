"""Tests for PlaylistSequencer gapless playback."""

import asyncio

import pytest

from talenta.domain.entities import AudioBlob, Segment, SegmentProvenance
from talenta.domain.exceptions import (
    MediaLoadError,
    PlaybackAdvanceError,
    PlaybackError,
)
from talenta.domain.playlist import PlaybackState

MAIN = "https://cdn.test/main.mp3"
S1 = "https://cdn.test/segment_1.webm"
S2 = "https://cdn.test/segment_2.webm"
S3 = "https://cdn.test/segment_3.webm"


class TestSourceList:
    def test_main_track_always_first(self, sequencer):
        """Sources are the main track followed by segments in order."""
        assert sequencer.source_list() == [MAIN, S1, S2, S3]

    def test_pending_segment_uses_local_url(self, sequencer, store):
        """A pending segment plays from its preview URL."""
        store.append(
            Segment.pending(
                AudioBlob(b"x"), SegmentProvenance.RECORDED, local_url="blob:1"
            )
        )

        assert sequencer.source_list()[-1] == "blob:1"


class TestTransport:
    """Play, pause, seek and stop."""

    async def test_play_starts_main_track(self, sequencer, player):
        """Playing from Idle loads the main track."""
        await sequencer.play()

        assert sequencer.state is PlaybackState.PLAYING
        assert sequencer.cursor.index == 0
        assert sequencer.cursor.duration == 10.0
        assert player.played == [MAIN]

    async def test_pause_then_play_resumes_position(self, sequencer, player):
        """Resuming passes the cursor position back to the player."""
        await sequencer.play()
        sequencer.on_time_update(4.5)
        sequencer.pause()

        assert sequencer.state is PlaybackState.PAUSED

        await sequencer.play()

        assert player.events[-1] == ("play", MAIN, 4.5)

    async def test_seek_clamps_to_duration(self, sequencer, player):
        """Seeking past either end clamps into [0, duration]."""
        await sequencer.play()

        assert sequencer.seek(-3.0) == 0.0
        assert sequencer.seek(99.0) == 10.0
        assert player.events[-2:] == [("seek", 0.0), ("seek", 10.0)]

    async def test_stop_returns_to_main_track(self, sequencer, player):
        """Stop halts the device and resets the cursor."""
        await sequencer.play()
        await sequencer.on_track_ended()

        sequencer.stop()

        assert sequencer.state is PlaybackState.IDLE
        assert sequencer.cursor.index == 0
        assert player.events[-1] == ("stop",)

    async def test_play_failure_settles_idle_keeping_index(self, sequencer, player):
        """A load failure raises PlaybackError and keeps the cursor index."""
        await sequencer.play()
        await sequencer.on_track_ended()
        sequencer.pause()
        player.failing.add(S1)

        with pytest.raises(PlaybackError):
            await sequencer.play()

        assert sequencer.state is PlaybackState.IDLE
        assert sequencer.cursor.index == 1

    async def test_lost_source_settles_idle(self, sequencer):
        """A device failure after a seek leaves Playing for Idle."""
        await sequencer.play()
        await sequencer.on_track_ended()
        sequencer.on_time_update(3.0)

        with pytest.raises(PlaybackError, match="source 1"):
            await sequencer.on_playback_failed(MediaLoadError("ffprobe not found"))

        assert sequencer.state is PlaybackState.IDLE
        assert sequencer.cursor.index == 1
        assert sequencer.cursor.position == 0.0
        assert not sequencer.cursor.is_playing

    async def test_device_failure_ignored_when_idle(self, sequencer):
        await sequencer.on_playback_failed(MediaLoadError("late failure"))

        assert sequencer.state is PlaybackState.IDLE


class TestAdvance:
    """Automatic advance between sources."""

    async def test_ended_track_starts_next_without_stop(self, sequencer, player):
        """Advancing loads the next source directly."""
        await sequencer.play()

        await sequencer.on_track_ended()

        assert player.events == [("play", MAIN, 0.0), ("play", S1, 0.0)]
        assert sequencer.cursor.index == 1
        assert sequencer.state is PlaybackState.PLAYING

    async def test_plays_every_source_in_order(self, sequencer, player):
        """The whole playlist plays back to back, then settles Idle at 0."""
        await sequencer.play()
        for _ in range(4):
            await sequencer.on_track_ended()

        assert player.played == [MAIN, S1, S2, S3]
        assert sequencer.state is PlaybackState.IDLE
        assert sequencer.cursor.index == 0

    async def test_single_source_ends_idle(self, audio, player):
        """With no segments the main track ends straight into Idle."""
        from talenta.domain.playlist import PlaylistSequencer, SegmentStore

        sequencer = PlaylistSequencer(audio.main_track, SegmentStore(), player)
        await sequencer.play()

        await sequencer.on_track_ended()

        assert sequencer.state is PlaybackState.IDLE
        assert player.played == [MAIN]

    async def test_advance_failure_resets_to_start(self, sequencer, player):
        """A failure loading the next source raises and resets to index 0."""
        player.failing.add(S1)
        await sequencer.play()

        with pytest.raises(PlaybackAdvanceError):
            await sequencer.on_track_ended()

        assert sequencer.state is PlaybackState.IDLE
        assert sequencer.cursor.index == 0

    async def test_pending_segment_without_preview_fails_advance(
        self, audio, player
    ):
        """A source with no playable reference is a load failure."""
        from talenta.domain.playlist import PlaylistSequencer, SegmentStore

        store = SegmentStore(
            [Segment.pending(AudioBlob(b"x"), SegmentProvenance.UPLOADED)]
        )
        sequencer = PlaylistSequencer(audio.main_track, store, player)
        await sequencer.play()

        with pytest.raises(PlaybackAdvanceError):
            await sequencer.on_track_ended()

    async def test_track_end_ignored_when_not_playing(self, sequencer, player):
        """A stray end event while Idle does nothing."""
        await sequencer.on_track_ended()

        assert player.events == []
        assert sequencer.state is PlaybackState.IDLE


class TestStoreChanges:
    """Cursor reaction to segment store mutations."""

    async def test_structural_change_stops_playback(self, sequencer, store, player):
        """Removing a segment while playing stops and resets to Idle."""
        await sequencer.play()
        await sequencer.on_track_ended()

        store.remove(0)

        assert player.events[-1] == ("stop",)
        assert sequencer.state is PlaybackState.IDLE
        assert sequencer.cursor.index == 0

    async def test_in_place_replace_keeps_playing(self, sequencer, store, player):
        """A pending segment becoming persisted does not disturb playback."""
        pending = store.append(
            Segment.pending(AudioBlob(b"x"), SegmentProvenance.RECORDED, "blob:1")
        )
        await sequencer.play()

        store.replace(3, pending.persisted("s9", "https://cdn.test/s9.webm"))

        assert sequencer.state is PlaybackState.PLAYING
        assert ("stop",) not in player.events

    async def test_change_while_loading_discards_stale_start(
        self, sequencer, store, player
    ):
        """A source that finishes loading after a reset is stopped again."""
        player.gate = asyncio.Event()
        task = asyncio.create_task(sequencer.play())
        await asyncio.sleep(0)

        store.swap(0, 1)
        player.gate.set()
        await task

        assert sequencer.state is PlaybackState.IDLE
        assert player.events[-1] == ("stop",)

    async def test_close_detaches_from_store(self, sequencer, store, player):
        """After close, store changes no longer reach the sequencer."""
        await sequencer.play()
        sequencer.close()

        store.remove(0)

        assert sequencer.state is PlaybackState.PLAYING


class TestListeners:
    async def test_listeners_see_each_transition(self, sequencer):
        """Subscribers receive state changes with the cursor."""
        seen = []
        sequencer.subscribe(lambda state, cursor: seen.append((state, cursor.index)))

        await sequencer.play()
        await sequencer.on_track_ended()

        assert seen == [
            (PlaybackState.PLAYING, 0),
            (PlaybackState.ENDED, 0),
            (PlaybackState.PLAYING, 1),
        ]
