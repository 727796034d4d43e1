"""Gapless ordered playback across an audio entity's main track and segments.

The sequencer is a small state machine over {Idle, Playing, Paused, Ended}
driving an ``AudioPlayerProtocol``. The source list is always
``[main track, *segments]``; when a source ends naturally the next one starts
immediately. Any structural change to the segment store stops playback and
resets the cursor, so the cursor never points at a stale entry.
"""

from collections.abc import Callable
from enum import Enum

from attrs import define, field

from talenta.config import get_logger
from talenta.domain.entities import MainTrack
from talenta.domain.exceptions import (
    MediaLoadError,
    PlaybackAdvanceError,
    PlaybackError,
)
from talenta.domain.repositories import AudioPlayerProtocol

from .segment_store import SegmentStore

logger = get_logger(__name__).bind(service="playback")


class PlaybackState(Enum):
    """Sequencer states."""

    IDLE = "idle"
    PLAYING = "playing"
    PAUSED = "paused"
    ENDED = "ended"


@define(slots=True)
class PlaybackCursor:
    """Position of playback within the source list."""

    index: int = 0
    position: float = 0.0
    duration: float | None = None
    is_playing: bool = False


StateListener = Callable[[PlaybackState, PlaybackCursor], None]


@define(slots=True)
class PlaylistSequencer:
    """Plays ``[main track, *segments]`` back to back."""

    main_track: MainTrack
    store: SegmentStore
    player: AudioPlayerProtocol
    cursor: PlaybackCursor = field(factory=PlaybackCursor, init=False)
    state: PlaybackState = field(default=PlaybackState.IDLE, init=False)
    _listeners: list[StateListener] = field(factory=list, init=False, repr=False)
    _generation: int = field(default=0, init=False, repr=False)
    _unsubscribe: Callable[[], None] | None = field(
        default=None, init=False, repr=False
    )

    def __attrs_post_init__(self) -> None:
        self._unsubscribe = self.store.subscribe(self._on_store_change)

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def source_list(self) -> list[str | None]:
        """Playable references in playback order. Pending segments without a
        preview URL appear as None."""
        return [self.main_track.url, *(s.source for s in self.store.snapshot())]

    @property
    def current_source(self) -> str | None:
        return self.source_list()[self.cursor.index]

    # -------------------------------------------------------------------------
    # Transport controls
    # -------------------------------------------------------------------------

    async def play(self) -> None:
        """Start or resume playback at the cursor.

        Raises:
            PlaybackError: If the source cannot be loaded; the sequencer is Idle
        """
        if self.state is PlaybackState.PLAYING:
            return
        await self._start_current(PlaybackError)

    def pause(self) -> None:
        if self.state is not PlaybackState.PLAYING:
            return
        self.player.pause()
        self.cursor.is_playing = False
        self._set_state(PlaybackState.PAUSED)

    def seek(self, target: float) -> float:
        """Move within the current source, clamped to ``[0, duration]``."""
        position = max(0.0, target)
        if self.cursor.duration is not None:
            position = min(position, self.cursor.duration)
        self.cursor.position = position
        if self.state in (PlaybackState.PLAYING, PlaybackState.PAUSED):
            self.player.seek(position)
        return position

    def stop(self) -> None:
        """Stop playback and return the cursor to the main track."""
        self.reset()

    def reset(self) -> None:
        """Stop any active playback and move the cursor back to index 0."""
        if self.state in (PlaybackState.PLAYING, PlaybackState.PAUSED):
            self.player.stop()
        self._generation += 1
        self.cursor = PlaybackCursor()
        self._set_state(PlaybackState.IDLE)

    def close(self) -> None:
        """Detach from the segment store."""
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    # -------------------------------------------------------------------------
    # Player events
    # -------------------------------------------------------------------------

    def on_time_update(self, position: float) -> None:
        self.cursor.position = max(0.0, position)

    async def on_track_ended(self) -> None:
        """Advance to the next source, or settle Idle at index 0 after the last.

        Raises:
            PlaybackAdvanceError: If the next source cannot start; the
                sequencer is Idle at index 0
        """
        if self.state is not PlaybackState.PLAYING:
            return

        self.cursor.is_playing = False
        self._set_state(PlaybackState.ENDED)

        next_index = self.cursor.index + 1
        if next_index >= len(self.source_list()):
            logger.debug("Playlist finished")
            self.cursor = PlaybackCursor()
            self._set_state(PlaybackState.IDLE)
            return

        self.cursor = PlaybackCursor(index=next_index)
        await self._start_current(PlaybackAdvanceError)

    async def on_playback_failed(self, error: MediaLoadError) -> None:
        """Settle Idle after the device lost the current source mid-playback.

        Raises:
            PlaybackError: Wrapping ``error``; the cursor keeps its index
        """
        if self.state not in (PlaybackState.PLAYING, PlaybackState.PAUSED):
            return

        index = self.cursor.index
        logger.warning(f"Playback of source {index} stopped: {error}")
        self.cursor = PlaybackCursor(index=index)
        self._set_state(PlaybackState.IDLE)
        raise PlaybackError(f"Could not play source {index}: {error}") from error

    # -------------------------------------------------------------------------
    # Subscriptions
    # -------------------------------------------------------------------------

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """Register a state-change listener and return its unsubscribe function."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    async def _start_current(self, error_type: type[PlaybackError]) -> None:
        index = self.cursor.index
        source = self.source_list()[index]
        generation = self._generation

        try:
            if source is None:
                raise MediaLoadError(f"Source {index} has no playable reference")
            duration = await self.player.play(source, self.cursor.position)
        except MediaLoadError as e:
            logger.warning(f"Playback failed at source {index}: {e}")
            advancing = error_type is PlaybackAdvanceError
            self.cursor = PlaybackCursor(index=0 if advancing else index)
            self._set_state(PlaybackState.IDLE)
            raise error_type(f"Could not play source {index}: {e}") from e

        if generation != self._generation:
            # The segment list changed while the source was loading
            self.player.stop()
            return

        self.cursor.duration = duration
        self.cursor.is_playing = True
        self._set_state(PlaybackState.PLAYING)

    def _on_store_change(self, _snapshot: object, structural: bool) -> None:
        if structural:
            self.reset()

    def _set_state(self, state: PlaybackState) -> None:
        self.state = state
        for listener in list(self._listeners):
            listener(state, self.cursor)
