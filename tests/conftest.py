"""Shared fixtures for the Talenta test suite."""

import pytest

from talenta.application.use_cases import ReconciliationController
from talenta.domain.playlist import PlaylistSequencer, SegmentStore
from tests.fixtures.fakes import (
    FakeAudioStore,
    FakeObjectUrls,
    FakePlayer,
    make_audio,
)


@pytest.fixture
def audio():
    """Audio entity with a main track and three saved segments."""
    return make_audio()


@pytest.fixture
def remote(audio):
    """Remote store holding ``audio``."""
    return FakeAudioStore(audio)


@pytest.fixture
def object_urls():
    """Preview URL registry."""
    return FakeObjectUrls()


@pytest.fixture
def player():
    """Output device that records transport events."""
    return FakePlayer()


@pytest.fixture
async def controller(remote, object_urls):
    """Controller loaded from the fake remote store."""
    return await ReconciliationController.load(
        "a1", remote, object_urls, timeout=1.0
    )


@pytest.fixture
def store(audio):
    """Segment store seeded with the audio's saved segments."""
    return SegmentStore(audio.segments)


@pytest.fixture
def sequencer(audio, store, player):
    """Sequencer over ``store`` driving ``player``."""
    return PlaylistSequencer(audio.main_track, store, player)
