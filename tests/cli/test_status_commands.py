"""Tests for the status command."""

from unittest.mock import AsyncMock, patch

import pytest
from typer.testing import CliRunner

from talenta.domain.exceptions import RemoteStoreError
from talenta.infrastructure.cli import status_commands
from talenta.infrastructure.cli.app import app


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture(autouse=True)
def quiet_logging(monkeypatch):
    monkeypatch.setattr(
        "talenta.infrastructure.cli.app.setup_loguru_logger", lambda verbose: None
    )


async def test_failed_check_reported_without_aborting_others():
    """One failing check does not hide the others' results."""
    with (
        patch.object(
            status_commands,
            "_check_api",
            AsyncMock(side_effect=RemoteStoreError("Could not reach api")),
        ),
        patch.object(
            status_commands, "_check_credentials", AsyncMock(return_value=(True, "ok"))
        ),
        patch.object(
            status_commands, "_check_recording", AsyncMock(return_value=(True, "ok"))
        ),
        patch.object(
            status_commands, "_check_playback", AsyncMock(return_value=(False, "no"))
        ),
    ):
        results = await status_commands._check_connections()

    assert results == [
        ("Talenta API", False, "Error: Could not reach api"),
        ("Credentials", True, "ok"),
        ("Recording", True, "ok"),
        ("Playback", False, "no"),
    ]


def test_status_table(runner):
    checks = [
        ("Talenta API", True, "Reachable"),
        ("Credentials", False, "No token - run 'talenta login'"),
        ("Recording", True, "pulse:default"),
        ("Playback", True, "ffplay and ffprobe available"),
    ]
    with patch.object(
        status_commands, "_check_connections", AsyncMock(return_value=checks)
    ):
        result = runner.invoke(app, ["status"])

    assert result.exit_code == 0
    assert "Talenta Status" in result.stdout
    assert "Credentials" in result.stdout
    assert "Unavailable" in result.stdout
