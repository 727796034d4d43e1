"""Tests for the audio and sign-in CLI commands.

Commands run against an in-memory audio store patched in place of the API
connector, so each test sees exactly which remote calls a command made.
"""

import pytest
from typer.testing import CliRunner

from talenta.config import settings
from talenta.domain.exceptions import ConflictOrValidationError, NotFound
from talenta.infrastructure.cli.app import app
from tests.fixtures.fakes import FakeAudioStore, make_audio


@pytest.fixture
def runner():
    """CLI test runner."""
    return CliRunner()


@pytest.fixture
def remote(monkeypatch):
    """Fake store returned to every command, with logging setup disabled."""
    store = FakeAudioStore(make_audio())
    monkeypatch.setattr(
        "talenta.infrastructure.cli.async_helpers.create_audio_store", lambda: store
    )
    monkeypatch.setattr(
        "talenta.infrastructure.cli.app.setup_loguru_logger", lambda verbose: None
    )
    return store


class TestHelp:
    def test_audio_commands_listed(self, runner):
        result = runner.invoke(app, ["audio", "--help"])

        assert result.exit_code == 0
        for command in ("show", "update", "upload", "record", "reorder", "publish"):
            assert command in result.stdout

    def test_version(self, runner, remote):
        result = runner.invoke(app, ["version"])

        assert result.exit_code == 0
        assert "Talenta" in result.stdout


class TestShow:
    def test_table_output(self, runner, remote):
        result = runner.invoke(app, ["audio", "show", "a1"])

        assert result.exit_code == 0
        assert "Morning Show" in result.stdout
        assert "s3" in result.stdout
        assert remote.call_names == ["fetch_audio"]
        assert remote.closed

    def test_json_output(self, runner, remote):
        result = runner.invoke(app, ["audio", "show", "a1", "--format", "json"])

        assert result.exit_code == 0
        assert '"publicId": "s1"' in result.stdout
        assert '"status": "draft"' in result.stdout

    def test_missing_audio_exits_with_error(self, runner, remote):
        """Remote errors are reported without a traceback."""
        remote.failures["fetch_audio"] = NotFound("Audio not found", 404)

        result = runner.invoke(app, ["audio", "show", "missing"])

        assert result.exit_code == 1
        assert "Audio not found" in result.stdout


class TestEditing:
    def test_update_without_options(self, runner, remote):
        result = runner.invoke(app, ["audio", "update", "a1"])

        assert result.exit_code == 0
        assert "Nothing to update" in result.stdout
        assert remote.calls == []

    def test_update_title_and_tags(self, runner, remote):
        result = runner.invoke(
            app,
            ["audio", "update", "a1", "--title", "Evening Show", "-t", "b", "-t", "a"],
        )

        assert result.exit_code == 0
        assert "Metadata saved" in result.stdout
        assert remote.calls_to("update_metadata") == [
            ("a1", {"title": "Evening Show", "tags": ["a", "b"]})
        ]

    def test_reorder_uses_one_based_positions(self, runner, remote):
        """``reorder 1 3`` swaps the first and third segments."""
        result = runner.invoke(app, ["audio", "reorder", "a1", "1", "3"])

        assert result.exit_code == 0
        assert "Segment order saved" in result.stdout
        _, ids, _ = remote.calls_to("reorder_segments")[0]
        assert ids == ["s3", "s2", "s1"]

    def test_rejected_reorder(self, runner, remote):
        remote.failures["reorder_segments"] = ConflictOrValidationError("stale", 409)

        result = runner.invoke(app, ["audio", "reorder", "a1", "1", "2"])

        assert result.exit_code == 1
        assert remote.call_names[-1] == "fetch_audio"

    def test_upload_files(self, runner, remote, tmp_path):
        """Files are uploaded under their own names in one request."""
        first = tmp_path / "intro.mp3"
        second = tmp_path / "outro.wav"
        first.write_bytes(b"intro")
        second.write_bytes(b"outro")

        result = runner.invoke(app, ["audio", "upload", "a1", str(first), str(second)])

        assert result.exit_code == 0
        assert "Uploaded 2 segment(s)" in result.stdout
        (_, blobs), = remote.calls_to("upload_segments")
        assert [b.file_name for b in blobs] == ["intro.mp3", "outro.wav"]
        assert [b.mime_type for b in blobs] == ["audio/mpeg", "audio/wav"]


class TestDestructiveCommands:
    def test_delete_declined(self, runner, remote):
        """Answering no leaves the audio untouched."""
        result = runner.invoke(app, ["audio", "delete-segment", "a1", "s2"], input="n\n")

        assert result.exit_code == 1
        assert "delete_segment" not in remote.call_names

    def test_delete_confirmed_with_flag(self, runner, remote):
        result = runner.invoke(app, ["audio", "delete-segment", "a1", "s2", "--yes"])

        assert result.exit_code == 0
        assert "Deleted segment s2" in result.stdout
        assert remote.calls_to("delete_segment") == [("a1", "s2")]

    def test_publish(self, runner, remote):
        result = runner.invoke(app, ["audio", "publish", "a1", "--yes"])

        assert result.exit_code == 0
        assert "Published Morning Show" in result.stdout
        assert remote.audio.is_published

    def test_draft(self, runner, remote):
        result = runner.invoke(app, ["audio", "draft", "a1"])

        assert result.exit_code == 0
        assert remote.calls_to("update_metadata")[-1] == ("a1", {"status": "draft"})


class TestLogin:
    def test_login_and_logout(self, runner, remote, monkeypatch, tmp_path):
        token_file = tmp_path / "token"
        monkeypatch.setattr(settings.credentials, "token_file", token_file)

        login = runner.invoke(app, ["login", "--token", "abc123"])
        assert login.exit_code == 0
        assert token_file.read_text().strip() == "abc123"

        logout = runner.invoke(app, ["logout"])
        assert logout.exit_code == 0
        assert not token_file.exists()

    def test_logout_without_token(self, runner, remote, monkeypatch, tmp_path):
        monkeypatch.setattr(settings.credentials, "token_file", tmp_path / "token")

        result = runner.invoke(app, ["logout"])

        assert result.exit_code == 0
        assert "No saved token" in result.stdout

    def test_empty_token_rejected(self, runner, remote, monkeypatch, tmp_path):
        monkeypatch.setattr(settings.credentials, "token_file", tmp_path / "token")

        result = runner.invoke(app, ["login", "--token", "  "])

        assert result.exit_code == 1
