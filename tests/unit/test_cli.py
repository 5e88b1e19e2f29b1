"""Tests for the command line interface."""
from typer.testing import CliRunner

from mediarelay.cli.main import app

runner = CliRunner()


class TestUploadCommand:
    """Test suite for `mediarelay upload` argument handling."""

    def test_help(self):
        result = runner.invoke(app, ["upload", "--help"])

        assert result.exit_code == 0
        assert "--chunk-size" in result.output

    def test_invalid_type(self):
        result = runner.invoke(app, ["upload", "file.mp4", "--token", "t", "--type", "podcast"])

        assert result.exit_code == 1
        assert "lecture" in result.output

    def test_missing_file_fails(self, tmp_path, monkeypatch):
        monkeypatch.setenv("API_BASE_URL", "http://127.0.0.1:9")
        monkeypatch.setenv("RELAY_STORAGE_ROOT", str(tmp_path))
        monkeypatch.setenv("RELAY_CONTAINER", "")

        result = runner.invoke(app, ["upload", str(tmp_path / "missing.mp4"), "--token", "t"])

        assert result.exit_code == 1
        assert "FILE_ACCESS_ERROR" in result.output
