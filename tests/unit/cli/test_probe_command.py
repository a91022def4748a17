"""Tests for the probe command."""

import json
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
from click.testing import CliRunner

from mediabroker.cli import main
from mediabroker.config import BrokerConfig
from mediabroker.engine import ProbeError
from mediabroker.engine.parsers import ProbeResult, ProbeStream

PROBED = ProbeResult(
    format_name="matroska,webm",
    container="matroska",
    streams=(
        ProbeStream(index=0, codec_type="video", codec_name="vp9"),
        ProbeStream(index=1, codec_type="audio", codec_name="opus"),
    ),
    tags={"title": "Clip"},
    duration=12.5,
)


@pytest.fixture
def media_file(tmp_path: Path) -> Path:
    path = tmp_path / "clip.webm"
    path.write_bytes(b"\x1a\x45\xdf\xa3 webm bytes")
    return path


@pytest.fixture(autouse=True)
def ffprobe_available():
    with patch("mediabroker.cli.probe.is_available", return_value=True) as mock:
        yield mock


class TestProbeCommand:
    @patch("mediabroker.cli.probe.probe", return_value=PROBED)
    def test_human_output(
        self,
        mock_probe: MagicMock,
        runner: CliRunner,
        config: BrokerConfig,
        media_file: Path,
    ) -> None:
        result = runner.invoke(main, ["probe", str(media_file)], obj={"config": config})

        assert result.exit_code == 0
        assert f"Source: {media_file}" in result.output
        assert "Container: matroska" in result.output
        assert "Demuxer: matroska,webm" in result.output
        assert "Duration: 12.500s" in result.output
        assert "Title: Clip" in result.output
        assert "#0 video: vp9" in result.output
        assert "#1 audio: opus" in result.output

    @patch("mediabroker.cli.probe.probe", return_value=PROBED)
    def test_options_forwarded(
        self,
        mock_probe: MagicMock,
        runner: CliRunner,
        config: BrokerConfig,
        media_file: Path,
    ) -> None:
        result = runner.invoke(
            main,
            ["probe", str(media_file), "--limit", "4096", "--format-hint", "matroska"],
            obj={"config": config},
        )

        assert result.exit_code == 0
        args = mock_probe.call_args[0]
        assert args[2] == 4096
        assert args[3].format_name == "matroska"

    @patch("mediabroker.cli.probe.probe", return_value=PROBED)
    def test_json_output(
        self,
        mock_probe: MagicMock,
        runner: CliRunner,
        config: BrokerConfig,
        media_file: Path,
    ) -> None:
        result = runner.invoke(
            main, ["probe", str(media_file), "--json"], obj={"config": config}
        )

        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["container"] == "matroska"
        assert data["duration_seconds"] == 12.5
        assert [s["codec"] for s in data["streams"]] == ["vp9", "opus"]

    @patch("mediabroker.cli.probe.probe", return_value=PROBED)
    def test_stdin(
        self, mock_probe: MagicMock, runner: CliRunner, config: BrokerConfig
    ) -> None:
        result = runner.invoke(
            main, ["probe", "-"], input=b"bytes", obj={"config": config}
        )

        assert result.exit_code == 0
        assert "Source: <stdin>" in result.output

    def test_missing_file(
        self, runner: CliRunner, config: BrokerConfig, tmp_path: Path
    ) -> None:
        missing = tmp_path / "missing.mp3"
        result = runner.invoke(main, ["probe", str(missing)], obj={"config": config})

        assert result.exit_code == 3
        assert "File not found" in result.output

    @patch("mediabroker.cli.probe.probe", side_effect=ProbeError("empty stream"))
    def test_probe_error(
        self,
        mock_probe: MagicMock,
        runner: CliRunner,
        config: BrokerConfig,
        media_file: Path,
    ) -> None:
        result = runner.invoke(main, ["probe", str(media_file)], obj={"config": config})

        assert result.exit_code == 8
        assert "empty stream" in result.output

    def test_ffprobe_missing(
        self,
        ffprobe_available: MagicMock,
        runner: CliRunner,
        config: BrokerConfig,
        media_file: Path,
    ) -> None:
        ffprobe_available.return_value = False
        result = runner.invoke(main, ["probe", str(media_file)], obj={"config": config})

        assert result.exit_code == 4
        assert "ffprobe is not installed" in result.output
