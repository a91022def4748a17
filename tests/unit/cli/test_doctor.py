"""Tests for the doctor command."""

from importlib import metadata
from unittest.mock import MagicMock, patch

from click.testing import CliRunner

from mediabroker.cli import main
from mediabroker.config import BrokerConfig


@patch("mediabroker.cli.doctor.get_tool_version", return_value="6.1.1")
@patch("mediabroker.cli.doctor.is_available", return_value=True)
class TestDoctorCommand:
    @patch("mediabroker.cli.doctor.metadata.version", return_value="2024.12.13")
    def test_all_available(
        self,
        mock_version: MagicMock,
        mock_available: MagicMock,
        mock_tool_version: MagicMock,
        runner: CliRunner,
        config: BrokerConfig,
    ) -> None:
        result = runner.invoke(main, ["doctor"], obj={"config": config})

        assert result.exit_code == 0
        assert "ffmpeg  6.1.1" in result.output
        assert "yt-dlp  2024.12.13" in result.output
        assert "All tools available." in result.output

    @patch(
        "mediabroker.cli.doctor.metadata.version",
        side_effect=metadata.PackageNotFoundError("yt-dlp"),
    )
    def test_ytdlp_missing_is_a_warning(
        self,
        mock_version: MagicMock,
        mock_available: MagicMock,
        mock_tool_version: MagicMock,
        runner: CliRunner,
        config: BrokerConfig,
    ) -> None:
        result = runner.invoke(main, ["doctor"], obj={"config": config})

        assert result.exit_code == 1
        assert "pip install yt-dlp" in result.output

    @patch("mediabroker.cli.doctor.metadata.version", return_value="2024.12.13")
    def test_ffmpeg_missing_is_critical(
        self,
        mock_version: MagicMock,
        mock_available: MagicMock,
        mock_tool_version: MagicMock,
        runner: CliRunner,
        config: BrokerConfig,
    ) -> None:
        mock_available.side_effect = lambda name, configured=None: name != "ffmpeg"

        result = runner.invoke(main, ["doctor"], obj={"config": config})

        assert result.exit_code == 2
        assert "ffmpeg  not found" in result.output
        assert "Critical" in result.output
