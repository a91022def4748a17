"""Tests for the download command."""

import io
from pathlib import Path
from unittest.mock import MagicMock

import pytest
from click.testing import CliRunner

from mediabroker.broker import Broker, DownloadOptions, DownloadResult
from mediabroker.cli import main
from mediabroker.config import BrokerConfig
from mediabroker.core.timerange import TimeRange
from mediabroker.engine import ContextCanceled, EngineError
from mediabroker.extractor import ExtractionError

URL = "https://example.com/watch?v=abc"


def _result(data: bytes = b"media bytes") -> DownloadResult:
    return DownloadResult(
        media=io.BytesIO(data),
        filename="Song.mp3",
        mime_type="audio/mpeg",
        format_name="mp3",
    )


@pytest.fixture
def broker() -> MagicMock:
    broker = MagicMock(spec=Broker)
    broker.download.return_value = _result()
    return broker


@pytest.fixture
def obj(config: BrokerConfig, broker: MagicMock) -> dict:
    return {"config": config, "broker": broker}


class TestDownloadCommand:
    def test_saves_to_title(
        self, runner: CliRunner, obj: dict, broker: MagicMock, tmp_path: Path
    ) -> None:
        with runner.isolated_filesystem(temp_dir=tmp_path):
            result = runner.invoke(main, ["download", URL, "-f", "mp3"], obj=obj)

            assert result.exit_code == 0
            assert Path("Song.mp3").read_bytes() == b"media bytes"
        assert "Saved Song.mp3 (audio/mpeg)" in result.output
        broker.close.assert_called_once()

    def test_options(
        self, runner: CliRunner, obj: dict, broker: MagicMock, tmp_path: Path
    ) -> None:
        output = tmp_path / "out.webm"
        result = runner.invoke(
            main,
            [
                "download",
                URL,
                "--format",
                "webm",
                "-t",
                "30-1m30s",
                "-c",
                "vp9",
                "-c",
                "opus",
                "--retranscode",
                "-o",
                str(output),
            ],
            obj=obj,
        )

        assert result.exit_code == 0
        assert output.read_bytes() == b"media bytes"
        options = broker.download.call_args[0][1]
        assert options == DownloadOptions(
            url=URL,
            format="webm",
            time_range=TimeRange(start=30, stop=90),
            codecs=("vp9", "opus"),
            retranscode=True,
        )

    def test_raw_to_stdout(
        self, runner: CliRunner, obj: dict, broker: MagicMock
    ) -> None:
        result = runner.invoke(main, ["download", URL, "-o", "-"], obj=obj)

        assert result.exit_code == 0
        assert result.stdout_bytes == b"media bytes"
        assert broker.download.call_args[0][1].format == ""

    def test_unknown_format(
        self, runner: CliRunner, obj: dict, broker: MagicMock
    ) -> None:
        result = runner.invoke(main, ["download", URL, "-f", "wav"], obj=obj)

        assert result.exit_code == 2
        assert "unknown format 'wav'" in result.output
        broker.download.assert_not_called()

    def test_invalid_time_range(self, runner: CliRunner, obj: dict) -> None:
        result = runner.invoke(main, ["download", URL, "-t", "90-30"], obj=obj)
        assert result.exit_code == 2

    @pytest.mark.parametrize(
        "error,exit_code",
        [
            (ExtractionError("unsupported URL"), 6),
            (EngineError("ffmpeg exited with status 1"), 7),
            (ContextCanceled("canceled"), 130),
        ],
    )
    def test_setup_errors(
        self,
        runner: CliRunner,
        obj: dict,
        broker: MagicMock,
        error: Exception,
        exit_code: int,
    ) -> None:
        broker.download.side_effect = error

        result = runner.invoke(main, ["download", URL, "-f", "mp3"], obj=obj)

        assert result.exit_code == exit_code
        assert f"Error: {error}" in result.output
        broker.close.assert_called_once()

    def test_wait_error(
        self, runner: CliRunner, obj: dict, broker: MagicMock, tmp_path: Path
    ) -> None:
        download = MagicMock()
        download.filename = "Song.mp3"
        download.media = io.BytesIO(b"partial")
        download.wait.side_effect = EngineError("ffmpeg exited with status 1")
        broker.download.return_value = download

        result = runner.invoke(
            main,
            ["download", URL, "-f", "mp3", "-o", str(tmp_path / "out.mp3")],
            obj=obj,
        )

        assert result.exit_code == 7
        assert "ffmpeg exited with status 1" in result.output
        download.close.assert_called_once()
