"""Tests for config/models.py validation."""

import pytest

from mediabroker.config.models import (
    BrokerConfig,
    DownloadConfig,
    LoggingConfig,
    SupervisorConfig,
)


class TestSupervisorConfig:
    def test_defaults(self) -> None:
        config = SupervisorConfig()
        assert config.stop_grace_seconds == 5.0
        assert config.stderr_max_bytes == 1_048_576
        assert config.chunk_size == 65_536

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"stop_grace_seconds": -1},
            {"drain_timeout_seconds": 0},
            {"stderr_max_bytes": 10},
            {"chunk_size": 0},
        ],
    )
    def test_invalid(self, kwargs: dict) -> None:
        with pytest.raises(ValueError):
            SupervisorConfig(**kwargs)


class TestDownloadConfig:
    def test_defaults(self) -> None:
        config = DownloadConfig()
        assert config.raw_probe_bytes == 10 * 1024 * 1024
        assert config.engine_loglevel == "error"
        assert config.fetch_thumbnail is True

    def test_invalid_loglevel(self) -> None:
        with pytest.raises(ValueError, match="engine_loglevel"):
            DownloadConfig(engine_loglevel="verbose")

    def test_invalid_probe_bytes(self) -> None:
        with pytest.raises(ValueError):
            DownloadConfig(raw_probe_bytes=0)


class TestLoggingConfig:
    def test_level_case_insensitive(self) -> None:
        assert LoggingConfig(level="DEBUG").level == "DEBUG"

    def test_invalid_level(self) -> None:
        with pytest.raises(ValueError, match="level"):
            LoggingConfig(level="trace")

    def test_invalid_format(self) -> None:
        with pytest.raises(ValueError, match="format"):
            LoggingConfig(format="xml")


def test_broker_config_defaults() -> None:
    config = BrokerConfig()
    assert config.catalog_path is None
    assert config.tools.ffmpeg is None
    assert config.tools.ytdlp is None
