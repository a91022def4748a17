"""Shared fixtures for CLI tests."""

import pytest
from click.testing import CliRunner

from mediabroker.config import BrokerConfig


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture(autouse=True)
def keep_logging(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep CLI invocations from reconfiguring the root logger."""
    monkeypatch.setattr("mediabroker.cli._logging_configured", True)


@pytest.fixture
def config() -> BrokerConfig:
    return BrokerConfig()
