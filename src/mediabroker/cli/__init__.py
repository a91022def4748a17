"""CLI module for mediabroker."""

import dataclasses
import logging
from pathlib import Path

import click

from mediabroker.config import BrokerConfig, get_config

_logging_configured: bool = False

logger = logging.getLogger(__name__)


def _configure_logging(
    config: BrokerConfig,
    log_level: str | None,
    log_file: Path | None,
    log_json: bool,
) -> None:
    """Configure logging from the loaded config and CLI overrides.

    Args:
        config: Effective configuration.
        log_level: Override log level (debug, info, warning, error).
        log_file: Override log file path.
        log_json: Use JSON log format.
    """
    global _logging_configured
    if _logging_configured:
        return

    from mediabroker.logging import configure_logging

    overrides: dict = {}
    if log_level:
        overrides["level"] = log_level
    if log_file:
        overrides["file"] = log_file
    if log_json:
        overrides["format"] = "json"
    configure_logging(dataclasses.replace(config.logging, **overrides))
    _logging_configured = True


@click.group()
@click.version_option(package_name="mediabroker")
@click.option(
    "--log-level",
    type=click.Choice(["debug", "info", "warning", "error"], case_sensitive=False),
    default=None,
    help="Override log level (default: info).",
)
@click.option(
    "--log-file",
    type=click.Path(path_type=Path),
    default=None,
    help="Override log file path.",
)
@click.option(
    "--log-json",
    is_flag=True,
    default=False,
    help="Use JSON log format.",
)
@click.option(
    "--config",
    "config_path",
    type=click.Path(path_type=Path, dir_okay=False),
    default=None,
    help="Config file (default: ~/.mediabroker/config.toml).",
)
@click.pass_context
def main(
    ctx: click.Context,
    log_level: str | None,
    log_file: Path | None,
    log_json: bool,
    config_path: Path | None,
) -> None:
    """mediabroker - Fetch media from a URL and transcode it on the fly."""
    ctx.ensure_object(dict)
    # Preserve a config injected by tests
    if "config" not in ctx.obj:
        ctx.obj["config"] = get_config(config_path)
    _configure_logging(ctx.obj["config"], log_level, log_file, log_json)


# Defer import to avoid circular dependency
def _register_commands():
    from mediabroker.cli.doctor import doctor_command
    from mediabroker.cli.download import download_command
    from mediabroker.cli.formats import formats_command, match_command
    from mediabroker.cli.probe import probe_command

    main.add_command(doctor_command)
    main.add_command(download_command)
    main.add_command(formats_command)
    main.add_command(match_command)
    main.add_command(probe_command)


_register_commands()
