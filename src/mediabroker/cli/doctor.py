"""mediabroker doctor command for checking external tool health."""

import sys
from importlib import metadata

import click

from mediabroker.cli.exit_codes import DOCTOR_EXIT_CODES
from mediabroker.engine import (
    ffmpeg_path,
    ffprobe_path,
    get_tool_version,
    is_available,
)

EXIT_OK = DOCTOR_EXIT_CODES["EXIT_OK"]
EXIT_WARNINGS = DOCTOR_EXIT_CODES["EXIT_WARNINGS"]
EXIT_CRITICAL = DOCTOR_EXIT_CODES["EXIT_CRITICAL"]


def _format_status(available: bool) -> str:
    """Format status for display."""
    return "✓" if available else "✗"


def _format_version(version: str | None) -> str:
    """Format version for display."""
    return version if version else "not found"


def _ytdlp_version() -> str | None:
    try:
        return metadata.version("yt-dlp")
    except metadata.PackageNotFoundError:
        return None


@click.command("doctor")
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Show resolved tool paths",
)
@click.pass_context
def doctor_command(ctx: click.Context, verbose: bool) -> None:
    """Check external tool availability.

    Exit codes:
      0 - All tools available
      1 - yt-dlp missing (local files can still be probed)
      2 - ffmpeg or ffprobe missing
    """
    tools = ctx.obj["config"].tools
    has_critical = False
    has_warnings = False

    click.echo("mediabroker External Tool Health Check")
    click.echo("=" * 40)

    for name, resolved, configured in (
        ("ffmpeg", ffmpeg_path(tools), tools.ffmpeg),
        ("ffprobe", ffprobe_path(tools), tools.ffprobe),
    ):
        available = is_available(name, configured)
        version = get_tool_version(resolved) if available else None
        path_info = f" ({resolved})" if verbose and available else ""
        click.echo(
            f"  {_format_status(available)} {name:<8}{_format_version(version)}"
            f"{path_info}"
        )
        if not available:
            has_critical = True
            click.echo("    └─ Install ffmpeg: https://ffmpeg.org/download.html")

    if tools.ytdlp is not None:
        available = is_available("yt-dlp", tools.ytdlp)
        version = "configured" if available else None
    else:
        version = _ytdlp_version()
        available = version is not None
    click.echo(f"  {_format_status(available)} {'yt-dlp':<8}{_format_version(version)}")
    if not available:
        has_warnings = True
        click.echo("    └─ Install yt-dlp: pip install yt-dlp")

    click.echo()
    if has_critical:
        click.echo("Critical: required tools are missing.")
        sys.exit(EXIT_CRITICAL)
    if has_warnings:
        click.echo("Warnings found.")
        sys.exit(EXIT_WARNINGS)
    click.echo("All tools available.")
    sys.exit(EXIT_OK)
