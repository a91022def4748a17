"""CLI probe command."""

import logging
import sys
from pathlib import Path

import click

from mediabroker.cli.exit_codes import ExitCode
from mediabroker.cli.formatting import format_probe_human, format_probe_json
from mediabroker.core.context import Context
from mediabroker.engine import ProbeError, ProbeHints, is_available, probe

logger = logging.getLogger(__name__)

DEFAULT_LIMIT_BYTES = 10 * 1024 * 1024


@click.command("probe")
@click.argument("file", type=click.Path(allow_dash=True, path_type=Path))
@click.option(
    "--limit",
    "limit_bytes",
    type=click.IntRange(min=1),
    default=DEFAULT_LIMIT_BYTES,
    show_default=True,
    help="Maximum bytes to inspect",
)
@click.option(
    "--format-hint",
    default=None,
    help="Force the demuxer (e.g. mp3, matroska)",
)
@click.option("--json", "json_output", is_flag=True, help="Output as JSON")
@click.pass_context
def probe_command(
    ctx: click.Context,
    file: Path,
    limit_bytes: int,
    format_hint: str | None,
    json_output: bool,
) -> None:
    """Identify the container and streams of FILE.

    FILE is read as a stream, at most --limit bytes. Use "-" for stdin.
    """
    config = ctx.obj["config"]

    if not is_available("ffprobe", config.tools.ffprobe):
        click.echo(
            "Error: ffprobe is not installed or not in PATH.\n"
            "Install ffmpeg to use probing.",
            err=True,
        )
        sys.exit(ExitCode.TOOL_NOT_FOUND)

    hints = ProbeHints(format_name=format_hint)
    try:
        if str(file) == "-":
            source = "<stdin>"
            result = probe(
                Context(),
                click.get_binary_stream("stdin"),
                limit_bytes,
                hints,
                config=config,
            )
        else:
            source = str(file)
            with open(file, "rb") as reader:
                result = probe(Context(), reader, limit_bytes, hints, config=config)
    except FileNotFoundError:
        click.echo(f"Error: File not found: {file}", err=True)
        sys.exit(ExitCode.TARGET_NOT_FOUND)
    except ProbeError as e:
        click.echo(f"Error: Could not identify {file}: {e}", err=True)
        sys.exit(ExitCode.PROBE_ERROR)

    if json_output:
        click.echo(format_probe_json(result, source))
    else:
        click.echo(format_probe_human(result, source))
