"""CLI download command."""

import logging
import shutil
import sys
from pathlib import Path

import click

from mediabroker.broker import Broker, DownloadOptions, ProgressEvent
from mediabroker.cli.exit_codes import ExitCode
from mediabroker.cli.formats import load_configured_catalog
from mediabroker.cli.formatting import format_file_size
from mediabroker.core.context import Context
from mediabroker.core.errors import BrokerError
from mediabroker.core.timerange import TimeRange, TimeRangeError
from mediabroker.engine import ContextCanceled, EngineError, StartError
from mediabroker.extractor import ExtractionError
from mediabroker.pipeline import UnmatchedFormatError

logger = logging.getLogger(__name__)

_ERROR_EXIT_CODES: tuple[tuple[type[BrokerError], ExitCode], ...] = (
    (ContextCanceled, ExitCode.INTERRUPTED),
    (UnmatchedFormatError, ExitCode.UNMATCHED_FORMAT),
    (ExtractionError, ExitCode.EXTRACTION_ERROR),
    (StartError, ExitCode.TOOL_NOT_FOUND),
    (EngineError, ExitCode.ENGINE_ERROR),
)


def _exit_code_for(error: BrokerError) -> ExitCode:
    for error_type, code in _ERROR_EXIT_CODES:
        if isinstance(error, error_type):
            return code
    return ExitCode.GENERAL_ERROR


def _parse_time_range(
    ctx: click.Context, param: click.Parameter, value: str | None
) -> TimeRange | None:
    if value is None:
        return None
    try:
        return TimeRange.parse(value)
    except TimeRangeError as e:
        raise click.BadParameter(str(e)) from e


def _print_progress(event: ProgressEvent) -> None:
    if event.stage != "transcode":
        click.echo(f"{event.stage}...", err=True)
        return
    position = f"{event.out_time:.1f}s" if event.out_time is not None else "?"
    click.echo(
        f"\r{format_file_size(event.bytes)} at {position}   ", err=True, nl=False
    )


def _report(error: BrokerError) -> None:
    click.echo(f"Error: {error}", err=True)
    stderr = getattr(error, "stderr", "")
    if stderr and logger.isEnabledFor(logging.DEBUG):
        click.echo(stderr.rstrip(), err=True)


@click.command("download")
@click.argument("url")
@click.option(
    "--format",
    "-f",
    "format_name",
    default="",
    help="Catalog format name (see 'mediabroker formats'). Empty for raw.",
)
@click.option(
    "--time-range",
    "-t",
    callback=_parse_time_range,
    default=None,
    help='Trim output, e.g. "30s-1m30s", "1:00-", "-90"',
)
@click.option(
    "--codec",
    "-c",
    "codecs",
    multiple=True,
    help="Preferred target codec (repeatable), e.g. -c vp9 -c opus",
)
@click.option(
    "--retranscode",
    is_flag=True,
    help="Re-encode even when the source codec is acceptable",
)
@click.option(
    "--output",
    "-o",
    type=click.Path(allow_dash=True, dir_okay=False, path_type=Path),
    default=None,
    help='Output file (default: derived from the title). "-" for stdout.',
)
@click.option("--progress", is_flag=True, help="Show progress on stderr")
@click.pass_context
def download_command(
    ctx: click.Context,
    url: str,
    format_name: str,
    time_range: TimeRange | None,
    codecs: tuple[str, ...],
    retranscode: bool,
    output: Path | None,
    progress: bool,
) -> None:
    """Download URL, transcoding it to a catalog format on the fly.

    Press Ctrl+C to cancel; partial output is left in place.
    """
    config = ctx.obj["config"]
    catalog = load_configured_catalog(config)
    if format_name and format_name not in catalog:
        raise click.BadParameter(
            f"unknown format {format_name!r}, choose from: "
            f"{', '.join(catalog.names)}",
            param_hint="--format",
        )

    options = DownloadOptions(
        url=url,
        format=format_name,
        time_range=time_range,
        codecs=codecs,
        retranscode=retranscode,
    )
    broker = ctx.obj.get("broker") or Broker(config, catalog)
    cancel = Context()

    try:
        try:
            result = broker.download(
                cancel, options, _print_progress if progress else None
            )
        except BrokerError as e:
            _report(e)
            sys.exit(_exit_code_for(e))

        to_stdout = output is not None and str(output) == "-"
        destination = output or Path(result.filename)
        try:
            try:
                if to_stdout:
                    shutil.copyfileobj(result.media, click.get_binary_stream("stdout"))
                else:
                    with open(destination, "wb") as f:
                        shutil.copyfileobj(result.media, f)
            except KeyboardInterrupt:
                cancel.cancel("interrupted")
            finally:
                result.close()
            result.wait()
        except BrokerError as e:
            if progress:
                click.echo("", err=True)
            _report(e)
            sys.exit(_exit_code_for(e))
        except OSError as e:
            cancel.cancel("output failed")
            try:
                result.wait()
            except BrokerError as wait_error:
                logger.debug("Download stopped after output error: %s", wait_error)
            click.echo(f"Error: Could not write {destination}: {e}", err=True)
            sys.exit(ExitCode.GENERAL_ERROR)
    finally:
        broker.close()

    if progress:
        click.echo("", err=True)
    if not to_stdout:
        click.echo(f"Saved {destination} ({result.mime_type})", err=True)
