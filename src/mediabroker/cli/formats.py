"""CLI commands for the format catalog: formats and match."""

import logging
import sys

import click

from mediabroker.catalog import (
    Catalog,
    CatalogValidationError,
    load_catalog,
    load_default_catalog,
)
from mediabroker.cli.exit_codes import ExitCode
from mediabroker.cli.formatting import format_catalog_human, format_catalog_json
from mediabroker.config import BrokerConfig

logger = logging.getLogger(__name__)


def load_configured_catalog(config: BrokerConfig) -> Catalog:
    """Load the configured catalog, exiting with a readable error on failure."""
    try:
        if config.catalog_path is not None:
            return load_catalog(config.catalog_path)
        return load_default_catalog()
    except FileNotFoundError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(ExitCode.TARGET_NOT_FOUND)
    except CatalogValidationError as e:
        click.echo(f"Error: Invalid catalog: {e}", err=True)
        sys.exit(ExitCode.INVALID_ARGUMENTS)


@click.command("formats")
@click.option("--json", "json_output", is_flag=True, help="Output as JSON")
@click.pass_context
def formats_command(ctx: click.Context, json_output: bool) -> None:
    """List the catalog formats in matching order."""
    catalog = load_configured_catalog(ctx.obj["config"])
    if json_output:
        click.echo(format_catalog_json(catalog))
    else:
        click.echo(format_catalog_human(catalog))


@click.command("match")
@click.argument("container")
@click.argument("codecs", nargs=-1)
@click.pass_context
def match_command(ctx: click.Context, container: str, codecs: tuple[str, ...]) -> None:
    """Find the first format matching CONTAINER and CODECS.

    CONTAINER is a probe container name (e.g. "mov", "matroska"), CODECS the
    stream codecs in stream order (e.g. "aac h264").

    Exit code 5 when nothing matches.
    """
    catalog = load_configured_catalog(ctx.obj["config"])
    fmt, name = catalog.find_by_format_codecs(container, codecs)
    if fmt is None:
        click.echo(f"No format matches {container} [{', '.join(codecs)}]", err=True)
        sys.exit(ExitCode.UNMATCHED_FORMAT)
    click.echo(f"{name}\t{fmt.mime_type}\t.{fmt.ext}")
