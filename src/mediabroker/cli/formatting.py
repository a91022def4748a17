"""Output formatting for CLI commands.

Human-readable and JSON renderings of catalog formats and probe results.
"""

from __future__ import annotations

import json
from typing import Any

from mediabroker.catalog.models import Catalog, Format
from mediabroker.engine.parsers import ProbeResult


def format_file_size(size_bytes: int) -> str:
    """Format a byte count in human-readable form.

    Args:
        size_bytes: Size in bytes.

    Returns:
        Formatted string (e.g., "4.2 GB", "128 MB", "1.5 KB").
    """
    if size_bytes >= 1024**3:
        return f"{size_bytes / (1024**3):.1f} GB"
    elif size_bytes >= 1024**2:
        return f"{size_bytes / (1024**2):.1f} MB"
    elif size_bytes >= 1024:
        return f"{size_bytes / 1024:.1f} KB"
    else:
        return f"{size_bytes} B"


def format_to_dict(fmt: Format) -> dict[str, Any]:
    """Convert a catalog Format to a JSON-serializable dict."""
    return {
        "name": fmt.name,
        "mime_type": fmt.mime_type,
        "ext": fmt.ext,
        "containers": list(fmt.containers),
        "muxer": fmt.muxer,
        "prepend": fmt.prepend.value or None,
        "streams": [
            {"media": s.media.value, "codecs": [c.name for c in s.codecs]}
            for s in fmt.streams
        ],
    }


def format_catalog_human(catalog: Catalog) -> str:
    """One line per format: name, MIME type, containers and stream codecs."""
    width = max((len(name) for name in catalog.names), default=0)
    lines = []
    for fmt in catalog.formats.values():
        streams = " + ".join(
            f"{s.media.value}:{'|'.join(c.name for c in s.codecs)}"
            for s in fmt.streams
        )
        lines.append(
            f"{fmt.name:<{width}}  {fmt.mime_type:<18} "
            f"[{','.join(fmt.containers)}]  {streams}"
        )
    return "\n".join(lines)


def format_catalog_json(catalog: Catalog) -> str:
    """Catalog as a JSON array in declaration order."""
    return json.dumps([format_to_dict(f) for f in catalog.formats.values()], indent=2)


def format_probe_human(result: ProbeResult, source: str) -> str:
    """Format a probe result for terminal output.

    Args:
        result: The probe result to format.
        source: Displayed name of the probed input.

    Returns:
        Formatted string for terminal output.
    """
    lines = [f"Source: {source}", f"Container: {result.container}"]
    if result.format_name != result.container:
        lines.append(f"Demuxer: {result.format_name}")
    if result.duration is not None:
        lines.append(f"Duration: {result.duration:.3f}s")
    if result.title:
        lines.append(f"Title: {result.title}")
    lines.append("")
    lines.append("Streams:")
    if not result.streams:
        lines.append("  (none)")
    for stream in result.streams:
        lines.append(
            f"  #{stream.index} {stream.codec_type or 'unknown'}: "
            f"{stream.codec_name or 'unknown'}"
        )
    return "\n".join(lines)


def format_probe_json(result: ProbeResult, source: str) -> str:
    """Format a probe result as JSON."""
    data = {
        "source": source,
        "format_name": result.format_name,
        "container": result.container,
        "duration_seconds": result.duration,
        "tags": dict(result.tags),
        "streams": [
            {
                "index": s.index,
                "type": s.codec_type,
                "codec": s.codec_name,
            }
            for s in result.streams
        ],
    }
    return json.dumps(data, indent=2)
