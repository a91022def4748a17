"""Pure parsing functions for ffprobe JSON output.

These functions transform ffprobe JSON data into ProbeResult objects.
All functions are pure (no I/O, no side effects) for easy testing.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProbeStream:
    """One stream of a probed byte stream."""

    index: int
    codec_type: str
    """"audio", "video", "subtitle", "data" or "" when unknown."""

    codec_name: str
    tags: Mapping[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class ProbeResult:
    """Read-only snapshot of what the engine recovered from a byte stream."""

    format_name: str
    """Demuxer name as reported, e.g. "mov,mp4,m4a,3gp,3g2,mj2"."""

    container: str
    """First component of format_name, e.g. "mov"."""

    streams: tuple[ProbeStream, ...]
    """Streams in output order."""

    tags: Mapping[str, str] = field(default_factory=dict)
    """Format-level tags with lowercased keys."""

    duration: float | None = None

    @property
    def codecs(self) -> tuple[str, ...]:
        """Codec names of audio and video streams, in stream order."""
        return tuple(
            s.codec_name for s in self.streams if s.codec_type in ("audio", "video")
        )

    @property
    def title(self) -> str:
        """Format-level title tag, empty when absent."""
        return self.tags.get("title", "")

    def first(self, codec_type: str) -> ProbeStream | None:
        """First stream of a given type."""
        return next((s for s in self.streams if s.codec_type == codec_type), None)


def sanitize_string(value: str | None) -> str | None:
    """Sanitize a string by replacing invalid UTF-8 characters.

    Args:
        value: String value to sanitize.

    Returns:
        Sanitized string or None if input was None.
    """
    if value is None:
        return None
    return value.encode("utf-8", errors="replace").decode("utf-8")


def parse_duration(value: str | None) -> float | None:
    """Parse duration string from ffprobe into seconds.

    Args:
        value: Duration string from ffprobe (e.g., "3600.000") or None.

    Returns:
        Duration in seconds as float, or None if parsing fails.
    """
    if value is None:
        return None
    try:
        return float(value)
    except (ValueError, TypeError):
        return None


def parse_tags(tags: object) -> Mapping[str, str]:
    """Normalize a tag dictionary: lowercase keys, string values."""
    if not isinstance(tags, dict):
        return MappingProxyType({})
    return MappingProxyType(
        {
            str(key).casefold(): sanitize_string(str(value)) or ""
            for key, value in tags.items()
        }
    )


def parse_stream(stream: dict, position: int) -> ProbeStream:
    """Parse a single ffprobe stream dict.

    Args:
        stream: Stream dictionary from ffprobe JSON.
        position: Position in the streams list, used when index is missing.

    Returns:
        ProbeStream.
    """
    index = stream.get("index", position)
    if not isinstance(index, int):
        logger.warning("Expected int for stream index, got %s", type(index).__name__)
        index = position
    return ProbeStream(
        index=index,
        codec_type=str(stream.get("codec_type") or ""),
        codec_name=str(stream.get("codec_name") or ""),
        tags=parse_tags(stream.get("tags")),
    )


def container_from_format_name(format_name: str) -> str:
    """First component of a comma-separated demuxer name."""
    return format_name.split(",", 1)[0].strip()


def parse_probe_output(data: dict) -> ProbeResult:
    """Parse complete ffprobe output.

    Args:
        data: Parsed JSON from ffprobe with -show_format -show_streams.

    Returns:
        ProbeResult.

    Raises:
        ValueError: If the output identifies no container.
    """
    format_info = data.get("format")
    if not isinstance(format_info, dict):
        raise ValueError("missing 'format' in ffprobe output")
    format_name = str(format_info.get("format_name") or "")
    container = container_from_format_name(format_name)
    if not container:
        raise ValueError("ffprobe output names no container")

    raw_streams = data.get("streams") or []
    streams = sorted(
        (parse_stream(s, i) for i, s in enumerate(raw_streams) if isinstance(s, dict)),
        key=lambda s: s.index,
    )

    return ProbeResult(
        format_name=format_name,
        container=container,
        streams=tuple(streams),
        tags=parse_tags(format_info.get("tags")),
        duration=parse_duration(format_info.get("duration")),
    )
