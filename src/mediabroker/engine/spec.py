"""Declarative description of one engine invocation."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import BinaryIO

from mediabroker.catalog.models import Media


@dataclass(frozen=True)
class StreamMap:
    """Binds one input stream to one output stream slot."""

    input: BinaryIO
    """Readable byte source feeding this slot."""

    media: Media

    codec: str
    """Engine encoder name, or "copy" to remux without re-encoding."""

    codec_flags: tuple[str, ...] = ()

    @property
    def specifier(self) -> str:
        """Stream specifier within the input ("a:0" / "v:0")."""
        return self.media.specifier


@dataclass(frozen=True)
class PipelineSpec:
    """Inputs, stream maps and output of one engine invocation.

    Output stream i corresponds to maps[i], which in turn corresponds to
    the i-th StreamSpec of the format being produced.
    """

    maps: tuple[StreamMap, ...]
    muxer: str
    output: BinaryIO | None = None
    """Writer receiving engine output. None exposes a readable stream."""

    start: float | None = None
    """Trim: output starts this many seconds into the input."""

    duration: float | None = None
    """Trim: output stops after this many seconds."""

    metadata: Mapping[str, str] = field(default_factory=dict)
    format_flags: tuple[str, ...] = ()

    @property
    def inputs(self) -> tuple[BinaryIO, ...]:
        """Distinct input readers, in order of first use.

        Two maps reading the same reader (a combined audio+video source)
        share one engine input.
        """
        seen: list[BinaryIO] = []
        for stream_map in self.maps:
            if not any(stream_map.input is s for s in seen):
                seen.append(stream_map.input)
        return tuple(seen)

    def input_index(self, reader: BinaryIO) -> int:
        """Engine input index of a reader."""
        for index, candidate in enumerate(self.inputs):
            if candidate is reader:
                return index
        raise ValueError("reader is not an input of this pipeline")
