"""Pipeline Builder: catalog format + selected sources -> PipelineSpec."""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING, BinaryIO

from mediabroker.catalog.models import (
    Catalog,
    CodecSpec,
    Format,
    Media,
    Prepend,
    StreamSpec,
)
from mediabroker.core.codecs import codec_in, map_codec
from mediabroker.engine.spec import PipelineSpec, StreamMap
from mediabroker.extractor.interface import SourceStreamDescriptor
from mediabroker.pipeline.id3v2 import PrependWriter, encode_tag

if TYPE_CHECKING:
    from mediabroker.broker import DownloadOptions

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SourceInput:
    """An opened source stream and the descriptor it was opened for."""

    descriptor: SourceStreamDescriptor
    reader: BinaryIO


@dataclass(frozen=True)
class OutputMetadata:
    """Tags written into the output."""

    title: str = ""
    artist: str = ""
    cover: bytes | None = None


def preferred_codec(
    stream: StreamSpec, catalog: Catalog, codecs: Sequence[str]
) -> CodecSpec:
    """Transcode target for a slot.

    The first requested codec the slot accepts, else its first codec.
    """
    for requested in codecs:
        for codec in stream.codecs:
            if codec_in(requested, [codec.name], catalog.codec_map):
                return codec
    return stream.codecs[0]


def resolve_codec(
    stream: StreamSpec,
    source_codec: str,
    catalog: Catalog,
    *,
    codecs: Sequence[str] = (),
    retranscode: bool = False,
) -> tuple[str, tuple[str, ...]]:
    """Engine codec and flags for one slot.

    The source is copied when its codec is acceptable, retranscoding is
    off and no requested codec rules it out.

    Returns:
        Tuple of (engine codec, codec flags). ("copy", ()) for stream copy.
    """
    acceptable = codec_in(source_codec, stream.codec_names, catalog.codec_map)
    requested_here = [
        c for c in codecs if codec_in(c, stream.codec_names, catalog.codec_map)
    ]
    if acceptable and not retranscode:
        if not requested_here or codec_in(
            source_codec, requested_here, catalog.codec_map
        ):
            return "copy", ()

    target = preferred_codec(stream, catalog, codecs)
    return map_codec(target.name, catalog.codec_map), target.flags


def prepend_bytes(fmt: Format, metadata: OutputMetadata) -> bytes:
    """Bytes to inject ahead of the engine output for a format."""
    if fmt.prepend is Prepend.ID3V2:
        return encode_tag(metadata.title, metadata.artist, metadata.cover)
    return b""


def build_pipeline(
    fmt: Format,
    sources: Mapping[Media, SourceInput],
    catalog: Catalog,
    options: DownloadOptions,
    metadata: OutputMetadata,
    *,
    output: BinaryIO | None = None,
) -> PipelineSpec:
    """Construct the engine pipeline for a format.

    Args:
        fmt: Target catalog format.
        sources: Opened source for every media kind the format needs. The
            same SourceInput may serve several kinds.
        catalog: Catalog (codec map).
        options: Download options (time range, codecs, retranscode).
        metadata: Output tags.
        output: Optional writer for the engine output. With an id3v2
            format it is wrapped so the tag precedes the engine bytes.

    Returns:
        PipelineSpec whose maps follow fmt.streams order.

    Raises:
        KeyError: If sources lacks a media kind the format needs.
    """
    maps = []
    for stream in fmt.streams:
        source = sources[stream.media]
        source_codec = (
            source.descriptor.norm_acodec
            if stream.media is Media.AUDIO
            else source.descriptor.norm_vcodec
        )
        codec, flags = resolve_codec(
            stream,
            source_codec,
            catalog,
            codecs=options.codecs,
            retranscode=options.retranscode,
        )
        maps.append(
            StreamMap(
                input=source.reader,
                media=stream.media,
                codec=codec,
                codec_flags=flags,
            )
        )

    if output is not None:
        prefix = prepend_bytes(fmt, metadata)
        if prefix:
            output = PrependWriter(output, prefix)

    time_range = options.time_range
    start = time_range.start if time_range is not None and time_range.start else None
    duration = time_range.duration if time_range is not None else None

    tags = {}
    if metadata.title:
        tags["title"] = metadata.title
    if metadata.artist:
        tags["artist"] = metadata.artist

    spec = PipelineSpec(
        maps=tuple(maps),
        muxer=fmt.muxer,
        output=output,
        start=start,
        duration=duration,
        metadata=tags,
        format_flags=fmt.format_flags,
    )
    logger.debug(
        "Built pipeline for %s: %s",
        fmt.name,
        ", ".join(f"{m.specifier}->{m.codec}" for m in spec.maps),
        extra={"format_name": fmt.name, "input_count": len(spec.inputs)},
    )
    return spec
