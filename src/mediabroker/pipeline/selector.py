"""Source selection: which extractor descriptors feed a format's slots."""

from __future__ import annotations

import logging
from collections.abc import Sequence

from mediabroker.catalog.models import Catalog, Format, Media, StreamSpec
from mediabroker.core.codecs import codec_in
from mediabroker.core.errors import BrokerError
from mediabroker.extractor.interface import SourceStreamDescriptor

logger = logging.getLogger(__name__)


class UnmatchedFormatError(BrokerError):
    """No catalog format, or no source stream, satisfies the request."""


def _codec_for(descriptor: SourceStreamDescriptor, media: Media) -> str:
    return descriptor.norm_acodec if media is Media.AUDIO else descriptor.norm_vcodec


def _carries(descriptor: SourceStreamDescriptor, media: Media) -> bool:
    return bool(_codec_for(descriptor, media))


def _is_dedicated(descriptor: SourceStreamDescriptor, media: Media) -> bool:
    other = Media.VIDEO if media is Media.AUDIO else Media.AUDIO
    return _carries(descriptor, media) and not _carries(descriptor, other)


def _is_unknown(descriptor: SourceStreamDescriptor) -> bool:
    # Neither codec reported; the stream may still carry either kind
    return (
        descriptor.acodec is None
        and descriptor.vcodec is None
        and not descriptor.has_audio
        and not descriptor.has_video
    )


def select_source(
    stream: StreamSpec,
    descriptors: Sequence[SourceStreamDescriptor],
    catalog: Catalog,
    codecs: Sequence[str] = (),
) -> SourceStreamDescriptor | None:
    """Pick the descriptor feeding one stream slot.

    Ranking, most significant first:
    1. the codec is acceptable for the slot (no transcode needed)
    2. the codec is one of the requested codecs
    3. the descriptor carries only this media kind
    4. higher normalized bitrate

    Descriptors that report no codec at all are used only when no
    descriptor reports the media kind.

    Args:
        stream: Slot to feed.
        descriptors: Extractor descriptors.
        catalog: Catalog (codec map).
        codecs: Requested target codecs, in preference order.

    Returns:
        Best descriptor, or None if nothing can feed the slot.
    """
    candidates = [d for d in descriptors if _carries(d, stream.media)]
    if not candidates:
        unknown = [d for d in descriptors if _is_unknown(d)]
        return max(unknown, key=lambda d: d.norm_bitrate, default=None)

    def rank(descriptor: SourceStreamDescriptor) -> tuple[bool, bool, bool, float]:
        codec = _codec_for(descriptor, stream.media)
        return (
            codec_in(codec, stream.codec_names, catalog.codec_map),
            bool(codecs) and codec_in(codec, codecs, catalog.codec_map),
            _is_dedicated(descriptor, stream.media),
            descriptor.norm_bitrate,
        )

    return max(candidates, key=rank)


def select_sources(
    fmt: Format,
    descriptors: Sequence[SourceStreamDescriptor],
    catalog: Catalog,
    codecs: Sequence[str] = (),
) -> dict[Media, SourceStreamDescriptor]:
    """Pick a descriptor for every stream slot of a format.

    The same descriptor may feed several slots (a combined audio+video
    stream).

    Returns:
        Mapping of media kind to descriptor, for every kind the format needs.

    Raises:
        UnmatchedFormatError: If a required media kind is unavailable.
    """
    selected: dict[Media, SourceStreamDescriptor] = {}
    for stream in fmt.streams:
        if stream.media in selected:
            continue
        descriptor = select_source(stream, descriptors, catalog, codecs)
        if descriptor is None:
            raise UnmatchedFormatError(
                f"source has no {stream.media.value} stream",
                format_name=fmt.name,
                codecs=codecs,
            )
        selected[stream.media] = descriptor

    logger.debug(
        "Selected sources %s",
        ", ".join(f"{m.value}={d.format_id}" for m, d in selected.items()),
        extra={"format_name": fmt.name},
    )
    return selected


def select_raw(descriptors: Sequence[SourceStreamDescriptor]) -> SourceStreamDescriptor:
    """Pick the descriptor to pass through untouched.

    Combined audio+video descriptors come first, then higher bitrate.

    Raises:
        UnmatchedFormatError: If there are no descriptors.
    """
    if not descriptors:
        raise UnmatchedFormatError("source has no streams")
    return max(
        descriptors,
        key=lambda d: (d.has_audio and d.has_video, d.norm_bitrate),
    )
