"""Format Matcher: container + codec list -> catalog entry.

Matching is first-match in catalog declaration order. There is no scoring:
the earliest declared format whose container set contains the source
container and whose stream slots align one-to-one with the source codecs
wins.
"""

from __future__ import annotations

import itertools
import logging
from collections.abc import Mapping, Sequence

from mediabroker.catalog.models import Catalog, Format, StreamSpec
from mediabroker.core.codecs import lookup_codec

logger = logging.getLogger(__name__)


def _slot_codecs(stream: StreamSpec, codec_map: Mapping[str, str]) -> frozenset[str]:
    return frozenset(lookup_codec(name, codec_map) for name in stream.codec_names)


def align_codecs(
    fmt: Format,
    codecs: Sequence[str],
    codec_map: Mapping[str, str],
) -> tuple[str, ...] | None:
    """Align source codecs with a format's stream slots.

    Declaration order is tried first. If it does not align, any other
    one-to-one assignment of codecs to slots is accepted.

    Args:
        fmt: Catalog format.
        codecs: Source codec names.
        codec_map: Codec alias map applied to both sides.

    Returns:
        The source codecs reordered to slot order, or None if the counts
        differ or no assignment exists.
    """
    if len(fmt.streams) != len(codecs):
        return None

    slots = [_slot_codecs(s, codec_map) for s in fmt.streams]
    normalized = [lookup_codec(c, codec_map) for c in codecs]

    if all(c in slot for c, slot in zip(normalized, slots)):
        return tuple(codecs)

    for order in itertools.permutations(range(len(codecs))):
        if all(normalized[i] in slot for i, slot in zip(order, slots)):
            return tuple(codecs[i] for i in order)

    return None


def find_by_format_codecs(
    catalog: Catalog,
    container: str,
    codecs: Sequence[str],
) -> tuple[Format | None, str]:
    """Find the first catalog format matching a container and codec list.

    Args:
        catalog: Format catalog to search.
        container: Source container name as reported by the probe
            (e.g. "matroska", "mov", "mp3").
        codecs: Source codec names, one per stream.

    Returns:
        Tuple of (format, name). (None, "") is the explicit unmatched
        result, returned when container or codecs are empty or when no
        format matches.

    Example:
        >>> find_by_format_codecs(catalog, "mpegts", ["aac", "h264"])[1]
        'ts'
    """
    if not container or not codecs:
        return None, ""

    for name, fmt in catalog.formats.items():
        if container not in fmt.container_names:
            continue
        if align_codecs(fmt, codecs, catalog.codec_map) is not None:
            return fmt, name

    logger.debug(
        "No catalog format for container %s codecs %s",
        container,
        ",".join(codecs),
    )
    return None, ""
