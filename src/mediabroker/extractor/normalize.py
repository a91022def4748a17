"""Normalization of extractor-reported codec and bitrate fields.

Extractors report codecs as RFC 6381 strings ("mp4a.40.2", "avc1.64001F")
or plain names ("opus"). Everything is reduced to the canonical names used
by the catalog.
"""

from __future__ import annotations

from mediabroker.core.codecs import get_canonical_codec, normalize_codec

# Codec string prefix (before the first ".") -> canonical codec
_PREFIX_CODECS: dict[str, str] = {
    "mp4a": "aac",
    "avc1": "h264",
    "avc3": "h264",
    "vp09": "vp9",
    "vp9": "vp9",
    "vp08": "vp8",
    "vp8": "vp8",
    "av01": "av1",
    "hev1": "hevc",
    "hvc1": "hevc",
    "ac-3": "ac3",
    "ec-3": "eac3",
}

# MPEG audio carried in MP4 uses the mp4a fourcc with these object types
_MP4A_MP3 = frozenset({"mp4a.6b", "mp4a.69", "mp4a.40.34"})


def normalize_source_codec(codec: str | None) -> str:
    """Normalize a codec string reported by an extractor.

    Args:
        codec: Reported codec, possibly None or the "none" sentinel.

    Returns:
        Canonical codec name, empty string when there is no codec. Unknown
        codecs keep their lowercased prefix.

    Example:
        >>> normalize_source_codec("avc1.64001F")
        'h264'
    """
    normalized = normalize_codec(codec)
    if not normalized:
        return ""
    if normalized in _MP4A_MP3:
        return "mp3"
    prefix = normalized.split(".", 1)[0]
    return get_canonical_codec(_PREFIX_CODECS.get(prefix, prefix))


def normalize_bitrate(
    abr: float | None, vbr: float | None, tbr: float | None
) -> float:
    """Single comparable bitrate (kbit/s) for a descriptor.

    The total bitrate is used when known, otherwise the sum of audio and
    video bitrates. Zero when nothing is known.
    """
    if tbr:
        return float(tbr)
    return float(abr or 0) + float(vbr or 0)


def to_float(value: object) -> float | None:
    """Coerce an extractor field to float, None when absent or invalid."""
    if value is None or isinstance(value, bool):
        return None
    try:
        return float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return None
