"""Codec names and their equivalences.

Extractors, ffprobe and the catalog each spell codecs their own way
("avc1", "h264", "libx264"). Every codec comparison in mediabroker goes
through lookup_codec() so that those spellings compare equal.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping

VIDEO_CODEC_ALIASES: dict[str, frozenset[str]] = {
    "hevc": frozenset({"hevc", "h265", "h.265", "x265", "hvc1", "hev1"}),
    "h264": frozenset({"h264", "h.264", "avc", "avc1", "x264"}),
    "vp8": frozenset({"vp8", "vp08"}),
    "vp9": frozenset({"vp9", "vp09"}),
    "av1": frozenset({"av1", "av01", "libaom-av1"}),
    "mpeg4": frozenset({"mpeg4", "mp4v"}),
}

AUDIO_CODEC_ALIASES: dict[str, frozenset[str]] = {
    "aac": frozenset({"aac", "aac_latm", "mp4a"}),
    "ac3": frozenset({"ac3", "ac-3", "a52"}),
    "eac3": frozenset({"eac3", "e-ac-3", "ec-3", "ec3"}),
    "opus": frozenset({"opus"}),
    "mp3": frozenset({"mp3", "mp3float"}),
    "vorbis": frozenset({"vorbis"}),
    "flac": frozenset({"flac"}),
    "alac": frozenset({"alac"}),
    "dts": frozenset({"dts", "dca"}),
}

# Extractors report "none" for a missing stream
NO_CODEC = "none"


def _reverse(groups: Mapping[str, frozenset[str]]) -> dict[str, str]:
    return {alias: canonical for canonical, aliases in groups.items() for alias in aliases}


_CANONICAL_BY_KIND: dict[str | None, dict[str, str]] = {
    "video": _reverse(VIDEO_CODEC_ALIASES),
    "audio": _reverse(AUDIO_CODEC_ALIASES),
}
_CANONICAL_BY_KIND[None] = {**_CANONICAL_BY_KIND["video"], **_CANONICAL_BY_KIND["audio"]}


def normalize_codec(codec: str | None) -> str:
    """Casefold and strip a codec name.

    None and the "none" sentinel both become the empty string.
    """
    if codec is None:
        return ""
    normalized = codec.casefold().strip()
    return "" if normalized == NO_CODEC else normalized


def get_canonical_codec(codec: str | None, track_type: str | None = None) -> str:
    """Get the canonical name for a codec.

    Args:
        codec: Codec name to canonicalize.
        track_type: "video" or "audio" to restrict the alias groups
            searched. Anything else searches both.

    Returns:
        The alias group key, or the normalized input when no group
        contains it.
    """
    normalized = normalize_codec(codec)
    index = _CANONICAL_BY_KIND.get(track_type, _CANONICAL_BY_KIND[None])
    return index.get(normalized, normalized)


def map_codec(codec: str, codec_map: Mapping[str, str]) -> str:
    """Translate a short codec name through codec_map, e.g. vorbis to libvorbis."""
    return codec_map.get(codec, codec)


def lookup_codec(codec: str | None, codec_map: Mapping[str, str]) -> str:
    """Canonicalize a codec, then translate it through codec_map.

    Returns the empty string for no codec.
    """
    canonical = get_canonical_codec(codec)
    return map_codec(canonical, codec_map) if canonical else ""


def codec_in(
    codec: str | None,
    candidates: Iterable[str],
    codec_map: Mapping[str, str],
) -> bool:
    """Check whether codec equals any of candidates after lookup_codec().

    An empty codec never matches.
    """
    looked_up = lookup_codec(codec, codec_map)
    if not looked_up:
        return False
    return any(looked_up == lookup_codec(c, codec_map) for c in candidates)
