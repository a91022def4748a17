"""Format catalog data models.

These frozen dataclasses are the validated, immutable form of a catalog
document. They are produced by mediabroker.catalog.loader and shared
read-only across every negotiation.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType


class Media(Enum):
    """Kind of media carried by a stream slot."""

    AUDIO = "audio"
    VIDEO = "video"

    @property
    def specifier(self) -> str:
        """Engine stream specifier selecting the first stream of this kind."""
        return "a:0" if self is Media.AUDIO else "v:0"


class Prepend(Enum):
    """Post-processing applied to a format's output bytes."""

    NONE = ""
    ID3V2 = "id3v2"


@dataclass(frozen=True)
class CodecSpec:
    """One acceptable codec for a stream slot."""

    name: str
    """Short codec name (e.g. "vorbis"), resolved through the codec map."""

    flags: tuple[str, ...] = ()
    """Extra engine arguments used when encoding to this codec."""


@dataclass(frozen=True)
class StreamSpec:
    """One audio or video slot within a Format.

    The first codec is the preferred transcode target.
    """

    media: Media
    codecs: tuple[CodecSpec, ...]

    def __post_init__(self) -> None:
        """Validate the slot has at least one codec."""
        if not self.codecs:
            raise ValueError(f"{self.media.value} stream must declare codecs")

    @property
    def codec_names(self) -> frozenset[str]:
        """Set of acceptable codec names."""
        return frozenset(c.name for c in self.codecs)

    def codec(self, name: str) -> CodecSpec | None:
        """Return the codec entry with this name, if declared."""
        return next((c for c in self.codecs if c.name == name), None)


@dataclass(frozen=True)
class Format:
    """A named target output format (catalog entry)."""

    name: str
    streams: tuple[StreamSpec, ...]
    containers: tuple[str, ...]
    """Acceptable container identifiers as reported by the probe."""

    mime_type: str
    ext: str
    muxer: str = ""
    """Engine output format name. Defaults to the first container."""

    prepend: Prepend = Prepend.NONE
    format_flags: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        """Validate invariants and fill derived defaults."""
        if not self.containers:
            raise ValueError(f"Format {self.name!r} must declare containers")
        if not self.streams:
            raise ValueError(f"Format {self.name!r} must declare streams")
        if not self.muxer:
            object.__setattr__(self, "muxer", self.containers[0])

    @property
    def container_names(self) -> frozenset[str]:
        """Set of acceptable container identifiers."""
        return frozenset(self.containers)

    @property
    def has_audio(self) -> bool:
        """Return True if any slot carries audio."""
        return any(s.media is Media.AUDIO for s in self.streams)

    @property
    def has_video(self) -> bool:
        """Return True if any slot carries video."""
        return any(s.media is Media.VIDEO for s in self.streams)


@dataclass(frozen=True)
class Catalog:
    """Immutable table of supported output formats.

    Constructed once at startup and passed by reference. A reload replaces
    the whole Catalog; there is no in-place mutation.
    """

    formats: Mapping[str, Format]
    """Formats in declaration order, which is also matching priority."""

    codec_map: Mapping[str, str] = field(default_factory=dict)
    """Short codec name -> engine encoder name."""

    def __post_init__(self) -> None:
        """Freeze mappings."""
        object.__setattr__(self, "formats", MappingProxyType(dict(self.formats)))
        object.__setattr__(
            self, "codec_map", MappingProxyType(dict(self.codec_map))
        )

    def __contains__(self, name: object) -> bool:
        return name in self.formats

    def get(self, name: str) -> Format | None:
        """Look up a format by name."""
        return self.formats.get(name)

    @property
    def names(self) -> tuple[str, ...]:
        """Format names in declaration order."""
        return tuple(self.formats)

    def find_by_format_codecs(
        self, container: str, codecs: Sequence[str]
    ) -> tuple[Format | None, str]:
        """Find the first format matching a container and codec list.

        See mediabroker.catalog.matcher.find_by_format_codecs.
        """
        from mediabroker.catalog.matcher import find_by_format_codecs

        return find_by_format_codecs(self, container, codecs)
