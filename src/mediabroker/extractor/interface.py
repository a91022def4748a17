"""Extractor interface: URL -> available source streams."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Protocol

from mediabroker.core.context import Context
from mediabroker.core.errors import BrokerError
from mediabroker.extractor.normalize import normalize_bitrate, normalize_source_codec


class ExtractionError(BrokerError):
    """Raised when an extractor cannot resolve a URL or open a stream."""


@dataclass(frozen=True)
class SourceStreamDescriptor:
    """One downloadable stream variant reported by the extractor.

    norm_acodec, norm_vcodec and norm_bitrate are derived once from the raw
    fields. They are empty/zero when a field is absent or carries the
    "none" sentinel.
    """

    format_id: str
    acodec: str | None = None
    vcodec: str | None = None
    abr: float | None = None
    vbr: float | None = None
    tbr: float | None = None
    ext: str = ""
    protocol: str = ""

    norm_acodec: str = field(init=False)
    norm_vcodec: str = field(init=False)
    norm_bitrate: float = field(init=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "norm_acodec", normalize_source_codec(self.acodec))
        object.__setattr__(self, "norm_vcodec", normalize_source_codec(self.vcodec))
        object.__setattr__(
            self, "norm_bitrate", normalize_bitrate(self.abr, self.vbr, self.tbr)
        )

    @property
    def has_audio(self) -> bool:
        return bool(self.norm_acodec)

    @property
    def has_video(self) -> bool:
        return bool(self.norm_vcodec)


@dataclass(frozen=True)
class ExtractionResult:
    """What an extractor knows about a URL."""

    url: str
    title: str = ""
    uploader: str = ""
    thumbnail_url: str = ""
    thumbnail_bytes: bytes | None = None
    formats: tuple[SourceStreamDescriptor, ...] = ()
    raw: Mapping[str, Any] = field(default_factory=dict)
    """Raw extractor metadata."""

    def get_format(self, format_id: str) -> SourceStreamDescriptor | None:
        """Look up a descriptor by format id."""
        return next((f for f in self.formats if f.format_id == format_id), None)


class SourceStream(Protocol):
    """Readable byte stream of one source descriptor."""

    def read(self, size: int = -1, /) -> bytes:
        """Read up to size bytes. Empty bytes at EOF."""
        ...

    def close(self) -> None:
        """Stop the transfer and release its resources. Idempotent."""
        ...

    def wait(self, timeout: float | None = None) -> None:
        """Block until the transfer has finished.

        Raises:
            ExtractionError: If the transfer failed.
            ContextCanceled: If the context was cancelled.
        """
        ...


class Extractor(Protocol):
    """Protocol for extractor implementations.

    Implementations resolve a URL to stream descriptors and open byte
    streams for individual descriptors.
    """

    def extract(self, ctx: Context, url: str) -> ExtractionResult:
        """Resolve a URL.

        Raises:
            ExtractionError: If the URL cannot be resolved.
        """
        ...

    def open_stream(
        self, ctx: Context, info: ExtractionResult, format_id: str
    ) -> SourceStream:
        """Open the byte stream of one descriptor.

        Raises:
            ExtractionError: If the stream cannot be opened.
        """
        ...
