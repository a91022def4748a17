"""Stub implementation of Extractor for development and testing."""

from __future__ import annotations

import io
from collections.abc import Mapping

from mediabroker.core.context import Context
from mediabroker.engine.exceptions import ContextCanceled
from mediabroker.extractor.interface import (
    ExtractionError,
    ExtractionResult,
    SourceStreamDescriptor,
)


class StubStream(io.BytesIO):
    """In-memory source stream with the SourceStream wait() contract."""

    def __init__(self, data: bytes, error: Exception | None = None) -> None:
        super().__init__(data)
        self._error = error

    def wait(self, timeout: float | None = None) -> None:
        if self._error is not None:
            raise self._error


class StubExtractor:
    """Extractor serving in-memory streams.

    Register a URL with the descriptors it exposes and the bytes behind
    each format id.

    Example:
        extractor = StubExtractor()
        extractor.add(
            "https://example.com/song",
            [SourceStreamDescriptor("a", acodec="mp3", abr=128)],
            {"a": mp3_bytes},
            title="Song",
        )
    """

    def __init__(self) -> None:
        self._entries: dict[str, tuple[ExtractionResult, Mapping[str, bytes]]] = {}
        self._stream_errors: dict[tuple[str, str], Exception] = {}
        self.opened: list[str] = []

    def add(
        self,
        url: str,
        formats: list[SourceStreamDescriptor],
        data: Mapping[str, bytes],
        *,
        title: str = "",
        uploader: str = "",
        thumbnail_bytes: bytes | None = None,
    ) -> ExtractionResult:
        """Register a URL and return its ExtractionResult."""
        result = ExtractionResult(
            url=url,
            title=title,
            uploader=uploader,
            thumbnail_bytes=thumbnail_bytes,
            formats=tuple(formats),
            raw={"webpage_url": url, "title": title},
        )
        self._entries[url] = (result, dict(data))
        return result

    def fail_stream(self, url: str, format_id: str, error: Exception) -> None:
        """Make wait() of a stream raise error."""
        self._stream_errors[(url, format_id)] = error

    def extract(self, ctx: Context, url: str) -> ExtractionResult:
        if ctx.cancelled:
            raise ContextCanceled(f"extraction canceled: {ctx.reason}", url=url)
        if url not in self._entries:
            raise ExtractionError("unsupported URL", url=url)
        return self._entries[url][0]

    def open_stream(
        self, ctx: Context, info: ExtractionResult, format_id: str
    ) -> StubStream:
        _, data = self._entries.get(info.url, (info, {}))
        if format_id not in data:
            raise ExtractionError(f"unknown format id {format_id}", url=info.url)
        self.opened.append(format_id)
        error = self._stream_errors.get((info.url, format_id))
        return StubStream(data[format_id], error)
