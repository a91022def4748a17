"""ID3v2.4 tag encoding and injection ahead of engine output.

Only the frames needed for download tagging are written: TIT2 (title),
TPE1 (artist) and APIC (front cover), all UTF-8.

The tag is injected lazily: it is emitted together with the first bytes
the engine produces, so an engine that fails without output leaves the
stream empty and its error untouched.
"""

from __future__ import annotations

import io
import logging
from typing import BinaryIO

from mutagen.id3 import APIC, ID3, TIT2, TPE1, Encoding, PictureType

logger = logging.getLogger(__name__)


def image_mime_type(data: bytes) -> str | None:
    """Detect the MIME type of cover art from its magic bytes."""
    if data.startswith(b"\xff\xd8\xff"):
        return "image/jpeg"
    if data.startswith(b"\x89PNG\r\n\x1a\n"):
        return "image/png"
    if data[:4] == b"RIFF" and data[8:12] == b"WEBP":
        return "image/webp"
    if data[:6] in (b"GIF87a", b"GIF89a"):
        return "image/gif"
    return None


def encode_tag(
    title: str = "",
    artist: str = "",
    cover: bytes | None = None,
) -> bytes:
    """Encode an ID3v2.4 tag.

    Args:
        title: TIT2 value. Omitted when empty.
        artist: TPE1 value. Omitted when empty.
        cover: Cover art bytes. Omitted when None or of unknown type.

    Returns:
        Complete unpadded tag including its 10-byte header, or b"" when
        there is nothing to write.
    """
    tag = ID3()
    if title:
        tag.add(TIT2(encoding=Encoding.UTF8, text=title))
    if artist:
        tag.add(TPE1(encoding=Encoding.UTF8, text=artist))
    if cover:
        mime_type = image_mime_type(cover)
        if mime_type is None:
            logger.debug("Skipping cover art of unknown type")
        else:
            tag.add(
                APIC(
                    encoding=Encoding.UTF8,
                    mime=mime_type,
                    type=PictureType.COVER_FRONT,
                    desc="",
                    data=cover,
                )
            )
    if not tag.keys():
        return b""

    buffer = io.BytesIO()
    tag.save(buffer, v2_version=4, padding=lambda info: 0)
    return buffer.getvalue()


class PrependReader(io.RawIOBase):
    """Readable stream emitting a prefix ahead of a source's first bytes.

    When the source is empty the prefix is never emitted.
    """

    def __init__(self, source: BinaryIO, prefix: bytes) -> None:
        super().__init__()
        self._source = source
        self._prefix: bytes | None = prefix
        self._pending = bytearray()

    def readable(self) -> bool:
        return True

    def readinto(self, buffer) -> int:
        if not self._pending:
            data = self._source.read(len(buffer))
            if not data:
                return 0
            if self._prefix is not None:
                self._pending.extend(self._prefix)
                self._prefix = None
            self._pending.extend(data)
        size = min(len(buffer), len(self._pending))
        buffer[:size] = self._pending[:size]
        del self._pending[:size]
        return size

    def close(self) -> None:
        if self.closed:
            return
        try:
            self._source.close()
        finally:
            super().close()


class PrependWriter(io.RawIOBase):
    """Writer that writes a prefix before the first non-empty write."""

    def __init__(self, target: BinaryIO, prefix: bytes) -> None:
        super().__init__()
        self._target = target
        self._prefix: bytes | None = prefix

    def writable(self) -> bool:
        return True

    def write(self, data) -> int:
        size = len(data)
        if size and self._prefix is not None:
            self._target.write(self._prefix)
            self._prefix = None
        if size:
            self._target.write(bytes(data))
        return size

    def flush(self) -> None:
        if self.closed or getattr(self._target, "closed", False):
            return
        flush = getattr(self._target, "flush", None)
        if flush is not None:
            flush()
