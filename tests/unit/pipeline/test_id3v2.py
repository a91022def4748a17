"""Tests for pipeline/id3v2.py."""

import io

import pytest
from mutagen.id3 import ID3

from mediabroker.pipeline.id3v2 import (
    PrependReader,
    PrependWriter,
    encode_tag,
    image_mime_type,
)

PNG = b"\x89PNG\r\n\x1a\n" + b"\0" * 16
JPEG = b"\xff\xd8\xff\xe0" + b"\0" * 16
# MPEG audio frame sync, so the tag is parsed as the head of an mp3 stream
MP3_SYNC = b"\xff\xfb\x90\x00"


def _parse(tag: bytes) -> ID3:
    return ID3(io.BytesIO(tag + MP3_SYNC))


def _syncsafe_size(header: bytes) -> int:
    return (header[6] << 21) | (header[7] << 14) | (header[8] << 7) | header[9]


class TestEncodeTag:
    def test_nothing_to_write(self) -> None:
        assert encode_tag() == b""

    def test_v24_header_without_padding(self) -> None:
        tag = encode_tag(title="Hi")
        assert tag[:5] == b"ID3\x04\x00"
        assert all(byte < 0x80 for byte in tag[6:10])
        assert _syncsafe_size(tag) == len(tag) - 10

    def test_title_and_artist(self) -> None:
        parsed = _parse(encode_tag(title="Größe", artist="Ünal"))
        assert parsed["TIT2"].text == ["Größe"]
        assert parsed["TPE1"].text == ["Ünal"]
        assert parsed.version == (2, 4, 0)

    def test_title_only(self) -> None:
        parsed = _parse(encode_tag(title="Song"))
        assert "TPE1" not in parsed
        assert str(parsed["TIT2"]) == "Song"

    def test_cover_art(self) -> None:
        parsed = _parse(encode_tag(title="x", cover=PNG))
        (picture,) = parsed.getall("APIC")
        assert picture.mime == "image/png"
        assert picture.type == 3
        assert picture.data == PNG

    def test_unknown_cover_skipped(self) -> None:
        assert encode_tag(cover=b"not an image") == b""
        assert b"APIC" not in encode_tag(title="x", cover=b"not an image")

    def test_large_tag_size(self) -> None:
        tag = encode_tag(title="a" * 300, cover=JPEG)
        assert _syncsafe_size(tag) == len(tag) - 10


class TestImageMimeType:
    @pytest.mark.parametrize(
        "data,expected",
        [
            (JPEG, "image/jpeg"),
            (PNG, "image/png"),
            (b"RIFF\0\0\0\0WEBPVP8 ", "image/webp"),
            (b"GIF89a....", "image/gif"),
            (b"", None),
        ],
    )
    def test_detection(self, data: bytes, expected: str | None) -> None:
        assert image_mime_type(data) == expected


class TestPrependReader:
    def test_prefix_precedes_data(self) -> None:
        reader = PrependReader(io.BytesIO(b"abc"), b"TAG")
        assert reader.read() == b"TAGabc"

    def test_small_reads(self) -> None:
        reader = PrependReader(io.BytesIO(b"abc"), b"TAG")
        chunks = []
        while chunk := reader.read(2):
            chunks.append(chunk)
        assert b"".join(chunks) == b"TAGabc"
        assert all(len(c) <= 2 for c in chunks)

    def test_empty_source_emits_nothing(self) -> None:
        reader = PrependReader(io.BytesIO(b""), b"TAG")
        assert reader.read() == b""

    def test_close_closes_source(self) -> None:
        source = io.BytesIO(b"abc")
        reader = PrependReader(source, b"TAG")
        reader.close()
        reader.close()
        assert source.closed


class TestPrependWriter:
    def test_prefix_before_first_write(self) -> None:
        target = io.BytesIO()
        writer = PrependWriter(target, b"TAG")
        writer.write(b"")
        assert target.getvalue() == b""
        writer.write(b"ab")
        writer.write(b"c")
        assert target.getvalue() == b"TAGabc"

    def test_no_writes_no_prefix(self) -> None:
        target = io.BytesIO()
        writer = PrependWriter(target, b"TAG")
        writer.flush()
        assert target.getvalue() == b""
