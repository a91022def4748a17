"""Tests for extractor/normalize.py."""

import pytest

from mediabroker.extractor.interface import SourceStreamDescriptor
from mediabroker.extractor.normalize import (
    normalize_bitrate,
    normalize_source_codec,
    to_float,
)


class TestNormalizeSourceCodec:
    @pytest.mark.parametrize(
        "codec,expected",
        [
            ("mp4a.40.2", "aac"),
            ("mp4a.40.5", "aac"),
            ("mp4a.6B", "mp3"),
            ("avc1.64001F", "h264"),
            ("avc3.4d401e", "h264"),
            ("vp09.00.51.08", "vp9"),
            ("vp9", "vp9"),
            ("VP8", "vp8"),
            ("av01.0.08M.08", "av1"),
            ("hvc1.1.6.L93.B0", "hevc"),
            ("opus", "opus"),
            ("ec-3", "eac3"),
            ("theora", "theora"),
        ],
    )
    def test_known_codecs(self, codec: str, expected: str) -> None:
        assert normalize_source_codec(codec) == expected

    @pytest.mark.parametrize("codec", [None, "", "none", "NONE"])
    def test_no_codec(self, codec: str | None) -> None:
        assert normalize_source_codec(codec) == ""


class TestNormalizeBitrate:
    def test_total_bitrate_wins(self) -> None:
        assert normalize_bitrate(128, 1000, 1500) == 1500.0

    def test_sum_of_parts(self) -> None:
        assert normalize_bitrate(128, 1000, None) == 1128.0
        assert normalize_bitrate(160, None, None) == 160.0

    def test_unknown(self) -> None:
        assert normalize_bitrate(None, None, None) == 0.0


class TestToFloat:
    @pytest.mark.parametrize(
        "value,expected",
        [(1, 1.0), ("2.5", 2.5), (None, None), ("abc", None), (True, None)],
    )
    def test_coercion(self, value: object, expected: float | None) -> None:
        assert to_float(value) == expected


class TestSourceStreamDescriptor:
    def test_normalized_fields(self) -> None:
        descriptor = SourceStreamDescriptor(
            "18", acodec="mp4a.40.2", vcodec="avc1.42001E", abr=96, vbr=500
        )
        assert descriptor.norm_acodec == "aac"
        assert descriptor.norm_vcodec == "h264"
        assert descriptor.norm_bitrate == 596.0
        assert descriptor.has_audio
        assert descriptor.has_video

    def test_none_sentinel(self) -> None:
        descriptor = SourceStreamDescriptor("251", acodec="opus", vcodec="none")
        assert descriptor.has_audio
        assert not descriptor.has_video
        assert descriptor.norm_bitrate == 0.0
