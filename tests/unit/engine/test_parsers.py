"""Tests for engine/parsers.py - ffprobe JSON parsing."""

import pytest

from mediabroker.engine.parsers import (
    container_from_format_name,
    parse_duration,
    parse_probe_output,
    parse_tags,
)

MP4_OUTPUT = {
    "streams": [
        {"index": 1, "codec_type": "video", "codec_name": "h264"},
        {"index": 0, "codec_type": "audio", "codec_name": "aac"},
        {"index": 2, "codec_type": "data", "codec_name": "bin_data"},
    ],
    "format": {
        "format_name": "mov,mp4,m4a,3gp,3g2,mj2",
        "duration": "12.500000",
        "tags": {"TITLE": "Clip", "encoder": "Lavf60"},
    },
}


class TestParseProbeOutput:
    """Tests for parse_probe_output."""

    def test_container_and_streams(self) -> None:
        result = parse_probe_output(MP4_OUTPUT)

        assert result.format_name == "mov,mp4,m4a,3gp,3g2,mj2"
        assert result.container == "mov"
        assert [s.index for s in result.streams] == [0, 1, 2]
        assert result.codecs == ("aac", "h264")
        assert result.duration == 12.5
        assert result.title == "Clip"
        assert result.first("video").codec_name == "h264"
        assert result.first("subtitle") is None

    def test_missing_format(self) -> None:
        with pytest.raises(ValueError, match="format"):
            parse_probe_output({"streams": []})

    def test_empty_format_name(self) -> None:
        with pytest.raises(ValueError, match="container"):
            parse_probe_output({"format": {"format_name": ""}})

    def test_no_streams(self) -> None:
        result = parse_probe_output({"format": {"format_name": "mp3"}})
        assert result.streams == ()
        assert result.codecs == ()
        assert result.duration is None

    def test_missing_index_uses_position(self) -> None:
        result = parse_probe_output(
            {
                "format": {"format_name": "ogg"},
                "streams": [{"codec_type": "audio", "codec_name": "vorbis"}],
            }
        )
        assert result.streams[0].index == 0


class TestHelpers:
    def test_container_from_format_name(self) -> None:
        assert container_from_format_name("matroska,webm") == "matroska"
        assert container_from_format_name("mp3") == "mp3"

    def test_parse_duration(self) -> None:
        assert parse_duration("3600.000") == 3600.0
        assert parse_duration("N/A") is None
        assert parse_duration(None) is None

    def test_parse_tags(self) -> None:
        tags = parse_tags({"Title": "x", "TRACK": 3})
        assert dict(tags) == {"title": "x", "track": "3"}
        assert dict(parse_tags(None)) == {}
