"""Tests for pipeline/builder.py."""

import io

import pytest

from mediabroker.broker import DownloadOptions
from mediabroker.catalog.models import Catalog, Media
from mediabroker.core.timerange import TimeRange
from mediabroker.engine.command import build_transcode_args
from mediabroker.extractor.interface import SourceStreamDescriptor
from mediabroker.pipeline.builder import (
    OutputMetadata,
    SourceInput,
    build_pipeline,
    preferred_codec,
    prepend_bytes,
    resolve_codec,
)
from mediabroker.pipeline.id3v2 import PrependWriter, encode_tag

COMBINED = SourceStreamDescriptor(
    "18", acodec="mp4a.40.2", vcodec="avc1.42001E", tbr=600
)


def _source(descriptor: SourceStreamDescriptor) -> SourceInput:
    return SourceInput(descriptor, io.BytesIO(b"source"))


class TestResolveCodec:
    def test_copy_when_acceptable(self, catalog: Catalog) -> None:
        slot = catalog.formats["mp3"].streams[0]
        assert resolve_codec(slot, "mp3", catalog) == ("copy", ())

    def test_transcode_to_first_codec(self, catalog: Catalog) -> None:
        slot = catalog.formats["mp3"].streams[0]
        assert resolve_codec(slot, "opus", catalog) == ("libmp3lame", ("-b:a", "192k"))

    def test_retranscode(self, catalog: Catalog) -> None:
        slot = catalog.formats["mp3"].streams[0]
        codec, _ = resolve_codec(slot, "mp3", catalog, retranscode=True)
        assert codec == "libmp3lame"

    def test_requested_codec_forces_transcode(self, catalog: Catalog) -> None:
        slot = catalog.formats["mkv"].streams[0]
        assert resolve_codec(slot, "vorbis", catalog, codecs=["opus"]) == (
            "libopus",
            (),
        )

    def test_requested_codec_already_present(self, catalog: Catalog) -> None:
        slot = catalog.formats["mkv"].streams[0]
        assert resolve_codec(slot, "opus", catalog, codecs=["opus"]) == ("copy", ())

    def test_codec_for_other_slot_ignored(self, catalog: Catalog) -> None:
        slot = catalog.formats["mkv"].streams[0]
        assert resolve_codec(slot, "vorbis", catalog, codecs=["vp9"]) == ("copy", ())

    def test_preferred_codec(self, catalog: Catalog) -> None:
        slot = catalog.formats["mkv"].streams[1]
        assert preferred_codec(slot, catalog, ["vp9"]).name == "vp9"
        assert preferred_codec(slot, catalog, ["opus"]).name == "vp8"
        assert preferred_codec(slot, catalog, []).name == "vp8"


class TestPrependBytes:
    def test_id3v2_format(self, catalog: Catalog) -> None:
        metadata = OutputMetadata(title="Song")
        assert prepend_bytes(catalog.formats["mp3"], metadata) == encode_tag("Song")

    def test_other_format(self, catalog: Catalog) -> None:
        metadata = OutputMetadata(title="Song")
        assert prepend_bytes(catalog.formats["m4a"], metadata) == b""


class TestBuildPipeline:
    def test_combined_source_copied(self, catalog: Catalog) -> None:
        source = _source(COMBINED)
        spec = build_pipeline(
            catalog.formats["mp4"],
            {Media.AUDIO: source, Media.VIDEO: source},
            catalog,
            DownloadOptions(url="https://example.com/v", format="mp4"),
            OutputMetadata(),
        )

        assert [(m.media, m.codec) for m in spec.maps] == [
            (Media.AUDIO, "copy"),
            (Media.VIDEO, "copy"),
        ]
        assert spec.inputs == (source.reader,)
        assert spec.muxer == "mp4"
        assert spec.format_flags == ("-movflags", "frag_keyframe+empty_moov")
        assert spec.start is None
        assert spec.duration is None
        assert dict(spec.metadata) == {}

    def test_separate_sources_transcoded(self, catalog: Catalog) -> None:
        audio = _source(SourceStreamDescriptor("251", acodec="opus", abr=160))
        video = _source(SourceStreamDescriptor("248", vcodec="vp9", vbr=3000))
        spec = build_pipeline(
            catalog.formats["mp4"],
            {Media.AUDIO: audio, Media.VIDEO: video},
            catalog,
            DownloadOptions(url="u", format="mp4"),
            OutputMetadata(),
        )

        assert spec.inputs == (audio.reader, video.reader)
        assert [m.codec for m in spec.maps] == ["aac", "libx264"]
        args = build_transcode_args("ffmpeg", spec, ["pipe:3", "pipe:4"])
        assert args[args.index("-c:1") + 1 : args.index("-c:1") + 6] == [
            "libx264",
            "-preset",
            "veryfast",
            "-crf",
            "23",
        ]
        assert ["-map", "0:a:0", "-map", "1:v:0"] == args[
            args.index("-map") : args.index("-map") + 4
        ]

    def test_time_range_and_tags(self, catalog: Catalog) -> None:
        source = _source(SourceStreamDescriptor("a", acodec="mp3", abr=128))
        spec = build_pipeline(
            catalog.formats["mp3"],
            {Media.AUDIO: source},
            catalog,
            DownloadOptions(
                url="u", format="mp3", time_range=TimeRange(start=10, stop=25)
            ),
            OutputMetadata(title="Song", artist="Band"),
        )

        assert spec.start == 10
        assert spec.duration == 15
        assert dict(spec.metadata) == {"title": "Song", "artist": "Band"}

    def test_time_range_from_zero(self, catalog: Catalog) -> None:
        source = _source(SourceStreamDescriptor("a", acodec="mp3", abr=128))
        spec = build_pipeline(
            catalog.formats["mp3"],
            {Media.AUDIO: source},
            catalog,
            DownloadOptions(url="u", format="mp3", time_range=TimeRange(stop=5)),
            OutputMetadata(),
        )
        assert spec.start is None
        assert spec.duration == 5

    def test_writer_output_gets_tag(self, catalog: Catalog) -> None:
        source = _source(SourceStreamDescriptor("a", acodec="mp3", abr=128))
        target = io.BytesIO()
        spec = build_pipeline(
            catalog.formats["mp3"],
            {Media.AUDIO: source},
            catalog,
            DownloadOptions(url="u", format="mp3"),
            OutputMetadata(title="Song"),
            output=target,
        )

        assert isinstance(spec.output, PrependWriter)
        spec.output.write(b"frames")
        assert target.getvalue() == encode_tag("Song") + b"frames"

    def test_missing_source(self, catalog: Catalog) -> None:
        with pytest.raises(KeyError):
            build_pipeline(
                catalog.formats["mp4"],
                {Media.AUDIO: _source(COMBINED)},
                catalog,
                DownloadOptions(url="u", format="mp4"),
                OutputMetadata(),
            )
