"""Extractors: resolve URLs to downloadable source streams."""

from mediabroker.extractor.interface import (
    ExtractionError,
    ExtractionResult,
    Extractor,
    SourceStream,
    SourceStreamDescriptor,
)
from mediabroker.extractor.normalize import normalize_bitrate, normalize_source_codec
from mediabroker.extractor.stub import StubExtractor, StubStream
from mediabroker.extractor.ytdlp import YtDlpExtractor, YtDlpStream

__all__ = [
    "ExtractionError",
    "ExtractionResult",
    "Extractor",
    "SourceStream",
    "SourceStreamDescriptor",
    "StubExtractor",
    "StubStream",
    "YtDlpExtractor",
    "YtDlpStream",
    "normalize_bitrate",
    "normalize_source_codec",
]
