"""Download negotiation: source selection, pipeline building, tag injection."""

from mediabroker.pipeline.builder import (
    OutputMetadata,
    SourceInput,
    build_pipeline,
    prepend_bytes,
    resolve_codec,
)
from mediabroker.pipeline.id3v2 import PrependReader, PrependWriter, encode_tag
from mediabroker.pipeline.selector import (
    UnmatchedFormatError,
    select_raw,
    select_source,
    select_sources,
)

__all__ = [
    "OutputMetadata",
    "PrependReader",
    "PrependWriter",
    "SourceInput",
    "UnmatchedFormatError",
    "build_pipeline",
    "encode_tag",
    "prepend_bytes",
    "resolve_codec",
    "select_raw",
    "select_source",
    "select_sources",
]
