"""Core utilities package.

This package contains utilities with no third-party dependencies used across
the codebase: codec normalization, request cancellation, time ranges, the
base error type, string helpers and one-shot subprocess invocation.
"""

from mediabroker.core.codecs import (
    AUDIO_CODEC_ALIASES,
    NO_CODEC,
    VIDEO_CODEC_ALIASES,
    codec_in,
    get_canonical_codec,
    lookup_codec,
    map_codec,
    normalize_codec,
)
from mediabroker.core.context import Context
from mediabroker.core.errors import BrokerError
from mediabroker.core.string_utils import (
    first_non_empty,
    normalize_string,
    safe_filename,
    title_from_url,
)
from mediabroker.core.subprocess_utils import run_command
from mediabroker.core.timerange import (
    TimeRange,
    TimeRangeError,
    format_seconds,
    parse_duration,
)

__all__ = [
    # Codecs
    "AUDIO_CODEC_ALIASES",
    "NO_CODEC",
    "VIDEO_CODEC_ALIASES",
    "codec_in",
    "get_canonical_codec",
    "lookup_codec",
    "map_codec",
    "normalize_codec",
    # Cancellation
    "Context",
    # Errors
    "BrokerError",
    # Strings
    "first_non_empty",
    "normalize_string",
    "safe_filename",
    "title_from_url",
    # Subprocess
    "run_command",
    # Time ranges
    "TimeRange",
    "TimeRangeError",
    "format_seconds",
    "parse_duration",
]
