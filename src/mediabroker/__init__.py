"""mediabroker: fetch media from a URL and transcode it on the fly.

Public API:
    Broker, DownloadOptions, DownloadResult, ProgressEvent
    find_by_format_codecs, probe
"""

from mediabroker.broker import (
    Broker,
    DownloadOptions,
    DownloadResult,
    ProgressEvent,
    find_by_format_codecs,
    probe,
)
from mediabroker.core.context import Context
from mediabroker.core.errors import BrokerError
from mediabroker.core.timerange import TimeRange

__version__ = "0.1.0"

__all__ = [
    "Broker",
    "BrokerError",
    "Context",
    "DownloadOptions",
    "DownloadResult",
    "ProgressEvent",
    "TimeRange",
    "__version__",
    "find_by_format_codecs",
    "probe",
]
