"""Structured logging module for mediabroker.

Provides configurable logging with JSON format support and file rotation.
Includes download context support for concurrent requests.
"""

from mediabroker.logging.config import configure_logging
from mediabroker.logging.context import (
    DownloadContextFilter,
    clear_download_context,
    copy_context,
    download_context,
    get_download_context,
    new_request_id,
    set_download_context,
)
from mediabroker.logging.handlers import JSONFormatter

__all__ = [
    "DownloadContextFilter",
    "JSONFormatter",
    "clear_download_context",
    "configure_logging",
    "copy_context",
    "download_context",
    "get_download_context",
    "new_request_id",
    "set_download_context",
]
