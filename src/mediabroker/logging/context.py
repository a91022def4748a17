"""Download context for structured logging.

Provides context propagation using contextvars, enabling automatic injection
of request_id and url into every log record emitted while a download or
probe request is being set up.
"""

from __future__ import annotations

import contextvars
import logging
import uuid
from contextlib import contextmanager
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Generator

_request_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "request_id", default=None
)
_url: contextvars.ContextVar[str | None] = contextvars.ContextVar("url", default=None)


def new_request_id() -> str:
    """Return a short random request identifier."""
    return uuid.uuid4().hex[:8]


def set_download_context(request_id: str, url: str | None = None) -> None:
    """Set the current download context."""
    _request_id.set(request_id)
    _url.set(url)


def clear_download_context() -> None:
    """Clear the current download context."""
    _request_id.set(None)
    _url.set(None)


@contextmanager
def download_context(
    request_id: str | None = None,
    url: str | None = None,
) -> Generator[str, None, None]:
    """Context manager for one download request.

    Sets the context on entry and restores the previous one on exit.
    Helper threads started inside the block copy the context explicitly
    (see copy_context()).

    Yields:
        The request id in effect.

    Example:
        with download_context(url="https://example.com/v") as request_id:
            logger.info("Extracting")  # record carries request_id and url
    """
    rid = request_id or new_request_id()
    old_request_id = _request_id.get()
    old_url = _url.get()
    try:
        set_download_context(rid, url)
        yield rid
    finally:
        _request_id.set(old_request_id)
        _url.set(old_url)


def get_download_context() -> tuple[str | None, str | None]:
    """Get current download context as (request_id, url)."""
    return _request_id.get(), _url.get()


def copy_context() -> contextvars.Context:
    """Snapshot the current context for use in a helper thread."""
    return contextvars.copy_context()


class DownloadContextFilter(logging.Filter):
    """Logging filter that injects download context into log records.

    Adds request_id and url attributes from contextvars. For text format,
    also adds a compact request_tag like "[3f9a1c2e] ".
    """

    def filter(self, record: logging.LogRecord) -> bool:
        """Inject download context into log record.

        Returns:
            Always True (does not filter, only enriches).
        """
        request_id, url = get_download_context()

        record.request_id = request_id
        record.url = url
        record.request_tag = f"[{request_id}] " if request_id else ""

        return True
