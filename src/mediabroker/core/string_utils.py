"""String manipulation utilities.

This module provides Unicode-safe string operations used across the codebase.
"""

from __future__ import annotations

import re
import unicodedata
from urllib.parse import unquote, urlparse

# Characters not allowed in filenames on common filesystems
_UNSAFE_FILENAME_CHARS = re.compile(r'[\\/:*?"<>|\x00-\x1f]')
_WHITESPACE_RUN = re.compile(r"\s+")


def normalize_string(s: str) -> str:
    """Normalize string for case-insensitive comparison.

    Example:
        >>> normalize_string("  Hello World  ")
        'hello world'
    """
    return s.casefold().strip()


def first_non_empty(*values: str | None) -> str:
    """Return the first non-empty value, or empty string.

    Example:
        >>> first_non_empty(None, "", "mp3", "aac")
        'mp3'
    """
    for value in values:
        if value:
            return value
    return ""


def safe_filename(name: str, max_length: int = 200) -> str:
    """Make a string safe to use as a filename.

    Unsafe characters become spaces, whitespace runs collapse and the
    result is truncated to max_length characters.

    Args:
        name: Proposed filename (without extension).
        max_length: Maximum length of the result.

    Returns:
        Sanitized filename, never empty ("download" as last resort).

    Example:
        >>> safe_filename('AC/DC: "Live"')
        'AC DC Live'
    """
    normalized = unicodedata.normalize("NFC", name)
    cleaned = _UNSAFE_FILENAME_CHARS.sub(" ", normalized)
    cleaned = _WHITESPACE_RUN.sub(" ", cleaned).strip(" .")
    cleaned = cleaned[:max_length].rstrip(" .")
    return cleaned or "download"


def title_from_url(url: str) -> str:
    """Derive a readable title from a URL.

    Uses the last non-empty path segment without extension, falling back to
    the host name.

    Example:
        >>> title_from_url("https://example.com/music/my_song.mp3")
        'my_song'
    """
    parsed = urlparse(url)
    segments = [s for s in parsed.path.split("/") if s]
    if segments:
        last = unquote(segments[-1])
        stem = last.rsplit(".", 1)[0] if "." in last else last
        if stem:
            return stem
    return parsed.netloc or url
