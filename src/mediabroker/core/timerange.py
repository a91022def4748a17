"""Time range parsing for download trimming.

Accepted forms for each endpoint:
- plain seconds: "90", "90.5"
- unit durations: "1h2m3.5s", "30s", "1500ms"
- clock notation: "1:30", "01:02:03.250"

A range is "START-STOP", "START-" or "-STOP"; a single value is a stop.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

_UNIT_RE = re.compile(r"(\d+(?:\.\d+)?)(ms|h|m|s)")
_UNIT_SECONDS = {"h": 3600.0, "m": 60.0, "s": 1.0, "ms": 0.001}


class TimeRangeError(ValueError):
    """Raised when a time range string cannot be parsed."""


def parse_duration(value: str) -> float:
    """Parse a duration string into seconds.

    Args:
        value: Duration in one of the accepted forms.

    Returns:
        Duration in seconds.

    Raises:
        TimeRangeError: If the value is not a valid duration.
    """
    text = value.strip()
    if not text:
        raise TimeRangeError("Empty duration")

    if ":" in text:
        parts = text.split(":")
        if len(parts) > 3:
            raise TimeRangeError(f"Invalid clock duration: {value}")
        seconds = 0.0
        try:
            for part in parts:
                seconds = seconds * 60 + float(part)
        except ValueError as e:
            raise TimeRangeError(f"Invalid clock duration: {value}") from e
        return seconds

    try:
        return float(text)
    except ValueError:
        pass

    pos = 0
    seconds = 0.0
    for match in _UNIT_RE.finditer(text):
        if match.start() != pos:
            break
        seconds += float(match.group(1)) * _UNIT_SECONDS[match.group(2)]
        pos = match.end()
    if pos != len(text) or pos == 0:
        raise TimeRangeError(f"Invalid duration: {value}")
    return seconds


def format_seconds(seconds: float) -> str:
    """Format seconds for ffmpeg time options (e.g. "12.5")."""
    return f"{seconds:.3f}".rstrip("0").rstrip(".")


@dataclass(frozen=True)
class TimeRange:
    """Start/stop offsets in seconds. stop=None means end of stream."""

    start: float = 0.0
    stop: float | None = None

    def __post_init__(self) -> None:
        """Validate offsets."""
        if self.start < 0:
            raise TimeRangeError(f"Negative start: {self.start}")
        if self.stop is not None and self.stop <= self.start:
            raise TimeRangeError(
                f"Stop ({self.stop}) must be after start ({self.start})"
            )

    @classmethod
    def parse(cls, value: str) -> TimeRange:
        """Parse "START-STOP", "START-", "-STOP" or "STOP".

        Raises:
            TimeRangeError: If the range is malformed.
        """
        text = value.strip()
        if "-" not in text:
            return cls(stop=parse_duration(text))
        start_text, _, stop_text = text.partition("-")
        start = parse_duration(start_text) if start_text.strip() else 0.0
        stop = parse_duration(stop_text) if stop_text.strip() else None
        return cls(start=start, stop=stop)

    @property
    def is_empty(self) -> bool:
        """Return True if the range does not trim anything."""
        return self.start == 0 and self.stop is None

    @property
    def duration(self) -> float | None:
        """Length of the range in seconds, None when open-ended."""
        if self.stop is None:
            return None
        return self.stop - self.start

    def __str__(self) -> str:
        stop = format_seconds(self.stop) if self.stop is not None else ""
        return f"{format_seconds(self.start)}s-{stop}{'s' if stop else ''}"
