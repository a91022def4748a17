"""Engine progress line parsing.

ffmpeg run with ``-stats`` rewrites a status line on stderr, terminated by a
carriage return, while it works:

    size=     256KiB time=00:00:16.33 bitrate= 128.4kbits/s speed=32.6x

Video encodes add ``frame=``, ``fps=`` and ``q=`` fields. The last status
line reports the final size as ``Lsize=``.
"""

import re
from dataclasses import dataclass

_FIELD = re.compile(r"(\w+)=\s*(\S+)")
_SIZE = re.compile(r"(\d+)\s*(KiB|kB|MiB|MB|B)?$")
_TIME = re.compile(r"time=(-?)(\d+):(\d{2}):(\d{2})\.(\d+)")

_UNIT_BYTES = {None: 1, "B": 1, "kB": 1024, "KiB": 1024, "MB": 1 << 20, "MiB": 1 << 20}


@dataclass
class EngineProgress:
    """One engine status line."""

    frame: int | None = None
    fps: float | None = None
    bitrate: str | None = None
    size_bytes: int | None = None
    out_time_us: int | None = None
    speed: str | None = None

    @property
    def out_time_seconds(self) -> float | None:
        if self.out_time_us is None:
            return None
        return self.out_time_us / 1_000_000

    def get_percent(self, duration_seconds: float | None) -> float:
        """Share of duration_seconds produced so far, clamped to 0..100.

        0.0 when either the duration or the output time is unknown.
        """
        if not duration_seconds or duration_seconds <= 0 or self.out_time_us is None:
            return 0.0
        percent = self.out_time_us / 10_000 / duration_seconds
        return max(0.0, min(100.0, percent))


def _number(value: str | None, kind: type) -> int | float | None:
    if value is None:
        return None
    try:
        return kind(value)
    except ValueError:
        return None


def _size(value: str | None) -> int | None:
    if value is None:
        return None
    match = _SIZE.match(value)
    if match is None:
        return None
    return int(match.group(1)) * _UNIT_BYTES[match.group(2)]


def parse_time(line: str) -> int | None:
    """Output position of a status line in microseconds.

    Returns None when the line has no parsable ``time=`` field.
    """
    match = _TIME.search(line)
    if match is None:
        return None
    # negative before the first packet is muxed
    if match.group(1):
        return 0
    hours, minutes, seconds = (int(match.group(i)) for i in (2, 3, 4))
    micros = int(match.group(5).ljust(6, "0")[:6])
    return (hours * 3600 + minutes * 60 + seconds) * 1_000_000 + micros


def parse_stderr_progress(line: str) -> EngineProgress | None:
    """Parse an engine stderr line.

    Args:
        line: One stderr line, without its terminator.

    Returns:
        EngineProgress, or None when the line is not a status line.
    """
    fields = {key: value for key, value in _FIELD.findall(line)}
    if "time" not in fields:
        return None
    if not fields.keys() & {"size", "Lsize", "frame"}:
        return None
    fields = {key: value for key, value in fields.items() if value != "N/A"}

    final_size = _size(fields.get("Lsize"))
    return EngineProgress(
        frame=_number(fields.get("frame"), int),
        fps=_number(fields.get("fps"), float),
        bitrate=fields.get("bitrate"),
        size_bytes=final_size if final_size is not None else _size(fields.get("size")),
        out_time_us=parse_time(line),
        speed=fields.get("speed"),
    )
