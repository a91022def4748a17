"""Probe: bounded inspection of a byte stream with ffprobe.

The reader is consumed up to limit_bytes and never rewound. Callers that
need the bytes afterwards must tee them first (see TeeReader).
"""

from __future__ import annotations

import io
import json
import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass
from typing import BinaryIO

from mediabroker.config.models import BrokerConfig
from mediabroker.core.context import Context
from mediabroker.engine.exceptions import EngineError, ProbeError
from mediabroker.engine.parsers import ProbeResult, parse_probe_output
from mediabroker.engine.supervisor import EngineProcess
from mediabroker.engine.tools import ffprobe_path

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProbeHints:
    """Optional hints for probing."""

    format_name: str | None = None
    """Force the demuxer (ffprobe -f)."""


class LimitedReader(io.RawIOBase):
    """Reads at most `limit` bytes from a reader, counting what it read."""

    def __init__(self, reader: BinaryIO, limit: int) -> None:
        super().__init__()
        self._reader = reader
        self._remaining = limit
        self._lock = threading.Lock()
        self.consumed = 0

    def readable(self) -> bool:
        return True

    def readinto(self, buffer) -> int:
        with self._lock:
            if self._remaining <= 0:
                return 0
            data = self._reader.read(min(len(buffer), self._remaining))
            if not data:
                return 0
            size = len(data)
            buffer[:size] = data
            self._remaining -= size
            self.consumed += size
            return size


class TeeReader(io.RawIOBase):
    """Copies everything read from a reader into a buffer.

    Used to probe a stream and then replay the probed prefix. handover()
    ends the tee: reads started afterwards return EOF, and a read still
    blocked in the source when it is called keeps its bytes in the buffer.
    The returned ReplayReader therefore sees every byte once and in order,
    even when a probe feeder outlives the probe.
    """

    def __init__(self, reader: BinaryIO) -> None:
        super().__init__()
        self._reader = reader
        self._cond = threading.Condition()
        self._in_flight = False
        self._handed_over = False
        self.buffer = bytearray()

    def readable(self) -> bool:
        return True

    def readinto(self, buffer) -> int:
        with self._cond:
            if self._handed_over:
                return 0
            self._in_flight = True
        try:
            data = self._reader.read(len(buffer)) or b""
        except BaseException:
            with self._cond:
                self._in_flight = False
                self._cond.notify_all()
            raise
        with self._cond:
            self._in_flight = False
            self.buffer.extend(data)
            self._cond.notify_all()
            if self._handed_over:
                return 0
        size = len(data)
        buffer[:size] = data
        return size

    def _take_buffer(self) -> bytes:
        with self._cond:
            self._cond.wait_for(lambda: not self._in_flight)
            data = bytes(self.buffer)
            self.buffer.clear()
        return data

    def handover(self) -> ReplayReader:
        """Stop teeing and return a reader over the buffer and the rest."""
        with self._cond:
            self._handed_over = True
        return ReplayReader(self._take_buffer, self._reader)


class ReplayReader(io.RawIOBase):
    """Replays a buffered prefix, then continues with the source.

    prefix may be a callable, invoked on the first read, for a prefix that
    is only complete once a concurrent reader has finished.
    """

    def __init__(self, prefix: bytes | Callable[[], bytes], source: BinaryIO) -> None:
        super().__init__()
        self._load_prefix = prefix if callable(prefix) else None
        self._prefix = memoryview(b"" if callable(prefix) else prefix)
        self._source = source

    def readable(self) -> bool:
        return True

    def readinto(self, buffer) -> int:
        if self._load_prefix is not None:
            self._prefix = memoryview(self._load_prefix())
            self._load_prefix = None
        if self._prefix:
            size = min(len(buffer), len(self._prefix))
            buffer[:size] = self._prefix[:size]
            self._prefix = self._prefix[size:]
            return size
        data = self._source.read(len(buffer))
        if not data:
            return 0
        size = len(data)
        buffer[:size] = data
        return size

    def close(self) -> None:
        if self.closed:
            return
        try:
            self._source.close()
        finally:
            super().close()


def build_probe_args(
    executable: str, url: str, hints: ProbeHints | None = None
) -> list[str]:
    """Build the ffprobe argument list for one input URL."""
    args = [
        executable,
        "-hide_banner",
        "-v",
        "error",
        "-print_format",
        "json",
        "-show_format",
        "-show_streams",
    ]
    if hints is not None and hints.format_name:
        args.extend(["-f", hints.format_name])
    args.extend(["-i", url])
    return args


def probe(
    ctx: Context,
    reader: BinaryIO,
    limit_bytes: int,
    hints: ProbeHints | None = None,
    *,
    config: BrokerConfig | None = None,
) -> ProbeResult:
    """Inspect at most limit_bytes of a byte stream.

    Args:
        ctx: Cancellation context.
        reader: Byte stream. Consumed up to limit_bytes, never rewound.
        limit_bytes: Maximum number of bytes to read.
        hints: Optional probe hints.
        config: Broker configuration (ffprobe path, supervision settings).

    Returns:
        ProbeResult with container, streams in order and format tags.

    Raises:
        ValueError: If limit_bytes is not positive.
        ProbeError: If the stream is empty or malformed, or no container is
            identified within limit_bytes.
        ContextCanceled: If ctx is cancelled during inspection.
    """
    if limit_bytes <= 0:
        raise ValueError(f"limit_bytes must be positive, got {limit_bytes}")

    config = config or BrokerConfig()
    executable = ffprobe_path(config.tools)
    limited = LimitedReader(reader, limit_bytes)

    process = EngineProcess.spawn(
        ctx,
        lambda urls: build_probe_args(executable, urls[0], hints),
        [limited],
        config=config.supervisor,
        name="ffprobe",
    )
    assert process.output is not None
    with process.output as output:
        raw = output.read()

    try:
        process.wait()
    except EngineError as e:
        if limited.consumed == 0:
            raise ProbeError("empty stream") from e
        detail = e.stderr.strip().splitlines()[-1] if e.stderr.strip() else str(e)
        raise ProbeError(
            f"probe failed after {limited.consumed} bytes: {detail}"
        ) from e

    if limited.consumed == 0:
        raise ProbeError("empty stream")

    try:
        data = json.loads(raw.decode("utf-8", errors="replace"))
    except json.JSONDecodeError as e:
        raise ProbeError(f"invalid ffprobe output: {e}") from e
    if not isinstance(data, dict):
        raise ProbeError("invalid ffprobe output: not an object")

    try:
        result = parse_probe_output(data)
    except ValueError as e:
        raise ProbeError(
            f"no container identified within {limit_bytes} bytes: {e}"
        ) from e

    logger.debug(
        "Probed %s with %d streams",
        result.container,
        len(result.streams),
        extra={"bytes_consumed": limited.consumed, "codecs": ",".join(result.codecs)},
    )
    return result
