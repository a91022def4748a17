"""yt-dlp based implementation of the Extractor protocol.

yt-dlp runs as a supervised subprocess: ``-J`` dumps the info JSON for a
URL, and ``--load-info-json`` with ``-f <id> -o -`` streams one format to
stdout without resolving the URL again. The info JSON is handed to the
second invocation through a pipe, readable by the child as /dev/fd/N.
"""

from __future__ import annotations

import io
import json
import logging
import re
from typing import Any

import httpx

from mediabroker.config.models import BrokerConfig
from mediabroker.core.context import Context
from mediabroker.engine.exceptions import EngineError
from mediabroker.engine.supervisor import EngineProcess, OutputStream
from mediabroker.engine.tools import ytdlp_command
from mediabroker.extractor.interface import (
    ExtractionError,
    ExtractionResult,
    SourceStreamDescriptor,
)
from mediabroker.extractor.normalize import to_float

logger = logging.getLogger(__name__)

_ERROR_LINE = re.compile(r"^ERROR:\s*(?:\[[^\]]*\]\s*)?(.*)$")

# Common options: one item, no progress output on stderr
_COMMON_ARGS = ("--no-playlist", "--no-progress", "--no-color")


def error_from_stderr(stderr: str) -> str:
    """Extract yt-dlp's error message from its stderr.

    Example:
        >>> error_from_stderr("ERROR: [youtube] abc: Video unavailable")
        'abc: Video unavailable'
    """
    messages = []
    for line in stderr.splitlines():
        match = _ERROR_LINE.match(line.strip())
        if match and match.group(1):
            messages.append(match.group(1).strip())
    return "; ".join(messages)


def _pipe_path(url: str) -> str:
    # "pipe:5" -> "/dev/fd/5"
    return "/dev/fd/" + url.split(":", 1)[1]


def parse_descriptor(raw: dict[str, Any]) -> SourceStreamDescriptor:
    """Build a descriptor from one entry of yt-dlp's formats list."""
    return SourceStreamDescriptor(
        format_id=str(raw.get("format_id") or ""),
        acodec=raw.get("acodec"),
        vcodec=raw.get("vcodec"),
        abr=to_float(raw.get("abr")),
        vbr=to_float(raw.get("vbr")),
        tbr=to_float(raw.get("tbr")),
        ext=str(raw.get("ext") or ""),
        protocol=str(raw.get("protocol") or ""),
    )


def parse_info(data: dict[str, Any], url: str) -> ExtractionResult:
    """Convert yt-dlp info JSON into an ExtractionResult.

    A single-format result (no "formats" list) is described by the
    top-level fields.

    Raises:
        ExtractionError: If the info lists no usable formats.
    """
    raw_formats = data.get("formats")
    if not raw_formats:
        raw_formats = [data] if data.get("format_id") else []
    formats = tuple(
        parse_descriptor(f)
        for f in raw_formats
        if isinstance(f, dict) and f.get("format_id")
    )
    if not formats:
        raise ExtractionError("no formats found", url=url)

    return ExtractionResult(
        url=str(data.get("webpage_url") or url),
        title=str(data.get("title") or ""),
        uploader=str(data.get("uploader") or data.get("artist") or ""),
        thumbnail_url=str(data.get("thumbnail") or ""),
        formats=formats,
        raw=data,
    )


class YtDlpStream(io.RawIOBase):
    """Byte stream of one yt-dlp download."""

    def __init__(self, process: EngineProcess, url: str, format_id: str) -> None:
        super().__init__()
        assert process.output is not None
        self._process = process
        self._output: OutputStream = process.output
        self._url = url
        self._format_id = format_id

    def readable(self) -> bool:
        return True

    def readinto(self, buffer) -> int:
        return self._output.readinto(buffer)

    def close(self) -> None:
        if self.closed:
            return
        try:
            self._output.close()
        finally:
            super().close()

    def wait(self, timeout: float | None = None) -> None:
        """Wait for yt-dlp to finish.

        Raises:
            ExtractionError: If yt-dlp failed.
            ContextCanceled: If the context was cancelled.
        """
        try:
            self._process.wait(timeout)
        except EngineError as e:
            message = error_from_stderr(e.stderr) or str(e)
            raise ExtractionError(
                f"download of format {self._format_id} failed: {message}",
                url=self._url,
            ) from e


class YtDlpExtractor:
    """Extractor running yt-dlp as a subprocess.

    Thumbnails are fetched with httpx so they can be embedded as cover art.
    """

    def __init__(
        self,
        config: BrokerConfig | None = None,
        http_client: httpx.Client | None = None,
    ) -> None:
        """Initialize the extractor.

        Args:
            config: Broker configuration (yt-dlp path, thumbnail settings).
            http_client: Client used for thumbnails. Created lazily if None.
        """
        self._config = config or BrokerConfig()
        self._client = http_client
        self._owns_client = http_client is None

    def _get_client(self) -> httpx.Client:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.Client(
                timeout=self._config.download.thumbnail_timeout_seconds,
                follow_redirects=True,
            )
        return self._client

    def close(self) -> None:
        """Close the HTTP client if this extractor created it."""
        if self._client is not None and self._owns_client:
            self._client.close()
            self._client = None

    def extract(self, ctx: Context, url: str) -> ExtractionResult:
        """Resolve a URL with yt-dlp -J.

        Raises:
            ExtractionError: If yt-dlp fails or prints invalid JSON.
            ContextCanceled: If ctx is cancelled.
        """
        command = [*ytdlp_command(self._config.tools), *_COMMON_ARGS, "-J", "--", url]
        process = EngineProcess.spawn(
            ctx, lambda _urls: command, config=self._config.supervisor, name="yt-dlp"
        )
        assert process.output is not None
        with process.output as output:
            raw = output.read()

        try:
            process.wait()
        except EngineError as e:
            raise ExtractionError(error_from_stderr(e.stderr) or str(e), url=url) from e

        try:
            data = json.loads(raw.decode("utf-8", errors="replace"))
        except json.JSONDecodeError as e:
            raise ExtractionError(f"invalid yt-dlp output: {e}", url=url) from e
        if not isinstance(data, dict):
            raise ExtractionError("invalid yt-dlp output: not an object", url=url)

        result = parse_info(data, url)
        logger.debug(
            "Extracted %d formats",
            len(result.formats),
            extra={"title": result.title},
        )

        if self._config.download.fetch_thumbnail and result.thumbnail_url:
            thumbnail = self.fetch_thumbnail(result.thumbnail_url)
            if thumbnail:
                result = ExtractionResult(
                    url=result.url,
                    title=result.title,
                    uploader=result.uploader,
                    thumbnail_url=result.thumbnail_url,
                    thumbnail_bytes=thumbnail,
                    formats=result.formats,
                    raw=result.raw,
                )
        return result

    def fetch_thumbnail(self, thumbnail_url: str) -> bytes | None:
        """Fetch thumbnail bytes.

        Thumbnails are optional: failures are logged and yield None.
        """
        try:
            response = self._get_client().get(thumbnail_url)
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.warning("Thumbnail fetch failed for %s: %s", thumbnail_url, e)
            return None
        return response.content or None

    def open_stream(
        self, ctx: Context, info: ExtractionResult, format_id: str
    ) -> YtDlpStream:
        """Stream one format to stdout with yt-dlp.

        Raises:
            ExtractionError: If the format is not part of info.
            StartError: If yt-dlp cannot be launched.
        """
        if info.get_format(format_id) is None:
            raise ExtractionError(f"unknown format id {format_id}", url=info.url)

        info_json = json.dumps(dict(info.raw)).encode("utf-8")
        prefix = ytdlp_command(self._config.tools)

        def build_args(urls: list[str]) -> list[str]:
            return [
                *prefix,
                *_COMMON_ARGS,
                "--quiet",
                "--load-info-json",
                _pipe_path(urls[0]),
                "-f",
                format_id,
                "-o",
                "-",
            ]

        process = EngineProcess.spawn(
            ctx,
            build_args,
            [io.BytesIO(info_json)],
            config=self._config.supervisor,
            name="yt-dlp",
        )
        return YtDlpStream(process, info.url, format_id)
