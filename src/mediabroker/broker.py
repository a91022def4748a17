"""Broker: public download, probe and format lookup API.

Download flow: the extractor lists source descriptors, source selection
picks the descriptor(s) feeding each slot of the requested format, the
Pipeline Builder describes the engine invocation and the Process
Supervisor starts it. The DownloadResult is returned as soon as the engine
is running; the caller reads `media` incrementally.

An empty format name requests the raw source untouched. Raw downloads are
not trimmed.
"""

from __future__ import annotations

import contextlib
import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from typing import BinaryIO

from mediabroker.catalog.loader import load_catalog, load_default_catalog
from mediabroker.catalog.models import Catalog, Format
from mediabroker.config.models import BrokerConfig
from mediabroker.core.context import Context
from mediabroker.core.errors import BrokerError
from mediabroker.core.string_utils import safe_filename, title_from_url
from mediabroker.core.timerange import TimeRange
from mediabroker.engine.exceptions import ContextCanceled, ProbeError
from mediabroker.engine.parsers import ProbeResult
from mediabroker.engine.probe import ProbeHints, TeeReader, probe
from mediabroker.engine.progress import parse_stderr_progress
from mediabroker.engine.supervisor import EngineProcess, start
from mediabroker.extractor.interface import (
    ExtractionResult,
    Extractor,
    SourceStream,
)
from mediabroker.logging.context import download_context
from mediabroker.pipeline.builder import (
    OutputMetadata,
    SourceInput,
    build_pipeline,
    prepend_bytes,
)
from mediabroker.pipeline.id3v2 import PrependReader
from mediabroker.pipeline.selector import UnmatchedFormatError, select_raw, select_sources

logger = logging.getLogger(__name__)

RAW_MIME_TYPE = "application/octet-stream"


@dataclass(frozen=True)
class DownloadOptions:
    """What to download and how."""

    url: str
    format: str = ""
    """Catalog format name. Empty requests the raw source."""

    time_range: TimeRange | None = None
    codecs: tuple[str, ...] = ()
    """Preferred target codecs, e.g. ("vp9", "opus")."""

    retranscode: bool = False
    """Re-encode even when the source codec is acceptable."""


@dataclass(frozen=True)
class ProgressEvent:
    """Download progress notification."""

    stage: str
    """"extract", "open", "probe", "transcode" or "done"."""

    bytes: int = 0
    out_time: float | None = None
    """Seconds of output produced so far."""


ProgressSink = Callable[[ProgressEvent], None]


class _Progress:
    """Delivers events to an optional sink; sink errors are only logged."""

    def __init__(self, sink: ProgressSink | None) -> None:
        self._sink = sink

    def emit(self, stage: str, size: int = 0, out_time: float | None = None) -> None:
        if self._sink is None:
            return
        try:
            self._sink(ProgressEvent(stage=stage, bytes=size, out_time=out_time))
        except Exception as e:
            logger.warning("Progress callback error: %s", e)

    def engine_line(self, line: str) -> None:
        if self._sink is None:
            return
        progress = parse_stderr_progress(line)
        if progress is not None:
            self.emit("transcode", progress.size_bytes or 0, progress.out_time_seconds)


@dataclass
class DownloadResult:
    """A running download.

    The caller owns `media` and must close it exactly once. wait() blocks
    until the engine and every source process have terminated.
    """

    media: BinaryIO
    filename: str
    mime_type: str
    format_name: str = ""
    _engine: EngineProcess | None = field(default=None, repr=False)
    _sources: Sequence[SourceStream] = field(default=(), repr=False)
    _progress: _Progress = field(default_factory=lambda: _Progress(None), repr=False)
    _options: DownloadOptions | None = field(default=None, repr=False)

    def wait(self, timeout: float | None = None) -> None:
        """Wait for the download to finish.

        Source streams are released once the engine is done with them.
        Errors carry the URL, format and codecs of the download.

        Args:
            timeout: Per-process wait timeout. None waits indefinitely.

        Raises:
            ContextCanceled: If the context was cancelled.
            ExtractionError: If a source failed. Reported ahead of the engine
                failure it usually causes.
            EngineError: If the engine failed.
            subprocess.TimeoutExpired: If timeout expires. Sources stay open
                while the engine runs, so wait() can be called again.
        """
        errors: list[BrokerError] = []
        if self._engine is not None:
            try:
                self._engine.wait(timeout)
            except BrokerError as e:
                errors.append(e)

        source_errors: list[BrokerError] = []
        for source in self._sources:
            source.close()
            try:
                source.wait(timeout)
            except BrokerError as e:
                source_errors.append(e)

        canceled = [e for e in (*errors, *source_errors) if isinstance(e, ContextCanceled)]
        failure = next(iter(canceled or source_errors or errors), None)
        if failure is not None:
            raise self._with_context(failure)
        self._progress.emit("done")

    def _with_context(self, error: BrokerError) -> BrokerError:
        if self._options is None:
            return error
        return error.with_context(
            url=self._options.url,
            format_name=self._options.format or None,
            codecs=self._options.codecs or None,
        )

    def close(self) -> None:
        """Close the media stream."""
        self.media.close()

    def __enter__(self) -> DownloadResult:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
        if exc_type is None:
            self.wait()
            return
        try:
            self.wait()
        except BrokerError as e:
            logger.debug("Download wait after error: %s", e)


def _discard(source: SourceStream) -> None:
    """Release a source after a failed setup."""
    source.close()
    try:
        source.wait()
    except BrokerError as e:
        logger.debug("Source released after failed setup: %s", e)


class Broker:
    """Media retrieval-and-transcode broker.

    Example:
        broker = Broker(get_config())
        ctx = Context()
        with broker.download(ctx, DownloadOptions(url, format="mp3")) as result:
            shutil.copyfileobj(result.media, destination)
    """

    def __init__(
        self,
        config: BrokerConfig | None = None,
        catalog: Catalog | None = None,
        extractor: Extractor | None = None,
    ) -> None:
        """Initialize the broker.

        Args:
            config: Broker configuration. Defaults apply when None.
            catalog: Format catalog. Loaded from config.catalog_path, or the
                bundled catalog, when None.
            extractor: Source extractor. yt-dlp when None.
        """
        self.config = config or BrokerConfig()
        if catalog is None:
            if self.config.catalog_path is not None:
                catalog = load_catalog(self.config.catalog_path)
            else:
                catalog = load_default_catalog()
        self.catalog = catalog
        if extractor is None:
            from mediabroker.extractor.ytdlp import YtDlpExtractor

            extractor = YtDlpExtractor(self.config)
        self.extractor = extractor

    def close(self) -> None:
        """Release extractor resources."""
        close = getattr(self.extractor, "close", None)
        if close is not None:
            close()

    def find_by_format_codecs(
        self, container: str, codecs: Sequence[str]
    ) -> tuple[Format | None, str]:
        """Find the first catalog format matching a container and codecs."""
        return self.catalog.find_by_format_codecs(container, codecs)

    def probe(
        self,
        ctx: Context,
        reader: BinaryIO,
        limit_bytes: int,
        hints: ProbeHints | None = None,
    ) -> ProbeResult:
        """Inspect at most limit_bytes of a byte stream. See engine.probe."""
        return probe(ctx, reader, limit_bytes, hints, config=self.config)

    def download(
        self,
        ctx: Context,
        options: DownloadOptions,
        progress: ProgressSink | None = None,
    ) -> DownloadResult:
        """Start a download.

        Args:
            ctx: Cancellation context for every process of the download.
            options: What to download.
            progress: Optional progress sink. Its exceptions are logged.

        Returns:
            DownloadResult whose media is being produced in the background.

        Raises:
            UnmatchedFormatError: Unknown format name, or the source cannot
                satisfy the format.
            ExtractionError: The URL cannot be resolved.
            StartError: A process could not be launched.
            ContextCanceled: ctx was cancelled during setup.
        """
        with download_context(url=options.url):
            try:
                return self._download(ctx, options, _Progress(progress))
            except BrokerError as e:
                raise e.with_context(
                    url=options.url,
                    format_name=options.format or None,
                    codecs=options.codecs or None,
                )

    def _download(
        self, ctx: Context, options: DownloadOptions, progress: _Progress
    ) -> DownloadResult:
        fmt: Format | None = None
        if options.format:
            fmt = self.catalog.get(options.format)
            if fmt is None:
                raise UnmatchedFormatError(f"unknown format {options.format!r}")

        progress.emit("extract")
        info = self.extractor.extract(ctx, options.url)
        title = info.title or title_from_url(options.url)
        logger.info(
            "Downloading %s as %s",
            title,
            options.format or "raw",
            extra={"source_formats": len(info.formats)},
        )

        if fmt is None:
            return self._download_raw(ctx, options, info, title, progress)
        return self._download_format(ctx, options, info, fmt, title, progress)

    def _download_format(
        self,
        ctx: Context,
        options: DownloadOptions,
        info: ExtractionResult,
        fmt: Format,
        title: str,
        progress: _Progress,
    ) -> DownloadResult:
        selected = select_sources(fmt, info.formats, self.catalog, options.codecs)

        opened: dict[str, SourceStream] = {}
        with contextlib.ExitStack() as cleanup:
            progress.emit("open")
            for descriptor in selected.values():
                if descriptor.format_id in opened:
                    continue
                source = self.extractor.open_stream(ctx, info, descriptor.format_id)
                opened[descriptor.format_id] = source
                cleanup.callback(_discard, source)

            sources = {
                media: SourceInput(descriptor, opened[descriptor.format_id])
                for media, descriptor in selected.items()
            }
            metadata = OutputMetadata(
                title=title, artist=info.uploader, cover=info.thumbnail_bytes
            )
            spec = build_pipeline(fmt, sources, self.catalog, options, metadata)
            engine = start(ctx, spec, self.config, on_stderr_line=progress.engine_line)
            cleanup.pop_all()

        assert engine.output is not None
        media: BinaryIO = engine.output
        prefix = prepend_bytes(fmt, metadata)
        if prefix:
            media = PrependReader(media, prefix)

        return DownloadResult(
            media=media,
            filename=f"{safe_filename(title)}.{fmt.ext}",
            mime_type=fmt.mime_type,
            format_name=fmt.name,
            _engine=engine,
            _sources=tuple(opened.values()),
            _progress=progress,
            _options=options,
        )

    def _download_raw(
        self,
        ctx: Context,
        options: DownloadOptions,
        info: ExtractionResult,
        title: str,
        progress: _Progress,
    ) -> DownloadResult:
        descriptor = select_raw(info.formats)
        progress.emit("open")
        source = self.extractor.open_stream(ctx, info, descriptor.format_id)

        tee = TeeReader(source)
        fmt: Format | None = None
        progress.emit("probe")
        try:
            result = probe(ctx, tee, self.config.download.raw_probe_bytes, config=self.config)
            fmt, _ = self.catalog.find_by_format_codecs(result.container, result.codecs)
        except ProbeError as e:
            logger.info("Raw stream not identified: %s", e)
        except BaseException:
            _discard(source)
            raise

        if fmt is not None:
            mime_type, ext, format_name = fmt.mime_type, fmt.ext, fmt.name
        else:
            mime_type, ext, format_name = RAW_MIME_TYPE, descriptor.ext or "bin", ""

        return DownloadResult(
            media=tee.handover(),
            filename=f"{safe_filename(title)}.{ext}",
            mime_type=mime_type,
            format_name=format_name,
            _sources=(source,),
            _progress=progress,
            _options=options,
        )


def find_by_format_codecs(
    catalog: Catalog, container: str, codecs: Sequence[str]
) -> tuple[Format | None, str]:
    """Module-level alias of Catalog.find_by_format_codecs."""
    return catalog.find_by_format_codecs(container, codecs)


__all__ = [
    "Broker",
    "DownloadOptions",
    "DownloadResult",
    "ProgressEvent",
    "ProgressSink",
    "RAW_MIME_TYPE",
    "find_by_format_codecs",
    "probe",
]
