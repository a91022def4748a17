"""Configuration data models.

This module defines dataclasses for mediabroker configuration options.
"""

from dataclasses import dataclass, field
from pathlib import Path


@dataclass
class ToolPathsConfig:
    """Configuration for external tool paths.

    All paths are optional. ffmpeg and ffprobe are looked up in PATH when
    unset; yt-dlp runs as ``<python> -m yt_dlp`` when unset.
    """

    ffmpeg: Path | None = None
    ffprobe: Path | None = None
    ytdlp: Path | None = None


@dataclass
class SupervisorConfig:
    """Configuration for engine process supervision."""

    stop_grace_seconds: float = 5.0
    """Time between the graceful stop signal and SIGKILL on cancellation."""

    drain_timeout_seconds: float = 5.0
    """How long to wait for helper threads after the process exits."""

    stderr_max_bytes: int = 1_048_576
    """Captured stderr is truncated to its last N bytes."""

    chunk_size: int = 65_536
    """Read size used when copying between streams and pipes."""

    def __post_init__(self) -> None:
        """Validate configuration."""
        if self.stop_grace_seconds < 0:
            raise ValueError("stop_grace_seconds must be >= 0")
        if self.drain_timeout_seconds <= 0:
            raise ValueError("drain_timeout_seconds must be > 0")
        if self.stderr_max_bytes < 1024:
            raise ValueError("stderr_max_bytes must be >= 1024")
        if self.chunk_size < 1:
            raise ValueError("chunk_size must be >= 1")


@dataclass
class DownloadConfig:
    """Configuration for download negotiation and post-processing."""

    raw_probe_bytes: int = 10 * 1024 * 1024
    """Bytes of a raw stream inspected to identify its format."""

    fetch_thumbnail: bool = True
    """Fetch thumbnail bytes for cover art when the extractor reports one."""

    thumbnail_timeout_seconds: float = 10.0

    engine_loglevel: str = "error"
    """ffmpeg -loglevel value. Progress lines are emitted regardless."""

    def __post_init__(self) -> None:
        """Validate configuration."""
        valid_levels = {"quiet", "panic", "fatal", "error", "warning", "info"}
        if self.engine_loglevel not in valid_levels:
            raise ValueError(
                f"engine_loglevel must be one of {valid_levels}, "
                f"got {self.engine_loglevel}"
            )
        if self.raw_probe_bytes < 1:
            raise ValueError("raw_probe_bytes must be >= 1")


@dataclass
class LoggingConfig:
    """Configuration for structured logging."""

    # Log level: debug, info, warning, error
    level: str = "info"

    # Log file path (None = stderr only)
    file: Path | None = None

    # Log format: text or json
    format: str = "text"

    # Also log to stderr when file is set
    include_stderr: bool = False

    # Rotation threshold in bytes (default 10MB)
    max_bytes: int = 10_485_760

    # Number of rotated files to keep
    backup_count: int = 5

    def __post_init__(self) -> None:
        """Validate configuration."""
        valid_levels = {"debug", "info", "warning", "error"}
        if self.level.lower() not in valid_levels:
            raise ValueError(f"level must be one of {valid_levels}, got {self.level}")
        valid_formats = {"text", "json"}
        if self.format.lower() not in valid_formats:
            raise ValueError(
                f"format must be one of {valid_formats}, got {self.format}"
            )


@dataclass
class BrokerConfig:
    """Top-level mediabroker configuration."""

    tools: ToolPathsConfig = field(default_factory=ToolPathsConfig)
    supervisor: SupervisorConfig = field(default_factory=SupervisorConfig)
    download: DownloadConfig = field(default_factory=DownloadConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    catalog_path: Path | None = None
    """Format catalog document. None uses the bundled catalog."""
