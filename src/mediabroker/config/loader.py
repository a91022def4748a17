"""Configuration loader with precedence handling.

Configuration is loaded with the following precedence (highest to lowest):
1. Arguments passed to get_config()
2. Environment variables (MEDIABROKER_*)
3. Config file (~/.mediabroker/config.toml)
4. Default values

Environment variables:
- MEDIABROKER_CONFIG_PATH: Path to config file (overrides default location)
- MEDIABROKER_FFMPEG_PATH: Path to ffmpeg executable
- MEDIABROKER_FFPROBE_PATH: Path to ffprobe executable
- MEDIABROKER_YTDLP_PATH: Path to yt-dlp executable
- MEDIABROKER_CATALOG_PATH: Path to a format catalog document
- MEDIABROKER_STOP_GRACE_SECONDS: Grace period before SIGKILL on cancel
- MEDIABROKER_RAW_PROBE_BYTES: Bytes inspected to identify raw streams
- MEDIABROKER_FETCH_THUMBNAIL: Fetch thumbnails for cover art (true/false)
- MEDIABROKER_ENGINE_LOGLEVEL: ffmpeg -loglevel value
- MEDIABROKER_LOG_LEVEL / MEDIABROKER_LOG_FILE / MEDIABROKER_LOG_FORMAT
"""

from __future__ import annotations

import logging
import os
import threading
import tomllib
from pathlib import Path
from typing import Any

from mediabroker.config.env import EnvReader
from mediabroker.config.models import (
    BrokerConfig,
    DownloadConfig,
    LoggingConfig,
    SupervisorConfig,
    ToolPathsConfig,
)

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_DIR = Path.home() / ".mediabroker"
DEFAULT_CONFIG_FILE = DEFAULT_CONFIG_DIR / "config.toml"

# Cache for loaded config files (path -> (parsed dict, mtime))
_config_cache: dict[Path, tuple[dict, float]] = {}
_config_cache_lock = threading.Lock()


class ConfigError(ValueError):
    """Raised when the config file cannot be parsed in strict mode."""


def get_default_config_path() -> Path:
    """Get the default config file path.

    Can be overridden by MEDIABROKER_CONFIG_PATH environment variable.
    """
    env_path = os.environ.get("MEDIABROKER_CONFIG_PATH")
    if env_path:
        return Path(env_path).expanduser()
    return DEFAULT_CONFIG_FILE


def load_config_file(path: Path | None = None, *, strict: bool = False) -> dict:
    """Load configuration from TOML file.

    Results are cached with mtime-based invalidation. Thread-safe.

    Args:
        path: Path to config file. If None, uses default location.
        strict: If True, raise ConfigError on parse failures.
                If False (default), log and return empty dict on errors.

    Returns:
        Parsed configuration dict. Empty dict if file doesn't exist.
    """
    if path is None:
        path = get_default_config_path()

    try:
        current_mtime = path.stat().st_mtime
    except FileNotFoundError:
        return {}

    with _config_cache_lock:
        cached = _config_cache.get(path)
        if cached is not None and cached[1] == current_mtime:
            return cached[0]

        try:
            with open(path, "rb") as f:
                result = tomllib.load(f)
        except (tomllib.TOMLDecodeError, OSError) as e:
            if strict:
                raise ConfigError(f"Cannot parse config file {path}: {e}") from e
            logger.warning("Ignoring unreadable config file %s: %s", path, e)
            result = {}

        _config_cache[path] = (result, current_mtime)
        return result


def clear_config_cache() -> None:
    """Clear the config file cache. Primarily useful for testing."""
    with _config_cache_lock:
        _config_cache.clear()


def _file_path(section: dict[str, Any], key: str) -> Path | None:
    value = section.get(key)
    return Path(value).expanduser() if value else None


def get_config(
    config_path: Path | None = None,
    *,
    env: EnvReader | None = None,
    # Explicit overrides (highest precedence)
    ffmpeg_path: Path | None = None,
    ffprobe_path: Path | None = None,
    catalog_path: Path | None = None,
) -> BrokerConfig:
    """Get configuration with full precedence handling.

    Args:
        config_path: Path to config file (overrides MEDIABROKER_CONFIG_PATH).
        env: Environment reader, defaults to os.environ.
        ffmpeg_path: Override for ffmpeg path.
        ffprobe_path: Override for ffprobe path.
        catalog_path: Override for the catalog document.

    Returns:
        BrokerConfig with merged configuration.
    """
    env = env or EnvReader()
    file_config = load_config_file(config_path)

    tools_file = file_config.get("tools", {})
    tools = ToolPathsConfig(
        ffmpeg=(
            ffmpeg_path
            or env.get_path("MEDIABROKER_FFMPEG_PATH")
            or _file_path(tools_file, "ffmpeg")
        ),
        ffprobe=(
            ffprobe_path
            or env.get_path("MEDIABROKER_FFPROBE_PATH")
            or _file_path(tools_file, "ffprobe")
        ),
        ytdlp=(
            env.get_path("MEDIABROKER_YTDLP_PATH") or _file_path(tools_file, "ytdlp")
        ),
    )

    supervisor_file = file_config.get("supervisor", {})
    supervisor = SupervisorConfig(
        stop_grace_seconds=env.get_float(
            "MEDIABROKER_STOP_GRACE_SECONDS",
            supervisor_file.get("stop_grace_seconds", 5.0),
        ),
        drain_timeout_seconds=supervisor_file.get("drain_timeout_seconds", 5.0),
        stderr_max_bytes=supervisor_file.get("stderr_max_bytes", 1_048_576),
        chunk_size=supervisor_file.get("chunk_size", 65_536),
    )

    download_file = file_config.get("download", {})
    download = DownloadConfig(
        raw_probe_bytes=env.get_int(
            "MEDIABROKER_RAW_PROBE_BYTES",
            download_file.get("raw_probe_bytes", 10 * 1024 * 1024),
        ),
        fetch_thumbnail=env.get_bool(
            "MEDIABROKER_FETCH_THUMBNAIL",
            download_file.get("fetch_thumbnail", True),
        ),
        thumbnail_timeout_seconds=download_file.get("thumbnail_timeout_seconds", 10.0),
        engine_loglevel=env.get_str(
            "MEDIABROKER_ENGINE_LOGLEVEL",
            download_file.get("engine_loglevel", "error"),
        ),
    )

    logging_file = file_config.get("logging", {})
    logging_config = LoggingConfig(
        level=env.get_str("MEDIABROKER_LOG_LEVEL", logging_file.get("level", "info")),
        file=(
            env.get_path("MEDIABROKER_LOG_FILE", must_exist=False)
            or _file_path(logging_file, "file")
        ),
        format=env.get_str(
            "MEDIABROKER_LOG_FORMAT", logging_file.get("format", "text")
        ),
        include_stderr=logging_file.get("include_stderr", False),
        max_bytes=logging_file.get("max_bytes", 10_485_760),
        backup_count=logging_file.get("backup_count", 5),
    )

    return BrokerConfig(
        tools=tools,
        supervisor=supervisor,
        download=download,
        logging=logging_config,
        catalog_path=(
            catalog_path
            or env.get_path("MEDIABROKER_CATALOG_PATH")
            or _file_path(file_config.get("catalog", {}), "path")
        ),
    )
