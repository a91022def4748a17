"""External tool resolution.

Tools are resolved per call from the configured path or the system PATH.
Resolution never fails: an unresolvable tool is returned by bare name and
the launch itself reports StartError.
"""

from __future__ import annotations

import logging
import re
import shutil
import subprocess  # nosec B404 - only used for TimeoutExpired
import sys
from pathlib import Path

from mediabroker.config.models import ToolPathsConfig
from mediabroker.core.subprocess_utils import run_command

logger = logging.getLogger(__name__)

# Matches "ffmpeg version 6.1.1-..." and "ffprobe version n7.0 ..."
_VERSION_PATTERN = re.compile(r"version\s+n?(\S+)")


def resolve_tool(name: str, configured: Path | None = None) -> str:
    """Resolve an external tool to an executable path.

    Args:
        name: Tool name ("ffmpeg", "ffprobe").
        configured: Explicitly configured path, if any.

    Returns:
        Path to the executable, or the bare name if it cannot be found.
    """
    if configured is not None:
        found = shutil.which(str(configured))
        if found:
            return found
        logger.warning("Configured %s path not executable: %s", name, configured)
        return str(configured)
    return shutil.which(name) or name


def ffmpeg_path(tools: ToolPathsConfig | None = None) -> str:
    """Resolve ffmpeg."""
    return resolve_tool("ffmpeg", tools.ffmpeg if tools else None)


def ffprobe_path(tools: ToolPathsConfig | None = None) -> str:
    """Resolve ffprobe."""
    return resolve_tool("ffprobe", tools.ffprobe if tools else None)


def ytdlp_command(tools: ToolPathsConfig | None = None) -> list[str]:
    """Command prefix running yt-dlp.

    A configured executable is used as-is; otherwise the yt_dlp module is
    run with the current interpreter, which always matches the installed
    package version.
    """
    if tools is not None and tools.ytdlp is not None:
        return [resolve_tool("yt-dlp", tools.ytdlp)]
    return [sys.executable, "-m", "yt_dlp"]


def is_available(name: str, configured: Path | None = None) -> bool:
    """Return True if the tool resolves to an existing executable."""
    return shutil.which(resolve_tool(name, configured)) is not None


def get_tool_version(executable: str) -> str | None:
    """Get version string for an ffmpeg-family tool.

    Args:
        executable: Path to the tool.

    Returns:
        Version string (e.g. "6.1.1") or None if it cannot be determined.
    """
    try:
        stdout, _, returncode = run_command([executable, "-version"], timeout=10)
    except (FileNotFoundError, PermissionError, subprocess.TimeoutExpired) as e:
        logger.debug("Could not run %s -version: %s", executable, e)
        return None
    if returncode != 0 or not stdout:
        return None
    match = _VERSION_PATTERN.search(stdout.splitlines()[0])
    return match.group(1) if match else None
