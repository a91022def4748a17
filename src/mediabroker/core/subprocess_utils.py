"""One-shot external tool invocations.

Short commands such as ``ffmpeg -version`` or dummy media generation run to
completion here with their output captured in memory. Streaming invocations
go through mediabroker.engine.supervisor instead.
"""

from __future__ import annotations

import logging
import os
import subprocess  # nosec B404 - subprocess is required for FFmpeg invocation
import time
from collections.abc import Sequence
from pathlib import Path
from typing import Generic, NamedTuple, TypeVar

logger = logging.getLogger(__name__)

OutputT = TypeVar("OutputT", str, bytes)


class CommandResult(NamedTuple, Generic[OutputT]):
    """Captured result of a finished command.

    Unpacks as (stdout, stderr, returncode).
    """

    stdout: OutputT
    stderr: OutputT
    returncode: int

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    def stderr_tail(self) -> str:
        """Last non-empty stderr line, decoded if needed."""
        text = self.stderr
        if isinstance(text, bytes):
            text = text.decode("utf-8", errors="replace")
        lines = text.strip().splitlines()
        return lines[-1] if lines else ""


def run_command(
    args: Sequence[str | Path],
    *,
    timeout: float = 120,
    text: bool = True,
) -> CommandResult:
    """Run a command to completion, capturing stdout and stderr.

    The command gets no stdin, so a tool waiting for input fails fast
    instead of consuming the caller's terminal. Text output is decoded as
    UTF-8 with replacement.

    Args:
        args: Command and arguments. Path objects are converted to strings.
        timeout: Seconds before the command is killed.
        text: Decode output to str (default) or return bytes.

    Returns:
        CommandResult. stdout and stderr are empty, never None, when the
        command printed nothing.

    Raises:
        subprocess.TimeoutExpired: If the command times out. The child is
            killed and reaped before this is raised.
        FileNotFoundError: If the executable does not exist.
    """
    argv = [os.fspath(arg) for arg in args]
    tool = os.path.basename(argv[0]) if argv else "?"
    logger.debug("Running %s", " ".join(argv), extra={"command": tool})

    started = time.monotonic()
    try:
        completed = subprocess.run(  # nosec B603 - argv built by the caller
            argv,
            stdin=subprocess.DEVNULL,
            capture_output=True,
            timeout=timeout,
            text=text,
            encoding="utf-8" if text else None,
            errors="replace" if text else None,
        )
    except subprocess.TimeoutExpired:
        logger.warning(
            "%s timed out after %.0fs",
            tool,
            timeout,
            extra={"command": tool, "timeout_seconds": timeout},
        )
        raise

    logger.debug(
        "%s exited with status %d",
        tool,
        completed.returncode,
        extra={
            "command": tool,
            "returncode": completed.returncode,
            "elapsed_seconds": round(time.monotonic() - started, 3),
        },
    )
    empty = "" if text else b""
    return CommandResult(
        completed.stdout or empty, completed.stderr or empty, completed.returncode
    )
