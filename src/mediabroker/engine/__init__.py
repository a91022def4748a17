"""Transcode engine integration.

Pipeline spec types, ffmpeg command building, the Process Supervisor,
ffprobe-based probing, progress parsing and tool resolution.
"""

from mediabroker.engine.command import build_transcode_args
from mediabroker.engine.dummy import generate_dummy, generate_dummy_for_format
from mediabroker.engine.exceptions import (
    ContextCanceled,
    EngineError,
    ProbeError,
    StartError,
)
from mediabroker.engine.parsers import ProbeResult, ProbeStream, parse_probe_output
from mediabroker.engine.probe import (
    LimitedReader,
    ProbeHints,
    ReplayReader,
    TeeReader,
    probe,
)
from mediabroker.engine.progress import EngineProgress, parse_stderr_progress
from mediabroker.engine.spec import PipelineSpec, StreamMap
from mediabroker.engine.supervisor import EngineProcess, OutputStream, start
from mediabroker.engine.tools import (
    ffmpeg_path,
    ffprobe_path,
    get_tool_version,
    is_available,
    resolve_tool,
    ytdlp_command,
)

__all__ = [
    # Errors
    "ContextCanceled",
    "EngineError",
    "ProbeError",
    "StartError",
    # Pipeline
    "PipelineSpec",
    "StreamMap",
    "build_transcode_args",
    # Supervision
    "EngineProcess",
    "OutputStream",
    "start",
    # Probe
    "LimitedReader",
    "ProbeHints",
    "ProbeResult",
    "ProbeStream",
    "ReplayReader",
    "TeeReader",
    "parse_probe_output",
    "probe",
    # Progress
    "EngineProgress",
    "parse_stderr_progress",
    # Tools
    "ffmpeg_path",
    "ffprobe_path",
    "generate_dummy",
    "generate_dummy_for_format",
    "get_tool_version",
    "is_available",
    "resolve_tool",
    "ytdlp_command",
]
