"""Generate short synthetic media with ffmpeg's lavfi sources.

Used to produce known-good source streams for integration tests and for
checking that the local ffmpeg can encode a catalog format.
"""

from __future__ import annotations

import logging

from mediabroker.catalog.models import Catalog, Format, Media
from mediabroker.config.models import BrokerConfig
from mediabroker.core.codecs import lookup_codec
from mediabroker.core.subprocess_utils import run_command
from mediabroker.core.timerange import format_seconds
from mediabroker.engine.exceptions import EngineError
from mediabroker.engine.tools import ffmpeg_path

logger = logging.getLogger(__name__)


def build_dummy_args(
    executable: str,
    muxer: str,
    audio_codec: str | None,
    video_codec: str | None,
    *,
    duration: float = 1.0,
    title: str | None = None,
    format_flags: tuple[str, ...] = (),
) -> list[str]:
    """Build an ffmpeg argv generating synthetic audio and/or video.

    Raises:
        ValueError: If neither codec is given.
    """
    if not audio_codec and not video_codec:
        raise ValueError("dummy media needs an audio or a video codec")

    length = format_seconds(duration)
    args = [executable, "-hide_banner", "-nostdin", "-loglevel", "error"]
    if audio_codec:
        args.extend(["-f", "lavfi", "-i", f"sine=frequency=440:duration={length}"])
    if video_codec:
        args.extend(
            ["-f", "lavfi", "-i", f"testsrc=size=64x64:rate=10:duration={length}"]
        )

    output_index = 0
    if audio_codec:
        args.extend(["-map", "0:a:0", f"-c:{output_index}", audio_codec])
        output_index += 1
    if video_codec:
        video_input = 1 if audio_codec else 0
        args.extend(["-map", f"{video_input}:v:0", f"-c:{output_index}", video_codec])
        if video_codec in ("libx264", "libx265"):
            args.extend(["-pix_fmt", "yuv420p"])

    if title:
        args.extend(["-metadata", f"title={title}"])
    args.extend(format_flags)
    args.extend(["-f", muxer, "pipe:1"])
    return args


def generate_dummy(
    muxer: str,
    audio_codec: str | None,
    video_codec: str | None,
    *,
    duration: float = 1.0,
    title: str | None = None,
    format_flags: tuple[str, ...] = (),
    config: BrokerConfig | None = None,
    timeout: int = 60,
) -> bytes:
    """Generate synthetic media bytes.

    Args:
        muxer: ffmpeg output format name (e.g. "mp3", "matroska").
        audio_codec: Engine encoder for audio, or None for no audio.
        video_codec: Engine encoder for video, or None for no video.
        duration: Length in seconds.
        title: Optional title tag.
        format_flags: Extra output options.
        config: Broker configuration (ffmpeg path).
        timeout: Seconds before the generation is abandoned.

    Returns:
        The encoded bytes.

    Raises:
        EngineError: If ffmpeg fails.
    """
    config = config or BrokerConfig()
    args = build_dummy_args(
        ffmpeg_path(config.tools),
        muxer,
        audio_codec,
        video_codec,
        duration=duration,
        title=title,
        format_flags=format_flags,
    )
    result = run_command(args, timeout=timeout, text=False)
    if not result.ok:
        raise EngineError(
            f"dummy generation failed with status {result.returncode}: "
            f"{result.stderr_tail()}",
            stderr=result.stderr.decode("utf-8", errors="replace"),
            returncode=result.returncode,
            argv=args,
        )
    logger.debug("Generated %d bytes of dummy %s", len(result.stdout), muxer)
    return result.stdout


def generate_dummy_for_format(
    fmt: Format,
    catalog: Catalog,
    *,
    duration: float = 1.0,
    title: str | None = None,
    config: BrokerConfig | None = None,
) -> bytes:
    """Generate synthetic media in a catalog format using its first codecs."""
    codecs: dict[Media, str] = {}
    for stream in fmt.streams:
        codecs[stream.media] = lookup_codec(stream.codecs[0].name, catalog.codec_map)
    return generate_dummy(
        fmt.muxer,
        codecs.get(Media.AUDIO),
        codecs.get(Media.VIDEO),
        duration=duration,
        title=title,
        format_flags=fmt.format_flags,
        config=config,
    )
