"""Build ffmpeg command lines from pipeline specs."""

from __future__ import annotations

import logging
from collections.abc import Sequence

from mediabroker.core.timerange import format_seconds
from mediabroker.engine.spec import PipelineSpec

logger = logging.getLogger(__name__)

# -stats keeps progress lines on stderr even below the info log level
BASE_ARGS: tuple[str, ...] = ("-hide_banner", "-nostdin", "-stats")


def build_transcode_args(
    executable: str,
    spec: PipelineSpec,
    input_urls: Sequence[str],
    *,
    loglevel: str = "error",
) -> list[str]:
    """Build the ffmpeg argument list for a pipeline.

    Args:
        executable: ffmpeg path.
        spec: Pipeline to run.
        input_urls: Engine URL for each entry of spec.inputs, in order
            (typically "pipe:<fd>").
        loglevel: ffmpeg -loglevel value.

    Returns:
        Full argv, output written to stdout.

    Raises:
        ValueError: If input_urls does not match spec.inputs.
    """
    if len(input_urls) != len(spec.inputs):
        raise ValueError(
            f"expected {len(spec.inputs)} input urls, got {len(input_urls)}"
        )

    args = [executable, *BASE_ARGS, "-loglevel", loglevel]
    for url in input_urls:
        args.extend(["-i", url])

    for stream_map in spec.maps:
        index = spec.input_index(stream_map.input)
        args.extend(["-map", f"{index}:{stream_map.specifier}"])

    # Codec options address output streams by index so two maps of the
    # same media kind can use different codecs.
    for output_index, stream_map in enumerate(spec.maps):
        args.extend([f"-c:{output_index}", stream_map.codec])
        if stream_map.codec != "copy":
            args.extend(stream_map.codec_flags)

    if spec.start:
        args.extend(["-ss", format_seconds(spec.start)])
    if spec.duration is not None:
        args.extend(["-t", format_seconds(spec.duration)])

    for key, value in spec.metadata.items():
        if value:
            args.extend(["-metadata", f"{key}={value}"])

    args.extend(spec.format_flags)
    args.extend(["-f", spec.muxer, "pipe:1"])
    return args
