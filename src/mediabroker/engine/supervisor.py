"""Process Supervisor: owns one external process invocation end to end.

Every input reader is copied into its own OS pipe by a feeder thread and
handed to the child as ``pipe:<fd>``. The child's stdout is either exposed
to the caller as an OutputStream or copied into a writer by a drain thread.
stderr is always drained by its own thread into a bounded buffer.

A reaper thread waits for the process and then runs a single ExitStack
teardown that joins every helper and closes every pipe. The teardown runs
exactly once per spawned process on every exit path: natural completion,
engine failure, cancellation, or the caller closing the output early.

Example:
    ctx = Context()
    process = EngineProcess.spawn(
        ctx,
        lambda urls: ["ffmpeg", "-i", urls[0], "-f", "mp3", "pipe:1"],
        [source],
    )
    with process.output as output:
        shutil.copyfileobj(output, destination)
    process.wait()
"""

from __future__ import annotations

import collections
import contextlib
import io
import logging
import os
import signal
import subprocess  # nosec B404 - subprocess is required for FFmpeg invocation
import threading
import time
from collections.abc import Callable, Sequence
from typing import BinaryIO

from mediabroker.config.models import BrokerConfig, SupervisorConfig
from mediabroker.core.context import Context
from mediabroker.engine.command import build_transcode_args
from mediabroker.engine.exceptions import ContextCanceled, EngineError, StartError
from mediabroker.engine.spec import PipelineSpec
from mediabroker.engine.tools import ffmpeg_path
from mediabroker.logging.context import copy_context

logger = logging.getLogger(__name__)

ArgsBuilder = Callable[[list[str]], list[str]]
"""Receives one engine URL per input and returns the full argv."""

LineCallback = Callable[[str], None]


def _start_thread(
    name: str, target: Callable[..., None], *args: object
) -> threading.Thread:
    """Start a daemon helper thread that inherits the logging context."""
    context = copy_context()
    thread = threading.Thread(
        target=context.run, args=(target, *args), name=name, daemon=True
    )
    thread.start()
    return thread


def _write_all(writer: BinaryIO, data: bytes) -> None:
    view = memoryview(data)
    while view:
        written = writer.write(view)
        view = view[written:]


# waitid(WNOWAIT) lets the reaper observe the exit without reaping the child
_CAN_PEEK_EXIT = hasattr(os, "waitid") and hasattr(os, "WNOWAIT")


def _wait_exit(proc: subprocess.Popen[bytes]) -> None:
    """Block until proc exits, leaving it unreaped where the platform allows."""
    if not _CAN_PEEK_EXIT:
        proc.wait()
        return
    try:
        os.waitid(os.P_PID, proc.pid, os.WEXITED | os.WNOWAIT)
    except ChildProcessError:
        # Already reaped through Popen.poll()
        pass


class OutputStream(io.RawIOBase):
    """Engine output, readable incrementally and owned by the caller.

    A read returns as soon as the engine has produced any bytes. Closing
    the stream before EOF stops the engine; that stop is not reported as
    an engine failure.
    """

    def __init__(self, source: BinaryIO, on_close: Callable[[bool], None]) -> None:
        super().__init__()
        self._source = source
        self._on_close = on_close
        self._eof = False

    def readable(self) -> bool:
        return True

    def readinto(self, buffer) -> int:
        if self._eof:
            return 0
        try:
            data = self._source.read1(len(buffer))
        except ValueError:
            # Closed by the teardown after cancellation
            data = b""
        if not data:
            self._eof = True
            return 0
        size = len(data)
        buffer[:size] = data
        return size

    def close(self) -> None:
        if self.closed:
            return
        try:
            # Stop the engine first so a read blocked in another thread
            # returns and releases the source.
            self._on_close(self._eof)
        finally:
            self._source.close()
            super().close()


class EngineProcess:
    """One supervised external process.

    Created with spawn(). Exactly one teardown runs per instance, performed
    by the reaper thread once the process has exited.

    Attributes:
        argv: Command line that was launched.
        name: Short name used in logs and errors.
        output: Readable engine output, None when an output writer was
            given to spawn().
    """

    def __init__(
        self,
        ctx: Context,
        proc: subprocess.Popen[bytes],
        argv: list[str],
        name: str,
        config: SupervisorConfig,
    ) -> None:
        self._ctx = ctx
        self._proc = proc
        self.argv = argv
        self.name = name
        self._config = config

        self._lock = threading.Lock()
        self._exited = False
        self._stopping = False
        self._canceled = False
        self._abandoned = False
        self._kill_timer: threading.Timer | None = None

        self._stderr_lines: collections.deque[str] = collections.deque()
        self._stderr_size = 0
        self._input_error: tuple[int, Exception] | None = None
        self._output_error: Exception | None = None

        self._teardown = contextlib.ExitStack()
        self._done = threading.Event()
        self._reaper: threading.Thread | None = None
        self._started_at = time.monotonic()
        self.output: OutputStream | None = None

    @classmethod
    def spawn(
        cls,
        ctx: Context,
        build_args: ArgsBuilder,
        inputs: Sequence[BinaryIO] = (),
        *,
        output: BinaryIO | None = None,
        config: SupervisorConfig | None = None,
        on_stderr_line: LineCallback | None = None,
        name: str | None = None,
    ) -> EngineProcess:
        """Launch a process with its inputs wired to pipes.

        Args:
            ctx: Cancellation context. Cancelling it stops the process.
            build_args: Builds argv from one engine URL per input.
            inputs: Readers fed to the process, each on its own pipe.
            output: Writer receiving stdout. None exposes `output` instead.
            config: Supervision settings.
            on_stderr_line: Called from the stderr thread for every line.
            name: Short name for logs. Defaults to the executable name.

        Returns:
            The running process. The call returns immediately.

        Raises:
            ContextCanceled: If ctx is already cancelled.
            StartError: If the process cannot be launched.
        """
        config = config or SupervisorConfig()
        if ctx.cancelled:
            raise ContextCanceled(f"not starting {name or 'process'}: {ctx.reason}")

        read_fds: list[int] = []
        writers: list[BinaryIO] = []
        with contextlib.ExitStack() as pipes:
            try:
                for _ in inputs:
                    read_fd, write_fd = os.pipe()
                    read_fds.append(read_fd)
                    writer = open(write_fd, "wb", buffering=0)  # noqa: SIM115
                    pipes.callback(writer.close)
                    writers.append(writer)

                argv = build_args([f"pipe:{fd}" for fd in read_fds])
                if not argv:
                    raise StartError("empty command line")
                name = name or os.path.basename(argv[0])

                logger.debug(
                    "Starting %s: %s",
                    name,
                    " ".join(argv),
                    extra={"command": name, "input_count": len(read_fds)},
                )
                try:
                    proc = subprocess.Popen(  # nosec B603 - argv built internally
                        argv,
                        stdin=subprocess.DEVNULL,
                        stdout=subprocess.PIPE,
                        stderr=subprocess.PIPE,
                        pass_fds=read_fds,
                        start_new_session=True,
                    )
                except OSError as e:
                    raise StartError(f"failed to start {name}: {e}") from e
            finally:
                # The child holds its own copies of the read ends
                for fd in read_fds:
                    os.close(fd)

            process = cls(ctx, proc, argv, name, config)
            process._teardown.push(pipes.pop_all())

        process._start_helpers(writers, inputs, output, on_stderr_line)
        return process

    def _start_helpers(
        self,
        writers: list[BinaryIO],
        inputs: Sequence[BinaryIO],
        output: BinaryIO | None,
        on_stderr_line: LineCallback | None,
    ) -> None:
        prefix = f"{self.name}-{self._proc.pid}"
        teardown = self._teardown
        assert self._proc.stdout is not None
        assert self._proc.stderr is not None

        feeders = [
            _start_thread(f"{prefix}-feed-{index}", self._feed, index, reader, writer)
            for index, (reader, writer) in enumerate(zip(inputs, writers))
        ]

        # ExitStack unwinds in reverse: join helpers first, close pipes last
        teardown.callback(self._proc.stderr.close)
        teardown.callback(self._release_stdout)

        if output is not None:
            drain = _start_thread(
                f"{prefix}-output", self._drain_output, self._proc.stdout, output
            )
            teardown.callback(self._join, drain)
        else:
            self.output = OutputStream(self._proc.stdout, self._on_output_closed)

        for feeder in feeders:
            teardown.callback(self._join, feeder)

        stderr_thread = _start_thread(
            f"{prefix}-stderr", self._drain_stderr, self._proc.stderr, on_stderr_line
        )
        teardown.callback(self._join, stderr_thread)
        teardown.callback(self._cancel_kill_timer)

        registration = self._ctx.on_cancel(self._on_cancel)
        teardown.callback(self._ctx.remove_callback, registration)

        self._reaper = _start_thread(f"{prefix}-reaper", self._reap)

    # ------------------------------------------------------------------
    # Helper threads
    # ------------------------------------------------------------------

    def _feed(self, index: int, reader: BinaryIO, writer: BinaryIO) -> None:
        copied = 0
        try:
            while True:
                try:
                    chunk = reader.read(self._config.chunk_size)
                except Exception as e:
                    if not self._stopping:
                        logger.warning(
                            "%s input %d read failed: %s", self.name, index, e
                        )
                        with self._lock:
                            if self._input_error is None:
                                self._input_error = (index, e)
                    return
                if not chunk:
                    return
                try:
                    _write_all(writer, chunk)
                except (OSError, ValueError) as e:
                    # The process closed its input: exited, or has all it needs
                    logger.debug(
                        "%s stopped reading input %d after %d bytes: %s",
                        self.name,
                        index,
                        copied,
                        e,
                    )
                    return
                copied += len(chunk)
        finally:
            writer.close()

    def _drain_stderr(self, stream: BinaryIO, on_line: LineCallback | None) -> None:
        # Universal newlines split ffmpeg's \r-terminated progress updates
        text = io.TextIOWrapper(
            stream, encoding="utf-8", errors="replace", newline=None
        )
        try:
            for line in text:
                self._append_stderr(line)
                if on_line is not None:
                    try:
                        on_line(line.rstrip("\n"))
                    except Exception as e:
                        logger.warning("Stderr line callback error: %s", e)
        except (ValueError, OSError) as e:
            logger.debug("Stderr reader stopped: %s", e)
        finally:
            text.close()

    def _append_stderr(self, line: str) -> None:
        size = len(line.encode("utf-8", errors="replace"))
        with self._lock:
            self._stderr_lines.append(line)
            self._stderr_size += size
            while self._stderr_size > self._config.stderr_max_bytes and len(
                self._stderr_lines
            ) > 1:
                dropped = self._stderr_lines.popleft()
                self._stderr_size -= len(dropped.encode("utf-8", errors="replace"))

    def _drain_output(self, stdout: BinaryIO, writer: BinaryIO) -> None:
        flush = getattr(writer, "flush", None)
        while True:
            try:
                chunk = stdout.read1(self._config.chunk_size)
            except (OSError, ValueError) as e:
                logger.debug("%s output drain stopped: %s", self.name, e)
                return
            try:
                if chunk:
                    writer.write(chunk)
                elif flush is not None:
                    flush()
            except (OSError, ValueError) as e:
                self._on_output_failed(e)
                return
            if not chunk:
                return

    def _reap(self) -> None:
        try:
            _wait_exit(self._proc)
            # Reap under the lock: signals sent while holding it can never
            # reach a recycled pid.
            with self._lock:
                self._proc.wait()
                self._exited = True
        finally:
            logger.debug(
                "%s exited",
                self.name,
                extra={
                    "command": self.name,
                    "returncode": self._proc.returncode,
                    "elapsed_seconds": round(time.monotonic() - self._started_at, 3),
                },
            )
            try:
                self._teardown.close()
            finally:
                self._done.set()

    # ------------------------------------------------------------------
    # Teardown steps
    # ------------------------------------------------------------------

    def _join(self, thread: threading.Thread) -> None:
        thread.join(timeout=self._config.drain_timeout_seconds)
        if thread.is_alive():
            logger.warning(
                "Helper thread %s did not finish within %.1fs",
                thread.name,
                self._config.drain_timeout_seconds,
            )

    def _cancel_kill_timer(self) -> None:
        with self._lock:
            timer = self._kill_timer
        if timer is not None:
            timer.cancel()
            timer.join()

    def _release_stdout(self) -> None:
        # On natural completion the OutputStream keeps stdout so the caller
        # can read what the process wrote before exiting.
        if self.output is None or self._canceled or self._abandoned:
            assert self._proc.stdout is not None
            self._proc.stdout.close()

    # ------------------------------------------------------------------
    # Stopping
    # ------------------------------------------------------------------

    def _child_exited(self) -> bool:
        """Return True once the child has exited, reaped or not.

        Caller holds self._lock, so the reaper cannot reap in between.
        """
        if self._exited:
            return True
        if not _CAN_PEEK_EXIT:
            return self._proc.poll() is not None
        try:
            status = os.waitid(
                os.P_PID, self._proc.pid, os.WEXITED | os.WNOHANG | os.WNOWAIT
            )
        except ChildProcessError:
            return True
        return status is not None

    def _on_cancel(self) -> None:
        with self._lock:
            if self._child_exited():
                return
            self._canceled = True
            self._signal_stop()

    def _on_output_closed(self, eof: bool) -> None:
        if eof:
            return
        with self._lock:
            if self._child_exited():
                return
            self._abandoned = True
            self._signal_stop()

    def _on_output_failed(self, error: Exception) -> None:
        logger.warning("%s output write failed: %s", self.name, error)
        with self._lock:
            if self._output_error is None:
                self._output_error = error
            if not self._child_exited():
                self._signal_stop()

    def _signal_stop(self) -> None:
        """Send the graceful stop signal and arm the kill timer.

        Caller holds self._lock.
        """
        if self._stopping:
            return
        self._stopping = True
        logger.debug("Stopping %s (pid %d)", self.name, self._proc.pid)
        self._send_signal(signal.SIGTERM)
        timer = threading.Timer(self._config.stop_grace_seconds, self._force_kill)
        timer.name = f"{self.name}-{self._proc.pid}-kill"
        timer.daemon = True
        self._kill_timer = timer
        timer.start()

    def _force_kill(self) -> None:
        with self._lock:
            if self._child_exited():
                return
            logger.warning(
                "%s did not stop within %.1fs, killing",
                self.name,
                self._config.stop_grace_seconds,
            )
            self._send_signal(signal.SIGKILL)

    def _send_signal(self, sig: signal.Signals) -> None:
        # The child leads its own process group; signal the whole group so
        # helpers it spawned go down with it.
        try:
            os.killpg(self._proc.pid, sig)
        except ProcessLookupError:
            pass
        except PermissionError:
            self._proc.send_signal(sig)

    def stop(self) -> None:
        """Stop the process without treating the stop as a failure."""
        self._on_output_closed(False)

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------

    @property
    def pid(self) -> int:
        return self._proc.pid

    @property
    def returncode(self) -> int | None:
        """Exit status, None while running."""
        return self._proc.returncode if self._done.is_set() else None

    @property
    def done(self) -> bool:
        """Return True once the process has exited and teardown finished."""
        return self._done.is_set()

    @property
    def stderr(self) -> str:
        """Captured stderr (the most recent stderr_max_bytes)."""
        with self._lock:
            return "".join(self._stderr_lines)

    def wait(self, timeout: float | None = None) -> int:
        """Block until the process exits and every helper is reaped.

        Args:
            timeout: Maximum seconds to wait. None waits indefinitely.

        Returns:
            Process exit status.

        Raises:
            subprocess.TimeoutExpired: If timeout expires first.
            ContextCanceled: If the context was cancelled before the process
                completed on its own.
            EngineError: On non-zero exit, if writing the output writer failed,
                or if reading an input failed.
        """
        if not self._done.wait(timeout):
            raise subprocess.TimeoutExpired(self.argv, timeout or 0)
        if self._reaper is not None:
            self._reaper.join()

        returncode = self._proc.returncode
        if self._canceled:
            raise ContextCanceled(f"{self.name} canceled: {self._ctx.reason}")
        if self._output_error is not None:
            raise EngineError(
                f"{self.name} output failed: {self._output_error}",
                stderr=self.stderr,
                returncode=returncode,
                argv=self.argv,
            )
        if self._abandoned:
            return returncode
        if returncode != 0:
            stderr = self.stderr
            last_line = stderr.strip().splitlines()[-1] if stderr.strip() else ""
            message = f"{self.name} exited with status {returncode}"
            if last_line:
                message = f"{message}: {last_line}"
            raise EngineError(
                message, stderr=stderr, returncode=returncode, argv=self.argv
            )
        if self._input_error is not None:
            index, error = self._input_error
            raise EngineError(
                f"{self.name} input {index} failed: {error}",
                stderr=self.stderr,
                returncode=returncode,
                argv=self.argv,
            )
        return returncode


def start(
    ctx: Context,
    spec: PipelineSpec,
    config: BrokerConfig | None = None,
    *,
    on_stderr_line: LineCallback | None = None,
) -> EngineProcess:
    """Start ffmpeg for a pipeline.

    Args:
        ctx: Cancellation context.
        spec: Pipeline to run.
        config: Broker configuration (tool paths, supervision settings).
        on_stderr_line: Called for every ffmpeg stderr line.

    Returns:
        The running engine. Its `output` is set unless spec.output is.

    Raises:
        StartError: If the pipeline has no stream maps or ffmpeg cannot start.
        ContextCanceled: If ctx is already cancelled.
    """
    config = config or BrokerConfig()
    if not spec.maps:
        raise StartError("pipeline has no stream maps")

    executable = ffmpeg_path(config.tools)

    def build_args(urls: list[str]) -> list[str]:
        return build_transcode_args(
            executable, spec, urls, loglevel=config.download.engine_loglevel
        )

    return EngineProcess.spawn(
        ctx,
        build_args,
        spec.inputs,
        output=spec.output,
        config=config.supervisor,
        on_stderr_line=on_stderr_line,
        name="ffmpeg",
    )
