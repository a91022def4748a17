"""Engine and process supervision errors."""

from __future__ import annotations

from collections.abc import Sequence

from mediabroker.core.errors import BrokerError


class StartError(BrokerError):
    """The engine could not be launched or the pipeline is structurally invalid."""


class EngineError(BrokerError):
    """The engine exited with a non-zero status.

    Attributes:
        stderr: Captured diagnostic output (tail, bounded).
        returncode: Process exit status (negative for a signal).
        argv: Command line that was run.
    """

    def __init__(
        self,
        message: str,
        *,
        stderr: str = "",
        returncode: int | None = None,
        argv: Sequence[str] = (),
        **context,
    ) -> None:
        super().__init__(message, **context)
        self.stderr = stderr
        self.returncode = returncode
        self.argv = tuple(argv)


class ContextCanceled(BrokerError):
    """The request context was cancelled before natural completion.

    Deliberately not an EngineError: cancellation is caller-initiated.
    """


class ProbeError(BrokerError):
    """Inspection of a byte stream failed."""
