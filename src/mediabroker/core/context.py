"""Cancellation context shared by every task of one request.

A Context is the sole cancellation authority for a download or probe.
Supervised processes register callbacks on it; cancelling the context runs
those callbacks exactly once. Cancellation is idempotent and cancelling
after completion is a no-op for anything that already finished.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable

logger = logging.getLogger(__name__)


class Context:
    """Thread-safe cancellation token with callbacks.

    Example:
        ctx = Context()
        process = EngineProcess.spawn(ctx, build_args, inputs)
        ...
        ctx.cancel()  # stops the process and every helper thread
    """

    def __init__(self) -> None:
        self._event = threading.Event()
        self._lock = threading.Lock()
        self._callbacks: dict[int, Callable[[], None]] = {}
        self._next_id = 0
        self._reason: str | None = None

    @property
    def cancelled(self) -> bool:
        """Return True once cancel() has been called."""
        return self._event.is_set()

    @property
    def reason(self) -> str | None:
        """Reason given to the first cancel() call."""
        return self._reason

    def cancel(self, reason: str = "canceled") -> bool:
        """Cancel the context and run registered callbacks.

        Args:
            reason: Human-readable cancellation reason.

        Returns:
            True if this call cancelled the context, False if it already was.
        """
        with self._lock:
            if self._event.is_set():
                return False
            self._reason = reason
            self._event.set()
            callbacks = list(self._callbacks.values())
            self._callbacks.clear()

        for callback in callbacks:
            try:
                callback()
            except Exception as e:
                logger.warning("Cancel callback error: %s", e)
        return True

    def on_cancel(self, callback: Callable[[], None]) -> int | None:
        """Register a callback run when the context is cancelled.

        If the context is already cancelled the callback runs immediately.

        Args:
            callback: Zero-argument callable.

        Returns:
            Registration id for remove_callback(), or None if the callback
            already ran.
        """
        with self._lock:
            if not self._event.is_set():
                registration = self._next_id
                self._next_id += 1
                self._callbacks[registration] = callback
                return registration

        callback()
        return None

    def remove_callback(self, registration: int | None) -> None:
        """Unregister a callback added with on_cancel()."""
        if registration is None:
            return
        with self._lock:
            self._callbacks.pop(registration, None)

    def wait(self, timeout: float | None = None) -> bool:
        """Block until cancelled or timeout expires.

        Returns:
            True if the context is cancelled.
        """
        return self._event.wait(timeout)
