"""Typed access to MEDIABROKER_* environment variables."""

from __future__ import annotations

import logging
import os
from collections.abc import Callable, Mapping
from pathlib import Path
from typing import TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

TRUE_VALUES = frozenset({"1", "true", "yes", "on"})


class EnvReader:
    """Reads and converts environment variables.

    Unset variables yield the caller's default. A set variable that does
    not convert is logged and also yields the default, so one typo in the
    environment never stops the broker from starting.

    Example:
        reader = EnvReader(env={"MEDIABROKER_STOP_GRACE_SECONDS": "1.5"})
        reader.get_float("MEDIABROKER_STOP_GRACE_SECONDS", 5.0)  # 1.5
    """

    def __init__(self, env: Mapping[str, str] | None = None) -> None:
        """Initialize the reader.

        Args:
            env: Variables to read. os.environ when None.
        """
        self._env: Mapping[str, str] = os.environ if env is None else env

    def _convert(
        self, var: str, convert: Callable[[str], T], default: T | None
    ) -> T | None:
        raw = self._env.get(var)
        if raw is None:
            return default
        try:
            return convert(raw)
        except ValueError:
            logger.warning(
                "Ignoring %s=%r: expected %s", var, raw, getattr(convert, "__name__", "?")
            )
            return default

    def get_str(self, var: str, default: str | None = None) -> str | None:
        return self._env.get(var, default)

    def get_int(self, var: str, default: int | None = None) -> int | None:
        return self._convert(var, int, default)

    def get_float(self, var: str, default: float | None = None) -> float | None:
        return self._convert(var, float, default)

    def get_bool(self, var: str, default: bool | None = None) -> bool | None:
        """Read a flag. "1", "true", "yes" and "on" are true, anything else false."""
        return self._convert(var, lambda raw: raw.strip().lower() in TRUE_VALUES, default)

    def get_path(
        self, var: str, must_exist: bool = True, default: Path | None = None
    ) -> Path | None:
        """Read a filesystem path, expanding ``~``.

        Args:
            var: Variable name.
            must_exist: Reject, with a warning, paths that do not exist.
            default: Returned when unset or rejected.
        """
        path = self._convert(var, lambda raw: Path(raw).expanduser(), default)
        if path is None or path is default:
            return path
        if must_exist and not path.exists():
            logger.warning("%s points to a missing path: %s", var, path)
            return default
        return path
