"""Tests for core subprocess utilities."""

import subprocess
import sys
from pathlib import Path

import pytest

from mediabroker.core.subprocess_utils import CommandResult, run_command

WRITE_BYTES = "import sys; sys.stdout.buffer.write(b'\\x00\\x01')"


class TestRunCommand:
    """Tests for run_command function."""

    def test_successful_command(self):
        """run_command returns stdout, stderr, returncode for successful command."""
        stdout, stderr, returncode = run_command(
            [sys.executable, "-c", "print('hello')"]
        )

        assert stdout.strip() == "hello"
        assert returncode == 0

    def test_command_with_path_args(self):
        """run_command converts Path arguments to strings."""
        _, _, returncode = run_command([Path(sys.executable), "-c", "pass"])

        assert returncode == 0

    def test_command_failure_returns_non_zero(self):
        """run_command returns non-zero returncode and stderr for failures."""
        _, stderr, returncode = run_command(
            [sys.executable, "-c", "import sys; sys.exit('bad input')"]
        )

        assert returncode == 1
        assert "bad input" in stderr

    def test_binary_mode(self):
        """text=False returns bytes."""
        stdout, stderr, _ = run_command(
            [sys.executable, "-c", WRITE_BYTES],
            text=False,
        )

        assert stdout == b"\x00\x01"
        assert stderr == b""

    def test_timeout_raises_exception(self):
        """run_command raises TimeoutExpired for long-running commands."""
        with pytest.raises(subprocess.TimeoutExpired):
            run_command([sys.executable, "-c", "import time; time.sleep(10)"], timeout=1)

    def test_missing_executable(self):
        with pytest.raises(FileNotFoundError):
            run_command(["/nonexistent/tool-12345"])

    def test_result_fields(self):
        result = run_command([sys.executable, "-c", "print('x')"])

        assert result.ok
        assert result.stdout.strip() == "x"
        assert result.returncode == 0


class TestCommandResult:
    """Tests for CommandResult helpers."""

    def test_ok_false_on_failure(self):
        assert not CommandResult("", "boom", 2).ok

    def test_stderr_tail_text(self):
        result = CommandResult("", "first line\nlast line\n\n", 1)

        assert result.stderr_tail() == "last line"

    def test_stderr_tail_bytes(self):
        result = CommandResult(b"", b"warning\nInvalid data found\n", 1)

        assert result.stderr_tail() == "Invalid data found"

    def test_stderr_tail_empty(self):
        assert CommandResult(b"", b"", 1).stderr_tail() == ""
