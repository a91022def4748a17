"""Process exit codes for the mediabroker CLI."""

from enum import IntEnum


class ExitCode(IntEnum):
    """Exit codes shared by all commands."""

    SUCCESS = 0
    GENERAL_ERROR = 1
    INVALID_ARGUMENTS = 2
    TARGET_NOT_FOUND = 3
    TOOL_NOT_FOUND = 4
    UNMATCHED_FORMAT = 5
    EXTRACTION_ERROR = 6
    ENGINE_ERROR = 7
    PROBE_ERROR = 8
    INTERRUPTED = 130


# Used by the doctor command
DOCTOR_EXIT_CODES = {
    "EXIT_OK": 0,
    "EXIT_WARNINGS": 1,
    "EXIT_CRITICAL": 2,
}
