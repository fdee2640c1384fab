"""Process exit codes for the admit CLI.

These constants prevent magic numbers and keep the CLI, the pipeline, and
tests agreeing on what each status means.
"""

from enum import IntEnum


class ExitCode(IntEnum):
    """Exit statuses."""

    OK = 0
    VALIDATION_FAILED = 1
    INVARIANT_VIOLATION = 2
    SCHEMA_ERROR = 3
    NOT_FOUND = 4
    CONTRACT_VIOLATION = 5
    NOT_EXECUTABLE = 126
    COMMAND_NOT_FOUND = 127

    # Usage errors, I/O failures, unknown environment, other launch failures
    GENERAL_ERROR = 1
