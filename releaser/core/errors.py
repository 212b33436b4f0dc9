"""Process exit codes for the release command.

Every fatal precondition, validation or command failure exits with 1.
A clean operator abort (declined checkpoint, cancelled version prompt)
is not an error and exits with 0.
"""

from enum import IntEnum

__all__ = ["ErrorCode"]


class ErrorCode(IntEnum):
    """Exit codes for the release command."""

    OK = 0
    FAILURE = 1
