"""Release failure presentation.

Centralized formatting and exit-code mapping so every fatal path prints a
message naming the failing command or check.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from releaser.core.errors import ErrorCode
from releaser.output.console import Style
from releaser.release.errors import (
    ClassificationError,
    ConfigValidationError,
    ConnectivityError,
    ExternalCommandError,
    ManifestError,
    OriginParseError,
    ReleaseFailure,
    UserAbort,
)

if TYPE_CHECKING:
    from releaser.output.console import ConsoleProtocol

__all__ = ["print_release_failure", "release_exit_code"]


def print_release_failure(error: ReleaseFailure, console: ConsoleProtocol) -> None:
    """Print a release failure with appropriate formatting."""
    match error:
        case ConfigValidationError(message=message, hint=hint):
            console.error(message)
            if hint:
                console.print(f" {hint}", Style.DIM)
        case ConnectivityError(target=target, message=message, hint=hint):
            console.error(f"{message}: {target}")
            if hint:
                console.print(f" {hint}", Style.DIM)
        case OriginParseError(url=None):
            console.error("Your repo is missing an origin URL")
        case OriginParseError(url=url):
            console.error(f"Could not parse your repo's origin URL: {url}")
        case ExternalCommandError(command=command, stderr=stderr):
            console.error(f'Command "{command}" failed\n{stderr.rstrip()}')
        case ClassificationError(message=message):
            console.error(f"Couldn't parse commit messages:\n{message}")
        case ManifestError(path=path, message=message):
            console.error(f"{message} ({path})")
        case UserAbort(checkpoint=checkpoint):
            console.warning(f"Release aborted at: {checkpoint}")


def release_exit_code(error: ReleaseFailure) -> int:
    """Exit status for a failure: a clean operator abort exits 0."""
    if isinstance(error, UserAbort):
        return int(ErrorCode.OK)
    return int(ErrorCode.FAILURE)
