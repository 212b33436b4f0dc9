"""Failure kinds for the release pipeline.

Each kind is a frozen dataclass; ``ReleaseFailure`` is their union and is
the error side of every pipeline ``Result``.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from releaser.platform.process import ExternalCommandError

__all__ = [
    "ClassificationError",
    "ConfigValidationError",
    "ConnectivityError",
    "ExternalCommandError",
    "ManifestError",
    "OriginParseError",
    "ReleaseFailure",
    "UserAbort",
]


@dataclass(frozen=True, slots=True)
class ConfigValidationError:
    """Config missing, outdated or inconsistent. Raised before any mutation."""

    message: str
    hint: str | None = None


@dataclass(frozen=True, slots=True)
class ConnectivityError:
    """Registry or host API unreachable (or not logged in)."""

    target: str
    message: str
    hint: str | None = None


@dataclass(frozen=True, slots=True)
class OriginParseError:
    """The VCS remote URL is missing or not shaped like ``.../<user>/<repo>.git``."""

    url: str | None


@dataclass(frozen=True, slots=True)
class ClassificationError:
    """The commit log could not be read at all."""

    message: str


@dataclass(frozen=True, slots=True)
class ManifestError:
    path: Path
    message: str


@dataclass(frozen=True, slots=True)
class UserAbort:
    """The operator declined a checkpoint. Not an error for exit status."""

    checkpoint: str


ReleaseFailure = (
    ConfigValidationError
    | ConnectivityError
    | OriginParseError
    | ExternalCommandError
    | ClassificationError
    | ManifestError
    | UserAbort
)
