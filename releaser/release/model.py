from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Literal

from releaser.release.semver import VersionTriple

PipelineOutcome = Literal["released", "dry_run", "cancelled"]
ReleaseStep = Literal[
    "version",
    "tags",
    "tests",
    "changelog",
    "manifest",
    "artifact",
    "verify",
    "finalize",
    "deploy",
    "publish",
]


@dataclass(frozen=True, slots=True)
class OriginRepo:
    """``<user>/<repo>`` parsed from the remote origin URL."""

    user: str
    repo: str

    @property
    def slug(self) -> str:
        return f"{self.user}/{self.repo}"


@dataclass(frozen=True, slots=True)
class CommitRecord:
    short_hash: str
    subject: str


@dataclass(frozen=True, slots=True)
class ChangelogSection:
    category: str
    lines: tuple[str, ...]


@dataclass(frozen=True, slots=True)
class RunCommand:
    """Compensation: run a corrective command."""

    command: str


@dataclass(frozen=True, slots=True)
class RestoreFile:
    """Compensation: put a file's original payload back.

    ``content`` None means the file did not exist and is removed.
    """

    path: Path
    content: str | None


Compensation = RunCommand | RestoreFile


@dataclass(frozen=True, slots=True)
class RollbackAction:
    label: str
    compensation: Compensation


@dataclass(frozen=True, slots=True)
class ReleaseSession:
    """Data flowing between pipeline stages.

    Fields are filled in as stages complete; ``step`` names the next stage.
    """

    step: ReleaseStep
    origin: OriginRepo
    token: str
    current: VersionTriple
    target: VersionTriple | None = None
    range_start: str | None = None
    sections: tuple[ChangelogSection, ...] = ()
