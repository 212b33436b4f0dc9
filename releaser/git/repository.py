"""Read-only git queries used while preparing a release.

Mutating git commands (add, commit, tag, push) are issued by the pipeline
itself so that each one can be described in dry-run mode and paired with
its compensation on the rollback stack.

Usage:
    repo = Repository(Path("."), run=run)
    match repo.latest_tag():
        case Ok(tag):
            print(f"Latest tag: {tag}")
        case Err(e):
            print(e.stderr)
"""

from __future__ import annotations

import shlex
from pathlib import Path

from releaser.core.result import Err, Ok, Result
from releaser.platform.process import CommandRunner, ExternalCommandError

__all__ = ["Repository"]


class Repository:
    """Git repository rooted at ``path``.

    Attributes:
        path: Path to the repository root
    """

    def __init__(self, path: Path, *, run: CommandRunner) -> None:
        self.path = path
        self._run = run

    def git(self, *args: str, stream: bool = False) -> Result[str, ExternalCommandError]:
        """Run ``git <args>`` in the repository."""
        return self._run(shlex.join(["git", *args]), cwd=self.path, stream=stream)

    def origin_url(self) -> Result[str, ExternalCommandError]:
        return self.git("config", "--get", "remote.origin.url")

    def global_config(self, key: str) -> Result[str, ExternalCommandError]:
        """Read a value from the operator's global git config."""
        return self.git("config", "--global", key)

    def fetch_tags(self) -> Result[str, ExternalCommandError]:
        return self.git("fetch", "--tags", stream=True)

    def has_tags(self) -> Result[bool, ExternalCommandError]:
        result = self.git("tag", "-l")
        if isinstance(result, Err):
            return result
        return Ok(bool(result.value.strip()))

    def latest_tag(self) -> Result[str, ExternalCommandError]:
        """Most recent tag reachable from HEAD."""
        return self.git("describe", "--tags", "--abbrev=0")

    def root_commit(self) -> Result[str, ExternalCommandError]:
        """Short hash of the first commit."""
        result = self.git("rev-list", "--max-parents=0", "--abbrev-commit", "HEAD")
        if isinstance(result, Err):
            return result
        lines = result.value.splitlines()
        return Ok(lines[-1].strip() if lines else "")

    def log_oneline(self, since: str) -> Result[str, ExternalCommandError]:
        """One line per commit in ``since..HEAD``."""
        return self.git("log", f"{since}..HEAD", "--oneline")

    def current_branch(self) -> Result[str, ExternalCommandError]:
        return self.git("rev-parse", "--abbrev-ref", "HEAD")
