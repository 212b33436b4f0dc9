from __future__ import annotations

import json
from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import TypeVar

import pytest

from releaser.core.result import Err, Ok, Result
from releaser.output.console import MockConsole
from releaser.platform.http import MockHttpClient
from releaser.platform.process import ExternalCommandError, FailureHook
from releaser.release.prompt import Choice

T = TypeVar("T")


@dataclass
class FakeRunner:
    """Scripted command runner.

    Responses are matched by command prefix, longest prefix first. Commands
    with no scripted response succeed with empty output.
    """

    responses: dict[str, str | ExternalCommandError] = field(default_factory=dict)
    calls: list[str] = field(default_factory=list)

    def respond(self, prefix: str, stdout: str = "") -> None:
        self.responses[prefix] = stdout

    def fail(self, prefix: str, *, returncode: int = 1, stderr: str = "boom") -> None:
        self.responses[prefix] = ExternalCommandError(
            command=prefix, returncode=returncode, stderr=stderr
        )

    def __call__(
        self,
        command: str,
        *,
        cwd: Path | None = None,
        on_failure: FailureHook | None = None,
        stream: bool = False,
    ) -> Result[str, ExternalCommandError]:
        self.calls.append(command)
        for prefix in sorted(self.responses, key=len, reverse=True):
            if not command.startswith(prefix):
                continue
            response = self.responses[prefix]
            if isinstance(response, ExternalCommandError):
                if on_failure is not None:
                    on_failure(response.stderr)
                return Err(
                    ExternalCommandError(
                        command=command, returncode=response.returncode, stderr=response.stderr
                    )
                )
            return Ok(response)
        return Ok("")

    def ran(self, prefix: str) -> bool:
        return any(c.startswith(prefix) for c in self.calls)


@dataclass
class ScriptedPrompt:
    """Answers checkpoints from a script.

    Each answer is a substring of the label to pick, or None to cancel.
    """

    answers: list[str | None] = field(default_factory=list)
    labels: list[str] = field(default_factory=list)

    def script(self, *answers: str | None) -> None:
        self.answers.extend(answers)

    def __call__(
        self,
        label: str,
        choices: Sequence[Choice[T]],
        *,
        selected_msg: str | None = None,
    ) -> T | None:
        self.labels.append(label)
        if not self.answers:
            raise AssertionError(f"unexpected prompt: {label}")
        answer = self.answers.pop(0)
        if answer is None:
            return None
        for choice in choices:
            if answer in choice.label:
                return choice.value
        raise AssertionError(f"no choice matching {answer!r} in {label}")


@pytest.fixture
def console() -> MockConsole:
    return MockConsole()


@pytest.fixture
def runner() -> FakeRunner:
    return FakeRunner()


@pytest.fixture
def prompt() -> ScriptedPrompt:
    return ScriptedPrompt()


@pytest.fixture
def http() -> MockHttpClient:
    return MockHttpClient()


@pytest.fixture
def repo_root(tmp_path: Path) -> Path:
    """A repository checkout holding a package.json at version 1.2.3."""
    root = tmp_path / "app"
    root.mkdir()
    (root / "package.json").write_text(
        json.dumps({"name": "app", "version": "1.2.3"}, indent=2) + "\n", encoding="utf-8"
    )
    return root


@pytest.fixture
def git_runner(runner: FakeRunner) -> FakeRunner:
    """Runner answering the read-only git queries of a repo with no tags."""
    runner.respond("git config --get remote.origin.url", "git@github.com:user/app.git")
    runner.respond("git config --global github.token", "secret-token")
    runner.respond("git tag -l", "")
    runner.respond("git rev-list --max-parents=0", "a1b2c3")
    runner.respond("git log a1b2c3..HEAD --oneline", "a1b2c3 fix: null pointer")
    runner.respond("git rev-parse --abbrev-ref HEAD", "main")
    return runner


@pytest.fixture
def github(http: MockHttpClient) -> MockHttpClient:
    """Host API answering the connectivity probe and release creation."""
    http.set_response("https://api.github.com/repos/user/app", 200, "{}")
    http.set_response("https://api.github.com/repos/user/app/releases", 201, "{}", method="POST")
    return http
