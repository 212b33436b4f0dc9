"""Tests for releaser.platform.process module."""

from __future__ import annotations

import os
import subprocess
from pathlib import Path

import pytest

from releaser.core.result import Err, Ok
from releaser.platform.process import ExternalCommandError, run, trim_blank_lines

posix_only = pytest.mark.skipif(os.name == "nt", reason="uses POSIX shell syntax")


class TestExternalCommandError:
    def test_str_names_command_and_status(self) -> None:
        error = ExternalCommandError(command="git push", returncode=128, stderr="denied")
        assert str(error) == 'Command "git push" failed (exit 128)'

    def test_frozen(self) -> None:
        error = ExternalCommandError("cmd", 1, "")
        with pytest.raises(AttributeError):
            error.returncode = 2  # type: ignore[misc]


def test_trim_blank_lines() -> None:
    assert trim_blank_lines("\n  a\n\n   \nb\n") == "  a\nb"
    assert trim_blank_lines("") == ""


@posix_only
class TestRun:
    def test_success_returns_trimmed_stdout(self, tmp_path: Path) -> None:
        result = run("printf '\\nhello\\n\\nworld\\n\\n'", cwd=tmp_path)

        assert result == Ok("hello\nworld")

    def test_runs_in_working_directory(self, tmp_path: Path) -> None:
        (tmp_path / "marker.txt").write_text("x", encoding="utf-8")

        result = run("ls", cwd=tmp_path)

        assert isinstance(result, Ok)
        assert "marker.txt" in result.value

    def test_failure_returns_error_with_stderr(self, tmp_path: Path) -> None:
        result = run("echo nope 1>&2; exit 3", cwd=tmp_path)

        assert isinstance(result, Err)
        assert result.error.returncode == 3
        assert result.error.stderr.strip() == "nope"
        assert result.error.command == "echo nope 1>&2; exit 3"

    def test_failure_calls_hook_with_stderr(self, tmp_path: Path) -> None:
        seen: list[str] = []

        result = run("echo bad 1>&2; exit 1", cwd=tmp_path, on_failure=seen.append)

        assert isinstance(result, Err)
        assert [s.strip() for s in seen] == ["bad"]

    def test_success_does_not_call_hook(self, tmp_path: Path) -> None:
        seen: list[str] = []

        run("true", cwd=tmp_path, on_failure=seen.append)

        assert seen == []

    def test_stream_echoes_and_captures(
        self, tmp_path: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        result = run("echo out; echo err 1>&2", cwd=tmp_path, stream=True)

        assert result == Ok("out")
        captured = capsys.readouterr()
        assert "out" in captured.out
        assert "err" in captured.out


def test_spawn_failure_is_exit_minus_one(monkeypatch: pytest.MonkeyPatch) -> None:
    def boom(*args: object, **kwargs: object) -> None:
        raise OSError("no shell")

    monkeypatch.setattr(subprocess, "Popen", boom)
    seen: list[str] = []

    result = run("anything", on_failure=seen.append)

    assert isinstance(result, Err)
    assert result.error.returncode == -1
    assert seen == ["no shell"]
