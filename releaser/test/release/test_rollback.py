"""Tests for the rollback stack."""

from __future__ import annotations

from pathlib import Path

from releaser.output.console import MockConsole
from releaser.release.model import RestoreFile, RunCommand
from releaser.release.rollback import RollbackStack


class TestRollbackStack:
    def test_empty_unwind_prints_nothing(self, runner, tmp_path: Path) -> None:
        console = MockConsole()
        stack = RollbackStack()

        assert stack.unwind(run=runner, cwd=tmp_path, console=console) == []
        assert console.outputs == []
        assert not stack

    def test_unwinds_in_reverse_push_order(self, runner, tmp_path: Path) -> None:
        console = MockConsole()
        stack = RollbackStack()
        for i in range(5):
            stack.push(f"step {i}", RunCommand(f"undo {i}"))
        assert len(stack) == 5

        failed = stack.unwind(run=runner, cwd=tmp_path, console=console)

        assert failed == []
        assert runner.calls == [f"undo {i}" for i in reversed(range(5))]
        assert len(stack) == 0
        assert console.banners == ["ROLLBACK release"]
        assert console.find("Reverted: step 0")

    def test_restores_file_content(self, runner, tmp_path: Path) -> None:
        path = tmp_path / "package.json"
        path.write_text("bumped", encoding="utf-8")
        stack = RollbackStack()
        stack.push("package version", RestoreFile(path=path, content="original"))

        stack.unwind(run=runner, cwd=tmp_path, console=MockConsole())

        assert path.read_text(encoding="utf-8") == "original"

    def test_removes_file_that_did_not_exist(self, runner, tmp_path: Path) -> None:
        path = tmp_path / "CHANGELOG.md"
        path.write_text("created", encoding="utf-8")
        stack = RollbackStack()
        stack.push("CHANGELOG", RestoreFile(path=path, content=None))

        stack.unwind(run=runner, cwd=tmp_path, console=MockConsole())

        assert not path.exists()

    def test_failed_compensation_does_not_stop_unwind(self, runner, tmp_path: Path) -> None:
        runner.fail("git tag -d", stderr="tag not found")
        console = MockConsole()
        stack = RollbackStack()
        stack.push("Bump commit", RunCommand("git reset --soft HEAD~1"))
        stack.push("Git tag", RunCommand("git tag -d v1.0.0"))

        failed = stack.unwind(run=runner, cwd=tmp_path, console=console)

        assert [a.label for a in failed] == ["Git tag"]
        assert runner.calls == ["git tag -d v1.0.0", "git reset --soft HEAD~1"]
        assert console.find("Could not revert: Git tag")
        assert console.find("Reverted: Bump commit")

    def test_actions_snapshot(self) -> None:
        stack = RollbackStack()
        stack.push("a", RunCommand("x"))
        actions = stack.actions
        stack.push("b", RunCommand("y"))
        assert [a.label for a in actions] == ["a"]
