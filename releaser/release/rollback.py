"""Rollback stack for the release pipeline.

Compensations are appended during the forward pass and unwound strictly in
reverse push order. Every compensation runs even if an earlier one fails;
failures are reported, never dropped.
"""

from __future__ import annotations

from pathlib import Path

from releaser.core.result import Err
from releaser.output.console import ConsoleProtocol
from releaser.platform.files import atomic_write_text
from releaser.platform.process import CommandRunner
from releaser.release.model import Compensation, RestoreFile, RollbackAction, RunCommand

__all__ = ["RollbackStack"]


class RollbackStack:
    """Ordered record of compensations for mutations already applied."""

    def __init__(self) -> None:
        self._actions: list[RollbackAction] = []

    def __len__(self) -> int:
        return len(self._actions)

    def __bool__(self) -> bool:
        return bool(self._actions)

    @property
    def actions(self) -> tuple[RollbackAction, ...]:
        return tuple(self._actions)

    def push(self, label: str, compensation: Compensation) -> None:
        self._actions.append(RollbackAction(label=label, compensation=compensation))

    def unwind(
        self, *, run: CommandRunner, cwd: Path, console: ConsoleProtocol
    ) -> list[RollbackAction]:
        """Apply every compensation in reverse order and empty the stack.

        Returns:
            The actions whose compensation failed (empty when all succeeded).
        """
        if not self._actions:
            return []

        console.banner("ROLLBACK", "release")
        failed: list[RollbackAction] = []
        while self._actions:
            action = self._actions.pop()
            if _apply(action.compensation, run=run, cwd=cwd, console=console):
                console.print(f" - Reverted: {action.label}")
            else:
                failed.append(action)
                console.error(f"Could not revert: {action.label}")
        return failed


def _apply(
    compensation: Compensation, *, run: CommandRunner, cwd: Path, console: ConsoleProtocol
) -> bool:
    match compensation:
        case RunCommand(command=command):
            result = run(command, cwd=cwd)
            if isinstance(result, Err):
                console.print(result.error.stderr.rstrip())
                return False
            return True
        case RestoreFile(path=path, content=None):
            try:
                path.unlink(missing_ok=True)
            except OSError as e:
                console.print(str(e))
                return False
            return True
        case RestoreFile(path=path, content=content):
            try:
                atomic_write_text(path, content)
            except OSError as e:
                console.print(str(e))
                return False
            return True
