"""Shell command execution with Result-based error handling.

Every external tool the release drives (git, docker, npm, the configured
build/start commands) goes through ``run``. Commands are shell strings so
operator-provided config values like ``npm run compile && npm run lint``
work unchanged.

Usage:
    result = run("git tag -l", cwd=repo_root)
    match result:
        case Ok(stdout):
            print(stdout)
        case Err(error):
            print(f"{error.command} failed: {error.stderr}")
"""

from __future__ import annotations

import os
import selectors
import subprocess
import sys
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import IO, Protocol

from releaser.core.result import Err, Ok, Result

__all__ = ["CommandRunner", "ExternalCommandError", "FailureHook", "run", "trim_blank_lines"]

FailureHook = Callable[[str], None]


@dataclass(frozen=True, slots=True)
class ExternalCommandError:
    """A command exited non-zero (or could not be spawned).

    Attributes:
        command: The shell command that was executed.
        returncode: Exit status, -1 when the process never started.
        stderr: Captured standard error.
        stdout: Captured standard output (may be empty).
    """

    command: str
    returncode: int
    stderr: str
    stdout: str = ""

    def __str__(self) -> str:
        return f'Command "{self.command}" failed (exit {self.returncode})'


class CommandRunner(Protocol):
    """Signature shared by ``run`` and the fakes used in tests."""

    def __call__(
        self,
        command: str,
        *,
        cwd: Path | None = None,
        on_failure: FailureHook | None = None,
        stream: bool = False,
    ) -> Result[str, ExternalCommandError]: ...


def trim_blank_lines(text: str) -> str:
    """Drop whitespace-only lines and the trailing newline."""
    return "\n".join(line for line in text.splitlines() if line.strip())


def run(
    command: str,
    *,
    cwd: Path | None = None,
    on_failure: FailureHook | None = None,
    stream: bool = False,
) -> Result[str, ExternalCommandError]:
    """Execute a shell command and return its stdout or an error.

    Args:
        command: Shell command line.
        cwd: Working directory (current directory if None).
        on_failure: Called with the captured stderr before the error is
            returned. The error is returned whether or not a hook is given.
        stream: Echo stdout and stderr to the terminal as they arrive.

    Returns:
        Ok(stdout without blank lines) on exit status 0,
        Err(ExternalCommandError) otherwise.

    There is no timeout: a hung command hangs the release.
    """
    try:
        proc = subprocess.Popen(
            command,
            shell=True,
            cwd=str(cwd) if cwd is not None else None,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
        )
    except OSError as e:
        error = ExternalCommandError(command=command, returncode=-1, stderr=str(e))
        if on_failure is not None:
            on_failure(error.stderr)
        return Err(error)

    if stream and os.name != "nt":
        stdout, stderr = _pump(proc, echo=sys.stdout)
    else:
        out_b, err_b = proc.communicate()
        stdout = out_b.decode("utf-8", errors="replace")
        stderr = err_b.decode("utf-8", errors="replace")
        if stream:
            sys.stdout.write(stdout)
            sys.stdout.write(stderr)
            sys.stdout.flush()

    returncode = proc.wait()
    if returncode != 0:
        if on_failure is not None:
            on_failure(stderr)
        return Err(
            ExternalCommandError(
                command=command,
                returncode=returncode,
                stderr=stderr,
                stdout=stdout,
            )
        )

    return Ok(trim_blank_lines(stdout))


def _pump(proc: subprocess.Popen[bytes], *, echo: IO[str]) -> tuple[str, str]:
    """Read both pipes until EOF, echoing each chunk as it arrives."""
    assert proc.stdout is not None and proc.stderr is not None

    chunks: dict[str, list[bytes]] = {"stdout": [], "stderr": []}
    sel = selectors.DefaultSelector()
    sel.register(proc.stdout, selectors.EVENT_READ, "stdout")
    sel.register(proc.stderr, selectors.EVENT_READ, "stderr")

    open_pipes = 2
    while open_pipes:
        for key, _ in sel.select():
            data = os.read(key.fd, 4096)
            if not data:
                sel.unregister(key.fileobj)
                open_pipes -= 1
                continue
            chunks[key.data].append(data)
            echo.write(data.decode("utf-8", errors="replace"))
            echo.flush()
    sel.close()

    return (
        b"".join(chunks["stdout"]).decode("utf-8", errors="replace"),
        b"".join(chunks["stderr"]).decode("utf-8", errors="replace"),
    )
