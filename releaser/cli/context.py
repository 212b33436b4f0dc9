from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import typer

from releaser.cli.selector import choose
from releaser.core.errors import ErrorCode
from releaser.core.result import Err
from releaser.output.console import ConsoleProtocol, RichConsole
from releaser.platform.http import HttpClient, RealHttpClient
from releaser.platform.process import CommandRunner, run
from releaser.release.prompt import Prompt


@dataclass(frozen=True, slots=True)
class CLIContext:
    repo_root: Path
    console: ConsoleProtocol
    run: CommandRunner
    http: HttpClient
    prompt: Prompt


def build_context() -> CLIContext:
    console = RichConsole()
    top = run("git rev-parse --show-toplevel")
    if isinstance(top, Err) or not top.value:
        console.error("Not inside a git repository")
        raise typer.Exit(code=int(ErrorCode.FAILURE))

    return CLIContext(
        repo_root=Path(top.value.strip()),
        console=console,
        run=run,
        http=RealHttpClient(),
        prompt=choose,
    )
