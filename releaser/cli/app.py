from __future__ import annotations

import typer

from releaser import __version__
from releaser.cli.context import build_context
from releaser.cli.selector import is_interactive_terminal
from releaser.core.errors import ErrorCode
from releaser.core.result import Err, Ok
from releaser.output.errors import print_release_failure, release_exit_code
from releaser.release.config import CONFIG_FILENAME, load_config
from releaser.release.config_file import generate_config, update_config
from releaser.release.pipeline import run_release

app = typer.Typer(
    add_completion=False,
    rich_markup_mode="rich",
    context_settings={"help_option_names": ["-h", "--help"]},
)


@app.command()
def release(
    dry_run: bool = typer.Option(
        False, "--dry-run", "-dr", help="Describe every change instead of making it."
    ),
    generate: bool = typer.Option(
        False, "--generate-config", "-gc", help=f"Write a {CONFIG_FILENAME} template and exit."
    ),
    show_credentials: bool = typer.Option(
        False, "--show-credentials", "-sc", help="Show the repo token in dry-run output."
    ),
    update: bool = typer.Option(
        False, "--update-config", "-uc", help=f"Migrate {CONFIG_FILENAME} to the current schema."
    ),
    version: bool = typer.Option(False, "--version", help="Show version and exit."),
) -> None:
    """Bump the version, update the CHANGELOG, tag and publish a release."""
    if version:
        typer.echo(__version__)
        raise typer.Exit(code=int(ErrorCode.OK))

    ctx = build_context()
    console = ctx.console
    config_path = ctx.repo_root / CONFIG_FILENAME

    if generate or update:
        action = generate_config if generate else update_config
        written = action(path=config_path, console=console, dry_run=dry_run)
        if isinstance(written, Err):
            print_release_failure(written.error, console)
            raise typer.Exit(code=int(ErrorCode.FAILURE))
        if not dry_run:
            console.success(f"{'Created' if generate else 'Updated'} {written.value}")
        raise typer.Exit(code=int(ErrorCode.OK))

    config = load_config(config_path)
    if isinstance(config, Err):
        print_release_failure(config.error, console)
        raise typer.Exit(code=int(ErrorCode.FAILURE))

    if not is_interactive_terminal():
        console.error("release needs an interactive terminal for its prompts")
        raise typer.Exit(code=int(ErrorCode.FAILURE))

    result = run_release(
        repo_root=ctx.repo_root,
        config=config.value,
        console=console,
        run=ctx.run,
        prompt=ctx.prompt,
        http=ctx.http,
        dry_run=dry_run,
        show_credentials=show_credentials,
    )
    match result:
        case Ok(_):
            raise typer.Exit(code=int(ErrorCode.OK))
        case Err(error):
            print_release_failure(error, console)
            raise typer.Exit(code=release_exit_code(error))


def main() -> None:
    app()
