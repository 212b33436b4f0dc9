from __future__ import annotations

from pathlib import Path

from releaser.core.result import Err, Ok, Result
from releaser.output.console import ConsoleProtocol, Style
from releaser.platform.files import atomic_write_text
from releaser.release.config import CONFIG_FIELDS, parse_config_file, render_config
from releaser.release.errors import ConfigValidationError


def _write_or_describe(
    *, path: Path, content: str, console: ConsoleProtocol, dry_run: bool
) -> Result[Path, ConfigValidationError]:
    if dry_run:
        console.dry_run(f"write {path}")
        console.print(content, Style.DIM)
        return Ok(path)

    try:
        atomic_write_text(path, content)
    except OSError as e:
        return Err(ConfigValidationError(f"Could not write {path}: {e}"))
    return Ok(path)


def generate_config(
    *, path: Path, console: ConsoleProtocol, dry_run: bool
) -> Result[Path, ConfigValidationError]:
    """Write a fresh config template (printed instead in dry-run)."""
    return _write_or_describe(path=path, content=render_config(), console=console, dry_run=dry_run)


def update_config(
    *, path: Path, console: ConsoleProtocol, dry_run: bool
) -> Result[Path, ConfigValidationError]:
    """Re-render an existing config at the current schema version.

    Values of known keys are kept; keys added since the file was written get
    their defaults; unknown keys are dropped and reported.
    """
    parsed = parse_config_file(path)
    if isinstance(parsed, Err):
        return parsed

    known = {f.key for f in CONFIG_FIELDS}
    for key in sorted(set(parsed.value) - known):
        console.warning(f"dropping unknown config key: {key}")

    return _write_or_describe(
        path=path,
        content=render_config(parsed.value),
        console=console,
        dry_run=dry_run,
    )
