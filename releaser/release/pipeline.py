"""Release orchestration.

Stages run strictly in order through ``run_state_machine``. Each mutating
stage pushes its compensation onto the rollback stack (file writes before
writing, commands after they succeed); any failure or declined checkpoint
unwinds the stack in reverse before the failure is returned.

In dry-run mode every mutating command and file write is replaced by a
console description. Read-only git queries and all prompts still run.
"""

from __future__ import annotations

import json
import shlex
from dataclasses import dataclass, field, replace
from pathlib import Path

from releaser.core.result import Err, Ok, Result
from releaser.core.structured import as_str_dict, get_table
from releaser.git.repository import Repository
from releaser.output.console import ConsoleProtocol, Style
from releaser.platform.files import atomic_write_text, read_text_or_none
from releaser.platform.http import HttpClient
from releaser.platform.process import CommandRunner, ExternalCommandError
from releaser.release.changelog import changelog_entry, classify, release_message, splice_changelog
from releaser.release.config import ReleaseConfig
from releaser.release.errors import ManifestError, ReleaseFailure, UserAbort
from releaser.release.fsm import StepHandler, StepOutcome, advance, finish, run_state_machine
from releaser.release.host import (
    REDACTED,
    auth_headers,
    create_release,
    default_docker_config_path,
    release_payload,
    releases_url,
)
from releaser.release.manifest import bump_manifest_text, read_manifest_version
from releaser.release.model import (
    OriginRepo,
    PipelineOutcome,
    ReleaseSession,
    RestoreFile,
    RunCommand,
)
from releaser.release.preflight import run_preflight
from releaser.release.prompt import Choice, Prompt, confirm
from releaser.release.rollback import RollbackStack
from releaser.release.semver import candidates

CHANGELOG_FILENAME = "CHANGELOG.md"
LOCKFILE_FILENAME = "package-lock.json"
# Lines of the updated changelog shown in dry-run.
DRY_RUN_PREVIEW_LINES = 20


@dataclass(frozen=True, slots=True)
class _ReleaseCtx:
    repo_root: Path
    config: ReleaseConfig
    console: ConsoleProtocol
    run: CommandRunner
    prompt: Prompt
    http: HttpClient
    api_url: str
    dry_run: bool
    show_credentials: bool
    rollback: RollbackStack = field(default_factory=RollbackStack)

    @property
    def repo(self) -> Repository:
        return Repository(self.repo_root, run=self.run)

    @property
    def manifest_path(self) -> Path:
        return self.repo_root / self.config.manifest


def _announce_failure(ctx: _ReleaseCtx) -> None:
    if ctx.rollback:
        ctx.console.warning("Command failed, rolling back release")


def _exec(
    ctx: _ReleaseCtx,
    command: str,
    *,
    undo: tuple[str, str] | None = None,
) -> Result[str, ExternalCommandError]:
    """Run a mutating command, or describe it in dry-run.

    ``undo`` is ``(label, command)``, pushed once the command succeeded.
    """
    if ctx.dry_run:
        ctx.console.dry_run(command)
        return Ok("")

    result = ctx.run(
        command,
        cwd=ctx.repo_root,
        stream=True,
        on_failure=lambda _stderr: _announce_failure(ctx),
    )
    if isinstance(result, Ok) and undo is not None:
        label, undo_command = undo
        ctx.rollback.push(label, RunCommand(undo_command))
    return result


def _write(
    ctx: _ReleaseCtx, *, path: Path, content: str, original: str | None, label: str
) -> Result[None, ManifestError]:
    ctx.rollback.push(label, RestoreFile(path=path, content=original))
    try:
        atomic_write_text(path, content)
    except OSError as e:
        return Err(ManifestError(path=path, message=f"failed to write {path.name}: {e}"))
    return Ok(None)


def _read(path: Path) -> Result[str | None, ManifestError]:
    try:
        return Ok(read_text_or_none(path))
    except OSError as e:
        return Err(ManifestError(path=path, message=f"failed to read {path.name}: {e}"))


def commit_link_template(origin: OriginRepo) -> str:
    return f"/{origin.user}/{origin.repo}/commit/{{sha}}"


def resolve_test_command(config: ReleaseConfig, repo_root: Path) -> str | None:
    """Configured test command, else ``npm test`` when package.json defines one."""
    if config.cmd_test:
        return config.cmd_test

    text = read_text_or_none(repo_root / "package.json")
    if text is None:
        return None
    try:
        data = as_str_dict(json.loads(text))
    except json.JSONDecodeError:
        return None
    scripts = get_table(data, "scripts") if data is not None else None
    if scripts and scripts.get("test"):
        return "npm test"
    return None


def staged_files(ctx: _ReleaseCtx, s: ReleaseSession) -> list[str]:
    files: list[str] = []
    if s.sections:
        files.append(CHANGELOG_FILENAME)
    files.append(ctx.config.manifest)
    if (ctx.repo_root / LOCKFILE_FILENAME).exists():
        files.append(LOCKFILE_FILENAME)
    return files


def _step_version(
    s: ReleaseSession, *, ctx: _ReleaseCtx
) -> Result[StepOutcome[ReleaseSession], ReleaseFailure]:
    ctx.console.banner("BUMP", "versions")
    choices = [
        Choice(f"{version} [{kind.capitalize()}]", version)
        for kind, version in candidates(s.current).items()
    ]
    target = ctx.prompt("Choose version:", choices, selected_msg="Bumping version to: %s")
    if target is None:
        ctx.console.warning("No version chosen, nothing to release")
        return Ok(finish("cancelled"))
    return Ok(advance(replace(s, step="tags", target=target)))


def _step_tags(
    s: ReleaseSession, *, ctx: _ReleaseCtx
) -> Result[StepOutcome[ReleaseSession], ReleaseFailure]:
    repo = ctx.repo

    ctx.console.banner("FETCH", "tags")
    if ctx.dry_run:
        ctx.console.dry_run("git fetch --tags")
    else:
        fetched = repo.fetch_tags()
        if isinstance(fetched, Err):
            return fetched

    ctx.console.banner("GET", "latest tag or SHA")
    has_tags = repo.has_tags()
    if isinstance(has_tags, Err):
        return has_tags

    if has_tags.value:
        start = repo.latest_tag()
        if isinstance(start, Err):
            return start
        ctx.console.info(f"Latest tag: {start.value}")
    else:
        start = repo.root_commit()
        if isinstance(start, Err):
            return start
        ctx.console.info(f"No tags found, using first SHA: {start.value}")

    return Ok(advance(replace(s, step="tests", range_start=start.value or None)))


def _step_tests(
    s: ReleaseSession, *, ctx: _ReleaseCtx
) -> Result[StepOutcome[ReleaseSession], ReleaseFailure]:
    command = resolve_test_command(ctx.config, ctx.repo_root)
    if command is None:
        return Ok(advance(replace(s, step="changelog")))

    ctx.console.banner("RUN", "tests")
    answer = confirm(ctx.prompt, "Run tests, or skip?", yes="Yes, run tests", no="Nah, skip tests")
    if answer is None:
        return Err(UserAbort(checkpoint="tests"))
    if answer:
        ran = _exec(ctx, command)
        if isinstance(ran, Err):
            return ran
    return Ok(advance(replace(s, step="changelog")))


def _step_changelog(
    s: ReleaseSession, *, ctx: _ReleaseCtx
) -> Result[StepOutcome[ReleaseSession], ReleaseFailure]:
    if s.range_start is None or s.target is None:
        return Ok(advance(replace(s, step="manifest")))

    ctx.console.banner("ADD", "new CHANGELOG items")
    log = ctx.repo.log_oneline(s.range_start)
    if isinstance(log, Err):
        return log

    sections = classify(log.value, commit_link_template(s.origin))
    if isinstance(sections, Err):
        return sections
    if not sections.value:
        ctx.console.warning(f"No commits since {s.range_start}, CHANGELOG left as is")
        return Ok(advance(replace(s, step="manifest", sections=())))

    path = ctx.repo_root / CHANGELOG_FILENAME
    original = _read(path)
    if isinstance(original, Err):
        return original

    updated = splice_changelog(original.value, changelog_entry(s.target.to_tag(), sections.value))
    if ctx.dry_run:
        ctx.console.dry_run(f"write {CHANGELOG_FILENAME}")
        preview = updated.splitlines()[:DRY_RUN_PREVIEW_LINES]
        ctx.console.print("\n".join(preview), Style.DIM)
    else:
        written = _write(
            ctx, path=path, content=updated, original=original.value, label="CHANGELOG"
        )
        if isinstance(written, Err):
            return written
        ctx.console.success(f"Updated {CHANGELOG_FILENAME}")

    return Ok(advance(replace(s, step="manifest", sections=sections.value)))


def _step_manifest(
    s: ReleaseSession, *, ctx: _ReleaseCtx
) -> Result[StepOutcome[ReleaseSession], ReleaseFailure]:
    assert s.target is not None
    ctx.console.banner("BUMP", "package version")

    paths = [ctx.manifest_path]
    lockfile = ctx.repo_root / LOCKFILE_FILENAME
    if ctx.manifest_path.name == "package.json" and lockfile.exists():
        paths.append(lockfile)

    for path in paths:
        original = _read(path)
        if isinstance(original, Err):
            return original
        if original.value is None:
            return Err(ManifestError(path=path, message=f"{path.name} not found"))

        bumped = bump_manifest_text(path, original.value, s.target)
        if isinstance(bumped, Err):
            return bumped

        if ctx.dry_run:
            ctx.console.dry_run(f"set {path.name} version: {s.current} -> {s.target}")
            continue

        written = _write(
            ctx,
            path=path,
            content=bumped.value,
            original=original.value,
            label=f"{path.name} version",
        )
        if isinstance(written, Err):
            return written

    if not ctx.dry_run:
        ctx.console.success(f"Version bumped: {s.current} -> {s.target}")
    return Ok(advance(replace(s, step="artifact")))


def _step_artifact(
    s: ReleaseSession, *, ctx: _ReleaseCtx
) -> Result[StepOutcome[ReleaseSession], ReleaseFailure]:
    stages = (
        ("COMPILE", "assets", ctx.config.cmd_compile),
        ("BUILD", "Docker image", ctx.config.cmd_build),
        ("START", "app", ctx.config.cmd_start),
    )
    for prefix, message, command in stages:
        if not command:
            continue
        ctx.console.banner(prefix, message)
        ran = _exec(ctx, command)
        if isinstance(ran, Err):
            return ran
    return Ok(advance(replace(s, step="verify")))


def _step_verify(
    s: ReleaseSession, *, ctx: _ReleaseCtx
) -> Result[StepOutcome[ReleaseSession], ReleaseFailure]:
    label = "Verify things are running properly"
    if ctx.config.test_url:
        label += f" at: {ctx.config.test_url}"
    answer = confirm(ctx.prompt, label, yes="Continue with release", no="Abort release")

    # The started app is stopped whichever way the operator answered.
    if ctx.config.cmd_start and ctx.config.cmd_stop:
        ctx.console.banner("STOP", "app")
        stopped = _exec(ctx, ctx.config.cmd_stop)
        if isinstance(stopped, Err):
            return stopped

    if not answer:
        return Err(UserAbort(checkpoint="verify"))
    return Ok(advance(replace(s, step="finalize")))


def _docker_tag(
    s: ReleaseSession, *, ctx: _ReleaseCtx, image: str
) -> Result[str, ExternalCommandError]:
    assert s.target is not None
    tagged = f"{image}:{s.target.to_tag()}"
    lookup = f"docker images --quiet {shlex.quote(image + ':latest')}"

    if ctx.dry_run:
        ctx.console.dry_run(f"docker tag {image}:latest {tagged}")
        return Ok("")

    found = ctx.run(lookup, cwd=ctx.repo_root)
    if isinstance(found, Err):
        return found
    image_ids = found.value.split()
    if not image_ids:
        return Err(
            ExternalCommandError(
                command=lookup, returncode=1, stderr=f"No image found for {image}:latest"
            )
        )

    return _exec(
        ctx,
        shlex.join(["docker", "tag", image_ids[0], tagged]),
        undo=("Docker tag", shlex.join(["docker", "rmi", tagged])),
    )


def _step_finalize(
    s: ReleaseSession, *, ctx: _ReleaseCtx
) -> Result[StepOutcome[ReleaseSession], ReleaseFailure]:
    assert s.target is not None
    tag = s.target.to_tag()

    ctx.console.banner("ADD", "updated files")
    added = _exec(
        ctx,
        shlex.join(["git", "add", "-f", *staged_files(ctx, s)]),
        undo=("Staged changes", "git reset"),
    )
    if isinstance(added, Err):
        return added

    ctx.console.banner("COMMIT", "updated files")
    committed = _exec(
        ctx,
        shlex.join(["git", "commit", "-m", f"Bump to {tag}"]),
        undo=("Bump commit", "git reset --soft HEAD~1"),
    )
    if isinstance(committed, Err):
        return committed

    ctx.console.banner("GIT_TAG", "the release")
    tagged = _exec(
        ctx,
        shlex.join(["git", "tag", "-a", tag, "-m", release_message(tag, s.sections)]),
        undo=("Git tag", shlex.join(["git", "tag", "-d", tag])),
    )
    if isinstance(tagged, Err):
        return tagged

    if ctx.config.docker_image:
        ctx.console.banner("DOCKER_TAG", "the release")
        docker_tagged = _docker_tag(s, ctx=ctx, image=ctx.config.docker_image)
        if isinstance(docker_tagged, Err):
            return docker_tagged

    return Ok(advance(replace(s, step="deploy")))


def _step_deploy(
    s: ReleaseSession, *, ctx: _ReleaseCtx
) -> Result[StepOutcome[ReleaseSession], ReleaseFailure]:
    answer = confirm(
        ctx.prompt,
        "Finalize release by deploying all data?",
        yes="Yes, finalize",
        no="No, abort!",
    )
    if not answer:
        return Err(UserAbort(checkpoint="deploy"))
    return Ok(advance(replace(s, step="publish")))


def _step_publish(
    s: ReleaseSession, *, ctx: _ReleaseCtx
) -> Result[StepOutcome[ReleaseSession], ReleaseFailure]:
    assert s.target is not None
    tag = s.target.to_tag()

    ctx.console.banner("PUSH", "Git commit and tag")
    pushed = _exec(
        ctx,
        "git push --follow-tags",
        undo=("Pushed Git tag", shlex.join(["git", "push", "--delete", "origin", tag])),
    )
    if isinstance(pushed, Err):
        return pushed

    image = ctx.config.docker_image
    if image:
        ctx.console.banner("PUSH", "Docker tags")
        for ref in (f"{image}:{tag}", f"{image}:latest"):
            docker_pushed = _exec(ctx, shlex.join(["docker", "push", ref]))
            if isinstance(docker_pushed, Err):
                return docker_pushed

    ctx.console.banner("CREATE", f"{ctx.config.repo_host} release")
    branch = ctx.repo.current_branch()
    if isinstance(branch, Err):
        return branch

    payload = release_payload(tag=tag, body=release_message(tag, s.sections), branch=branch.value)
    url = releases_url(ctx.api_url, s.origin)
    if ctx.dry_run:
        token = s.token if ctx.show_credentials else REDACTED
        ctx.console.dry_run(f"POST {url}")
        ctx.console.print(f"  Headers: {json.dumps(auth_headers(token), indent=2)}", Style.DIM)
        ctx.console.print(f"  Payload: {json.dumps(payload, indent=2)}", Style.DIM)
        return Ok(finish("dry_run"))

    created = create_release(
        http=ctx.http, api_url=ctx.api_url, origin=s.origin, token=s.token, payload=payload
    )
    if isinstance(created, Err):
        return created

    ctx.console.success(f"Released {tag}")
    return Ok(finish("released"))


def _handlers(*, ctx: _ReleaseCtx) -> dict[str, StepHandler[ReleaseSession]]:
    return {
        "version": lambda s: _step_version(s, ctx=ctx),
        "tags": lambda s: _step_tags(s, ctx=ctx),
        "tests": lambda s: _step_tests(s, ctx=ctx),
        "changelog": lambda s: _step_changelog(s, ctx=ctx),
        "manifest": lambda s: _step_manifest(s, ctx=ctx),
        "artifact": lambda s: _step_artifact(s, ctx=ctx),
        "verify": lambda s: _step_verify(s, ctx=ctx),
        "finalize": lambda s: _step_finalize(s, ctx=ctx),
        "deploy": lambda s: _step_deploy(s, ctx=ctx),
        "publish": lambda s: _step_publish(s, ctx=ctx),
    }


def run_release(
    *,
    repo_root: Path,
    config: ReleaseConfig,
    console: ConsoleProtocol,
    run: CommandRunner,
    prompt: Prompt,
    http: HttpClient,
    dry_run: bool = False,
    show_credentials: bool = False,
    docker_config: Path | None = None,
) -> Result[PipelineOutcome, ReleaseFailure]:
    """Run the whole release against an already validated config.

    Returns:
        Ok("released" | "dry_run" | "cancelled"), or the failure that stopped
        the release after every recorded compensation has been applied.
    """
    repo = Repository(repo_root, run=run)
    preflight = run_preflight(
        config=config,
        repo=repo,
        http=http,
        console=console,
        docker_config=docker_config or default_docker_config_path(),
    )
    if isinstance(preflight, Err):
        return preflight

    current = read_manifest_version(repo_root / config.manifest)
    if isinstance(current, Err):
        return current

    ctx = _ReleaseCtx(
        repo_root=repo_root,
        config=config,
        console=console,
        run=run,
        prompt=prompt,
        http=http,
        api_url=preflight.value.api_url,
        dry_run=dry_run,
        show_credentials=show_credentials,
    )
    if dry_run:
        console.info("Dry run: no files or remote state will be changed")

    session = ReleaseSession(
        step="version",
        origin=preflight.value.origin,
        token=preflight.value.token,
        current=current.value,
    )
    try:
        result = run_state_machine(
            initial_state=session,
            get_step=lambda st: st.step,
            handlers=_handlers(ctx=ctx),
        )
    except BaseException:
        # Ctrl-C during a streamed command, or an I/O error mid-stage.
        ctx.rollback.unwind(run=run, cwd=repo_root, console=console)
        raise
    if isinstance(result, Err):
        ctx.rollback.unwind(run=run, cwd=repo_root, console=console)
    return result
