"""Sanity checks run before anything is mutated.

Any failure here is fatal and needs no rollback.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from releaser.core.result import Err, Ok, Result
from releaser.git.repository import Repository
from releaser.output.console import ConsoleProtocol
from releaser.platform.http import HttpClient
from releaser.release.config import ReleaseConfig
from releaser.release.errors import (
    ConfigValidationError,
    OriginParseError,
    ReleaseFailure,
)
from releaser.release.host import check_api, check_registry, find_registry_login
from releaser.release.model import OriginRepo
from releaser.release.origin import parse_origin_url


@dataclass(frozen=True, slots=True)
class PreflightReport:
    origin: OriginRepo
    token: str
    api_url: str


def run_preflight(
    *,
    config: ReleaseConfig,
    repo: Repository,
    http: HttpClient,
    console: ConsoleProtocol,
    docker_config: Path,
) -> Result[PreflightReport, ReleaseFailure]:
    """Verify registry login/reachability, origin, token and API access.

    The config itself has already been loaded and validated.
    """
    console.success("Config schema valid")

    if config.docker_image:
        login = find_registry_login(docker_config=docker_config, registry=config.docker_registry)
        if isinstance(login, Err):
            return login
        console.success("Docker is logged in")

        reachable = check_registry(http=http, auth_url=login.value)
        if isinstance(reachable, Err):
            return reachable
        console.success("Can connect to the Docker registry")

    remote = repo.origin_url()
    if isinstance(remote, Err) or not remote.value.strip():
        return Err(OriginParseError(url=None))
    origin = parse_origin_url(remote.value)
    if isinstance(origin, Err):
        return origin

    token_key = f"{config.repo_host}.token"
    token = repo.global_config(token_key)
    if isinstance(token, Err) or not token.value.strip():
        return Err(
            ConfigValidationError(
                "Looks like you haven't set up your repo's token yet.",
                hint=f"Run: git config --global {token_key} <YOUR_TOKEN>",
            )
        )
    console.success("Repo token set up")

    api_url = config.api_url
    if api_url is None:
        return Err(ConfigValidationError(f"No API URL known for host `{config.repo_host}`"))

    probe = check_api(http=http, api_url=api_url, origin=origin.value, token=token.value.strip())
    if isinstance(probe, Err):
        return probe
    console.success("Can connect to repo API")

    return Ok(PreflightReport(origin=origin.value, token=token.value.strip(), api_url=api_url))
