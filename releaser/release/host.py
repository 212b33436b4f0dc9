"""Source-host API and Docker registry boundary.

Only three network-visible operations exist: the registry reachability
probe, the API connectivity probe and the release creation request.
"""

from __future__ import annotations

import json
from pathlib import Path

from releaser.core.result import Err, Ok, Result
from releaser.core.structured import as_str_dict, get_table
from releaser.platform.http import HttpClient
from releaser.release.errors import ConfigValidationError, ConnectivityError
from releaser.release.model import OriginRepo

REDACTED = "******"


def default_docker_config_path() -> Path:
    return Path.home() / ".docker" / "config.json"


def auth_headers(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}", "Accept": "application/json"}


def repo_api_url(api_url: str, origin: OriginRepo) -> str:
    return f"{api_url}/repos/{origin.user}/{origin.repo}"


def releases_url(api_url: str, origin: OriginRepo) -> str:
    return f"{repo_api_url(api_url, origin)}/releases"


def release_payload(*, tag: str, body: str, branch: str) -> dict[str, object]:
    return {
        "body": body,
        "draft": False,
        "name": tag,
        "prerelease": False,
        "tag_name": tag,
        "target_commitish": branch,
    }


def find_registry_login(
    *, docker_config: Path, registry: str
) -> Result[str, ConfigValidationError | ConnectivityError]:
    """Return the ``auths`` entry (registry URL) matching ``registry``."""
    try:
        obj: object = json.loads(docker_config.read_text(encoding="utf-8"))
    except FileNotFoundError:
        return Err(
            ConnectivityError(
                target=registry,
                message="Docker is not logged in",
                hint=f"Run: docker login {registry} -u <USERNAME>",
            )
        )
    except (OSError, json.JSONDecodeError) as e:
        return Err(ConfigValidationError(f"Problem verifying your Docker setup:\n{e}"))

    data = as_str_dict(obj) or {}
    auths = get_table(data, "auths") or {}
    for url in auths:
        if registry in url:
            return Ok(url)

    return Err(
        ConnectivityError(
            target=registry,
            message="Docker is not logged in",
            hint=f"Run: docker login {registry} -u <USERNAME>",
        )
    )


def registry_probe_url(auth_url: str) -> str:
    url = auth_url if "://" in auth_url else f"https://{auth_url}"
    if not url.endswith("/"):
        url += "/"
    # The registry base URL rejects anonymous GETs; /search answers 200.
    return f"{url}search"


def check_registry(*, http: HttpClient, auth_url: str) -> Result[None, ConnectivityError]:
    url = registry_probe_url(auth_url)
    result = http.get(url)
    if isinstance(result, Err) or result.value.status != 200:
        detail = str(result.error) if isinstance(result, Err) else f"HTTP {result.value.status}"
        return Err(
            ConnectivityError(
                target=url,
                message="Could not connect to the Docker registry",
                hint=detail,
            )
        )
    return Ok(None)


def check_api(
    *, http: HttpClient, api_url: str, origin: OriginRepo, token: str
) -> Result[None, ConnectivityError]:
    url = repo_api_url(api_url, origin)
    result = http.get(url, headers=auth_headers(token))
    if isinstance(result, Err):
        return Err(
            ConnectivityError(
                target=url,
                message="Problem testing repo API connection",
                hint=str(result.error),
            )
        )
    return Ok(None)


def create_release(
    *,
    http: HttpClient,
    api_url: str,
    origin: OriginRepo,
    token: str,
    payload: dict[str, object],
) -> Result[None, ConnectivityError]:
    url = releases_url(api_url, origin)
    result = http.post_json(url, payload, headers=auth_headers(token))
    if isinstance(result, Err):
        return Err(
            ConnectivityError(
                target=url,
                message="Couldn't promote tag to a release",
                hint=str(result.error),
            )
        )
    return Ok(None)
