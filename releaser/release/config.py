"""Typed release configuration (``.release.toml``).

The config is plain TOML validated against a statically declared, versioned
field table. ``render_config`` turns the same table back into a commented
template, which is what ``--generate-config`` and ``--update-config`` write.
"""

from __future__ import annotations

import json
import tomllib
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

from releaser.core.result import Err, Ok, Result
from releaser.core.structured import StrDict, as_str_dict, get_int, get_str
from releaser.release.errors import ConfigValidationError

__all__ = [
    "CONFIG_FIELDS",
    "CONFIG_FILENAME",
    "DEFAULT_HOST",
    "DEFAULT_REGISTRY",
    "HOST_API_URLS",
    "SCHEMA_VERSION",
    "SUPPORTED_HOSTS",
    "ConfigField",
    "ReleaseConfig",
    "load_config",
    "render_config",
    "validate_config",
]

CONFIG_FILENAME = ".release.toml"
SCHEMA_VERSION = 3

DEFAULT_HOST = "github"
DEFAULT_REGISTRY = "index.docker.io"
SUPPORTED_HOSTS: tuple[str, ...] = ("github", "gitea")
# Hosts whose public API location is known; every other host needs repo_api_url.
HOST_API_URLS: Mapping[str, str] = {"github": "https://api.github.com"}


@dataclass(frozen=True, slots=True)
class ConfigField:
    key: str
    description: str
    default: str | int


CONFIG_FIELDS: tuple[ConfigField, ...] = (
    ConfigField("version", "Config schema version (do not edit).", SCHEMA_VERSION),
    ConfigField("test_url", "URL the app is available at once started.", ""),
    ConfigField("cmd_test", "Command to run tests (defaults to `npm test` when package.json has one).", ""),
    ConfigField("cmd_compile", "Command to compile assets needed by the build.", ""),
    ConfigField("cmd_build", "Command to build the Docker image(s).", "docker compose build"),
    ConfigField("cmd_start", "Command to start the built container(s) for manual verification.", ""),
    ConfigField("cmd_stop", "Command to stop what cmd_start started.", "docker compose down"),
    ConfigField("manifest", "Version manifest (package.json, pyproject.toml or Cargo.toml).", "package.json"),
    ConfigField("docker_image", "Docker image name, e.g. `user/app`. Leave empty to skip Docker steps.", ""),
    ConfigField("docker_registry", f"Docker registry domain (default: {DEFAULT_REGISTRY}).", DEFAULT_REGISTRY),
    ConfigField("repo_host", f"Source host (Supported: {', '.join(SUPPORTED_HOSTS)}).", DEFAULT_HOST),
    ConfigField("repo_api_url", "Host API base URL (required when repo_host is not github).", ""),
)


@dataclass(frozen=True, slots=True)
class ReleaseConfig:
    """Validated release configuration."""

    version: int = SCHEMA_VERSION
    test_url: str | None = None
    cmd_test: str | None = None
    cmd_compile: str | None = None
    cmd_build: str | None = None
    cmd_start: str | None = None
    cmd_stop: str | None = "docker compose down"
    manifest: str = "package.json"
    docker_image: str | None = None
    docker_registry: str = DEFAULT_REGISTRY
    repo_host: str = DEFAULT_HOST
    repo_api_url: str | None = None

    @property
    def api_url(self) -> str | None:
        """Configured API URL, or the host's well-known one."""
        if self.repo_api_url:
            return self.repo_api_url.rstrip("/")
        return HOST_API_URLS.get(self.repo_host)

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> ReleaseConfig:
        """Create a config from parsed TOML. Absent keys take defaults."""
        return cls(
            version=get_int(data, "version") or 0,
            test_url=get_str(data, "test_url"),
            cmd_test=get_str(data, "cmd_test"),
            cmd_compile=get_str(data, "cmd_compile"),
            cmd_build=get_str(data, "cmd_build"),
            cmd_start=get_str(data, "cmd_start"),
            cmd_stop=get_str(data, "cmd_stop") if "cmd_stop" in data else "docker compose down",
            manifest=get_str(data, "manifest") or "package.json",
            docker_image=get_str(data, "docker_image"),
            docker_registry=get_str(data, "docker_registry") or DEFAULT_REGISTRY,
            repo_host=get_str(data, "repo_host") or DEFAULT_HOST,
            repo_api_url=get_str(data, "repo_api_url"),
        )


def parse_config_file(path: Path) -> Result[StrDict, ConfigValidationError]:
    """Parse the TOML file into a table, without validating it."""
    try:
        data_obj: object = tomllib.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        return Err(
            ConfigValidationError(
                f'No config detected for repo path "{path.parent}".',
                hint="Run: release --generate-config",
            )
        )
    except PermissionError:
        return Err(ConfigValidationError(f"Permission denied reading: {path}"))
    except tomllib.TOMLDecodeError as e:
        return Err(ConfigValidationError(f"Invalid TOML syntax in {path.name}: {e}"))
    except UnicodeDecodeError as e:
        return Err(ConfigValidationError(f"Error reading {path.name}: {e}"))

    data = as_str_dict(data_obj)
    if data is None:
        return Err(ConfigValidationError("Config root must be a TOML table"))
    return Ok(data)


def validate_config(config: ReleaseConfig) -> Result[ReleaseConfig, ConfigValidationError]:
    """Enforce schema version, supported host and API URL rules."""
    if not config.version:
        return Err(
            ConfigValidationError(
                "No version detected for your config.",
                hint="Run: release --update-config",
            )
        )
    if config.version < SCHEMA_VERSION:
        return Err(
            ConfigValidationError(
                "Your config appears to be out of date:\n"
                f'   Schema version "{SCHEMA_VERSION}" | Repo version "{config.version}"',
                hint="Run: release --update-config",
            )
        )
    if config.repo_host not in SUPPORTED_HOSTS:
        return Err(
            ConfigValidationError(
                "Your config does not have an acceptable value for `repo_host`",
                hint=f"Supported values are: {', '.join(SUPPORTED_HOSTS)}",
            )
        )
    if config.repo_host != DEFAULT_HOST and not config.repo_api_url:
        return Err(
            ConfigValidationError(
                f"`repo_api_url` needs to have a value when `repo_host` does not equal `{DEFAULT_HOST}`"
            )
        )
    return Ok(config)


def load_config(path: Path) -> Result[ReleaseConfig, ConfigValidationError]:
    """Load, parse and validate the release config.

    Args:
        path: Path to .release.toml

    Returns:
        Ok(ReleaseConfig) on success, Err(ConfigValidationError) on failure
    """
    parsed = parse_config_file(path)
    if isinstance(parsed, Err):
        return parsed
    return validate_config(ReleaseConfig.from_dict(parsed.value))


def _toml_value(value: object) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    # JSON string escaping is valid TOML basic-string escaping.
    return json.dumps(str(value), ensure_ascii=False)


def render_config(values: Mapping[str, object] | None = None) -> str:
    """Render the field table as a commented TOML document.

    Known keys take their value from ``values`` when present, otherwise the
    field default. ``version`` is always the current schema version.
    """
    values = values or {}
    lines = ["# Release configuration, read by `release`.", ""]
    for f in CONFIG_FIELDS:
        value: object = f.default
        if f.key != "version" and f.key in values:
            value = values[f.key]
        lines.append(f"# {f.description}")
        lines.append(f"{f.key} = {_toml_value(value)}")
        lines.append("")
    return "\n".join(lines).rstrip() + "\n"
