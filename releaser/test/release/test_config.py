"""Tests for the release config (.release.toml)."""

from __future__ import annotations

import tomllib
from pathlib import Path

from releaser.core.result import Err, Ok
from releaser.release.config import (
    CONFIG_FIELDS,
    SCHEMA_VERSION,
    ReleaseConfig,
    load_config,
    render_config,
    validate_config,
)


def _write(tmp_path: Path, content: str) -> Path:
    path = tmp_path / ".release.toml"
    path.write_text(content, encoding="utf-8")
    return path


class TestLoadConfig:
    def test_missing_file_hints_generate(self, tmp_path: Path) -> None:
        result = load_config(tmp_path / ".release.toml")
        assert isinstance(result, Err)
        assert result.error.hint == "Run: release --generate-config"

    def test_invalid_toml(self, tmp_path: Path) -> None:
        result = load_config(_write(tmp_path, "version = ["))
        assert isinstance(result, Err)
        assert "Invalid TOML" in result.error.message

    def test_minimal_config_gets_defaults(self, tmp_path: Path) -> None:
        result = load_config(_write(tmp_path, f"version = {SCHEMA_VERSION}\n"))

        assert isinstance(result, Ok)
        config = result.value
        assert config.repo_host == "github"
        assert config.api_url == "https://api.github.com"
        assert config.manifest == "package.json"
        assert config.cmd_stop == "docker compose down"
        assert config.docker_registry == "index.docker.io"
        assert config.docker_image is None

    def test_blank_strings_are_unset(self, tmp_path: Path) -> None:
        result = load_config(_write(tmp_path, f'version = {SCHEMA_VERSION}\ncmd_build = ""\ncmd_stop = ""\n'))
        assert isinstance(result, Ok)
        assert result.value.cmd_build is None
        assert result.value.cmd_stop is None

    def test_missing_version_hints_update(self, tmp_path: Path) -> None:
        result = load_config(_write(tmp_path, 'test_url = "http://localhost"\n'))
        assert isinstance(result, Err)
        assert result.error.hint == "Run: release --update-config"

    def test_outdated_version(self, tmp_path: Path) -> None:
        result = load_config(_write(tmp_path, "version = 1\n"))
        assert isinstance(result, Err)
        assert "out of date" in result.error.message
        assert result.error.hint == "Run: release --update-config"


class TestValidateConfig:
    def test_unsupported_host(self) -> None:
        result = validate_config(ReleaseConfig(repo_host="bitbucket"))
        assert isinstance(result, Err)
        assert "github, gitea" in (result.error.hint or "")

    def test_non_default_host_needs_api_url(self) -> None:
        result = validate_config(ReleaseConfig(repo_host="gitea"))
        assert isinstance(result, Err)
        assert "repo_api_url" in result.error.message

    def test_gitea_with_api_url(self) -> None:
        config = ReleaseConfig(repo_host="gitea", repo_api_url="https://git.example.com/api/v1/")
        assert validate_config(config) == Ok(config)
        assert config.api_url == "https://git.example.com/api/v1"

    def test_newer_version_accepted(self) -> None:
        config = ReleaseConfig(version=SCHEMA_VERSION + 1)
        assert isinstance(validate_config(config), Ok)


class TestRenderConfig:
    def test_template_parses_and_validates(self, tmp_path: Path) -> None:
        text = render_config()

        data = tomllib.loads(text)

        assert set(data) == {f.key for f in CONFIG_FIELDS}
        assert data["version"] == SCHEMA_VERSION
        assert isinstance(load_config(_write(tmp_path, text)), Ok)

    def test_values_override_defaults_except_version(self) -> None:
        data = tomllib.loads(render_config({"version": 1, "cmd_build": 'make "image"'}))
        assert data["version"] == SCHEMA_VERSION
        assert data["cmd_build"] == 'make "image"'

    def test_fields_are_commented(self) -> None:
        text = render_config()
        for f in CONFIG_FIELDS:
            assert f"# {f.description}\n{f.key} = " in text
