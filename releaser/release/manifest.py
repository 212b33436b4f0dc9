from __future__ import annotations

import json
import re
from pathlib import Path

from releaser.core.result import Err, Ok, Result
from releaser.core.structured import as_str_dict, get_str, get_table
from releaser.release.errors import ManifestError
from releaser.release.semver import DEFAULT_VERSION, VersionTriple, parse_version

# TOML manifests and the table holding their package version.
_TOML_SECTIONS = {"pyproject.toml": "[project]", "Cargo.toml": "[package]"}
_TOML_VERSION = re.compile(r'(?m)^version[ \t]*=[ \t]*"([^"]+)"[ \t]*$')


def read_manifest_version(path: Path) -> Result[VersionTriple, ManifestError]:
    """Current version from the manifest; ``0.0.1`` when none is declared."""
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        return Err(ManifestError(path=path, message=f"failed to read {path.name}: {e}"))

    raw = _extract_version(path, text)
    if isinstance(raw, Err):
        return raw

    value = raw.value or DEFAULT_VERSION
    version = parse_version(value)
    if version is None:
        return Err(
            ManifestError(path=path, message=f"version {value!r} is not MAJOR.MINOR.PATCH")
        )
    return Ok(version)


def bump_manifest_text(path: Path, text: str, version: VersionTriple) -> Result[str, ManifestError]:
    """Return the manifest text with its version field set to ``version``."""
    if path.name in _TOML_SECTIONS:
        return _replace_toml_version(path, text, str(version))

    data = _load_json(path, text)
    if isinstance(data, Err):
        return data
    data.value["version"] = str(version)
    # npm lockfiles repeat the root package version under packages[""].
    packages = get_table(data.value, "packages")
    root = get_table(packages, "") if packages is not None else None
    if root is not None and "version" in root:
        root["version"] = str(version)
    return Ok(json.dumps(data.value, indent=2, ensure_ascii=False) + "\n")


def _extract_version(path: Path, text: str) -> Result[str | None, ManifestError]:
    if path.name in _TOML_SECTIONS:
        section = _toml_section(path, text)
        if isinstance(section, Err):
            return section
        _, sub = section.value
        m = _TOML_VERSION.search(sub)
        return Ok(m.group(1) if m else None)

    data = _load_json(path, text)
    if isinstance(data, Err):
        return data
    return Ok(get_str(data.value, "version"))


def _load_json(path: Path, text: str) -> Result[dict[str, object], ManifestError]:
    try:
        obj: object = json.loads(text)
    except json.JSONDecodeError as e:
        return Err(ManifestError(path=path, message=f"invalid JSON in {path.name}: {e}"))

    data = as_str_dict(obj)
    if data is None:
        return Err(ManifestError(path=path, message=f"invalid JSON root in {path.name}"))
    return Ok(data)


def _toml_section(path: Path, text: str) -> Result[tuple[str, str], ManifestError]:
    header = _TOML_SECTIONS[path.name]
    idx = text.find(header)
    if idx < 0:
        return Err(ManifestError(path=path, message=f"missing {header} section in {path.name}"))

    # Limit the search to the section body, up to the next table header.
    body_start = idx + len(header)
    nxt = re.search(r"(?m)^\[", text[body_start:])
    end = body_start + nxt.start() if nxt else len(text)
    return Ok((text[:idx], text[idx:end]))


def _replace_toml_version(path: Path, text: str, version: str) -> Result[str, ManifestError]:
    section = _toml_section(path, text)
    if isinstance(section, Err):
        return section

    prefix, sub = section.value
    m = _TOML_VERSION.search(sub)
    if m is None:
        return Err(ManifestError(path=path, message=f"missing package version in {path.name}"))

    replaced = sub[: m.start()] + f'version = "{version}"' + sub[m.end() :]
    return Ok(prefix + replaced + text[len(prefix) + len(sub) :])
