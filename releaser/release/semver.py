from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Literal

ReleaseBump = Literal["patch", "minor", "major"]

BUMP_ORDER: tuple[ReleaseBump, ...] = ("patch", "minor", "major")
DEFAULT_VERSION = "0.0.1"

_VERSION_RE = re.compile(r"^v?(0|[1-9]\d*)\.(0|[1-9]\d*)\.(0|[1-9]\d*)$")


@dataclass(frozen=True, slots=True, order=True)
class VersionTriple:
    major: int
    minor: int
    patch: int

    def __str__(self) -> str:
        return f"{self.major}.{self.minor}.{self.patch}"

    def to_tag(self) -> str:
        return f"v{self}"

    def bump(self, kind: ReleaseBump) -> VersionTriple:
        match kind:
            case "major":
                return VersionTriple(self.major + 1, 0, 0)
            case "minor":
                return VersionTriple(self.major, self.minor + 1, 0)
            case "patch":
                return VersionTriple(self.major, self.minor, self.patch + 1)
            case _:
                raise AssertionError(f"unexpected bump kind: {kind}")


def parse_version(text: str) -> VersionTriple | None:
    m = _VERSION_RE.match(text.strip())
    if m is None:
        return None
    return VersionTriple(int(m.group(1)), int(m.group(2)), int(m.group(3)))


def candidates(current: VersionTriple) -> dict[ReleaseBump, VersionTriple]:
    """Next versions in prompt order: patch, minor, major."""
    return {kind: current.bump(kind) for kind in BUMP_ORDER}
