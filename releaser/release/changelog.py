"""Commit classification and changelog rendering.

A commit range's one-line log (``git log <from>..HEAD --oneline``) is split
into records, each subject is matched against a small grammar, and the
records are grouped into fixed-order sections of markdown-linked lines.

Subject grammar::

    subject   := [scope-text SP] type ":" [suffix] [" -"] SP free-text
    type      := "fix" | "ops" | "feat" | "chore" | "task"   (any case)

Everything up to and including the type delimiter is replaced by a plain
``": "`` marker, keeping any leading scope text. Subjects without a
recognized type go to "Uncategorized" unchanged.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping

from releaser.core.result import Err, Ok, Result
from releaser.release.errors import ClassificationError
from releaser.release.model import ChangelogSection, CommitRecord

__all__ = [
    "CATEGORY_ORDER",
    "CHANGELOG_HEADER",
    "TYPE_CATEGORIES",
    "changelog_entry",
    "classify",
    "parse_commit_line",
    "parse_subject",
    "release_message",
    "render_sections",
    "splice_changelog",
]

UNCATEGORIZED = "Uncategorized"
CATEGORY_ORDER: tuple[str, ...] = ("Bugfixes", "Dev-Ops", "Features", "Misc. Tasks", UNCATEGORIZED)
TYPE_CATEGORIES: Mapping[str, str] = {
    "fix": "Bugfixes",
    "ops": "Dev-Ops",
    "feat": "Features",
    "chore": "Misc. Tasks",
    "task": "Misc. Tasks",
}
CHANGELOG_HEADER = "# Changelog\n---\n"

_COMMIT_LINE = re.compile(r"^(?P<hash>[0-9a-f]{4,40})\s+(?P<subject>.*\S)\s*$", re.IGNORECASE)
_TYPE_TOKEN = re.compile(
    r"(?:^|\s)(?P<type>chore|feat|fix|ops|task):(?:[\w-]+)?(?: -)?\s",
    re.IGNORECASE,
)


def parse_commit_line(line: str) -> CommitRecord | None:
    """Split ``<short-hash> <subject>``; None for blank or malformed lines."""
    m = _COMMIT_LINE.match(line.strip())
    if m is None:
        return None
    return CommitRecord(short_hash=m.group("hash"), subject=m.group("subject"))


def parse_subject(subject: str) -> tuple[str | None, str, str]:
    """Extract the type token from a subject.

    Returns:
        (type, scope_text, free_text). type is lowercased, or None when the
        subject has no recognized token, in which case free_text is the
        whole subject.
    """
    m = _TYPE_TOKEN.search(subject)
    if m is None:
        return (None, "", subject)
    return (m.group("type").lower(), subject[: m.start()].strip(), subject[m.end() :].strip())


def _render_line(record: CommitRecord, link_template: str) -> tuple[str, str]:
    link = f"- [{record.short_hash}]({link_template.replace('{sha}', record.short_hash)})"
    kind, scope, text = parse_subject(record.subject)
    if kind is None:
        return (UNCATEGORIZED, f"{link} {record.subject}")
    marker = f" {scope}: " if scope else ": "
    return (TYPE_CATEGORIES[kind], f"{link}{marker}{text}")


def classify(
    log_text: str | bytes, link_template: str
) -> Result[tuple[ChangelogSection, ...], ClassificationError]:
    """Group a one-line commit log into ordered changelog sections.

    Args:
        log_text: Output of ``git log --oneline`` for the release range.
        link_template: Commit link with a ``{sha}`` placeholder, e.g.
            ``/user/repo/commit/{sha}``.

    Returns:
        Sections in CATEGORY_ORDER, empty ones omitted. An empty or
        malformed range yields no sections. Err only when the text cannot
        be read at all.
    """
    if isinstance(log_text, bytes):
        try:
            log_text = log_text.decode("utf-8")
        except UnicodeDecodeError as e:
            return Err(ClassificationError(f"commit log is not valid UTF-8: {e}"))
    if not isinstance(log_text, str):
        return Err(ClassificationError(f"commit log has unexpected type: {type(log_text).__name__}"))

    buckets: dict[str, list[str]] = {name: [] for name in CATEGORY_ORDER}
    for line in log_text.splitlines():
        record = parse_commit_line(line)
        if record is None:
            continue
        category, rendered = _render_line(record, link_template)
        buckets[category].append(rendered)

    return Ok(
        tuple(
            ChangelogSection(category=name, lines=tuple(buckets[name]))
            for name in CATEGORY_ORDER
            if buckets[name]
        )
    )


def render_sections(sections: Iterable[ChangelogSection]) -> str:
    return "\n\n".join(
        f"  **{s.category}**\n  " + "\n  ".join(s.lines) for s in sections
    )


def _details(tag: str, sections: tuple[ChangelogSection, ...]) -> str:
    return (
        f"## {tag}\n\n<details>\n  <summary>Expand for {tag} Details</summary>\n\n"
        f"{render_sections(sections)}\n</details>"
    )


def release_message(tag: str, sections: tuple[ChangelogSection, ...]) -> str:
    """Annotated tag message and hosted release body (identical text)."""
    if not sections:
        return f"## {tag}"
    return _details(tag, sections)


def changelog_entry(tag: str, sections: tuple[ChangelogSection, ...]) -> str:
    """Block inserted beneath the changelog header."""
    return f"\n{_details(tag, sections)}\n\n---\n"


def splice_changelog(original: str | None, entry: str) -> str:
    """Insert ``entry`` directly beneath the fixed header.

    A missing file or a file without the header gets the header prepended.
    """
    if original is None:
        return CHANGELOG_HEADER + entry
    if CHANGELOG_HEADER in original:
        return original.replace(CHANGELOG_HEADER, CHANGELOG_HEADER + entry, 1)
    return CHANGELOG_HEADER + entry + original
