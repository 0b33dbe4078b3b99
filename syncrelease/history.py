"""Conventional-commit history: next-version derivation and changelog generation."""
from abc import ABC, abstractmethod
from dataclasses import replace
from datetime import date
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from .commit_message import CommitMessage, parse_header
from .models import CommitRecord, CommitType, FooterKind
from .semver import SemVer, is_valid_semver, looks_like_date
from .vcs import Repository

UNRELEASED_PLACEHOLDER = "[Unreleased]"
CHANGELOG_TITLE = "# Changelog"
CHANGELOG_SECTIONS = (
    ("breaking", "Breaking Changes"),
    (CommitType.FEAT.value, "Features"),
    (CommitType.FIX.value, "Bug Fixes"),
    (CommitType.PERF.value, "Performance Improvements"),
    (CommitType.REVERT.value, "Reverts"),
)


def is_breaking(record: CommitRecord) -> bool:
    message = CommitMessage.parse(record.message)
    header = parse_header(message.header)
    if header is not None and header.type == CommitType.BREAK.value:
        return True
    return any(e.kind == FooterKind.BREAKING_CHANGES for e in message.footer_entries())


def bump_kind(records: Sequence[CommitRecord]) -> Optional[str]:
    """Return ``major``, ``minor``, ``patch`` or None for the given commits."""
    kind = None
    for record in records:
        if is_breaking(record):
            return "major"
        header = parse_header(CommitMessage.parse(record.message).header)
        if header is None:
            continue
        if header.type == CommitType.FEAT.value:
            kind = "minor"
        elif header.type == CommitType.FIX.value and kind is None:
            kind = "patch"
    return kind


def bump(version: SemVer, kind: Optional[str]) -> SemVer:
    if kind == "major":
        return replace(version, major=version.major + 1, minor=0, patch=0)
    if kind == "minor":
        return replace(version, minor=version.minor + 1, patch=0)
    if kind == "patch":
        return replace(version, patch=version.patch + 1)
    return version


class HistoryTool(ABC):
    """Collaborator that reads the commit history on behalf of the synchronizer."""

    @abstractmethod
    def next_version(self, current: SemVer) -> str:
        """Return the computed next version as ``M.N.P[-tweak]``."""

    @abstractmethod
    def update_changelog(self, path: Path) -> None:
        """Rewrite ``path`` in place with a section for the unreleased commits."""

    def is_valid_semver(self, candidate: str) -> bool:
        return is_valid_semver(candidate)


class ConventionalHistory(HistoryTool):
    """History tool scanning conventional commits since the last tag."""

    def __init__(
        self,
        repository: Repository,
        today: Optional[date] = None,
    ):
        self.repository = repository
        self.today = today

    def _records(self) -> List[CommitRecord]:
        return self.repository.commits_since(self.repository.last_tag())

    def next_version(self, current: SemVer) -> str:
        candidate = bump(current, bump_kind(self._records()))
        if candidate.tweak is not None:
            tweak = candidate.tweak.with_hash(None)
            # date counters are refreshed by the caller, not incremented
            if not looks_like_date(tweak.counter):
                tweak = tweak.bump_counter()
            candidate = replace(candidate, tweak=None if tweak.is_empty else tweak)
        return str(candidate)

    def _group(self, records: Sequence[CommitRecord]) -> Dict[str, List[str]]:
        groups: Dict[str, List[str]] = {key: [] for key, _ in CHANGELOG_SECTIONS}
        for record in records:
            header = parse_header(CommitMessage.parse(record.message).header)
            if header is None:
                continue
            key = "breaking" if is_breaking(record) else header.type
            if key not in groups:
                continue
            scope = f"**{header.scope}**: " if header.scope else ""
            groups[key].append(f"- {scope}{header.subject} ({record.hexsha[:7]})")
        return groups

    def render_section(self, records: Sequence[CommitRecord]) -> str:
        today = self.today or date.today()
        lines = [f"## {UNRELEASED_PLACEHOLDER} - {today.isoformat()}", ""]
        groups = self._group(records)
        for key, title in CHANGELOG_SECTIONS:
            if groups[key]:
                lines.extend([f"### {title}", "", *groups[key], ""])
        return "\n".join(lines).rstrip("\n") + "\n"

    def update_changelog(self, path: Path) -> None:
        section = self.render_section(self._records())
        content = path.read_text(encoding="utf-8") if path.exists() else f"{CHANGELOG_TITLE}\n"

        lines = content.split('\n')
        insert_index = 0
        for i, line in enumerate(lines):
            if line.startswith(CHANGELOG_TITLE):
                insert_index = i + 1
                break
        head = '\n'.join(lines[:insert_index])
        tail = '\n'.join(lines[insert_index:]).lstrip('\n')
        if head:
            content = f"{head}\n\n{section}\n{tail}" if tail else f"{head}\n\n{section}"
        else:
            content = f"{section}\n{tail}" if tail else section

        path.write_text(content, encoding="utf-8")


def finalize_changelog(path: Path, tag: str) -> bool:
    """Replace the first unreleased placeholder with ``tag``."""
    content = path.read_text(encoding="utf-8")
    if UNRELEASED_PLACEHOLDER not in content:
        return False
    path.write_text(content.replace(UNRELEASED_PLACEHOLDER, f"[{tag}]", 1), encoding="utf-8")
    return True
